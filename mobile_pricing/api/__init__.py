"""HTTP surface for the pricing engine."""
