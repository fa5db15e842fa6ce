"""Device-plan pricing and subsidy calculation service."""

__version__ = "0.1.0"
