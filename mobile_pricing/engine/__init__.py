"""Engine package exports."""

from mobile_pricing.engine.calculator import (
    CalculationInput,
    CalculationResult,
    ContractComparison,
    PricingEngine,
)
from mobile_pricing.engine.exceptions import PricingError, ValidationError

__all__ = [
    "CalculationInput",
    "CalculationResult",
    "ContractComparison",
    "PricingEngine",
    "PricingError",
    "ValidationError",
]
