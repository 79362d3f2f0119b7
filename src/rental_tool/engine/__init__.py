"""Engine subpackage - rental-fee calculation and its data models."""
from .rental_engine import RentalEngine, compute_all
from .models import RawProduct, RateConfig, PeriodBreakdown, ComputedProduct, CalculationResult, SkippedProduct
from .errors import ConfigurationError, ProductValidationError, IngestionError

__all__ = [
    'RentalEngine', 'compute_all',
    'RawProduct', 'RateConfig', 'PeriodBreakdown', 'ComputedProduct', 'CalculationResult', 'SkippedProduct',
    'ConfigurationError', 'ProductValidationError', 'IngestionError',
]
