"""Error taxonomy for ingestion, configuration and calculation."""
from typing import Optional


class RentalToolError(Exception):
    """Base class for all rental tool errors."""


class ConfigurationError(RentalToolError):
    """A RateConfig is malformed or incomplete. Fatal to the calculation call."""


class ProductValidationError(RentalToolError):
    """A single product cannot be priced. The product is excluded, the reason kept."""

    def __init__(self, reason: str, product=None):
        super().__init__(reason)
        self.reason = reason
        self.product = product


class IngestionError(RentalToolError):
    """The tabular source could not be turned into products."""

    def __init__(self, message: str, missing_fields: Optional[list[str]] = None):
        super().__init__(message)
        self.missing_fields = missing_fields or []
