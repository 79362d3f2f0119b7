"""
Rental Engine - turns one-time prices into rental-plan pricing.

For every product:
- Supply price from the global supply rate, plus a 10-unit rounded copy
- Per rental period: total fee from the discount rate, monthly fee rounded
  to the unit and then to the thousand, final total re-derived from the
  rounded monthly fee, rental-company fee and supplier value

Rounding is half-away-from-zero at every step. Arithmetic runs on Decimal
so results do not depend on binary float artefacts at .5 boundaries.
"""
import logging
import math
from decimal import Decimal, ROUND_HALF_UP
from numbers import Real
from typing import Iterable, Optional

from .errors import ProductValidationError
from .models import (
    CalculationResult,
    ComputedProduct,
    PeriodBreakdown,
    RateConfig,
    RawProduct,
    SkippedProduct,
)

logger = logging.getLogger(__name__)

HUNDRED = Decimal(100)


def round_half_up(value: Decimal) -> int:
    """Round to the nearest integer, .5 away from zero (never to even)."""
    return int(value.to_integral_value(rounding=ROUND_HALF_UP))


def round_to(value: Decimal, unit: int) -> int:
    """Round to the nearest multiple of unit, .5 away from zero."""
    return round_half_up(value / unit) * unit


def to_decimal(value) -> Decimal:
    """Decimal from the shortest repr, so 0.1 stays 0.1."""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, int):
        return Decimal(value)
    return Decimal(repr(float(value)))


def validate_price(price) -> float:
    """Return price as a float, or raise ProductValidationError."""
    if price is None:
        raise ProductValidationError("price is missing")
    if isinstance(price, bool) or not isinstance(price, Real):
        raise ProductValidationError(f"price is not a number: {price!r}")
    if not math.isfinite(price):
        raise ProductValidationError(f"price is not a finite number: {price!r}")
    if price <= 0:
        raise ProductValidationError(f"price must be greater than zero, got {price:g}")
    return float(price)


class RentalEngine:
    """
    Stateless rental-fee calculator.

    Holds no data between calls; every compute is independent and
    repeatable, so one instance can be shared freely across threads.
    """

    def compute(self, product: RawProduct, config: RateConfig,
                validate_config: bool = True) -> ComputedProduct:
        """
        Compute every period's breakdown for one product.

        Raises:
            ConfigurationError: config is malformed (checked first)
            ProductValidationError: product price is not a finite number > 0
        """
        if validate_config:
            config.validate()

        try:
            price = validate_price(product.price)
        except ProductValidationError as e:
            raise ProductValidationError(e.reason, product=product) from None

        price_d = to_decimal(price)

        # 1. Supply price = price × supply rate
        supply_price = price_d * to_decimal(config.supply_rate_percent) / HUNDRED

        # 2. Adjusted price, rounded to tens
        adjusted_price = round_to(supply_price, 10)

        breakdowns = tuple(
            self._compute_period(price_d, period, config)
            for period in config.periods
        )

        logger.debug(
            "Computed %s (%s): price=%s supply=%s periods=%s",
            product.product_name, product.model_name, price,
            supply_price, list(config.periods)
        )

        return ComputedProduct(
            product_name=product.product_name,
            model_name=product.model_name,
            price=price,
            supply_price=float(supply_price),
            adjusted_price=adjusted_price,
            breakdowns=breakdowns,
            selected_period=config.effective_period,
        )

    def _compute_period(self, price: Decimal, period: int, config: RateConfig) -> PeriodBreakdown:
        """Figures for one rental period. Order matters: later steps round earlier ones."""
        discount_percent = config.discount_rate_percent[period]
        fee_percent = config.fee_rate_percent[period]

        discount_rate = to_decimal(discount_percent) / HUNDRED
        fee_rate = to_decimal(fee_percent) / HUNDRED

        # Total rental fee = price × discount rate (unrounded)
        total_rental_fee = price * discount_rate

        # Monthly fee, first integral figure
        monthly_rental_fee = round_half_up(total_rental_fee / period)

        # Customer-facing monthly fee, rounded to thousands
        final_monthly_rental_fee = round_to(Decimal(monthly_rental_fee), 1000)

        # Billing total re-derived from the rounded monthly fee
        final_total_rental_fee = final_monthly_rental_fee * period

        rental_company_profit = final_total_rental_fee * fee_rate
        supply_value = final_total_rental_fee - rental_company_profit

        return PeriodBreakdown(
            period=period,
            discount_rate_percent=discount_percent,
            fee_rate_percent=fee_percent,
            total_rental_fee=float(total_rental_fee),
            monthly_rental_fee=monthly_rental_fee,
            final_monthly_rental_fee=final_monthly_rental_fee,
            final_total_rental_fee=final_total_rental_fee,
            rental_company_profit=float(rental_company_profit),
            supply_value=float(supply_value),
        )

    def compute_all(self, products: Iterable[RawProduct], config: RateConfig) -> CalculationResult:
        """
        Compute every product against one config.

        The config is checked once, before any product is touched; a bad
        config raises ConfigurationError. Products with an unusable price are
        left out of the result and listed in result.skipped with the reason.
        """
        config.validate()

        result = CalculationResult(config=config)

        for index, product in enumerate(products):
            try:
                computed = self.compute(product, config, validate_config=False)
            except ProductValidationError as e:
                result.skipped.append(SkippedProduct(index=index, product=product, reason=e.reason))
                logger.warning(
                    "Skipping product #%d %r (%r): %s",
                    index + 1, product.product_name, product.model_name, e.reason
                )
                continue
            result.products.append(computed)

        logger.info(
            "Calculated %d product(s), skipped %d, periods=%s",
            len(result.products), len(result.skipped), list(config.periods)
        )
        return result


_default_engine: Optional[RentalEngine] = None


def get_engine() -> RentalEngine:
    """Get the shared engine instance."""
    global _default_engine
    if _default_engine is None:
        _default_engine = RentalEngine()
    return _default_engine


def compute_all(products: Iterable[RawProduct], config: RateConfig) -> CalculationResult:
    """Module-level shortcut for RentalEngine().compute_all."""
    return get_engine().compute_all(products, config)
