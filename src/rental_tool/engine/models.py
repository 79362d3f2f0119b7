"""
Data models for the rental engine.

Uses dataclasses for structured, type-safe data representation.
Inputs and outputs are frozen: a recomputation replaces results wholesale.
"""
import math
from numbers import Real
from dataclasses import asdict, dataclass, field, replace
from typing import Optional

from .errors import ConfigurationError


def parse_rate(value, allow_zero: bool = False) -> float:
    """
    Parse a percentage typed by the user.

    Accepts numbers or text ("75", " 106.5 ", "1,000"). Rejects anything
    that is not a finite number > 0 (>= 0 when allow_zero is set).
    """
    if isinstance(value, bool):
        raise ConfigurationError(f"Rate must be a number, got {value!r}")
    if isinstance(value, str):
        text = value.replace(",", "").strip()
        if not text:
            raise ConfigurationError("Rate must not be empty")
        try:
            number = float(text)
        except ValueError:
            raise ConfigurationError(f"Rate is not a number: {value!r}") from None
    else:
        try:
            number = float(value)
        except (TypeError, ValueError):
            raise ConfigurationError(f"Rate is not a number: {value!r}") from None

    if not math.isfinite(number):
        raise ConfigurationError(f"Rate must be finite, got {value!r}")
    if allow_zero and number < 0:
        raise ConfigurationError(f"Rate must be zero or greater, got {number:g}")
    if not allow_zero and number <= 0:
        raise ConfigurationError(f"Rate must be greater than zero, got {number:g}")
    return number


@dataclass(frozen=True)
class RawProduct:
    """A product as supplied by ingestion: identity plus one-time (cash) price."""
    product_name: str
    model_name: str
    price: float


@dataclass(frozen=True)
class RateConfig:
    """
    Rate parameters for one calculation.

    Held by the host (UI or API) and passed into every compute call.
    Edits go through the with_* methods, which validate the new value and
    return a new config; the current one is never mutated.
    """
    supply_rate_percent: float
    periods: tuple[int, ...]
    discount_rate_percent: dict[int, float] = field(default_factory=dict)
    fee_rate_percent: dict[int, float] = field(default_factory=dict)
    selected_period: Optional[int] = None

    def validate(self) -> None:
        """Raise ConfigurationError if the config cannot drive a calculation."""
        if not self.periods:
            raise ConfigurationError("At least one rental period is required")

        for period in self.periods:
            if isinstance(period, bool) or not isinstance(period, int) or period <= 0:
                raise ConfigurationError(f"Rental period must be a positive integer, got {period!r}")
        if len(set(self.periods)) != len(self.periods):
            raise ConfigurationError(f"Rental periods must be distinct: {list(self.periods)}")

        _check_rate("Supply rate", self.supply_rate_percent, allow_zero=False)

        for label, table, allow_zero in (
            ("discount rate", self.discount_rate_percent, False),
            ("fee rate", self.fee_rate_percent, True),
        ):
            missing = [p for p in self.periods if p not in table]
            if missing:
                raise ConfigurationError(
                    f"Missing {label} for period(s): {', '.join(str(p) for p in missing)}"
                )
            extra = [p for p in table if p not in self.periods]
            if extra:
                raise ConfigurationError(
                    f"Unknown period(s) in {label} table: {', '.join(str(p) for p in extra)}"
                )
            for period in self.periods:
                _check_rate(f"{label.capitalize()} for {period} months", table[period], allow_zero)

        if self.selected_period is not None and self.selected_period not in self.periods:
            raise ConfigurationError(
                f"Selected period {self.selected_period} is not one of {list(self.periods)}"
            )

    @property
    def effective_period(self) -> int:
        """The period the selected view shows: the chosen one, else the first."""
        if self.selected_period is not None:
            return self.selected_period
        return self.periods[0]

    def with_supply_rate(self, value) -> 'RateConfig':
        return replace(self, supply_rate_percent=parse_rate(value))

    def with_discount_rate(self, period: int, value) -> 'RateConfig':
        self._require_period(period)
        rates = dict(self.discount_rate_percent)
        rates[period] = parse_rate(value)
        return replace(self, discount_rate_percent=rates)

    def with_fee_rate(self, period: int, value) -> 'RateConfig':
        self._require_period(period)
        rates = dict(self.fee_rate_percent)
        rates[period] = parse_rate(value, allow_zero=True)
        return replace(self, fee_rate_percent=rates)

    def with_selected_period(self, period: int) -> 'RateConfig':
        self._require_period(period)
        return replace(self, selected_period=period)

    def _require_period(self, period: int):
        if period not in self.periods:
            raise ConfigurationError(f"Unknown rental period: {period}")

    def to_dict(self) -> dict:
        return {
            "supply_rate_percent": self.supply_rate_percent,
            "periods": list(self.periods),
            "discount_rate_percent": {p: self.discount_rate_percent.get(p) for p in self.periods},
            "fee_rate_percent": {p: self.fee_rate_percent.get(p) for p in self.periods},
            "selected_period": self.selected_period,
        }


def _check_rate(label: str, value, allow_zero: bool):
    if isinstance(value, bool) or not isinstance(value, Real):
        raise ConfigurationError(f"{label} must be a number, got {value!r}")
    if not math.isfinite(value):
        raise ConfigurationError(f"{label} must be finite, got {value!r}")
    if value < 0 or (value == 0 and not allow_zero):
        bound = "zero or greater" if allow_zero else "greater than zero"
        raise ConfigurationError(f"{label} must be {bound}, got {value:g}")


@dataclass(frozen=True)
class PeriodBreakdown:
    """Rental figures for one product over one rental period."""
    period: int
    discount_rate_percent: float
    fee_rate_percent: float
    total_rental_fee: float
    monthly_rental_fee: int
    final_monthly_rental_fee: int
    final_total_rental_fee: int
    rental_company_profit: float
    supply_value: float

    def basic(self) -> dict:
        """Projection without fee-rate fields (period, discount, totals and monthly figures)."""
        return {
            "period": self.period,
            "discount_rate_percent": self.discount_rate_percent,
            "total_rental_fee": self.total_rental_fee,
            "monthly_rental_fee": self.monthly_rental_fee,
            "final_monthly_rental_fee": self.final_monthly_rental_fee,
            "final_total_rental_fee": self.final_total_rental_fee,
        }


@dataclass(frozen=True)
class ComputedProduct:
    """A RawProduct with its supply price and the breakdown for every configured period."""
    product_name: str
    model_name: str
    price: float
    supply_price: float
    adjusted_price: int
    breakdowns: tuple[PeriodBreakdown, ...]
    selected_period: int

    def breakdown_for(self, period: int) -> PeriodBreakdown:
        for breakdown in self.breakdowns:
            if breakdown.period == period:
                return breakdown
        raise ConfigurationError(
            f"Period {period} was not computed for {self.product_name} ({self.model_name})"
        )

    @property
    def selected(self) -> PeriodBreakdown:
        """Breakdown for the period currently of interest to the caller."""
        return self.breakdown_for(self.selected_period)

    def with_selected_period(self, period: int) -> 'ComputedProduct':
        """Same figures, different selected view. No recomputation needed."""
        self.breakdown_for(period)
        return replace(self, selected_period=period)

    def to_dict(self) -> dict:
        """Flat dict of the raw fields, supply figures, selected view and all breakdowns."""
        selected = self.selected
        return {
            "product_name": self.product_name,
            "model_name": self.model_name,
            "price": self.price,
            "supply_price": self.supply_price,
            "adjusted_price": self.adjusted_price,
            "selected_period": self.selected_period,
            "total_rental_fee": selected.total_rental_fee,
            "monthly_rental_fee": selected.monthly_rental_fee,
            "final_monthly_rental_fee": selected.final_monthly_rental_fee,
            "final_total_rental_fee": selected.final_total_rental_fee,
            "rental_company_profit": selected.rental_company_profit,
            "supply_value": selected.supply_value,
            "breakdowns": [asdict(b) for b in self.breakdowns],
        }


@dataclass(frozen=True)
class SkippedProduct:
    """A product excluded from a calculation, with its position in the input."""
    index: int
    product: RawProduct
    reason: str


@dataclass
class CalculationResult:
    """Complete result of a compute_all call."""
    products: list[ComputedProduct] = field(default_factory=list)
    skipped: list[SkippedProduct] = field(default_factory=list)
    config: Optional[RateConfig] = None

    @property
    def warnings(self) -> list[str]:
        """Human-readable line per skipped product."""
        return [
            f"Row {s.index + 1} ({s.product.product_name or 'unnamed'}): {s.reason}"
            for s in self.skipped
        ]

    def with_selected_period(self, period: int) -> 'CalculationResult':
        return CalculationResult(
            products=[p.with_selected_period(period) for p in self.products],
            skipped=list(self.skipped),
            config=self.config.with_selected_period(period) if self.config else None,
        )
