"""
Centralized settings and default rate tables for the rental tool.
"""
import os
from pathlib import Path
from dataclasses import dataclass, field
from typing import Optional

from ..engine.models import RateConfig, parse_rate


DEFAULT_PERIODS = (12, 24, 36, 48)

# Discount (total-rental multiplier) per period, in percent
DEFAULT_DISCOUNT_RATES = {12: 100.0, 24: 106.0, 36: 111.0, 48: 116.0}

# Rental-company fee per period, in percent
DEFAULT_FEE_RATES = {12: 21.0, 24: 26.0, 36: 28.0, 48: 31.0}


def get_project_root() -> Path:
    """Get the project root directory (where pyproject.toml lives)."""
    current = Path(__file__).resolve()
    for parent in current.parents:
        if (parent / 'pyproject.toml').exists():
            return parent
    # Fallback to 3 levels up from this file
    return Path(__file__).resolve().parent.parent.parent.parent


@dataclass
class Settings:
    """Application settings with sensible defaults."""

    project_root: Path
    output_dir: Path

    supply_rate_percent: float = 75.0
    periods: tuple = DEFAULT_PERIODS
    discount_rates: dict[int, float] = field(default_factory=lambda: dict(DEFAULT_DISCOUNT_RATES))
    fee_rates: dict[int, float] = field(default_factory=lambda: dict(DEFAULT_FEE_RATES))
    selected_period: int = 12

    @classmethod
    def load(cls, project_root: Optional[Path] = None) -> 'Settings':
        """
        Load settings from the project structure.

        RENTAL_SUPPLY_RATE and RENTAL_OUTPUT_DIR override the defaults.
        """
        root = project_root or get_project_root()

        supply_rate = 75.0
        if os.environ.get('RENTAL_SUPPLY_RATE'):
            supply_rate = parse_rate(os.environ['RENTAL_SUPPLY_RATE'])

        output_dir = Path(os.environ.get('RENTAL_OUTPUT_DIR') or root / 'outputs')

        return cls(
            project_root=root,
            output_dir=output_dir,
            supply_rate_percent=supply_rate,
        )

    def default_rate_config(self) -> RateConfig:
        """Initial RateConfig for a new session."""
        config = RateConfig(
            supply_rate_percent=self.supply_rate_percent,
            periods=tuple(self.periods),
            discount_rate_percent=dict(self.discount_rates),
            fee_rate_percent=dict(self.fee_rates),
            selected_period=self.selected_period,
        )
        config.validate()
        return config


# Default settings instance
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get the global settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings.load()
    return _settings
