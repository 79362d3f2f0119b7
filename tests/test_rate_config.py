import os
import sys
import pytest

# Add src to path for internal imports
src_path = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), 'src')
if src_path not in sys.path:
    sys.path.insert(0, src_path)

from rental_tool.config.settings import Settings, DEFAULT_DISCOUNT_RATES, DEFAULT_FEE_RATES
from rental_tool.engine import RateConfig, ConfigurationError
from rental_tool.engine.models import parse_rate


@pytest.fixture
def config(tmp_path):
    return Settings.load(project_root=tmp_path).default_rate_config()


def test_defaults(config):
    assert config.supply_rate_percent == 75
    assert config.periods == (12, 24, 36, 48)
    assert config.discount_rate_percent == {12: 100, 24: 106, 36: 111, 48: 116}
    assert config.fee_rate_percent == {12: 21, 24: 26, 36: 28, 48: 31}
    assert config.selected_period == 12


def test_defaults_are_not_shared_between_configs(tmp_path):
    settings = Settings.load(project_root=tmp_path)
    config = settings.default_rate_config()
    config.discount_rate_percent[12] = 999

    assert DEFAULT_DISCOUNT_RATES[12] == 100
    assert settings.default_rate_config().discount_rate_percent[12] == 100


def test_env_overrides(tmp_path, monkeypatch):
    monkeypatch.setenv('RENTAL_SUPPLY_RATE', '80')
    monkeypatch.setenv('RENTAL_OUTPUT_DIR', str(tmp_path / 'exports'))

    settings = Settings.load(project_root=tmp_path)

    assert settings.supply_rate_percent == 80
    assert settings.output_dir == tmp_path / 'exports'
    assert settings.default_rate_config().supply_rate_percent == 80


def test_bad_env_supply_rate_is_rejected(tmp_path, monkeypatch):
    monkeypatch.setenv('RENTAL_SUPPLY_RATE', 'lots')

    with pytest.raises(ConfigurationError):
        Settings.load(project_root=tmp_path)


def test_output_dir_defaults_under_project_root(tmp_path, monkeypatch):
    monkeypatch.delenv('RENTAL_OUTPUT_DIR', raising=False)
    assert Settings.load(project_root=tmp_path).output_dir == tmp_path / 'outputs'


@pytest.mark.parametrize("text, expected", [
    ("75", 75.0),
    (" 106.5 ", 106.5),
    ("1,000", 1000.0),
    (21, 21.0),
    (0.5, 0.5),
])
def test_parse_rate_accepts(text, expected):
    assert parse_rate(text) == expected


@pytest.mark.parametrize("text", ["", "   ", "abc", "0", "-5", "nan", "inf", None, True])
def test_parse_rate_rejects(text):
    with pytest.raises(ConfigurationError):
        parse_rate(text)


def test_parse_rate_allows_zero_for_fees():
    assert parse_rate("0", allow_zero=True) == 0
    with pytest.raises(ConfigurationError):
        parse_rate("-0.1", allow_zero=True)


def test_edit_supply_rate_returns_new_config(config):
    edited = config.with_supply_rate("80")

    assert edited.supply_rate_percent == 80
    assert config.supply_rate_percent == 75


def test_edit_discount_rate_replaces_one_period(config):
    edited = config.with_discount_rate(24, "108")

    assert edited.discount_rate_percent == {12: 100, 24: 108, 36: 111, 48: 116}
    assert config.discount_rate_percent[24] == 106


def test_edit_fee_rate_accepts_zero(config):
    edited = config.with_fee_rate(36, "0")

    assert edited.fee_rate_percent[36] == 0
    edited.validate()


@pytest.mark.parametrize("edit, args", [
    ("with_supply_rate", ("0",)),
    ("with_supply_rate", ("x",)),
    ("with_discount_rate", (12, "-1")),
    ("with_discount_rate", (12, "0")),
    ("with_discount_rate", (18, "100")),
    ("with_fee_rate", (24, "-1")),
    ("with_fee_rate", (60, "10")),
    ("with_selected_period", (60,)),
])
def test_rejected_edit_leaves_config_unchanged(config, edit, args):
    before = config.to_dict()

    with pytest.raises(ConfigurationError):
        getattr(config, edit)(*args)

    assert config.to_dict() == before


def test_select_period(config):
    assert config.with_selected_period(36).effective_period == 36


def test_effective_period_defaults_to_first():
    config = RateConfig(75, (24, 12), {12: 100, 24: 106}, {12: 21, 24: 26})
    assert config.effective_period == 24


def test_to_dict_lists_every_period(config):
    data = config.to_dict()

    assert data['periods'] == [12, 24, 36, 48]
    assert data['fee_rate_percent'] == DEFAULT_FEE_RATES
