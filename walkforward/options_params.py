"""
Options Parameter Presets

Ready-made parameter grids for optimizing options execution settings
(instrument type, expiration, strike distance, slippage, risk per trade).
Grids are plain mappings that feed straight into ``ParameterGrid``.

Usage:
    from walkforward.options_params import preset, custom_grid
    from walkforward.parameter_grid import ParameterGrid

    grid = ParameterGrid(preset('weekly'))
    grid = ParameterGrid(custom_grid({'strike_selection': ['atm', 'one_otm']}))
"""

from decimal import Decimal
from typing import Any, Dict, List, Mapping

from loguru import logger


class InvalidOptionsParamsError(ValueError):
    """Raised when a grid names parameters the options layer does not know."""

    def __init__(self, invalid: List[str]):
        super().__init__(f"invalid options parameters: {invalid}")
        self.invalid = invalid


VALID_OPTIONS_PARAMS = [
    'instrument_type',
    'expiration_preference',
    'strike_selection',
    'slippage_pct',
    'risk_per_trade',
    'premium_target_multiple',
    'premium_floor_pct',
]


def default_grid() -> Dict[str, List[Any]]:
    """Options only, weekly and 0DTE, ATM and 1 OTM, 1% slippage."""
    return {
        'instrument_type': ['options'],
        'expiration_preference': ['weekly', 'zero_dte'],
        'strike_selection': ['atm', 'one_otm'],
        'slippage_pct': [Decimal('0.01')],
        'risk_per_trade': [Decimal('0.01'), Decimal('0.015'), Decimal('0.02')],
    }


def comprehensive_grid() -> Dict[str, List[Any]]:
    """Both instrument types, every expiration and strike, three slippage levels."""
    return {
        'instrument_type': ['equity', 'options'],
        'expiration_preference': ['weekly', 'zero_dte'],
        'strike_selection': ['atm', 'one_otm', 'two_otm'],
        'slippage_pct': [Decimal('0.005'), Decimal('0.01'), Decimal('0.02')],
        'risk_per_trade': [Decimal('0.01'), Decimal('0.015'), Decimal('0.02')],
    }


def comparison_grid() -> Dict[str, List[Any]]:
    """Equity vs options on identical signals, everything else fixed."""
    return {
        'instrument_type': ['equity', 'options'],
        'expiration_preference': ['weekly'],
        'strike_selection': ['atm'],
        'slippage_pct': [Decimal('0.01')],
        'risk_per_trade': [Decimal('0.01')],
    }


def zero_dte_grid() -> Dict[str, List[Any]]:
    return {
        'instrument_type': ['options'],
        'expiration_preference': ['zero_dte'],
        'strike_selection': ['atm', 'one_otm', 'two_otm'],
        'slippage_pct': [Decimal('0.01'), Decimal('0.02')],
        'risk_per_trade': [Decimal('0.01'), Decimal('0.015')],
    }


def weekly_grid() -> Dict[str, List[Any]]:
    return {
        'instrument_type': ['options'],
        'expiration_preference': ['weekly'],
        'strike_selection': ['atm', 'one_otm', 'two_otm'],
        'slippage_pct': [Decimal('0.01')],
        'risk_per_trade': [Decimal('0.01'), Decimal('0.015'), Decimal('0.02')],
    }


def _conservative_grid() -> Dict[str, List[Any]]:
    return {
        'instrument_type': ['options'],
        'expiration_preference': ['weekly'],
        'strike_selection': ['atm'],
        'slippage_pct': [Decimal('0.01')],
        'risk_per_trade': [Decimal('0.005'), Decimal('0.01')],
    }


def _aggressive_grid() -> Dict[str, List[Any]]:
    return {
        'instrument_type': ['options'],
        'expiration_preference': ['zero_dte', 'weekly'],
        'strike_selection': ['one_otm', 'two_otm'],
        'slippage_pct': [Decimal('0.01'), Decimal('0.02')],
        'risk_per_trade': [Decimal('0.015'), Decimal('0.02')],
    }


PRESETS = {
    'default': default_grid,
    'comprehensive': comprehensive_grid,
    'comparison': comparison_grid,
    'zero_dte': zero_dte_grid,
    'weekly': weekly_grid,
    'conservative': _conservative_grid,
    'aggressive': _aggressive_grid,
}


def preset(name: str) -> Dict[str, List[Any]]:
    """
    Return a named preset grid.

    Raises:
        ValueError: If the preset does not exist
    """
    if name not in PRESETS:
        raise ValueError(f"Unknown preset: {name}. Must be one of {list(PRESETS)}")
    return PRESETS[name]()


def custom_grid(params: Mapping[str, List[Any]]) -> Dict[str, List[Any]]:
    """Default grid with ``params`` overriding individual axes."""
    grid = default_grid()
    grid.update(params)
    return grid


def valid_params() -> List[str]:
    return list(VALID_OPTIONS_PARAMS)


def validate(params: Mapping[str, Any]) -> None:
    """
    Check that every key is a known options parameter.

    Raises:
        InvalidOptionsParamsError: Listing the unknown names
    """
    invalid = [name for name in params if name not in VALID_OPTIONS_PARAMS]
    if invalid:
        raise InvalidOptionsParamsError(invalid)


def combination_count(grid: Mapping[str, List[Any]]) -> int:
    total = 1
    for values in grid.values():
        total *= len(values)
    return total


def grid_summary(grid: Mapping[str, List[Any]]) -> str:
    """Human-readable grid description."""
    lines = [f"  {name}: {[str(v) for v in values]}" for name, values in grid.items()]
    return (
        "Options Parameter Grid:\n"
        + "\n".join(lines)
        + f"\n\nTotal combinations: {combination_count(grid)}\n"
    )


def merge_with_strategy(
    options_grid: Mapping[str, List[Any]],
    strategy_params: Mapping[str, List[Any]]
) -> Dict[str, List[Any]]:
    """Combine options and strategy axes; strategy axes win on name clashes."""
    merged = dict(options_grid)
    overlap = set(merged) & set(strategy_params)
    if overlap:
        logger.debug(f"Strategy params override options axes: {sorted(overlap)}")
    merged.update(strategy_params)
    return merged
