"""
Unit Tests for Options Parameter Presets
"""

from decimal import Decimal

import pytest

from walkforward import options_params
from walkforward.options_params import (
    InvalidOptionsParamsError,
    PRESETS,
    combination_count,
    custom_grid,
    grid_summary,
    merge_with_strategy,
    preset,
    validate,
)
from walkforward.parameter_grid import ParameterGrid


class TestPresets:
    """Test preset grid sizes and contents."""

    @pytest.mark.parametrize("name,expected", [
        ('default', 12),
        ('comprehensive', 108),
        ('comparison', 2),
        ('zero_dte', 12),
        ('weekly', 9),
        ('conservative', 2),
        ('aggressive', 16),
    ])
    def test_preset_sizes(self, name, expected):
        grid = preset(name)
        assert combination_count(grid) == expected
        assert ParameterGrid(grid).count() == expected

    def test_every_preset_is_valid(self):
        for name in PRESETS:
            validate(preset(name))

    def test_default_is_options_only(self):
        grid = options_params.default_grid()
        assert grid['instrument_type'] == ['options']
        assert grid['slippage_pct'] == [Decimal('0.01')]

    def test_comparison_varies_instrument_only(self):
        grid = options_params.comparison_grid()
        assert grid['instrument_type'] == ['equity', 'options']
        assert all(len(v) == 1 for k, v in grid.items() if k != 'instrument_type')

    def test_presets_return_fresh_copies(self):
        first = preset('default')
        first['instrument_type'].append('equity')
        assert preset('default')['instrument_type'] == ['options']

    def test_unknown_preset(self):
        with pytest.raises(ValueError, match="Unknown preset"):
            preset('yolo')


class TestCustomGrid:

    def test_overrides_axis(self):
        grid = custom_grid({'strike_selection': ['two_otm']})
        assert grid['strike_selection'] == ['two_otm']
        assert combination_count(grid) == 6

    def test_adds_axis(self):
        grid = custom_grid({'premium_floor_pct': [Decimal('0.5')]})
        assert 'premium_floor_pct' in grid
        assert combination_count(grid) == 12


class TestValidate:

    def test_unknown_names_listed(self):
        with pytest.raises(InvalidOptionsParamsError) as exc_info:
            validate({'strike_selection': ['atm'], 'delta': [0.3], 'gamma': [0.1]})
        assert exc_info.value.invalid == ['delta', 'gamma']

    def test_is_value_error(self):
        assert issubclass(InvalidOptionsParamsError, ValueError)

    def test_valid_params(self):
        names = options_params.valid_params()
        assert 'risk_per_trade' in names
        assert 'expiration_preference' in names


class TestSummaryAndMerge:

    def test_summary(self):
        summary = grid_summary(options_params.comparison_grid())
        assert summary.startswith("Options Parameter Grid:\n")
        assert "  instrument_type: ['equity', 'options']" in summary
        assert "  slippage_pct: ['0.01']" in summary
        assert summary.endswith("\n\nTotal combinations: 2\n")

    def test_merge_with_strategy(self):
        strategy = {'min_confluence_score': [6, 7, 8], 'risk_per_trade': [Decimal('0.02')]}
        merged = merge_with_strategy(options_params.default_grid(), strategy)

        assert merged['min_confluence_score'] == [6, 7, 8]
        assert merged['risk_per_trade'] == [Decimal('0.02')]
        assert combination_count(merged) == 4 * 3

    def test_merge_does_not_mutate_inputs(self):
        options = options_params.weekly_grid()
        merge_with_strategy(options, {'min_rr': [Decimal('2.0')]})
        assert 'min_rr' not in options
