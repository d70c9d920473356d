"""Shared fixtures for optimization tests."""

from datetime import date
from decimal import Decimal

import pytest

from walkforward.parameter_grid import ParameterGrid
from walkforward.walk_forward import WalkForwardConfig


@pytest.fixture
def small_grid():
    """Three-axis grid with mixed value types (12 combinations)."""
    return ParameterGrid({
        'min_confluence_score': [6, 7, 8],
        'min_rr': [Decimal('2.0'), Decimal('2.5')],
        'signal_grade_filter': ['all', 'a_only'],
    })


@pytest.fixture
def rolling_config():
    return WalkForwardConfig(training_months=12, testing_months=3, step_months=3)


@pytest.fixture
def anchored_config():
    return WalkForwardConfig(training_months=12, testing_months=3, step_months=3, anchored=True)


@pytest.fixture
def date_range():
    return date(2020, 1, 1), date(2024, 12, 31)


@pytest.fixture
def make_metrics():
    """Factory for backtest metrics records."""
    return _make_metrics


def _make_metrics(params, profit_factor, total_trades=40, net_profit=None,
                  win_rate=None, sharpe_ratio=None):
    """Build a backtest metrics record."""
    record = {
        'parameters': params,
        'profit_factor': profit_factor,
        'total_trades': total_trades,
    }
    if net_profit is not None:
        record['net_profit'] = net_profit
    if win_rate is not None:
        record['win_rate'] = win_rate
    if sharpe_ratio is not None:
        record['sharpe_ratio'] = sharpe_ratio
    return record
