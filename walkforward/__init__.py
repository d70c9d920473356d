"""
Walk-Forward Optimization Framework

Parameter grid enumeration, walk-forward window scheduling and overfitting
detection for systematic strategy development.

Key Components:
- ParameterGrid: Combinatorial parameter search space
- WalkForwardConfig / generate_windows: Train/test window scheduling
- analyze_walk_forward / validate_result: Overfitting detection
- WalkForwardOptimizer: Orchestration over a backtest function

Usage:
    from walkforward import ParameterGrid, WalkForwardConfig, WalkForwardOptimizer

    optimizer = WalkForwardOptimizer(run_backtest)
    outcome = optimizer.run_walk_forward(grid, config, start_date, end_date)
"""

from .parameter_grid import (
    ParameterGrid,
    ParameterGridError,
    EmptyGridError,
    EmptyValuesError,
    InvalidValuesError,
    InvalidParamNameError,
    valid_params,
)
from .walk_forward import (
    WalkForwardConfig,
    WalkForwardWindow,
    ConfigValidationError,
    check_config,
    generate_windows,
    window_count,
    valid_window,
    valid_metrics,
    min_data_months,
)
from .overfitting_detector import (
    ValidationResult,
    WalkForwardAggregate,
    WindowResult,
    calculate_degradation,
    calculate_efficiency,
    validate_result,
    analyze_walk_forward,
    best_params,
    best_result,
    filter_valid,
    overfit_threshold,
    min_efficiency,
    to_dataframe,
)
from .walk_forward_optimizer import (
    WalkForwardOptimizer,
    WalkForwardOutcome,
    GridSearchOutcome,
    find_best_result,
)
from .config_loader import (
    OptimizationConfig,
    ConfigFileError,
    load_optimization_config,
    save_optimization_config,
)
from .logging_config import setup_logging
from . import options_params

__version__ = '1.0.0'

__all__ = [
    'ParameterGrid',
    'ParameterGridError',
    'EmptyGridError',
    'EmptyValuesError',
    'InvalidValuesError',
    'InvalidParamNameError',
    'valid_params',
    'WalkForwardConfig',
    'WalkForwardWindow',
    'ConfigValidationError',
    'check_config',
    'generate_windows',
    'window_count',
    'valid_window',
    'valid_metrics',
    'min_data_months',
    'ValidationResult',
    'WalkForwardAggregate',
    'WindowResult',
    'calculate_degradation',
    'calculate_efficiency',
    'validate_result',
    'analyze_walk_forward',
    'best_params',
    'best_result',
    'filter_valid',
    'overfit_threshold',
    'min_efficiency',
    'to_dataframe',
    'WalkForwardOptimizer',
    'WalkForwardOutcome',
    'GridSearchOutcome',
    'find_best_result',
    'OptimizationConfig',
    'ConfigFileError',
    'load_optimization_config',
    'save_optimization_config',
    'setup_logging',
    'options_params',
]
