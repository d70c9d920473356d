"""
Optimization Configuration Loader

Loads a parameter grid and walk-forward settings from a YAML file.

File layout (config/walk_forward.yaml):

    parameter_grid:
      min_confluence_score: [6, 7, 8]
      min_rr:
        - {_type: decimal, value: "2.0"}
        - {_type: decimal, value: "2.5"}
      signal_grade_filter: [all, a_only]

    walk_forward:
      training_months: 12
      testing_months: 3
      optimization_metric: profit_factor
      min_trades: 30
      anchored: false

Usage:
    from walkforward.config_loader import load_optimization_config

    config = load_optimization_config('config/walk_forward.yaml')
    config.grid.count()
"""

from dataclasses import dataclass
from decimal import InvalidOperation
from pathlib import Path
from typing import Any, Dict, Union

import yaml
from loguru import logger

from .parameter_grid import ParameterGrid, ParameterGridError
from .walk_forward import ConfigValidationError, WalkForwardConfig


DEFAULT_CONFIG_PATH = Path('config') / 'walk_forward.yaml'


class ConfigFileError(Exception):
    """Raised when an optimization config file cannot be parsed or validated."""
    pass


@dataclass(frozen=True)
class OptimizationConfig:
    """Parameter grid plus walk-forward settings loaded from one file."""

    grid: ParameterGrid
    walk_forward: WalkForwardConfig

    def to_map(self) -> Dict[str, Any]:
        return {
            'parameter_grid': self.grid.to_map(),
            'walk_forward': self.walk_forward.to_map(),
        }


def load_optimization_config(path: Union[str, Path] = DEFAULT_CONFIG_PATH) -> OptimizationConfig:
    """
    Load an optimization configuration from YAML.

    Args:
        path: YAML file with ``parameter_grid`` and ``walk_forward`` sections

    Returns:
        OptimizationConfig

    Raises:
        FileNotFoundError: If the file does not exist
        ConfigFileError: If the YAML is malformed or a section is invalid
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {path}")

    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigFileError(f"YAML parsing error in {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigFileError(f"{path}: top level must be a mapping")

    grid_section = data.get('parameter_grid')
    if not isinstance(grid_section, dict):
        raise ConfigFileError(f"{path}: missing or invalid 'parameter_grid' section")

    wf_section = data.get('walk_forward') or {}
    if not isinstance(wf_section, dict):
        raise ConfigFileError(f"{path}: 'walk_forward' section must be a mapping")

    try:
        grid = ParameterGrid.from_map(grid_section)
        walk_forward = WalkForwardConfig.from_map(wf_section)
    except (ParameterGridError, ConfigValidationError, InvalidOperation, ValueError) as e:
        raise ConfigFileError(f"{path}: {e}") from e

    logger.info(
        f"Loaded optimization config from {path}: {grid.count()} combinations, "
        f"train={walk_forward.training_months}m, test={walk_forward.testing_months}m"
    )
    return OptimizationConfig(grid=grid, walk_forward=walk_forward)


def save_optimization_config(config: OptimizationConfig, path: Union[str, Path]) -> Path:
    """Write ``config`` as YAML; the file loads back to an equal config."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, 'w', encoding='utf-8') as f:
        yaml.safe_dump(config.to_map(), f, sort_keys=False)
    logger.info(f"Saved optimization config to {path}")
    return path
