"""
Unit Tests for the YAML Optimization Config Loader
"""

from decimal import Decimal
from pathlib import Path

import pytest

from walkforward.config_loader import (
    ConfigFileError,
    OptimizationConfig,
    load_optimization_config,
    save_optimization_config,
)
from walkforward.parameter_grid import ParameterGrid
from walkforward.walk_forward import WalkForwardConfig


SAMPLE_CONFIG = Path(__file__).resolve().parents[2] / 'config' / 'walk_forward.yaml'


def _write(tmp_path, text):
    path = tmp_path / 'walk_forward.yaml'
    path.write_text(text, encoding='utf-8')
    return path


class TestLoad:
    """Test load_optimization_config."""

    def test_sample_config(self):
        config = load_optimization_config(SAMPLE_CONFIG)

        assert isinstance(config, OptimizationConfig)
        assert config.grid.count() == 27
        assert config.grid.get_values('min_rr') == (Decimal('2.0'), Decimal('2.5'), Decimal('3.0'))
        assert config.walk_forward.training_months == 12
        assert config.walk_forward.optimization_metric == 'profit_factor'

    def test_walk_forward_section_optional(self, tmp_path):
        path = _write(tmp_path, "parameter_grid:\n  min_confluence_score: [6, 7]\n")
        config = load_optimization_config(path)
        assert config.grid.count() == 2
        assert config.walk_forward == WalkForwardConfig.default()

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_optimization_config(tmp_path / 'missing.yaml')

    def test_malformed_yaml(self, tmp_path):
        path = _write(tmp_path, "parameter_grid: [unclosed\n")
        with pytest.raises(ConfigFileError, match="YAML parsing error"):
            load_optimization_config(path)

    def test_top_level_not_mapping(self, tmp_path):
        path = _write(tmp_path, "- a\n- b\n")
        with pytest.raises(ConfigFileError, match="mapping"):
            load_optimization_config(path)

    def test_missing_grid_section(self, tmp_path):
        path = _write(tmp_path, "walk_forward:\n  training_months: 12\n")
        with pytest.raises(ConfigFileError, match="parameter_grid"):
            load_optimization_config(path)

    def test_invalid_grid(self, tmp_path):
        path = _write(tmp_path, "parameter_grid:\n  min_rr: []\n")
        with pytest.raises(ConfigFileError, match="min_rr"):
            load_optimization_config(path)

    def test_invalid_walk_forward(self, tmp_path):
        path = _write(
            tmp_path,
            "parameter_grid:\n  a: [1]\nwalk_forward:\n  testing_months: 0\n",
        )
        with pytest.raises(ConfigFileError, match="testing_months"):
            load_optimization_config(path)

    def test_walk_forward_not_mapping(self, tmp_path):
        path = _write(tmp_path, "parameter_grid:\n  a: [1]\nwalk_forward: [12, 3]\n")
        with pytest.raises(ConfigFileError, match="walk_forward"):
            load_optimization_config(path)

    def test_misspelled_walk_forward_key(self, tmp_path):
        """Test a typo is reported rather than replaced by the default."""
        path = _write(
            tmp_path,
            "parameter_grid:\n  a: [1]\nwalk_forward:\n  traning_months: 6\n  testing_months: 2\n",
        )
        with pytest.raises(ConfigFileError, match="traning_months"):
            load_optimization_config(path)

    def test_null_metric(self, tmp_path):
        path = _write(
            tmp_path,
            "parameter_grid:\n  a: [1]\nwalk_forward:\n  optimization_metric: null\n",
        )
        with pytest.raises(ConfigFileError, match="optimization_metric"):
            load_optimization_config(path)

    def test_malformed_decimal_value(self, tmp_path):
        path = _write(
            tmp_path,
            "parameter_grid:\n  min_rr:\n    - {_type: decimal, value: \"abc\"}\n",
        )
        with pytest.raises(ConfigFileError):
            load_optimization_config(path)

    def test_malformed_float_value(self, tmp_path):
        path = _write(
            tmp_path,
            "parameter_grid:\n  x:\n    - {_type: float, value: \"abc\"}\n",
        )
        with pytest.raises(ConfigFileError):
            load_optimization_config(path)


class TestSave:
    """Test save_optimization_config."""

    def test_round_trip(self, tmp_path, small_grid):
        config = OptimizationConfig(
            grid=small_grid,
            walk_forward=WalkForwardConfig(training_months=6, testing_months=2, anchored=True),
        )
        path = save_optimization_config(config, tmp_path / 'nested' / 'out.yaml')

        assert path.exists()
        assert load_optimization_config(path) == config

    def test_preserves_axis_order(self, tmp_path):
        grid = ParameterGrid({'zeta': [1, 2], 'alpha': [0.5, 1.5]})
        config = OptimizationConfig(grid=grid, walk_forward=WalkForwardConfig())
        path = save_optimization_config(config, tmp_path / 'out.yaml')

        loaded = load_optimization_config(path)
        assert loaded.grid.param_names == ['zeta', 'alpha']
        assert loaded.grid.get_values('alpha') == (0.5, 1.5)
