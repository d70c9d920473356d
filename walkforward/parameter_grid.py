"""
Parameter Grid - Combinatorial Search Space

Defines named parameter axes and enumerates every combination of their values
for grid search and walk-forward optimization.

Key Features:
  - Ordered axes (registration order); first axis varies slowest
  - Eager enumeration with optional shuffle/limit
  - Lazy enumeration via a mixed-radix counter (memory O(number of axes))
  - Lossless serialization of Decimal values for storage

Usage:
    from decimal import Decimal
    from walkforward.parameter_grid import ParameterGrid

    grid = ParameterGrid({
        'min_confluence_score': [5, 6, 7],
        'min_rr': [Decimal('2.0'), Decimal('2.5')],
        'signal_grade_filter': ['all', 'a_only'],
    })
    grid.count()              # 12
    grid.combinations(limit=2)
    # [{'min_confluence_score': 5, 'min_rr': Decimal('2.0'), 'signal_grade_filter': 'all'},
    #  {'min_confluence_score': 5, 'min_rr': Decimal('2.0'), 'signal_grade_filter': 'a_only'}]
"""

from decimal import Decimal
from typing import Any, Dict, Iterator, List, Mapping, Optional, Tuple

import numpy as np
from loguru import logger


# ============================================================================
# Errors
# ============================================================================

class ParameterGridError(ValueError):
    """Base exception for malformed parameter grids."""

    def __init__(self, message: str, name: Optional[str] = None):
        super().__init__(message)
        self.name = name


class EmptyGridError(ParameterGridError):
    """Raised when a grid is constructed without any axes."""

    def __init__(self):
        super().__init__("parameter grid must define at least one parameter")


class EmptyValuesError(ParameterGridError):
    """Raised when an axis has no candidate values."""

    def __init__(self, name: str):
        super().__init__(f"parameter '{name}' has no values", name)


class InvalidValuesError(ParameterGridError):
    """Raised when an axis's values are not a list or tuple."""

    def __init__(self, name: str, value: Any):
        super().__init__(
            f"parameter '{name}' values must be a list, got: {value!r}", name
        )
        self.value = value


class InvalidParamNameError(ParameterGridError):
    """Raised when a parameter name is not a non-empty string."""

    def __init__(self, name: Any):
        super().__init__(f"invalid parameter name: {name!r}", name)


# ============================================================================
# Known parameters
# ============================================================================

STRATEGY_PARAMS = [
    'min_confluence_score',
    'min_risk_reward',
    'signal_grade_filter',
    'entry_model',
    'risk_per_trade',
    'time_exit_hour',
    'max_daily_trades',
    'min_rr',
]

OPTIONS_PARAMS = [
    'instrument_type',
    'expiration_preference',
    'strike_selection',
    'slippage_pct',
    'premium_target_multiple',
    'premium_floor_pct',
]


def valid_params() -> List[str]:
    """List the parameter names understood by the strategy and options layers."""
    return STRATEGY_PARAMS + OPTIONS_PARAMS


# ============================================================================
# Parameter Grid
# ============================================================================

class ParameterGrid:
    """
    Immutable grid of named parameter axes.

    Axes keep the order in which they were registered. Enumeration is the
    cartesian product in that order with the first axis varying slowest, so
    ``combinations()`` and ``stream()`` always agree.

    "Mutators" (``put_param``, ``remove_param``) return a new grid and leave
    the original untouched.

    Attributes:
        parameters: Mapping of parameter name to a tuple of candidate values
        total_combinations: Product of axis sizes (0 for a grid with no axes)

    Example:
        >>> grid = ParameterGrid({'a': [1, 2], 'b': ['x', 'y', 'z']})
        >>> grid.count()
        6
        >>> next(grid.stream())
        {'a': 1, 'b': 'x'}
    """

    def __init__(self, parameters: Mapping[str, Any]):
        """
        Create a grid from a mapping of parameter name to candidate values.

        Args:
            parameters: Mapping where each value is a non-empty list or tuple

        Raises:
            EmptyGridError: If no parameters are given
            InvalidParamNameError: If a name is not a non-empty string
            InvalidValuesError: If an axis's values are not a list or tuple
            EmptyValuesError: If an axis has no values
        """
        if not parameters:
            raise EmptyGridError()

        self._parameters = _validate_axes(parameters)
        self._total = _product_size(self._parameters)

        logger.debug(
            f"ParameterGrid created: {len(self._parameters)} parameters, "
            f"{self._total} combinations"
        )

    @classmethod
    def _from_validated(cls, parameters: Dict[str, Tuple]) -> "ParameterGrid":
        # Bypasses the non-empty check so removals may empty the grid
        grid = cls.__new__(cls)
        grid._parameters = parameters
        grid._total = _product_size(parameters)
        return grid

    @classmethod
    def default(cls) -> "ParameterGrid":
        """Common optimization ranges for confluence-based strategies."""
        return cls({
            'min_confluence_score': [5, 6, 7, 8, 9],
            'min_rr': [Decimal('1.5'), Decimal('2.0'), Decimal('2.5'), Decimal('3.0')],
            'signal_grade_filter': ['all', 'c_and_above', 'b_and_above', 'a_only'],
            'risk_per_trade': [Decimal('0.01'), Decimal('0.015'), Decimal('0.02')],
        })

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def parameters(self) -> Dict[str, Tuple]:
        return dict(self._parameters)

    @property
    def param_names(self) -> List[str]:
        return list(self._parameters)

    @property
    def total_combinations(self) -> int:
        return self._total

    def count(self) -> int:
        """Return the total number of parameter combinations."""
        return self._total

    def get_values(self, name: str) -> Optional[Tuple]:
        """Return the candidate values for ``name``, or None if unknown."""
        return self._parameters.get(name)

    # ------------------------------------------------------------------
    # Enumeration
    # ------------------------------------------------------------------

    def combinations(
        self,
        shuffle: bool = False,
        limit: Optional[int] = None,
        seed: Optional[int] = None
    ) -> List[Dict[str, Any]]:
        """
        Materialize every parameter combination.

        Args:
            shuffle: Randomize the order (the set of combinations is unchanged)
            limit: Keep only the first ``limit`` combinations after ordering
            seed: Seed for a reproducible shuffle

        Returns:
            List of parameter dictionaries

        Raises:
            ValueError: If limit is negative
        """
        if limit is not None and limit < 0:
            raise ValueError(f"limit must be non-negative, got: {limit}")

        combos = list(self.stream())

        if shuffle:
            rng = np.random.default_rng(seed)
            combos = [combos[i] for i in rng.permutation(len(combos))]

        if limit is not None:
            combos = combos[:limit]

        return combos

    def stream(self) -> Iterator[Dict[str, Any]]:
        """
        Lazily yield parameter combinations in ``combinations()`` order.

        Each call starts a fresh iterator over a snapshot of the axes, so
        independent consumers never interfere with each other.
        """
        names = list(self._parameters)
        axes = [self._parameters[name] for name in names]
        return _mixed_radix(names, axes)

    def __iter__(self) -> Iterator[Dict[str, Any]]:
        return self.stream()

    def __len__(self) -> int:
        return self._total

    # ------------------------------------------------------------------
    # Copy-on-write updates
    # ------------------------------------------------------------------

    def put_param(self, name: str, values: Any) -> "ParameterGrid":
        """
        Return a new grid with ``name`` added or its values replaced.

        New names are appended after the existing axes; replaced names keep
        their position.
        """
        parameters = dict(self._parameters)
        parameters[name] = values
        return ParameterGrid._from_validated(_validate_axes(parameters))

    def remove_param(self, name: str) -> "ParameterGrid":
        """Return a new grid without ``name``. The result may have no axes."""
        parameters = {k: v for k, v in self._parameters.items() if k != name}
        return ParameterGrid._from_validated(parameters)

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    def to_map(self) -> Dict[str, List[Any]]:
        """Convert to a plain mapping suitable for JSON/YAML storage."""
        return {
            name: [_serialize_value(v) for v in values]
            for name, values in self._parameters.items()
        }

    @classmethod
    def from_map(cls, data: Mapping[str, Any]) -> "ParameterGrid":
        """Rebuild a grid from ``to_map()`` output."""
        parameters = {}
        for name, values in data.items():
            if isinstance(values, (list, tuple)):
                values = [_deserialize_value(v) for v in values]
            parameters[name] = values
        return cls(parameters)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ParameterGrid):
            return NotImplemented
        return list(self._parameters.items()) == list(other._parameters.items())

    def __repr__(self) -> str:
        axes = ', '.join(f"{k}={len(v)}" for k, v in self._parameters.items())
        return f"ParameterGrid({axes}; total={self._total})"


# ============================================================================
# Helpers
# ============================================================================

def _validate_axes(parameters: Mapping[str, Any]) -> Dict[str, Tuple]:
    validated = {}
    for name, values in parameters.items():
        if not isinstance(name, str) or not name:
            raise InvalidParamNameError(name)
        if not isinstance(values, (list, tuple)):
            raise InvalidValuesError(name, values)
        if len(values) == 0:
            raise EmptyValuesError(name)
        validated[name] = tuple(values)
    return validated


def _product_size(parameters: Mapping[str, Tuple]) -> int:
    if not parameters:
        return 0
    total = 1
    for values in parameters.values():
        total *= len(values)
    return total


def _mixed_radix(names: List[str], axes: List[Tuple]) -> Iterator[Dict[str, Any]]:
    if not axes:
        return

    radices = [len(axis) for axis in axes]
    digits = [0] * len(axes)

    while True:
        yield {name: axis[d] for name, axis, d in zip(names, axes, digits)}

        # Increment the last (fastest) digit and carry leftwards
        position = len(digits) - 1
        while position >= 0:
            digits[position] += 1
            if digits[position] < radices[position]:
                break
            digits[position] = 0
            position -= 1

        if position < 0:
            return


def _serialize_value(value: Any) -> Any:
    if isinstance(value, Decimal):
        return {'_type': 'decimal', 'value': str(value)}
    if isinstance(value, float):
        return {'_type': 'float', 'value': repr(value)}
    return value


def _deserialize_value(value: Any) -> Any:
    if isinstance(value, Mapping) and '_type' in value:
        kind = value['_type']
        if kind == 'decimal':
            return Decimal(str(value['value']))
        if kind == 'float':
            return float(value['value'])
    return value
