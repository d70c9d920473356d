"""
Walk-Forward Scheduler - Train/Test Window Generation

Splits a historical date range into ordered, non-overlapping training and
testing windows for out-of-sample validation of optimized parameters.

Key Features:
  - Rolling windows (fixed-size training period sliding forward)
  - Anchored windows (training always starts at the range start and expands)
  - Calendar-month arithmetic with month-end clamping
  - Closed-form window count consistent with the generator

Periods are half-open: a window's testing period starts on the same day its
training period ends.

Usage:
    from datetime import date
    from walkforward.walk_forward import WalkForwardConfig, generate_windows

    config = WalkForwardConfig(training_months=12, testing_months=3)
    windows = generate_windows(config, date(2020, 1, 1), date(2024, 12, 31))
    # windows[0].training == (date(2020, 1, 1), date(2021, 1, 1))
    # windows[0].testing  == (date(2021, 1, 1), date(2021, 4, 1))
"""

from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, List, Mapping, Optional, Tuple

import pandas as pd
from loguru import logger


VALID_METRICS = [
    'profit_factor',
    'net_profit',
    'sharpe_ratio',
    'sortino_ratio',
    'win_rate',
    'expectancy',
    'calmar_ratio',
]

DEFAULT_TRAINING_MONTHS = 12
DEFAULT_TESTING_MONTHS = 3
DEFAULT_MIN_TRADES = 30


class ConfigValidationError(ValueError):
    """Raised when a walk-forward configuration field is invalid."""

    def __init__(self, field: str, reason: str):
        super().__init__(f"{field}: {reason}")
        self.field = field
        self.reason = reason


def valid_metrics() -> List[str]:
    """Return the metrics a walk-forward run may optimize."""
    return list(VALID_METRICS)


# ============================================================================
# Configuration
# ============================================================================

@dataclass(frozen=True)
class WalkForwardConfig:
    """
    Walk-forward configuration.

    Attributes:
        training_months: Length of each training period
        testing_months: Length of each testing period
        step_months: Months to advance between windows (default: testing_months)
        optimization_metric: Metric used to pick the training winner
        min_trades: Minimum trades for a training result to be eligible
        anchored: Keep training start fixed and grow the training period
    """

    training_months: int = DEFAULT_TRAINING_MONTHS
    testing_months: int = DEFAULT_TESTING_MONTHS
    step_months: Optional[int] = None
    optimization_metric: str = 'profit_factor'
    min_trades: int = DEFAULT_MIN_TRADES
    anchored: bool = False

    def __post_init__(self):
        """Validate fields in declaration order; the first failure is raised."""
        _require_positive('training_months', self.training_months)
        _require_positive('testing_months', self.testing_months)

        if self.step_months is None:
            object.__setattr__(self, 'step_months', self.testing_months)
        _require_positive('step_months', self.step_months)

        if self.optimization_metric not in VALID_METRICS:
            raise ConfigValidationError(
                'optimization_metric',
                f"must be one of {VALID_METRICS}, got: {self.optimization_metric!r}"
            )

        if not _is_int(self.min_trades) or self.min_trades < 0:
            raise ConfigValidationError(
                'min_trades', f"must be a non-negative integer, got: {self.min_trades!r}"
            )

        if not isinstance(self.anchored, bool):
            raise ConfigValidationError(
                'anchored', f"must be a boolean, got: {self.anchored!r}"
            )

    @classmethod
    def new(cls, config: Optional[Mapping[str, Any]] = None) -> "WalkForwardConfig":
        """
        Build a configuration from a mapping, applying defaults for omitted keys.

        Raises:
            ConfigValidationError: For the first invalid field
        """
        config = dict(config or {})
        unknown = set(config) - set(cls.__dataclass_fields__)
        if unknown:
            raise ConfigValidationError(sorted(unknown)[0], "unknown configuration field")
        return cls(**config)

    @classmethod
    def default(cls) -> "WalkForwardConfig":
        return cls()

    def to_map(self) -> Dict[str, Any]:
        """Convert to a plain mapping for storage."""
        return {
            'training_months': self.training_months,
            'testing_months': self.testing_months,
            'step_months': self.step_months,
            'optimization_metric': self.optimization_metric,
            'min_trades': self.min_trades,
            'anchored': self.anchored,
        }

    @classmethod
    def from_map(cls, data: Mapping[str, Any]) -> "WalkForwardConfig":
        """
        Rebuild a configuration from ``to_map()`` output.

        Omitted keys take their defaults; unknown keys and explicit invalid
        values (including None) are rejected.

        Raises:
            ConfigValidationError: For the first invalid or unknown field
        """
        return cls.new(data)


def check_config(config: Optional[Mapping[str, Any]] = None) -> Optional[ConfigValidationError]:
    """
    Validate a configuration mapping without raising.

    Returns:
        The first ConfigValidationError encountered, or None if valid
    """
    try:
        WalkForwardConfig.new(config)
    except ConfigValidationError as e:
        return e
    return None


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _require_positive(field: str, value: Any) -> None:
    if not _is_int(value) or value <= 0:
        raise ConfigValidationError(field, f"must be a positive integer, got: {value!r}")


# ============================================================================
# Windows
# ============================================================================

@dataclass(frozen=True)
class WalkForwardWindow:
    """
    Single walk-forward window.

    Attributes:
        index: Position in the generated sequence (0-based, contiguous)
        train_start: First day of the training period
        train_end: End of the training period (exclusive)
        test_start: First day of the testing period
        test_end: End of the testing period (exclusive)
    """

    index: int
    train_start: date
    train_end: date
    test_start: date
    test_end: date

    @property
    def training(self) -> Tuple[date, date]:
        return (self.train_start, self.train_end)

    @property
    def testing(self) -> Tuple[date, date]:
        return (self.test_start, self.test_end)


def add_months(start: date, months: int) -> date:
    """Shift ``start`` by whole calendar months, clamping to the month end."""
    return (pd.Timestamp(start) + pd.DateOffset(months=months)).date()


def generate_windows(
    config: WalkForwardConfig,
    start_date: date,
    end_date: date
) -> List[WalkForwardWindow]:
    """
    Generate walk-forward windows for a date range.

    Window boundaries are always offsets from ``start_date`` so month-end
    clamping does not accumulate across windows. Generation stops at the
    first window whose testing period would end after ``end_date``.

    Args:
        config: Walk-forward configuration
        start_date: Overall start date
        end_date: Overall end date

    Returns:
        Ordered list of windows; empty if the range is too short
    """
    windows = []
    index = 0

    while True:
        offset = index * config.step_months
        train_start = start_date if config.anchored else add_months(start_date, offset)
        train_end = add_months(start_date, offset + config.training_months)
        test_end = add_months(start_date, offset + config.training_months + config.testing_months)

        if test_end > end_date:
            break

        windows.append(WalkForwardWindow(
            index=index,
            train_start=train_start,
            train_end=train_end,
            test_start=train_end,
            test_end=test_end,
        ))
        index += 1

    if windows:
        logger.info(
            f"Created {len(windows)} walk-forward windows: "
            f"train={config.training_months}m, test={config.testing_months}m, "
            f"step={config.step_months}m, {'anchored' if config.anchored else 'rolling'}"
        )
    else:
        logger.warning(
            f"No walk-forward windows fit between {start_date} and {end_date} "
            f"(need {min_data_months(config)} months)"
        )

    return windows


def window_count(config: WalkForwardConfig, start_date: date, end_date: date) -> int:
    """
    Number of windows ``generate_windows`` returns for the same inputs.

    Both modes end window i at ``start + i*step + training + testing`` months,
    so the count depends only on how many whole months fit in the range.
    """
    months = _whole_months_between(start_date, end_date)
    needed = min_data_months(config)
    if months < needed:
        return 0
    return (months - needed) // config.step_months + 1


def valid_window(window: WalkForwardWindow) -> bool:
    """True if both periods are non-empty and testing does not start before training ends."""
    return (
        window.train_start < window.train_end
        and window.test_start < window.test_end
        and window.train_end <= window.test_start
    )


def min_data_months(config: WalkForwardConfig) -> int:
    """Minimum months of history needed for a single window."""
    return config.training_months + config.testing_months


def _whole_months_between(start_date: date, end_date: date) -> int:
    # Largest k with add_months(start_date, k) <= end_date
    months = (end_date.year - start_date.year) * 12 + (end_date.month - start_date.month)
    if months < 0:
        return -1
    if add_months(start_date, months) > end_date:
        months -= 1
    return months
