"""
Overfitting Detector - In-Sample vs Out-of-Sample Validation

Detects overfitted parameter sets by comparing training (in-sample) and
testing (out-of-sample) performance, aggregates walk-forward windows per
parameter set, and selects the best parameter set that generalizes.

A parameter set is flagged as overfit when:
    - degradation (IS - OOS) / IS exceeds 30%, or
    - walk-forward efficiency OOS / IS is below 0.50

Undefined statistics (missing metric, zero in-sample value) are reported as
None and never flag a result on their own.

Usage:
    from walkforward.overfitting_detector import (
        validate_result, analyze_walk_forward, best_params
    )

    validation = validate_result({'profit_factor': 2.5}, {'profit_factor': 2.2})
    validation.degradation_pct   # Decimal('12.00')
    validation.is_overfit        # False

    aggregates = analyze_walk_forward(window_results, 'profit_factor')
    params = best_params(aggregates)
"""

from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union

import pandas as pd
from loguru import logger


Number = Union[Decimal, int, float]

OVERFIT_THRESHOLD_PCT = Decimal('30')
MIN_EFFICIENCY = Decimal('0.50')

# Metrics that add up across windows; everything else is a rate
SUMMED_METRICS = {'net_profit', 'total_trades'}

_TWO_PLACES = Decimal('0.01')


def overfit_threshold() -> Decimal:
    """Maximum acceptable degradation, in percent."""
    return OVERFIT_THRESHOLD_PCT


def min_efficiency() -> Decimal:
    """Minimum acceptable walk-forward efficiency."""
    return MIN_EFFICIENCY


# ============================================================================
# Results
# ============================================================================

@dataclass(frozen=True)
class ValidationResult:
    """
    In-sample vs out-of-sample comparison for one parameter set.

    Attributes:
        params: Parameter combination evaluated
        in_sample_metric: Metric value on the training period
        out_of_sample_metric: Metric value on the testing period
        degradation_pct: (IS - OOS) / IS * 100, None if undefined
        walk_forward_efficiency: OOS / IS, None if undefined
        is_overfit: Degradation or efficiency breached its threshold
        metric: Name of the compared metric
    """

    params: Dict[str, Any]
    in_sample_metric: Optional[Decimal]
    out_of_sample_metric: Optional[Decimal]
    degradation_pct: Optional[Decimal]
    walk_forward_efficiency: Optional[Decimal]
    is_overfit: bool
    metric: str = 'profit_factor'


@dataclass(frozen=True)
class WalkForwardAggregate(ValidationResult):
    """
    Out-of-sample performance of one parameter set across the windows it won.

    Attributes:
        windows: Number of windows where this set was the training winner
        oos_total_trades: Sum of out-of-sample trades
        oos_profit_factor: Trade-weighted out-of-sample profit factor
        oos_net_profit: Sum of out-of-sample net profit
        oos_win_rate: Trade-weighted out-of-sample win rate
        oos_sharpe_ratio: Trade-weighted out-of-sample Sharpe ratio
        oos_metrics: Aggregated value of every out-of-sample metric seen
    """

    windows: int = 0
    oos_total_trades: int = 0
    oos_profit_factor: Optional[Decimal] = None
    oos_net_profit: Optional[Decimal] = None
    oos_win_rate: Optional[Decimal] = None
    oos_sharpe_ratio: Optional[Decimal] = None
    oos_metrics: Dict[str, Decimal] = field(default_factory=dict)


@dataclass(frozen=True)
class WindowResult:
    """Training winner and its out-of-sample run for one window."""

    window: Any
    best_training: Optional[Any] = None
    oos_result: Optional[Any] = None


# ============================================================================
# Statistics
# ============================================================================

def calculate_degradation(in_sample: Optional[Number], out_of_sample: Optional[Number]) -> Optional[Decimal]:
    """
    Percentage drop from in-sample to out-of-sample.

    Positive means out-of-sample underperformed, negative means it did better.
    Returns None when either value is missing or in-sample is zero.
    """
    is_val = to_decimal(in_sample)
    oos_val = to_decimal(out_of_sample)
    if is_val is None or oos_val is None or is_val == 0:
        return None
    return ((is_val - oos_val) / is_val * 100).quantize(_TWO_PLACES, rounding=ROUND_HALF_UP)


def calculate_efficiency(in_sample: Optional[Number], out_of_sample: Optional[Number]) -> Optional[Decimal]:
    """
    Walk-forward efficiency, OOS / IS.

    1.0 is parity; above 1.0 out-of-sample beat in-sample.
    Returns None when either value is missing or in-sample is zero.
    """
    is_val = to_decimal(in_sample)
    oos_val = to_decimal(out_of_sample)
    if is_val is None or oos_val is None or is_val == 0:
        return None
    return (oos_val / is_val).quantize(_TWO_PLACES, rounding=ROUND_HALF_UP)


def check_overfit(
    degradation: Optional[Decimal],
    efficiency: Optional[Decimal],
    threshold: Optional[Number] = None,
    min_eff: Optional[Number] = None
) -> bool:
    """Classify a degradation/efficiency pair; None statistics never flag."""
    threshold = to_decimal(threshold) if threshold is not None else overfit_threshold()
    min_eff = to_decimal(min_eff) if min_eff is not None else min_efficiency()

    degraded = degradation is not None and degradation > threshold
    inefficient = efficiency is not None and efficiency < min_eff
    return degraded or inefficient


def validate_result(
    in_sample: Any,
    out_of_sample: Any,
    metric: str = 'profit_factor',
    params: Optional[Dict[str, Any]] = None,
    overfit_threshold: Optional[Number] = None,
    min_efficiency: Optional[Number] = None
) -> ValidationResult:
    """
    Compare one parameter set's in-sample and out-of-sample metrics.

    Args:
        in_sample: Training metrics (mapping or object with attributes)
        out_of_sample: Testing metrics (mapping or object with attributes)
        metric: Metric to compare
        params: Parameter combination (default: in-sample ``parameters``)
        overfit_threshold: Override for the degradation threshold (percent)
        min_efficiency: Override for the minimum efficiency

    Returns:
        ValidationResult
    """
    is_value = to_decimal(get_metric(in_sample, metric))
    oos_value = to_decimal(get_metric(out_of_sample, metric))

    degradation = calculate_degradation(is_value, oos_value)
    efficiency = calculate_efficiency(is_value, oos_value)
    is_overfit = check_overfit(degradation, efficiency, overfit_threshold, min_efficiency)

    if params is None:
        params = dict(get_metric(in_sample, 'parameters') or {})

    if is_overfit:
        logger.warning(
            f"Overfitting detected for {params}: {metric} IS={is_value} OOS={oos_value}, "
            f"degradation={degradation}%, efficiency={efficiency}"
        )

    return ValidationResult(
        params=params,
        in_sample_metric=is_value,
        out_of_sample_metric=oos_value,
        degradation_pct=degradation,
        walk_forward_efficiency=efficiency,
        is_overfit=is_overfit,
        metric=metric,
    )


# ============================================================================
# Walk-forward aggregation
# ============================================================================

def analyze_walk_forward(
    window_results: Sequence[Any],
    metric: str = 'profit_factor'
) -> List[WalkForwardAggregate]:
    """
    Aggregate walk-forward windows per training-winner parameter set.

    Windows without a training winner are dropped. The rest are grouped by
    parameter combination; within a group, total metrics (trades, net profit)
    are summed and rate metrics are trade-weighted averages. A window missing
    a metric is left out of that metric only.

    Args:
        window_results: WindowResult objects or mappings with
            ``best_training`` and ``oos_result`` keys
        metric: Metric used for the in-sample/out-of-sample comparison

    Returns:
        One WalkForwardAggregate per parameter set, best out-of-sample first
    """
    groups: Dict[Any, Tuple[Dict[str, Any], List[Tuple[Any, Any]]]] = {}
    skipped = 0

    for window_result in window_results:
        best_training = get_metric(window_result, 'best_training')
        if best_training is None:
            skipped += 1
            continue

        params = dict(get_metric(best_training, 'parameters') or {})
        key = _params_key(params)
        oos_result = get_metric(window_result, 'oos_result')
        groups.setdefault(key, (params, []))[1].append((best_training, oos_result))

    if skipped:
        logger.warning(f"Skipped {skipped} windows without a training winner")

    aggregates = [
        _aggregate_param_set(params, pairs, metric)
        for params, pairs in groups.values()
    ]
    aggregates.sort(key=lambda a: _rank_key(a.out_of_sample_metric), reverse=True)

    logger.info(
        f"Walk-forward analysis: {len(aggregates)} parameter sets, "
        f"{sum(1 for a in aggregates if a.is_overfit)} overfit"
    )
    return aggregates


def _aggregate_param_set(
    params: Dict[str, Any],
    pairs: List[Tuple[Any, Any]],
    metric: str
) -> WalkForwardAggregate:
    in_samples = [is_result for is_result, _ in pairs]
    out_samples = [oos for _, oos in pairs if oos is not None]

    avg_is = _comparison_value(in_samples, metric)
    avg_oos = _comparison_value(out_samples, metric)

    degradation = calculate_degradation(avg_is, avg_oos)
    efficiency = calculate_efficiency(avg_is, avg_oos)

    oos_metrics = {}
    for name in _metric_names(out_samples):
        value = aggregate_metric(out_samples, name)
        if value is not None:
            oos_metrics[name] = value

    oos_trades = sum(int(get_metric(r, 'total_trades') or 0) for r in out_samples)

    return WalkForwardAggregate(
        params=params,
        in_sample_metric=avg_is,
        out_of_sample_metric=avg_oos,
        degradation_pct=degradation,
        walk_forward_efficiency=efficiency,
        is_overfit=check_overfit(degradation, efficiency),
        metric=metric,
        windows=len(pairs),
        oos_total_trades=oos_trades,
        oos_profit_factor=oos_metrics.get('profit_factor'),
        oos_net_profit=oos_metrics.get('net_profit'),
        oos_win_rate=oos_metrics.get('win_rate'),
        oos_sharpe_ratio=oos_metrics.get('sharpe_ratio'),
        oos_metrics=oos_metrics,
    )


def aggregate_metric(records: Sequence[Any], metric: str) -> Optional[Decimal]:
    """
    Combine one metric across windows.

    Total metrics are summed. Rate metrics are weighted by each window's
    ``total_trades``; if no window has trades the plain mean is used.
    Returns None when no record carries the metric.
    """
    values = []
    for record in records:
        value = to_decimal(get_metric(record, metric))
        if value is not None:
            weight = to_decimal(get_metric(record, 'total_trades')) or Decimal(0)
            values.append((value, weight))

    if not values:
        return None

    if metric in SUMMED_METRICS:
        return sum((v for v, _ in values), Decimal(0))

    total_weight = sum((w for _, w in values if w > 0), Decimal(0))
    if total_weight > 0:
        weighted = sum((v * w for v, w in values if w > 0), Decimal(0))
        return (weighted / total_weight).quantize(_TWO_PLACES, rounding=ROUND_HALF_UP)

    mean = sum((v for v, _ in values), Decimal(0)) / len(values)
    return mean.quantize(_TWO_PLACES, rounding=ROUND_HALF_UP)


def _comparison_value(records: Sequence[Any], metric: str) -> Optional[Decimal]:
    # Totals compared per window so longer training periods stay comparable
    if metric in SUMMED_METRICS:
        values = [to_decimal(get_metric(r, metric)) for r in records]
        values = [v for v in values if v is not None]
        if not values:
            return None
        return (sum(values, Decimal(0)) / len(values)).quantize(_TWO_PLACES, rounding=ROUND_HALF_UP)
    return aggregate_metric(records, metric)


def _metric_names(records: Sequence[Any]) -> List[str]:
    names = ['profit_factor', 'net_profit', 'win_rate', 'sharpe_ratio', 'total_trades']
    for record in records:
        if isinstance(record, Mapping):
            for name, value in record.items():
                if name not in names and _is_number(value):
                    names.append(name)
    return names


# ============================================================================
# Selection
# ============================================================================

def filter_valid(results: Sequence[ValidationResult]) -> List[ValidationResult]:
    """Return the non-overfit results, preserving order."""
    return [r for r in results if not r.is_overfit]


def best_result(results: Sequence[ValidationResult]) -> Optional[ValidationResult]:
    """Non-overfit result with the highest out-of-sample metric, or None."""
    candidates = filter_valid(results)
    if not candidates:
        return None
    return max(candidates, key=lambda r: _rank_key(r.out_of_sample_metric))


def best_params(results: Sequence[ValidationResult]) -> Optional[Dict[str, Any]]:
    """Parameters of ``best_result``, or None if nothing is trustworthy."""
    best = best_result(results)
    return best.params if best is not None else None


def to_dataframe(results: Sequence[ValidationResult]) -> pd.DataFrame:
    """Flatten validation results into a DataFrame, one column per parameter."""
    rows = []
    for result in results:
        row = dict(result.params)
        row.update({
            'metric': result.metric,
            'in_sample_metric': result.in_sample_metric,
            'out_of_sample_metric': result.out_of_sample_metric,
            'degradation_pct': result.degradation_pct,
            'walk_forward_efficiency': result.walk_forward_efficiency,
            'is_overfit': result.is_overfit,
        })
        if isinstance(result, WalkForwardAggregate):
            row.update({
                'windows': result.windows,
                'oos_total_trades': result.oos_total_trades,
                'oos_profit_factor': result.oos_profit_factor,
                'oos_net_profit': result.oos_net_profit,
                'oos_win_rate': result.oos_win_rate,
                'oos_sharpe_ratio': result.oos_sharpe_ratio,
            })
        rows.append(row)
    return pd.DataFrame(rows)


# ============================================================================
# Helpers
# ============================================================================

def get_metric(record: Any, key: str) -> Any:
    """Read ``key`` from a mapping or an object attribute; None if absent."""
    if record is None:
        return None
    if isinstance(record, Mapping):
        return record.get(key)
    return getattr(record, key, None)


def to_decimal(value: Any) -> Optional[Decimal]:
    """
    Convert a number to Decimal without binary float artifacts.

    Infinite and NaN values (e.g. a profit factor with no losing trades)
    have no usable magnitude and convert to None.
    """
    if value is None:
        return None
    if isinstance(value, bool):
        raise TypeError(f"expected a number, got: {value!r}")
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, int):
        result = Decimal(value)
    elif isinstance(value, float):
        result = Decimal(str(value))
    elif isinstance(value, str):
        result = Decimal(value)
    else:
        raise TypeError(f"expected a number, got: {value!r}")
    return result if result.is_finite() else None


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float, Decimal)) and not isinstance(value, bool)


def _rank_key(value: Optional[Decimal]) -> Tuple[bool, Decimal]:
    # Missing values rank below any real value
    return (value is not None, value if value is not None else Decimal(0))


def _params_key(params: Dict[str, Any]) -> Any:
    return frozenset(params.items())
