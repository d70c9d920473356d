"""
Walk-Forward Optimizer - Backtest Orchestration

Drives a caller-supplied backtest function across a parameter grid, either
as a single grid search or as walk-forward optimization with out-of-sample
validation of each window's training winner.

Key Features:
  - Parallel training backtests with ThreadPoolExecutor
  - Minimum-trade filter on training winners
  - Failed backtests logged and excluded, never fatal
  - Progress callback for long runs

Usage:
    from walkforward import WalkForwardOptimizer, WalkForwardConfig, ParameterGrid

    def run_backtest(start_date, end_date, params):
        ...  # returns {'profit_factor': ..., 'total_trades': ..., 'parameters': params, ...}

    optimizer = WalkForwardOptimizer(run_backtest, n_jobs=4)
    outcome = optimizer.run_walk_forward(
        grid=ParameterGrid({'rsi_period': [10, 14, 20]}),
        config=WalkForwardConfig(training_months=12, testing_months=3),
        start_date=date(2020, 1, 1),
        end_date=date(2024, 12, 31),
    )
    print(outcome.best_params)
"""

from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Callable, Dict, List, Mapping, Optional
import threading
import time

from loguru import logger

from .overfitting_detector import (
    WalkForwardAggregate,
    WindowResult,
    analyze_walk_forward,
    best_params,
    get_metric,
    to_decimal,
)
from .parameter_grid import ParameterGrid
from .walk_forward import WalkForwardConfig, WalkForwardWindow, generate_windows


# A metrics record is a mapping or an object with metric attributes
BacktestFn = Callable[[date, date, Dict[str, Any]], Any]


@dataclass
class GridSearchOutcome:
    """Result of a plain grid search over one date range."""

    total_combinations: int
    results: List[Any]
    best_params: Optional[Dict[str, Any]]
    best_result: Optional[Any]


@dataclass
class WalkForwardOutcome:
    """Result of a walk-forward optimization run."""

    total_combinations: int
    windows: List[WalkForwardWindow]
    window_results: List[WindowResult]
    validation_results: List[WalkForwardAggregate] = field(default_factory=list)
    best_params: Optional[Dict[str, Any]] = None


def find_best_result(
    results: List[Any],
    metric: str = 'profit_factor',
    min_trades: int = 0
) -> Optional[Any]:
    """
    Pick the result with the highest ``metric`` among those with enough trades.

    Results missing the metric rank below every real value.
    """
    eligible = [r for r in results if (get_metric(r, 'total_trades') or 0) >= min_trades]
    if not eligible:
        return None

    def score(result):
        value = to_decimal(get_metric(result, metric))
        return (value is not None, value if value is not None else 0)

    return max(eligible, key=score)


class WalkForwardOptimizer:
    """
    Walk-forward optimization over a caller-supplied backtest function.

    For each window the optimizer backtests every combination on the training
    period, keeps the best one with at least ``min_trades`` trades, reruns it
    on the testing period and finally aggregates the windows per parameter set.

    Example:
        >>> optimizer = WalkForwardOptimizer(run_backtest, n_jobs=8)
        >>> outcome = optimizer.run_walk_forward(grid, config, start, end)
        >>> for agg in outcome.validation_results:
        ...     print(agg.params, agg.oos_profit_factor, agg.is_overfit)
    """

    def __init__(
        self,
        backtest_fn: BacktestFn,
        n_jobs: int = 4,
        progress_callback: Optional[Callable[[Dict[str, Any]], None]] = None
    ):
        """
        Initialize WalkForwardOptimizer.

        Args:
            backtest_fn: Called as ``backtest_fn(start_date, end_date, params)``;
                must return a metrics mapping (or object with metric
                attributes) with at least ``total_trades``
            n_jobs: Number of parallel workers for training backtests
            progress_callback: Receives ``{'completed', 'total', 'pct_complete'}``
        """
        if n_jobs < 1:
            raise ValueError(f"n_jobs must be at least 1, got: {n_jobs}")

        self.backtest_fn = backtest_fn
        self.n_jobs = n_jobs
        self.progress_callback = progress_callback

        self._completed = 0
        self._total = 0
        self._lock = threading.Lock()

        logger.info(f"WalkForwardOptimizer initialized: n_jobs={n_jobs}")

    def run_grid_search(
        self,
        grid: ParameterGrid,
        start_date: date,
        end_date: date,
        metric: str = 'profit_factor',
        min_trades: int = 30
    ) -> GridSearchOutcome:
        """
        Backtest every combination over one date range and pick the best.

        Returns:
            GridSearchOutcome
        """
        combinations = grid.combinations()
        self._reset_progress(len(combinations))

        logger.info(f"Grid search: testing {len(combinations)} parameter combinations")

        results = self._run_batch(combinations, start_date, end_date)
        best = find_best_result(results, metric, min_trades)

        logger.info(
            f"Grid search complete: {len(results)}/{len(combinations)} backtests succeeded, "
            f"best_params={get_metric(best, 'parameters')}"
        )

        return GridSearchOutcome(
            total_combinations=len(combinations),
            results=results,
            best_params=dict(get_metric(best, 'parameters')) if best is not None else None,
            best_result=best,
        )

    def run_walk_forward(
        self,
        grid: ParameterGrid,
        config: WalkForwardConfig,
        start_date: date,
        end_date: date
    ) -> WalkForwardOutcome:
        """
        Run walk-forward optimization.

        Args:
            grid: Parameter grid to search in each training period
            config: Window layout, optimization metric and minimum trades
            start_date: Start of the historical range
            end_date: End of the historical range

        Returns:
            WalkForwardOutcome with per-window and aggregated results
        """
        start_time = time.time()
        combinations = grid.combinations()
        windows = generate_windows(config, start_date, end_date)
        metric = config.optimization_metric

        # One training run per combination plus one out-of-sample run per window
        self._reset_progress(len(windows) * (len(combinations) + 1))

        logger.info(
            f"Starting walk-forward optimization: {len(combinations)} combinations "
            f"across {len(windows)} windows ({self._total} backtests)"
        )

        window_results = []
        for window in windows:
            logger.info(
                f"Window {window.index + 1}/{len(windows)}: "
                f"train={window.train_start} to {window.train_end}, "
                f"test={window.test_start} to {window.test_end}"
            )

            training_results = self._run_batch(combinations, window.train_start, window.train_end)
            best_training = find_best_result(training_results, metric, config.min_trades)

            oos_result = None
            if best_training is None:
                logger.warning(
                    f"Window {window.index}: no training result with >= {config.min_trades} trades"
                )
                self._advance_progress()
            else:
                params = dict(get_metric(best_training, 'parameters') or {})
                oos_result = self._run_single(params, window.test_start, window.test_end)
                self._advance_progress()

                logger.info(
                    f"Window {window.index} results: params={params}, "
                    f"train {metric}={get_metric(best_training, metric)}, "
                    f"test {metric}={get_metric(oos_result, metric)}"
                )

            window_results.append(WindowResult(
                window=window,
                best_training=best_training,
                oos_result=oos_result,
            ))

        validation_results = analyze_walk_forward(window_results, metric)
        best = best_params(validation_results)

        logger.info(
            f"Walk-forward optimization complete in {time.time() - start_time:.1f}s: "
            f"best_params={best}"
        )

        return WalkForwardOutcome(
            total_combinations=len(combinations),
            windows=windows,
            window_results=window_results,
            validation_results=validation_results,
            best_params=best,
        )

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def _run_batch(
        self,
        combinations: List[Dict[str, Any]],
        start_date: date,
        end_date: date
    ) -> List[Any]:
        results = []
        with ThreadPoolExecutor(max_workers=self.n_jobs) as executor:
            futures = {
                executor.submit(self._run_single, params, start_date, end_date): params
                for params in combinations
            }
            for future in as_completed(futures):
                result = future.result()
                if result is not None:
                    results.append(result)
                self._advance_progress()
        return results

    def _run_single(
        self,
        params: Dict[str, Any],
        start_date: date,
        end_date: date
    ) -> Optional[Any]:
        try:
            result = self.backtest_fn(start_date, end_date, dict(params))
            if result is None:
                return None
            if isinstance(result, Mapping):
                result = dict(result)
                result.setdefault('parameters', dict(params))
            elif getattr(result, 'parameters', None) is None:
                setattr(result, 'parameters', dict(params))
        except Exception as e:
            logger.error(f"Backtest failed for parameters {params}: {e}")
            return None

        return result

    def _reset_progress(self, total: int) -> None:
        with self._lock:
            self._completed = 0
            self._total = total

    def _advance_progress(self) -> None:
        with self._lock:
            self._completed += 1
            completed, total = self._completed, self._total

        if self.progress_callback is not None and total:
            self.progress_callback({
                'completed': completed,
                'total': total,
                'pct_complete': completed / total * 100,
            })
