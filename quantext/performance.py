"""
Timing and progress reporting for quantext.

The walkthrough runs each example once, so the only runtime feedback
worth giving is how long the slower library calls took and how far a
long tokenization or parsing run has progressed.

Classes:
    ProgressTracker: Progress tracking for long-running operations
    PerformanceMonitor: Performance monitoring and timing utilities

Functions:
    optimize_polars_settings: Configure Polars table display

Example:
    Performance monitoring::

        from quantext.performance import PerformanceMonitor

        with PerformanceMonitor("Topic model") as monitor:
            model = qt.topic_model(dtm, n_topics=10)

        print(f"Operation took {monitor.elapsed_time:.2f} seconds")

.. codeauthor:: quantext developers
"""

import time

import polars as pl

from .config import CONFIG


class ProgressTracker:
    """Print progress in tenths when a run covers many documents."""

    def __init__(self, total: int, description: str = "Processing", unit: str = "docs"):
        self.total = total
        self.description = description
        self.unit = unit
        self.current = 0
        self._started = time.perf_counter()
        self._step = max(1, total // 10)
        self.show_progress = total > CONFIG.PROGRESS_THRESHOLD

        if self.show_progress:
            print(f"Starting {description} ({total:,} {unit})...")

    def update(self, increment: int = 1):
        """Advance by ``increment`` documents."""
        before = self.current // self._step
        self.current += increment
        if not self.show_progress or self.current // self._step == before:
            return

        seconds = time.perf_counter() - self._started
        share = 100 * self.current / self.total
        speed = self.current / seconds if seconds > 0 else 0.0
        print(
            f"{self.description}: {share:.1f}% "
            f"({self.current:,}/{self.total:,} {self.unit}, {speed:.1f}/s)"
        )

    def finish(self):
        if self.show_progress:
            seconds = time.perf_counter() - self._started
            print(
                f"{self.description} completed: {self.current:,} {self.unit} "
                f"in {seconds:.2f}s"
            )


class PerformanceMonitor:
    """Time a block and print a note when it runs longer than expected.

    Library calls such as LDA fitting or dependency parsing can take a
    while on a full corpus; quick steps stay silent.
    """

    def __init__(self, operation: str, threshold: float = None):
        self.operation = operation
        self.threshold = (
            CONFIG.SLOW_OPERATION_SECONDS if threshold is None else threshold
        )
        self.elapsed_time = 0.0
        self._started = None

    def __enter__(self):
        self._started = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.elapsed_time = time.perf_counter() - self._started
        if self.elapsed_time > self.threshold:
            print(f"{self.operation} took {self.elapsed_time:.2f}s")


def optimize_polars_settings():
    """Set Polars display options so printed tables stay readable."""
    pl.Config.set_tbl_rows(CONFIG.TABLE_ROWS)
    pl.Config.set_tbl_cols(CONFIG.TABLE_COLS)
    pl.Config.set_fmt_str_lengths(60)


optimize_polars_settings()
