# concurrency.py
# SPDX-License-Identifier: MIT
"""Bounded thread-pool execution for per-candidate detection work.

Candidates within one stage are independent, so reading and scoring them
can overlap. The executor keeps a bounded number of tasks in flight and
hands results back in completion order; callers merge them with an
order-independent aggregator.
"""
from __future__ import annotations

from collections.abc import Callable, Iterable
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass
from typing import TypeVar

from .config import ConcurrencyConfig
from .log import get_logger

log = get_logger(__name__)

T = TypeVar("T")
R = TypeVar("R")


@dataclass(frozen=True)
class ExecutorConfig:
    """Immutable executor settings.

    Attributes:
        max_workers (int): Maximum number of worker threads.
        window (int): Maximum number of in-flight tasks allowed
            before backpressure is applied.
    """
    max_workers: int
    window: int


class Executor:
    """Run tasks in a thread pool with bounded submission.

    At most ``cfg.window`` tasks are in flight; results reach the
    callbacks in completion order, not submission order.
    """

    def __init__(self, cfg: ExecutorConfig) -> None:
        self.cfg = cfg

    def _make_executor(self) -> ThreadPoolExecutor:
        if self.cfg.max_workers < 1:
            raise ValueError("Executor requires max_workers >= 1")
        return ThreadPoolExecutor(
            max_workers=self.cfg.max_workers,
            thread_name_prefix="licensedetect",
        )

    def map_unordered(
        self,
        items: Iterable[T],
        fn: Callable[[T], R],
        on_result: Callable[[R], None],
        *,
        fail_fast: bool = False,
        on_error: Callable[[BaseException], None] | None = None,
    ) -> None:
        """Submit items to workers and consume results as they complete.

        Args:
            items (Iterable[T]): Items to process.
            fn (Callable[[T], R]): Worker function invoked for each
                item.
            on_result (Callable[[R], None]): Callback invoked for each
                successful result, on the calling thread.
            fail_fast (bool): Whether to re-raise the first worker
                error and abort further processing.
            on_error (Callable[[BaseException], None] | None): Optional
                callback invoked when a worker raises an exception.

        Raises:
            Exception: Propagates the first worker error when
                ``fail_fast`` is True.
        """
        window = max(self.cfg.window, self.cfg.max_workers)
        with self._make_executor() as pool:
            pending: list[Future[R]] = []

            def _drain(block: bool = False) -> None:
                nonlocal pending
                if not pending:
                    return
                done, still = wait(
                    pending,
                    timeout=None if block else 0.0,
                    return_when=FIRST_COMPLETED,
                )
                pending = list(still)
                for fut in done:
                    try:
                        result = fut.result()
                    except Exception as exc:  # noqa: BLE001
                        if on_error:
                            on_error(exc)
                        if fail_fast:
                            for other in pending:
                                other.cancel()
                            raise
                        continue
                    on_result(result)

            for item in items:
                pending.append(pool.submit(fn, item))
                if len(pending) >= window:
                    _drain(block=True)

            while pending:
                _drain(block=True)


def resolve_executor_config(cfg: ConcurrencyConfig) -> ExecutorConfig:
    """Build executor settings from the concurrency section of the config."""
    max_workers = max(1, cfg.resolved_workers())
    window = max(cfg.resolved_window(), max_workers)
    return ExecutorConfig(max_workers=max_workers, window=window)


def run_each(
    items: Iterable[T],
    fn: Callable[[T], R],
    on_result: Callable[[R], None],
    cfg: ExecutorConfig,
    *,
    fail_fast: bool = False,
    on_error: Callable[[BaseException], None] | None = None,
) -> None:
    """Apply ``fn`` to every item, in a pool when more than one worker is allowed.

    With a single worker the items run inline on the calling thread, in
    order, which keeps tracebacks and logging simple for small trees. Errors
    reach ``on_error`` on both paths; ``fail_fast`` then re-raises the first.
    """
    if cfg.max_workers > 1:
        Executor(cfg).map_unordered(items, fn, on_result, fail_fast=fail_fast, on_error=on_error)
        return
    for item in items:
        try:
            result = fn(item)
        except Exception as exc:  # noqa: BLE001
            if on_error:
                on_error(exc)
            if fail_fast:
                raise
            continue
        on_result(result)


__all__ = [
    "Executor",
    "ExecutorConfig",
    "resolve_executor_config",
    "run_each",
]
