import threading
import time

import pytest

from licensedetect.core.concurrency import Executor, ExecutorConfig, resolve_executor_config, run_each
from licensedetect.core.config import ConcurrencyConfig


def test_executor_runs_all_items_with_bounded_window():
    in_flight = 0
    peak = 0
    lock = threading.Lock()

    def work(x):
        nonlocal in_flight, peak
        with lock:
            in_flight += 1
            peak = max(peak, in_flight)
        time.sleep(0.01)
        with lock:
            in_flight -= 1
        return x * 2

    results = []
    Executor(ExecutorConfig(max_workers=2, window=2)).map_unordered(range(10), work, results.append)

    assert sorted(results) == [x * 2 for x in range(10)]
    assert peak <= 2


def test_executor_reports_errors_and_continues():
    def work(x):
        if x == 3:
            raise ValueError("bad item")
        return x

    results, errors = [], []
    Executor(ExecutorConfig(max_workers=2, window=4)).map_unordered(
        range(5), work, results.append, on_error=errors.append
    )

    assert sorted(results) == [0, 1, 2, 4]
    assert len(errors) == 1
    assert isinstance(errors[0], ValueError)


def test_executor_fail_fast_raises():
    def work(x):
        raise RuntimeError(f"boom {x}")

    with pytest.raises(RuntimeError):
        Executor(ExecutorConfig(max_workers=2, window=2)).map_unordered(range(4), work, lambda r: None, fail_fast=True)


def test_executor_requires_workers():
    with pytest.raises(ValueError):
        Executor(ExecutorConfig(max_workers=0, window=1)).map_unordered([1], lambda x: x, lambda r: None)


def test_run_each_sequential_preserves_order_and_thread():
    seen = []

    def work(x):
        seen.append(threading.current_thread().name)
        return x

    results = []
    run_each([3, 1, 2], work, results.append, ExecutorConfig(max_workers=1, window=1))

    assert results == [3, 1, 2]
    assert set(seen) == {threading.current_thread().name}


def test_run_each_parallel_uses_pool():
    names = set()
    lock = threading.Lock()

    def work(x):
        with lock:
            names.add(threading.current_thread().name)
        return x

    results = []
    run_each(range(8), work, results.append, ExecutorConfig(max_workers=4, window=8))

    assert sorted(results) == list(range(8))
    assert all(name.startswith("licensedetect") for name in names)


def test_resolve_executor_config():
    assert resolve_executor_config(ConcurrencyConfig(max_workers=3, window=0)) == ExecutorConfig(max_workers=3, window=6)
    assert resolve_executor_config(ConcurrencyConfig(max_workers=4, window=2)) == ExecutorConfig(max_workers=4, window=4)
    auto = resolve_executor_config(ConcurrencyConfig())
    assert 1 <= auto.max_workers <= 8
    assert auto.window >= auto.max_workers


@pytest.mark.parametrize("workers", [1, 3])
def test_run_each_forwards_errors(workers):
    def work(x):
        if x == 2:
            raise ValueError("bad item")
        return x

    results, errors = [], []
    run_each(range(4), work, results.append, ExecutorConfig(max_workers=workers, window=4), on_error=errors.append)

    assert sorted(results) == [0, 1, 3]
    assert [str(e) for e in errors] == ["bad item"]


@pytest.mark.parametrize("workers", [1, 3])
def test_run_each_fail_fast_reports_then_raises(workers):
    errors = []

    def work(x):
        raise KeyError(x)

    with pytest.raises(KeyError):
        run_each([1], work, lambda r: None, ExecutorConfig(max_workers=workers, window=4), fail_fast=True, on_error=errors.append)

    assert len(errors) == 1
