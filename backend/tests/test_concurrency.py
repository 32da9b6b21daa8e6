"""Tests for bounded-concurrency mapping."""
import threading
import time

from bookvault.utils.concurrency import map_limit


def test_map_limit_preserves_input_order():
    def slow_square(n):
        # Later items finish first
        time.sleep(0.001 * (10 - n))
        return n * n

    assert map_limit(list(range(10)), 4, slow_square) == [n * n for n in range(10)]


def test_map_limit_never_exceeds_concurrency():
    lock = threading.Lock()
    in_flight = 0
    peak = 0

    def work(n):
        nonlocal in_flight, peak
        with lock:
            in_flight += 1
            peak = max(peak, in_flight)
        time.sleep(0.01)
        with lock:
            in_flight -= 1
        return n

    map_limit(list(range(12)), 3, work)
    assert peak <= 3


def test_map_limit_empty_and_sequential():
    assert map_limit([], 4, lambda x: x) == []
    assert map_limit([1, 2], 1, lambda x: x + 1) == [2, 3]
