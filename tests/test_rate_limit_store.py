import threading

from infrastructure.rate_limit_store import RateLimitStore


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now


def test_allows_up_to_max_requests_per_window():
    clock = FakeClock()
    store = RateLimitStore(max_requests=3, window_seconds=60, clock=clock)

    assert [store.hit("1.2.3.4") for _ in range(3)] == [None, None, None]
    clock.now += 15.5
    assert store.hit("1.2.3.4") == 45


def test_window_resets_after_expiry():
    clock = FakeClock()
    store = RateLimitStore(max_requests=1, window_seconds=60, clock=clock)

    assert store.hit("a") is None
    assert store.hit("a") == 60
    clock.now += 60
    assert store.hit("a") is None


def test_clients_are_counted_separately():
    store = RateLimitStore(max_requests=1, window_seconds=60, clock=FakeClock())

    assert store.hit("a") is None
    assert store.hit("b") is None
    assert store.hit("a") is not None


def test_retry_after_is_at_least_one_second():
    clock = FakeClock()
    store = RateLimitStore(max_requests=1, window_seconds=60, clock=clock)

    store.hit("a")
    clock.now += 59.99
    assert store.hit("a") == 1


def test_cleanup_bounds_memory(monkeypatch):
    clock = FakeClock()
    monkeypatch.setattr(RateLimitStore, "MAX_ENTRIES", 10)
    store = RateLimitStore(max_requests=5, window_seconds=60, clock=clock)

    for i in range(25):
        clock.now += 1
        store.hit(f"client-{i}")

    assert len(store._windows) <= 10
    assert "client-24" in store._windows


def test_reset_clears_counts():
    store = RateLimitStore(max_requests=1, window_seconds=60, clock=FakeClock())
    store.hit("a")

    store.reset()

    assert store.hit("a") is None


def test_concurrent_hits_never_exceed_limit():
    rounds_over_limit = 0
    for _ in range(50):
        store = RateLimitStore(max_requests=1, window_seconds=60)
        barrier = threading.Barrier(16)
        allowed = []

        def worker():
            barrier.wait()
            if store.hit("1.2.3.4") is None:
                allowed.append(1)

        threads = [threading.Thread(target=worker) for _ in range(16)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        if len(allowed) != 1:
            rounds_over_limit += 1

    assert rounds_over_limit == 0


def test_concurrent_new_clients_during_cleanup(monkeypatch):
    monkeypatch.setattr(RateLimitStore, "MAX_ENTRIES", 20)
    store = RateLimitStore(max_requests=5, window_seconds=60)
    barrier = threading.Barrier(8)
    errors = []

    def worker(n):
        barrier.wait()
        try:
            for i in range(200):
                store.hit(f"client-{n}-{i}")
        except RuntimeError as e:
            errors.append(e)

    threads = [threading.Thread(target=worker, args=(n,)) for n in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert errors == []
    assert len(store._windows) <= 20
