import threading
import time
from core.utils.rate_limit import RateLimiter, AdmissionQueue

def test_first_request_does_not_wait(fake_clock):
    limiter = RateLimiter(min_interval=1.0, clock=fake_clock, sleep=fake_clock.sleep)

    assert limiter.delay() == 0.0
    assert fake_clock.sleeps == []
    assert limiter.request_count == 1

def test_wait_is_measured_from_previous_start(fake_clock):
    limiter = RateLimiter(min_interval=1.0, clock=fake_clock, sleep=fake_clock.sleep)
    limiter.delay()

    # The previous request took 0.3s, so only 0.7s remain
    fake_clock.advance(0.3)
    waited = limiter.delay()

    assert abs(waited - 0.7) < 1e-9
    assert len(fake_clock.sleeps) == 1

def test_no_wait_after_interval_has_passed(fake_clock):
    limiter = RateLimiter(min_interval=1.0, clock=fake_clock, sleep=fake_clock.sleep)
    limiter.delay()
    fake_clock.advance(1.5)

    assert limiter.delay() == 0.0
    assert fake_clock.sleeps == []

def test_consecutive_starts_are_spaced(fake_clock):
    limiter = RateLimiter(min_interval=1.0, clock=fake_clock, sleep=fake_clock.sleep)
    starts = []
    for _ in range(5):
        limiter.delay()
        starts.append(fake_clock())
        fake_clock.advance(0.1)

    gaps = [b - a for a, b in zip(starts, starts[1:])]
    assert all(gap >= 1.0 - 1e-9 for gap in gaps)

def test_admission_queue_serves_in_arrival_order():
    queue = AdmissionQueue()
    order = []
    in_flight = []
    max_in_flight = []

    def worker(n):
        with queue:
            in_flight.append(n)
            max_in_flight.append(len(in_flight))
            order.append(n)
            time.sleep(0.01)
            in_flight.remove(n)

    # Hold the slot so every worker queues behind it
    queue.__enter__()
    threads = []
    for n in range(5):
        t = threading.Thread(target=worker, args=(n,))
        t.start()
        threads.append(t)
        # Wait until this worker has taken its ticket before starting the next
        deadline = time.monotonic() + 2
        while queue.waiting < n + 2 and time.monotonic() < deadline:
            time.sleep(0.001)
    queue.__exit__(None, None, None)

    for t in threads:
        t.join(timeout=5)

    assert order == [0, 1, 2, 3, 4]
    assert max(max_in_flight) == 1
    assert queue.waiting == 0
