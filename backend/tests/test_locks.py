"""Per-key lock registry: same key shares a lock, different keys never block each other."""
import threading

from flyball.utils.locks import KeyedLockRegistry


def test_same_key_same_lock():
    registry = KeyedLockRegistry()
    assert registry.lock_for("T1") is registry.lock_for("T1")
    assert registry.lock_for("T1") is not registry.lock_for("T2")
    assert len(registry) == 2


def test_hold_excludes_same_key():
    registry = KeyedLockRegistry()
    with registry.hold("T1"):
        assert registry.lock_for("T1").locked()
        assert registry.lock_for("T1").acquire(blocking=False) is False
    assert not registry.lock_for("T1").locked()


def test_hold_different_keys_in_parallel():
    """Two threads holding different keys can be inside their blocks at once."""
    registry = KeyedLockRegistry()
    barrier = threading.Barrier(2, timeout=5)
    errors = []

    def worker(key):
        try:
            with registry.hold(key):
                barrier.wait()
        except threading.BrokenBarrierError as e:
            errors.append(e)

    threads = [threading.Thread(target=worker, args=(k,)) for k in ("T1", "T2")]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert errors == []


def test_hold_releases_on_exception():
    registry = KeyedLockRegistry()
    try:
        with registry.hold("T1"):
            raise RuntimeError("boom")
    except RuntimeError:
        pass
    assert not registry.lock_for("T1").locked()
