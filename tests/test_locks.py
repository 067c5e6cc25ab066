import threading

from geocivic.utils.locks import KeyedLocks


def test_registry_is_empty_after_release():
    locks = KeyedLocks()

    for i in range(1000):
        with locks.hold(f"report-{i}"):
            pass

    assert locks._locks == {}


def test_nested_hold_on_same_key():
    locks = KeyedLocks()

    with locks.hold("report-1"):
        with locks.hold("report-1"):
            assert locks._locks["report-1"][1] == 2
        assert "report-1" in locks._locks

    assert locks._locks == {}


def test_lock_released_when_body_raises():
    locks = KeyedLocks()

    try:
        with locks.hold("report-1"):
            raise RuntimeError("boom")
    except RuntimeError:
        pass

    assert locks._locks == {}


def test_waiter_keeps_lock_alive_and_serializes():
    locks = KeyedLocks()
    entered = threading.Event()
    release = threading.Event()
    order = []

    def first():
        with locks.hold("report-1"):
            entered.set()
            release.wait(timeout=5)
            order.append("first")

    def second():
        entered.wait(timeout=5)
        with locks.hold("report-1"):
            order.append("second")

    threads = [threading.Thread(target=first), threading.Thread(target=second)]
    for t in threads:
        t.start()
    entered.wait(timeout=5)
    release.set()
    for t in threads:
        t.join(timeout=5)

    assert order == ["first", "second"]
    assert locks._locks == {}
