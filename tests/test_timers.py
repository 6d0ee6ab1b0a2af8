import pytest

from aisle_nav.model.timers import TimerQueue


def test_one_shot_fires_once():
    fired = []
    timers = TimerQueue()
    timers.schedule("ping", now=0.0, delay=1.0, callback=lambda: fired.append("ping"))

    assert timers.run_due(0.5) == 0
    assert timers.run_due(1.0) == 1
    assert timers.run_due(5.0) == 0
    assert fired == ["ping"]
    assert "ping" not in timers


def test_repeat_fires_every_interval():
    fired = []
    timers = TimerQueue()
    timers.schedule("tick", 0.0, 1.0, lambda: fired.append(1), repeat=1.0)

    timers.run_due(3.5)
    assert len(fired) == 3
    assert "tick" in timers


def test_due_order_and_replacement():
    fired = []
    timers = TimerQueue()
    timers.schedule("late", 0.0, 2.0, lambda: fired.append("late"))
    timers.schedule("early", 0.0, 1.0, lambda: fired.append("early"))
    timers.schedule("late", 0.0, 3.0, lambda: fired.append("late-replaced"))

    timers.run_due(10.0)
    assert fired == ["early", "late-replaced"]


def test_cancel_and_cancel_all():
    fired = []
    timers = TimerQueue()
    timers.schedule("a", 0.0, 1.0, lambda: fired.append("a"))
    timers.schedule("b", 0.0, 1.0, lambda: fired.append("b"), repeat=1.0)

    assert timers.cancel("a") is True
    assert timers.cancel("a") is False
    timers.cancel_all()
    assert len(timers) == 0
    timers.run_due(10.0)
    assert fired == []


def test_non_positive_repeat_rejected():
    with pytest.raises(ValueError):
        TimerQueue().schedule("x", 0.0, 1.0, lambda: None, repeat=0)
