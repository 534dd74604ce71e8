"""
ScheduledRefresh tests with an injected clock.
"""

import pytest

from learnpath.classroom.refresh import ScheduledRefresh


class FakeTimer:
    def __init__(self):
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


class TestScheduledRefresh:

    @pytest.fixture
    def timer(self):
        return FakeTimer()

    def test_first_tick_runs(self, timer):
        calls = []
        refresh = ScheduledRefresh(lambda: calls.append(1) or len(calls), 30, clock=timer)
        assert refresh.is_due()
        assert refresh.tick()
        assert refresh.last_value == 1

    def test_runs_once_per_interval(self, timer):
        calls = []
        refresh = ScheduledRefresh(lambda: calls.append(timer.now), 30, clock=timer)
        refresh.tick()
        timer.now = 29.9
        assert not refresh.tick()
        assert refresh.seconds_until_due() == pytest.approx(0.1)
        timer.now = 30.0
        assert refresh.tick()
        assert calls == [0.0, 30.0]

    def test_refresh_now_resets_interval(self, timer):
        refresh = ScheduledRefresh(lambda: "value", 10, clock=timer)
        timer.now = 5
        assert refresh.refresh_now() == "value"
        timer.now = 14
        assert not refresh.is_due()

    def test_interval_must_be_positive(self):
        with pytest.raises(ValueError):
            ScheduledRefresh(lambda: None, 0)
