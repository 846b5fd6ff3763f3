"""Unit tests for TimeoutWatchdog."""

import pytest


@pytest.mark.core
@pytest.mark.tra("Domain.TimeoutWatchdog")
@pytest.mark.tier(0)
class TestTimeoutWatchdog:
    """Tests for arming, firing and disarming the watchdog."""

    def test_arm_schedules_callback_with_delay(self, scheduler) -> None:
        from ccexperiment.core.watchdog import TimeoutWatchdog

        calls: list[str] = []
        watchdog = TimeoutWatchdog(scheduler, lambda: calls.append("fired"))

        watchdog.arm(60)

        assert watchdog.armed
        assert [t.delay for t in scheduler.pending] == [60]
        assert calls == []

    def test_fire_runs_callback_once(self, scheduler) -> None:
        from ccexperiment.core.watchdog import TimeoutWatchdog

        calls: list[str] = []
        watchdog = TimeoutWatchdog(scheduler, lambda: calls.append("fired"))
        watchdog.arm(60)

        scheduler.fire_pending()
        scheduler.tasks[0].callback()

        assert calls == ["fired"]
        assert not watchdog.armed

    def test_disarm_cancels_pending_task(self, scheduler) -> None:
        from ccexperiment.core.watchdog import TimeoutWatchdog

        calls: list[str] = []
        watchdog = TimeoutWatchdog(scheduler, lambda: calls.append("fired"))
        watchdog.arm(60)

        assert watchdog.disarm() is True
        assert watchdog.disarm() is False
        assert scheduler.tasks[0].cancelled
        assert not watchdog.armed

    def test_late_timer_after_disarm_is_ignored(self, scheduler) -> None:
        """A timer whose cancel came too late must not run the callback."""
        from ccexperiment.core.watchdog import TimeoutWatchdog

        calls: list[str] = []
        watchdog = TimeoutWatchdog(scheduler, lambda: calls.append("fired"))
        watchdog.arm(60)
        watchdog.disarm()

        scheduler.tasks[0].callback()

        assert calls == []

    def test_rearm_replaces_previous_timer(self, scheduler) -> None:
        from ccexperiment.core.watchdog import TimeoutWatchdog

        calls: list[str] = []
        watchdog = TimeoutWatchdog(scheduler, lambda: calls.append("fired"))
        watchdog.arm(60)
        watchdog.arm(120)

        scheduler.tasks[0].callback()
        assert calls == []
        assert scheduler.tasks[0].cancelled

        scheduler.fire_pending()
        assert calls == ["fired"]

    def test_disarm_before_arm_returns_false(self, scheduler) -> None:
        from ccexperiment.core.watchdog import TimeoutWatchdog

        watchdog = TimeoutWatchdog(scheduler, lambda: None)

        assert watchdog.disarm() is False
        assert scheduler.tasks == []
