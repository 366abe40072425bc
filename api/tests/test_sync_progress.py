"""Tests for the progress fan-out used by the SSE endpoint."""

from spring_catalog.models.sync import SyncProgressEvent
from spring_catalog.services.sync_progress import SyncProgressTracker


def _event(phase: int, completed: bool = False) -> SyncProgressEvent:
    return SyncProgressEvent(
        current_phase=phase,
        total_phases=7,
        phase_description=f"phase {phase}",
        status="completed" if completed else "running",
        percent_complete=100 if completed else phase * 100 // 7,
        completed=completed,
    )


def test_subscription_receives_events_then_end_marker():
    tracker = SyncProgressTracker()
    sub = tracker.subscribe()
    tracker.publish(_event(0))
    tracker.publish(_event(7, completed=True))

    assert sub.get(timeout=0.1).current_phase == 0
    assert sub.get(timeout=0.1).completed is True
    assert sub.get(timeout=0.1) is None
    assert sub.closed
    assert tracker.observer_count() == 0


def test_late_subscriber_gets_latest_incomplete_event():
    tracker = SyncProgressTracker()
    tracker.publish(_event(3))
    sub = tracker.subscribe()
    assert sub.get(timeout=0.1).current_phase == 3

    tracker.publish(_event(7, completed=True))
    late = tracker.subscribe()
    # A finished run is not replayed
    assert late.get(timeout=0.05) is None
    assert not late.closed


def test_failing_listener_is_dropped_without_affecting_others():
    tracker = SyncProgressTracker()
    seen = []

    def broken(event):
        raise RuntimeError("observer went away")

    tracker.add_listener(broken)
    tracker.add_listener(seen.append)
    tracker.publish(_event(0))
    tracker.publish(_event(1))

    assert [e.current_phase for e in seen] == [0, 1]
    assert tracker.observer_count() == 1


def test_full_subscription_is_dropped():
    tracker = SyncProgressTracker()
    sub = tracker.subscribe()
    for i in range(101):
        tracker.publish(_event(i % 7))
    assert sub.closed
    assert tracker.observer_count() == 0


def test_latest_and_clear():
    tracker = SyncProgressTracker()
    assert tracker.latest() is None
    assert not tracker.all_completed()
    tracker.publish(_event(7, completed=True))
    assert tracker.all_completed()
    tracker.clear()
    assert tracker.latest() is None


def test_unsubscribe_closes_stream():
    tracker = SyncProgressTracker()
    sub = tracker.subscribe()
    sub.unsubscribe()
    assert sub.closed
    assert tracker.observer_count() == 0
    tracker.publish(_event(0))
    assert sub.get(timeout=0.05) is None
