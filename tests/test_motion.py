"""
Tests for velocity estimation, motion classification and entity ids.
"""

import time
import threading
import pytest

from airband.config import MotionConfig, AssociationConfig
from airband.motion import (
    EntityTracker, MotionClassifier, MotionEventType, shake_interval,
    EntityAssociator, RepeatingTask, ThreadScheduler, ReplayScheduler,
)


def run(classifier, tracker, samples, entity_id=1, accept=False):
    """Feed (t, x, y) samples; return the events (None where nothing fired)."""
    events = []
    for t, x, y in samples:
        est = tracker.update(entity_id, (x, y), t)
        evt = classifier.classify(entity_id, est, t)
        if accept and evt is not None and evt.event_type is MotionEventType.STRIKE:
            classifier.mark_accepted(entity_id, t)
        events.append(evt)
    return events


class TestEntityTracker:
    """Tests for EntityTracker."""

    def test_first_sample_zero_velocity(self):
        est = EntityTracker().update('a', (10, 10), 0.0)

        assert est.first_sample
        assert est.magnitude == 0.0
        assert est.vx == 0.0 and est.vy == 0.0

    def test_velocity(self):
        tracker = EntityTracker()
        tracker.update('a', (0, 0), 0.0)
        est = tracker.update('a', (30, 40), 0.1)

        assert est.vx == pytest.approx(300)
        assert est.vy == pytest.approx(400)
        assert est.magnitude == pytest.approx(500)
        assert est.dt == pytest.approx(0.1)
        assert (est.dx, est.dy) == (30, 40)

    def test_acceleration_from_previous_magnitude(self):
        tracker = EntityTracker()
        tracker.update('a', (0, 0), 0.0)
        tracker.update('a', (10, 0), 0.1)        # 100 px/s
        est = tracker.update('a', (60, 0), 0.2)  # 500 px/s
        assert est.acceleration == pytest.approx(4000)

    def test_duplicate_timestamp_is_clock_anomaly(self):
        tracker = EntityTracker()
        tracker.update('a', (0, 0), 1.0)
        est = tracker.update('a', (50, 0), 1.0)

        assert est.clock_anomaly
        assert est.magnitude == 0.0

    def test_backwards_timestamp_is_clock_anomaly(self):
        tracker = EntityTracker()
        tracker.update('a', (0, 0), 1.0)
        assert tracker.update('a', (50, 0), 0.5).clock_anomaly

    def test_keeps_only_latest_sample(self):
        tracker = EntityTracker()
        tracker.update('a', (0, 0, -0.02), 0.0)
        tracker.update('a', (5, 5, -0.03), 0.1)

        sample = tracker.last_sample('a')
        assert sample.position == (5.0, 5.0, -0.03)
        assert sample.depth == pytest.approx(-0.03)
        assert len(tracker) == 1

    def test_forget(self):
        tracker = EntityTracker()
        tracker.update('a', (0, 0), 0.0)
        tracker.forget('a')

        assert 'a' not in tracker
        assert tracker.update('a', (100, 0), 0.1).first_sample


class TestMotionClassifier:
    """Tests for edge-triggered strikes and shakes."""

    def test_strike_fires_once_on_rising_edge(self):
        events = run(MotionClassifier(), EntityTracker(), [
            (0.0, 0, 0),
            (0.1, 100, 0),
            (0.2, 200, 0),
        ])

        assert events[0] is None
        assert events[1].event_type is MotionEventType.STRIKE
        assert events[1].timestamp == pytest.approx(0.1)
        assert events[1].metric == pytest.approx(1000)
        assert events[2] is None

    def test_rearms_after_slowing(self):
        events = run(MotionClassifier(), EntityTracker(), [
            (0.0, 0, 0),
            (0.1, 100, 0),
            (0.2, 110, 0),
            (0.3, 210, 0),
        ])
        assert [e is not None for e in events] == [False, True, False, True]

    def test_intensity(self):
        events = run(MotionClassifier(), EntityTracker(), [(0.0, 0, 0), (0.1, 150, 0)])
        assert events[1].intensity == pytest.approx(1500 / 3000)

    def test_cooldown_after_accepted(self):
        events = run(MotionClassifier(), EntityTracker(), [
            (0.00, 0, 0),
            (0.01, 20, 0),     # 2000 px/s, accepted
            (0.02, 20, 0),
            (0.03, 40, 0),     # rising edge inside cooldown
            (0.04, 40, 0),
            (0.15, 260, 0),    # rising edge after cooldown
        ], accept=True)

        strikes = [e for e in events if e is not None]
        assert [e.timestamp for e in strikes] == [0.01, 0.15]

    def test_cooldown_boundary_is_inclusive(self):
        config = MotionConfig(entity_cooldown_sec=0.25)
        events = run(MotionClassifier(config), EntityTracker(config), [
            (0.0, 0, 0),
            (0.25, 500, 0),       # accepted
            (0.375, 500, 0),
            (0.5, 1000, 0),       # rising edge exactly one cooldown later
            (0.625, 1000, 0),
            (0.75, 1500, 0),
        ], accept=True)

        strikes = [e for e in events if e is not None]
        assert [e.timestamp for e in strikes] == [0.25, 0.75]

    def test_cooldown_only_counts_accepted(self):
        events = run(MotionClassifier(), EntityTracker(), [
            (0.00, 0, 0),
            (0.01, 20, 0),
            (0.02, 20, 0),
            (0.03, 40, 0),
        ])
        assert len([e for e in events if e is not None]) == 2

    def test_clock_anomaly_keeps_edge_state(self):
        events = run(MotionClassifier(), EntityTracker(), [
            (0.0, 0, 0),
            (0.1, 100, 0),     # strike
            (0.1, 150, 0),     # duplicate timestamp
            (0.2, 250, 0),     # still fast: no new edge
        ])
        assert [e is not None for e in events] == [False, True, False, False]

    def test_acceleration_metric(self):
        config = MotionConfig(strike_metric='acceleration', strike_threshold=2000)
        events = run(MotionClassifier(config), EntityTracker(config), [
            (0.0, 0, 0),
            (0.1, 10, 0),
            (0.2, 60, 0),
        ])

        assert events[1] is None
        assert events[2].event_type is MotionEventType.STRIKE
        assert events[2].metric == pytest.approx(4000)

    def test_unknown_metric(self):
        config = MotionConfig(strike_metric='jerk')
        with pytest.raises(ValueError):
            run(MotionClassifier(config), EntityTracker(config), [(0.0, 0, 0), (0.1, 10, 0)])

    def test_threshold_change_applies_next_call(self):
        config = MotionConfig()
        classifier = MotionClassifier(config)
        tracker = EntityTracker(config)
        run(classifier, tracker, [(0.0, 0, 0)])

        config.update(strike_threshold=2000)
        events = run(classifier, tracker, [(0.1, 100, 0)])
        assert events == [None]

    def test_shake_hysteresis(self):
        config = MotionConfig(shake_enabled=True, strike_threshold=1e9)
        classifier = MotionClassifier(config)
        events = run(classifier, EntityTracker(config), [
            (0.0, 0, 0),
            (0.1, 50, 0),      # 500 px/s: start
            (0.2, 85, 0),      # 350: held
            (0.3, 110, 0),     # 250: stop
            (0.4, 145, 0),     # 350: stays stopped
        ])

        assert events[1].event_type is MotionEventType.SHAKE_START
        assert events[1].interval == pytest.approx(0.198)
        assert events[1].intensity == pytest.approx(0.2)
        assert events[2] is None
        assert events[3].event_type is MotionEventType.SHAKE_STOP
        assert events[4] is None
        assert not classifier.is_shaking(1)

    def test_contact_fires_on_entering(self):
        classifier = MotionClassifier()
        touches = [classifier.contact(1, touching, t) for t, touching in [
            (0.0, False), (0.1, True), (0.2, True), (0.3, False), (0.4, True),
        ]]

        assert [e is not None for e in touches] == [False, True, False, False, True]
        assert touches[1].event_type is MotionEventType.CONTACT
        assert touches[1].intensity == 1.0

    def test_shake_disabled(self):
        events = run(MotionClassifier(MotionConfig(strike_threshold=1e9)), EntityTracker(), [
            (0.0, 0, 0), (0.1, 50, 0),
        ])
        assert events == [None, None]

    def test_shake_interval(self):
        assert shake_interval(0) == pytest.approx(0.240)
        assert shake_interval(1200) == pytest.approx(0.140)
        assert shake_interval(1e6) == pytest.approx(0.040)


class TestEntityAssociator:
    """Tests for cross-tick id assignment."""

    def test_new_ids(self):
        assoc = EntityAssociator()
        assert assoc.assign([(0, 0), (100, 0)], 0.0) == [0, 1]

    def test_ids_follow_positions_when_order_swaps(self):
        assoc = EntityAssociator()
        assoc.assign([(0, 0), (100, 0)], 0.0)
        assert assoc.assign([(102, 0), (1, 0)], 0.03) == [1, 0]

    def test_far_jump_gets_new_id(self):
        assoc = EntityAssociator(AssociationConfig(max_match_distance=150))
        assoc.assign([(0, 0)], 0.0)
        assert assoc.assign([(400, 0)], 0.03) == [1]

    def test_expired_track_not_reused(self):
        assoc = EntityAssociator(timeout=0.5)
        assoc.assign([(0, 0)], 0.0)
        assert assoc.assign([(0, 0)], 1.0) == [1]
        assert assoc.active_ids == [1]

    def test_disabled_uses_list_index(self):
        assoc = EntityAssociator(AssociationConfig(enabled=False))
        assoc.assign([(0, 0), (100, 0)], 0.0)
        assert assoc.assign([(102, 0), (1, 0)], 0.03) == [0, 1]

    def test_empty_tick(self):
        assoc = EntityAssociator()
        assoc.assign([(0, 0)], 0.0)
        assert assoc.assign([], 0.03) == []
        assert assoc.assign([(2, 0)], 0.06) == [0]


class TestRepeatingTask:
    """Tests for the thread-backed repeating task."""

    def test_runs_until_cancelled(self):
        calls = []
        fired = threading.Event()

        def callback():
            calls.append(1)
            if len(calls) >= 3:
                fired.set()

        task = ThreadScheduler().schedule_repeating(0.01, callback, name='test')
        assert fired.wait(2.0)
        task.cancel()

        assert not task.active
        count = len(calls)
        time.sleep(0.05)
        assert len(calls) == count

    def test_callback_error_does_not_stop_task(self):
        calls = []
        fired = threading.Event()

        def callback():
            calls.append(1)
            if len(calls) == 1:
                raise RuntimeError("boom")
            fired.set()

        task = RepeatingTask(0.01, callback).start()
        try:
            assert fired.wait(2.0)
        finally:
            task.cancel()

    def test_cancel_from_own_callback(self):
        done = threading.Event()
        holder = {}

        def callback():
            holder['task'].cancel()
            done.set()

        holder['task'] = RepeatingTask(0.01, callback)
        holder['task'].start()
        assert done.wait(2.0)
        assert not holder['task'].active


class TestReplayScheduler:
    """Tests for the scheduler driven by recorded time."""

    def test_runs_due_repeats_in_order(self):
        replay = ReplayScheduler()
        calls = []
        replay.schedule_repeating(0.25, lambda: calls.append(('a', replay())))
        replay.schedule_repeating(0.5, lambda: calls.append(('b', replay())))

        assert replay.advance(1.0) == 6
        assert calls == [('a', 0.25), ('a', 0.5), ('b', 0.5), ('a', 0.75), ('a', 1.0), ('b', 1.0)]
        assert replay() == 1.0

    def test_nothing_due(self):
        replay = ReplayScheduler()
        replay.schedule_repeating(0.5, lambda: None)

        assert replay.advance(0.1) == 0
        assert replay() == 0.1

    def test_cancelled_task_stops(self):
        replay = ReplayScheduler()
        calls = []
        task = replay.schedule_repeating(0.25, lambda: calls.append(replay()))
        replay.advance(0.5)
        task.cancel()
        replay.advance(2.0)

        assert calls == [0.25, 0.5]
        assert replay.active_tasks == []

    def test_callback_error_keeps_running(self):
        replay = ReplayScheduler()

        def broken():
            raise RuntimeError("boom")

        replay.schedule_repeating(0.25, broken)
        assert replay.advance(1.0) == 4

    def test_bad_interval(self):
        with pytest.raises(ValueError):
            ReplayScheduler().schedule_repeating(0.0, lambda: None)
