"""
Tests for the Interaction Logger

Append-only log and scoped environment capture.
"""

import pytest

from assessflow.telemetry.logger import InteractionLogger


class TestInteractionLogger:
    """log() and get_all()."""

    def test_entries_appended_in_order_with_timestamps(self, clock):
        interaction_log = InteractionLogger(clock=clock)

        interaction_log.log("view")
        clock.advance(250)
        interaction_log.log("select_option", {"option_id": "A"})

        entries = interaction_log.get_all()
        assert [e.type for e in entries] == ["view", "select_option"]
        assert entries[1].timestamp - entries[0].timestamp == 250
        assert entries[1].payload == {"option_id": "A"}

    def test_timestamps_non_decreasing(self, clock):
        interaction_log = InteractionLogger(clock=clock)
        for step in (0, 10, 0, 5):
            clock.advance(step)
            interaction_log.log("focus")

        timestamps = [e.timestamp for e in interaction_log.get_all()]
        assert timestamps == sorted(timestamps)

    def test_snapshot_is_not_affected_by_later_entries(self, clock):
        interaction_log = InteractionLogger(clock=clock)
        interaction_log.log("view")

        snapshot = interaction_log.get_all()
        interaction_log.log("blur")

        assert len(snapshot) == 1
        assert len(interaction_log) == 2

    def test_default_clock_is_wall_clock(self):
        entry = InteractionLogger().log("view")

        assert entry.timestamp > 1_600_000_000_000


class TestCapture:
    """Environment listeners are scoped to capture()."""

    def test_mount_and_environment_events(self, clock, environment):
        interaction_log = InteractionLogger(clock=clock)

        with interaction_log.capture(environment):
            environment.emit("blur")
            environment.emit("focus")
            environment.emit("visibilitychange", hidden=True)
            environment.emit("visibilitychange", hidden=False)

        entries = interaction_log.get_all()
        assert [e.type for e in entries] == ["mount", "blur", "focus", "blur", "focus"]
        assert entries[3].payload == {"reason": "visibility_hidden"}
        assert entries[4].payload == {"reason": "visibility_visible"}

    def test_listeners_removed_on_exit(self, clock, environment):
        interaction_log = InteractionLogger(clock=clock)

        with interaction_log.capture(environment):
            assert environment.listener_count() == 3
            assert interaction_log.is_capturing

        assert environment.listener_count() == 0
        assert not interaction_log.is_capturing

        environment.emit("blur")
        assert [e.type for e in interaction_log.get_all()] == ["mount"]

    def test_listeners_removed_when_session_raises(self, clock, environment):
        interaction_log = InteractionLogger(clock=clock)

        with pytest.raises(KeyError):
            with interaction_log.capture(environment):
                raise KeyError("boom")

        assert environment.listener_count() == 0

    def test_nested_capture_rejected(self, clock, environment):
        interaction_log = InteractionLogger(clock=clock)

        with interaction_log.capture(environment):
            with pytest.raises(RuntimeError):
                with interaction_log.capture(environment):
                    pass

    def test_capture_without_environment(self, clock):
        interaction_log = InteractionLogger(clock=clock)

        with interaction_log.capture():
            interaction_log.log("view")

        assert [e.type for e in interaction_log.get_all()] == ["mount", "view"]
