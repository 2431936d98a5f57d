import logging

import pytest

import tutor_diagnostics.events as events_module
from tutor_diagnostics.events import DiagnosticsEvent, EventBus
from tutor_diagnostics.preferences_vault import VaultEvent


class TestEventBus:
    """Tests for EventBus fan-out."""

    def test_listeners_receive_payload_in_subscription_order(self):
        bus = EventBus(DiagnosticsEvent)
        received = []
        bus.subscribe(DiagnosticsEvent.RETENTION_WARNING, lambda payload: received.append(("a", payload)))
        bus.subscribe(DiagnosticsEvent.RETENTION_WARNING, lambda payload: received.append(("b", payload)))

        bus.publish(DiagnosticsEvent.RETENTION_WARNING, "disk")

        assert received == [("a", "disk"), ("b", "disk")]

    def test_unsubscribe_stops_delivery_and_is_idempotent(self):
        bus = EventBus(DiagnosticsEvent)
        received = []
        unsubscribe = bus.subscribe(DiagnosticsEvent.SNAPSHOT_UPDATED, received.append)

        unsubscribe()
        unsubscribe()
        bus.publish(DiagnosticsEvent.SNAPSHOT_UPDATED, {"x": 1})

        assert received == []
        assert bus.listener_count(DiagnosticsEvent.SNAPSHOT_UPDATED) == 0

    def test_failing_listener_is_logged_and_others_still_run(self, caplog):
        bus = EventBus(DiagnosticsEvent)
        received = []

        def broken(_payload):
            raise RuntimeError("boom")

        bus.subscribe(DiagnosticsEvent.BACKEND_ERROR, broken)
        bus.subscribe(DiagnosticsEvent.BACKEND_ERROR, received.append)

        with caplog.at_level(logging.ERROR):
            bus.publish(DiagnosticsEvent.BACKEND_ERROR, {"message": "x"})

        assert received == [{"message": "x"}]
        assert "backend-error" in caplog.text

    def test_rejects_events_from_another_enum(self):
        bus = EventBus(DiagnosticsEvent)
        with pytest.raises(TypeError):
            bus.subscribe(VaultEvent.UPDATED, lambda _payload: None)

    def test_clear_drops_all_listeners(self):
        bus = EventBus(DiagnosticsEvent)
        bus.subscribe(DiagnosticsEvent.PROCESS_EVENT, lambda _payload: None)
        bus.clear()
        assert bus.listener_count(DiagnosticsEvent.PROCESS_EVENT) == 0


def test_events_module_is_documented():
    assert events_module.__doc__ and "publish/subscribe" in events_module.__doc__
