from tutor_diagnostics.data_models import ProcessEventType, ProcessHealthEvent
from tutor_diagnostics.diagnostics_manager_helpers import MAX_PROCESS_EVENTS, ProcessEventHistory, RetentionWarnings

_CONST_51 = 51


def test_history_evicts_oldest_beyond_capacity():
    history = ProcessEventHistory()
    events = [ProcessHealthEvent(type=ProcessEventType.SPAWN, reason=f"event {i}") for i in range(_CONST_51)]

    for event in events:
        history.record(event)

    retained = history.snapshot()
    assert len(retained) == MAX_PROCESS_EVENTS
    assert retained[0] is events[1]
    assert retained[-1] is events[-1]


def test_retention_warnings_trim_dedupe_and_ignore_blank():
    warnings = RetentionWarnings()

    assert warnings.add("  disk nearly full ") == "disk nearly full"
    assert warnings.add("disk nearly full") == "disk nearly full"
    assert warnings.add("   ") is None
    assert warnings.snapshot() == ("disk nearly full",)

    warnings.clear()
    assert warnings.snapshot() == ()
