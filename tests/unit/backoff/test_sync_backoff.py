from tutor_diagnostics.backoff import PREFERENCE_SYNC_BACKOFF, BackoffConfig, DelayCalculator


def test_preference_sync_backoff_schedule_is_deterministic():
    delays = [DelayCalculator.calculate_full_delay(PREFERENCE_SYNC_BACKOFF, attempt, "sync") for attempt in (1, 2, 3, 4)]

    assert delays == [0.5, 1.0, 2.0, 3.0]
    assert PREFERENCE_SYNC_BACKOFF.max_attempts == 4


def test_base_delay_is_capped():
    config = BackoffConfig(initial_delay=1.0, max_delay=5.0, multiplier=3.0)
    assert DelayCalculator.calculate_base_delay(config, 4) == 5.0


def test_attempt_below_one_uses_initial_delay():
    config = BackoffConfig(initial_delay=0.5, max_delay=3.0, multiplier=2.0)
    assert DelayCalculator.calculate_base_delay(config, 0) == 0.5
