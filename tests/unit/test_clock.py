"""DeterministicClock behaviour relied on by the service tests."""

from datetime import date, datetime, timezone

from hours_kernel.domain.clock import DeterministicClock, SystemClock


def test_fixed_until_advanced():
    clock = DeterministicClock()
    assert clock.now() == datetime(2024, 1, 1, 12, tzinfo=timezone.utc)
    assert clock.now() == clock.now()

    clock.advance(36 * 3600)
    assert clock.now() == datetime(2024, 1, 3, 0, tzinfo=timezone.utc)
    assert clock.today() == date(2024, 1, 3)


def test_custom_start():
    start = datetime(2024, 3, 6, 9, tzinfo=timezone.utc)
    assert DeterministicClock(start).today() == date(2024, 3, 6)


def test_system_clock_is_utc():
    assert SystemClock().now().tzinfo == timezone.utc
