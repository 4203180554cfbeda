"""Tests for the virtual clock."""

from datetime import datetime, timedelta, timezone

import pytest

from provider_subscriptions.services.clock import Clock

START = datetime(2024, 3, 10, 9, 30, tzinfo=timezone.utc)


@pytest.fixture
def clock():
    """Create a clock pinned to 2024-03-10 09:30 UTC."""
    return Clock(start=START)


class TestPinnedClock:
    """Test a clock pinned to a start instant."""

    def test_now_is_pinned(self, clock):
        assert clock.now() == START
        assert clock.now() == START

    def test_now_is_utc(self, clock):
        assert clock.now().tzinfo == timezone.utc

    def test_naive_start_taken_as_utc(self):
        assert Clock(start=datetime(2024, 3, 10, 9, 30)).now() == START

    def test_advance(self, clock):
        previous, current = clock.advance(days=21, hours=14, minutes=30)

        assert previous == START
        assert current == datetime(2024, 4, 1, 0, 0, tzinfo=timezone.utc)
        assert clock.now() == current
        assert clock.offset == timedelta(days=21, hours=14, minutes=30)

    def test_advance_negative_rejected(self, clock):
        with pytest.raises(ValueError, match="backwards"):
            clock.advance(days=-1)
        assert clock.now() == START

    def test_set_time(self, clock):
        target = datetime(2024, 4, 1, 0, 0, 1, tzinfo=timezone.utc)
        previous, current = clock.set_time(target)

        assert previous == START
        assert current == target
        assert clock.now() == target

    def test_set_time_naive_is_utc(self, clock):
        clock.set_time(datetime(2024, 5, 1))
        assert clock.now() == datetime(2024, 5, 1, tzinfo=timezone.utc)

    def test_set_time_backwards_rejected(self, clock):
        with pytest.raises(ValueError, match="backwards"):
            clock.set_time(START - timedelta(seconds=1))

    def test_reset(self, clock):
        clock.advance(days=30)
        previous, current = clock.reset()

        assert previous == START + timedelta(days=30)
        assert current == START
        assert clock.offset == timedelta(0)


class TestRealTimeClock:
    def test_follows_real_time(self):
        clock = Clock()
        before = datetime.now(timezone.utc)
        now = clock.now()
        after = datetime.now(timezone.utc)
        assert before <= now <= after

    def test_advance_adds_offset(self):
        clock = Clock()
        clock.advance(days=2)
        assert clock.now() - datetime.now(timezone.utc) > timedelta(days=1, hours=23)
