"""Tests for the midnight purge scheduler."""

from datetime import UTC, datetime
from zoneinfo import ZoneInfo

from vouchermanager.core.modules.purge.scheduler import PurgeScheduler, next_midnight
from vouchermanager.core.modules.voucher.models import DeleteResponse


def scheduler_at(clock, current: datetime, zone: str, purge=None) -> PurgeScheduler:
    async def noop() -> DeleteResponse:
        return DeleteResponse(vouchers_deleted=0)

    clock.current = current
    return PurgeScheduler(purge or noop, ZoneInfo(zone), clock)


class TestNextMidnight:
    """Tests for computing the next local midnight."""

    def test_two_minutes_before_midnight(self, clock):
        """Test 23:58 local waits two minutes."""
        scheduler = scheduler_at(clock, datetime(2024, 6, 15, 23, 58, tzinfo=UTC), "UTC")
        assert scheduler.seconds_until_midnight() == 120

    def test_at_midnight_waits_full_day(self, clock):
        """Test exactly midnight schedules the following midnight."""
        scheduler = scheduler_at(clock, datetime(2024, 6, 15, 0, 0, tzinfo=UTC), "UTC")
        assert scheduler.seconds_until_midnight() == 86400

    def test_local_zone(self):
        """Test midnight is taken in the configured zone, not UTC."""
        current = datetime(2024, 6, 15, 20, 0, tzinfo=UTC)  # 22:00 in Berlin
        result = next_midnight(current, ZoneInfo("Europe/Berlin"))
        assert result == datetime(2024, 6, 15, 22, 0, tzinfo=UTC)

    def test_ambiguous_midnight_uses_later_instant(self, clock):
        """Test a repeated midnight (Havana falls back at 01:00) waits for its second occurrence."""
        current = datetime(2024, 11, 2, 23, 30, tzinfo=ZoneInfo("America/Havana"))
        scheduler = scheduler_at(clock, current.astimezone(UTC), "America/Havana")
        assert scheduler.seconds_until_midnight() == 5400

    def test_skipped_midnight_uses_first_moment_after_gap(self, clock):
        """Test a missing midnight (Santiago springs forward at 00:00) runs at 01:00 local."""
        current = datetime(2024, 9, 7, 23, 0, tzinfo=ZoneInfo("America/Santiago"))
        scheduler = scheduler_at(clock, current.astimezone(UTC), "America/Santiago")
        assert scheduler.seconds_until_midnight() == 3600

    def test_result_is_never_in_the_past(self):
        """Test the next midnight is always after the current instant."""
        zone = ZoneInfo("America/Santiago")
        current = datetime(2024, 9, 8, 4, 30, tzinfo=UTC)  # 01:30 local, just after the gap
        assert next_midnight(current, zone) > current


class TestRunOnce:
    """Tests for one scheduler cycle."""

    async def test_sleeps_then_purges(self, clock):
        """Test the purge runs after sleeping until midnight."""
        calls = []

        async def purge() -> DeleteResponse:
            calls.append(True)
            return DeleteResponse(vouchers_deleted=2)

        scheduler = scheduler_at(clock, datetime(2024, 6, 15, 23, 58, tzinfo=UTC), "UTC", purge)

        await scheduler.run_once()

        assert clock.sleeps == [120]
        assert calls == [True]

    async def test_failure_does_not_stop_next_day(self, clock):
        """Test a failing purge is logged and the following day still runs."""
        calls = []

        async def purge() -> DeleteResponse:
            calls.append(True)
            if len(calls) == 1:
                raise RuntimeError("controller down")
            return DeleteResponse(vouchers_deleted=1)

        scheduler = scheduler_at(clock, datetime(2024, 6, 15, 23, 58, tzinfo=UTC), "UTC", purge)

        await scheduler.run_once()
        await scheduler.run_once()

        assert len(calls) == 2
        assert clock.sleeps == [120, 86400]
