"""Tests for rolling voucher issuing and pool replenishment."""

import pytest

from vouchermanager.core.modules.rolling.models import ReplenishStatus
from vouchermanager.errors import NotFoundError, PolicyViolationError

FUTURE = "2024-06-20T00:00:00Z"


class TestCandidates:
    """Tests for kiosk candidates."""

    async def test_candidate_by_index(self, core, controller):
        """Test kiosks get distinct vouchers from the oldest-first queue."""
        controller.add(name="[ROLLING] b", createdAt="2024-06-15T10:00:00Z")
        controller.add(name="[ROLLING] a", createdAt="2024-06-15T09:00:00Z")
        controller.add(name="[ROLLING] used", createdAt="2024-06-15T08:00:00Z", authorizedGuestCount=1)

        first = await core.services.rolling.get_rolling_candidate(0)
        second = await core.services.rolling.get_rolling_candidate(1)

        assert (first.name, second.name) == ("[ROLLING] a", "[ROLLING] b")
        assert first.authorized_guest_count == 0
        assert first.expired is False

    async def test_candidate_out_of_range(self, core, controller):
        """Test an index past the queue raises NotFoundError."""
        controller.add(name="[ROLLING] a")
        with pytest.raises(NotFoundError):
            await core.services.rolling.get_rolling_candidate(1)

    async def test_newest_rolling(self, core, controller):
        """Test the newest unused rolling voucher."""
        controller.add(name="[ROLLING] old", createdAt="2024-06-15T09:00:00Z")
        controller.add(name="[ROLLING] new", createdAt="2024-06-15T10:00:00Z")
        controller.add(name="plain", createdAt="2024-06-15T11:00:00Z")

        assert (await core.services.rolling.get_newest_rolling()).name == "[ROLLING] new"


class TestIssueToIp:
    """Tests for issuing a rolling voucher to a client IP."""

    async def test_creates_with_policy(self, core, controller):
        """Test the created voucher carries the name and policy limits."""
        voucher = await core.services.rolling.create_rolling_for_ip("10.0.0.5")

        assert voucher.name == "[ROLLING] 20240615120000-10.0.0.5"
        request = controller.created_requests[0]
        assert request.count == 1
        assert request.time_limit_minutes == 1440
        assert request.tx_rate_limit_kbps == 10000
        assert request.rx_rate_limit_kbps == 5000
        assert request.data_usage_limit_mbytes is None

    async def test_name_uses_configured_timezone(self, core, controller):
        """Test the name timestamp is local wall time."""
        core.config.timezone = "Europe/Berlin"
        voucher = await core.services.rolling.create_rolling_for_ip("10.0.0.5")
        assert voucher.name == "[ROLLING] 20240615140000-10.0.0.5"

    async def test_second_request_refused(self, core, controller):
        """Test the same IP cannot get another voucher while one is live."""
        await core.services.rolling.create_rolling_for_ip("10.0.0.5")

        with pytest.raises(PolicyViolationError):
            await core.services.rolling.create_rolling_for_ip("10.0.0.5")
        assert len(controller.created_requests) == 1

    async def test_other_ip_allowed(self, core, controller):
        """Test a suffix-sharing IP is not blocked."""
        controller.add(name="[ROLLING] 20240615100000-110.0.0.5", expiresAt=FUTURE)
        assert await core.services.rolling.check_ip_rotated("10.0.0.5") is False
        voucher = await core.services.rolling.create_rolling_for_ip("10.0.0.5")
        assert voucher.name.endswith("-10.0.0.5")


class TestReplenish:
    """Tests for topping up the rolling pool."""

    async def test_fills_up_to_minimum(self, core, controller, clock):
        """Test min=3 with one unused voucher creates two vouchers with distinct names."""
        controller.add(name="[ROLLING] 20240615100000-auto-0")

        result = await core.services.rolling.replenish_rolling_pool()

        assert result.status == ReplenishStatus.CREATED
        assert result.created == 2
        names = [r.name for r in controller.created_requests]
        assert len(names) == 2
        assert len(set(names)) == 2
        assert len(await core.services.rolling.get_unused_rolling()) == 3
        assert clock.sleeps == [0.1]

    async def test_nothing_to_do(self, core, controller):
        """Test a full pool creates nothing."""
        for i in range(3):
            controller.add(name=f"[ROLLING] 20240615100000-auto-{i}")

        result = await core.services.rolling.replenish_rolling_pool()

        assert result.status == ReplenishStatus.NO_ACTION_NEEDED
        assert controller.created_requests == []

    async def test_failures_skipped(self, core, controller, clock):
        """Test a failed creation does not stop the remaining ones."""
        controller.fail_create_at = {1}

        result = await core.services.rolling.replenish_rolling_pool()

        assert result.status == ReplenishStatus.CREATED
        assert (result.created, result.failed) == (2, 1)
        assert clock.sleeps == [0.1, 0.1]
        assert result.voucher is not None
        assert result.voucher.name == "[ROLLING] 20240615120000-auto-1"

    async def test_all_failed(self, core, controller):
        """Test every creation failing reports failure."""
        controller.fail_create_at = {1, 2, 3}

        result = await core.services.rolling.replenish_rolling_pool()

        assert result.status == ReplenishStatus.FAILED
        assert result.failed == 3
        assert result.voucher is None
