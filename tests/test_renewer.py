import asyncio
from datetime import timedelta

import pytest

from cloudqueues.core.renewer import ClaimRenewer
from cloudqueues.domain.errors import ItemNotFoundError

# ---------------------------------------------------------------------------
# Minimal claim stub
# ---------------------------------------------------------------------------


class _MockClaim:
    def __init__(
        self,
        ttl: timedelta = timedelta(seconds=60),
        side_effect: Exception | None = None,
    ) -> None:
        self.ttl = ttl
        self.calls: list[timedelta] = []
        self._side_effect = side_effect

    async def renew(self, ttl: timedelta) -> None:
        self.calls.append(ttl)
        if self._side_effect is not None:
            raise self._side_effect


# ---------------------------------------------------------------------------
# Basic operation
# ---------------------------------------------------------------------------


async def test_renews_at_interval() -> None:
    claim = _MockClaim()
    async with ClaimRenewer(claim, interval=timedelta(milliseconds=10)):
        await asyncio.sleep(0.08)

    assert len(claim.calls) >= 3


async def test_renews_with_requested_ttl() -> None:
    claim = _MockClaim()
    async with ClaimRenewer(
        claim, interval=timedelta(milliseconds=10), ttl=timedelta(seconds=90)
    ):
        await asyncio.sleep(0.05)

    assert claim.calls
    assert all(ttl == timedelta(seconds=90) for ttl in claim.calls)


async def test_renews_with_claim_ttl_by_default() -> None:
    claim = _MockClaim(ttl=timedelta(seconds=45))
    async with ClaimRenewer(claim, interval=timedelta(milliseconds=10)):
        await asyncio.sleep(0.04)

    assert claim.calls
    assert all(ttl == timedelta(seconds=45) for ttl in claim.calls)


async def test_stops_after_context_exit() -> None:
    claim = _MockClaim()
    async with ClaimRenewer(claim, interval=timedelta(milliseconds=10)):
        await asyncio.sleep(0.04)

    calls_at_exit = len(claim.calls)
    await asyncio.sleep(0.04)
    assert len(claim.calls) == calls_at_exit


# ---------------------------------------------------------------------------
# Task lifecycle
# ---------------------------------------------------------------------------


async def test_task_is_running_inside_context() -> None:
    renewer = ClaimRenewer(_MockClaim(), interval=timedelta(seconds=100))
    async with renewer:
        assert renewer._task is not None
        assert not renewer._task.done()


async def test_task_is_none_after_exit() -> None:
    renewer = ClaimRenewer(_MockClaim(), interval=timedelta(seconds=100))
    async with renewer:
        pass
    assert renewer._task is None


async def test_exception_in_body_still_cancels_task() -> None:
    renewer = ClaimRenewer(_MockClaim(), interval=timedelta(seconds=100))
    with pytest.raises(ValueError):
        async with renewer:
            raise ValueError("worker error")
    assert renewer._task is None


# ---------------------------------------------------------------------------
# Failure handling
# ---------------------------------------------------------------------------


async def test_vanished_claim_stops_renewals_silently() -> None:
    claim = _MockClaim(
        side_effect=ItemNotFoundError(404, "", "PATCH", "https://q/queues/x/claims/c")
    )
    async with ClaimRenewer(claim, interval=timedelta(milliseconds=5)):
        await asyncio.sleep(0.04)

    assert len(claim.calls) == 1


async def test_other_errors_propagate_through_exit() -> None:
    claim = _MockClaim(side_effect=RuntimeError("unexpected"))
    renewer = ClaimRenewer(claim, interval=timedelta(milliseconds=5))
    with pytest.raises(RuntimeError, match="unexpected"):
        async with renewer:
            await asyncio.sleep(0.03)


# ---------------------------------------------------------------------------
# Defaults and validation
# ---------------------------------------------------------------------------


def test_default_interval_is_half_the_ttl() -> None:
    renewer = ClaimRenewer(_MockClaim(ttl=timedelta(seconds=60)))
    assert renewer.ttl == timedelta(seconds=60)
    assert renewer.interval == timedelta(seconds=30)


def test_non_positive_interval_rejected() -> None:
    with pytest.raises(ValueError):
        ClaimRenewer(_MockClaim(), interval=timedelta(0))
