"""
Vesting schedule records and the claimable-amount engine.

Release is linear from ``started_at`` to ``end_at`` and hidden behind the
cliff: nothing is claimable before ``cliff_period_till``, and whatever accrued
during the cliff becomes claimable the moment it passes. All arithmetic is on
Python integers, so ``total_tokens * elapsed`` never overflows and the floor
division never over-distributes.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any

from .exceptions import InvalidScheduleError, InvalidTimestampError


class VestingStatus(str, Enum):
    """Lifecycle of a vesting account, derived from its claimed amount."""
    PENDING = "pending"  # Nothing claimed yet
    ACCRUING = "accruing"  # Partially claimed
    FULLY_VESTED = "fully_vested"  # Terminal


@dataclass
class VestingAccount:
    """Vesting schedule of a single beneficiary."""

    beneficiary: str
    total_tokens: int
    started_at: int
    end_at: int
    cliff_period_till: int
    claimed_tokens: int = 0
    address: str = ""

    @property
    def status(self) -> VestingStatus:
        if self.claimed_tokens >= self.total_tokens:
            return VestingStatus.FULLY_VESTED
        if self.claimed_tokens > 0:
            return VestingStatus.ACCRUING
        return VestingStatus.PENDING

    @property
    def remaining_tokens(self) -> int:
        return self.total_tokens - self.claimed_tokens

    def copy(self) -> "VestingAccount":
        return VestingAccount(**asdict(self))

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "VestingAccount":
        return cls(
            beneficiary=data["beneficiary"],
            total_tokens=data["total_tokens"],
            started_at=data["started_at"],
            end_at=data["end_at"],
            cliff_period_till=data["cliff_period_till"],
            claimed_tokens=data.get("claimed_tokens", 0),
            address=data.get("address", ""),
        )


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def require_timestamp(now: Any) -> int:
    if not _is_int(now):
        raise InvalidTimestampError(
            "Timestamp must be an integer.", details={"now": repr(now)}
        )
    return now


def validate_schedule(
    total_tokens: Any,
    started_at: Any,
    end_at: Any,
    cliff_period_till: Any,
) -> None:
    """
    Check schedule parameters before anything is created.

    Raises:
        InvalidScheduleError: for non-integer inputs, a non-positive
            allocation, ``end_at <= started_at`` or a cliff outside
            ``[started_at, end_at]``.
    """
    params = {
        "total_tokens": total_tokens,
        "started_at": started_at,
        "end_at": end_at,
        "cliff_period_till": cliff_period_till,
    }
    for name, value in params.items():
        if not _is_int(value):
            raise InvalidScheduleError(f"{name} must be an integer.", details=params)

    if total_tokens <= 0:
        raise InvalidScheduleError("Total tokens must be positive.", details=params)
    if end_at <= started_at:
        raise InvalidScheduleError("End time must be after start time.", details=params)
    if not started_at <= cliff_period_till <= end_at:
        raise InvalidScheduleError(
            "Cliff must fall between start and end time.", details=params
        )


def vested_amount(schedule: VestingAccount, now: int) -> int:
    """Tokens released to date at ``now``, ignoring what was already claimed."""
    require_timestamp(now)
    if now < schedule.cliff_period_till:
        return 0
    if now >= schedule.end_at:
        return schedule.total_tokens

    elapsed = now - schedule.started_at
    duration = schedule.end_at - schedule.started_at
    return (schedule.total_tokens * elapsed) // duration


def claimable(schedule: VestingAccount, now: int) -> int:
    """Amount deliverable at ``now``; never negative, even if ``now`` regresses."""
    return max(0, vested_amount(schedule, now) - schedule.claimed_tokens)


def schedule_progress(schedule: VestingAccount, now: int) -> dict[str, Any]:
    """Summary of a schedule at ``now`` for CLI output and logs."""
    vested = vested_amount(schedule, now)
    return {
        "beneficiary": schedule.beneficiary,
        "total_tokens": schedule.total_tokens,
        "vested_tokens": vested,
        "claimed_tokens": schedule.claimed_tokens,
        "claimable_tokens": claimable(schedule, now),
        "locked_tokens": schedule.total_tokens - vested,
        "status": schedule.status.value,
        "cliff_passed": now >= schedule.cliff_period_till,
        "as_of": now,
    }
