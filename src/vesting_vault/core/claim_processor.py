"""
Claim settlement.

A claim is authorized, computed and settled under the beneficiary's lock:

1. only the beneficiary may claim for themselves
2. the deliverable delta is computed from the schedule at the supplied time
3. the delta is recorded, then custody moves the tokens
4. if custody raises, the recorded delta is reverted before the lock is
   released and ``TransferFailedError`` propagates, chained to the custody
   exception when it was of another type

Because all four steps hold the same lock, no other request for that
beneficiary can observe the claim half-settled, and concurrent requests at
the same time deliver the claimable amount exactly once.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import Any

from . import metrics
from .account_store import VestingAccountStore
from .exceptions import (
    TransferFailedError,
    UnauthorizedError,
    get_error_context,
    is_recoverable_error,
)
from .schedule import VestingStatus, claimable, require_timestamp
from .token_custody import TokenCustody
from .vault_state import VaultStateManager

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ClaimReceipt:
    """Outcome of one claim request."""

    beneficiary: str
    amount: int
    claimed_tokens: int
    remaining_tokens: int
    status: VestingStatus
    claimed_at: int

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["status"] = self.status.value
        return data


class ClaimProcessor:
    """Authorizes and settles beneficiary claims."""

    def __init__(
        self,
        state_manager: VaultStateManager,
        accounts: VestingAccountStore,
        custody: TokenCustody,
        metrics_enabled: bool = True,
    ):
        self.state_manager = state_manager
        self.accounts = accounts
        self.custody = custody
        self.metrics_enabled = metrics_enabled

    def _record_outcome(self, outcome: str) -> None:
        if self.metrics_enabled:
            metrics.record_claim_outcome(outcome)

    def claim(self, caller: str, beneficiary: str, now: int) -> int:
        """Settle whatever is claimable at ``now`` and return the amount moved."""
        return self.claim_with_receipt(caller, beneficiary, now).amount

    def claim_with_receipt(self, caller: str, beneficiary: str, now: int) -> ClaimReceipt:
        if caller != beneficiary:
            self._record_outcome("unauthorized")
            logger.warning(
                "Claim rejected: caller is not the beneficiary",
                extra={
                    "event": "claim.unauthorized",
                    "caller": str(caller)[:10],
                    "beneficiary": str(beneficiary)[:10],
                },
            )
            raise UnauthorizedError(
                "Only the beneficiary may claim their vested tokens.",
                details={"caller": caller, "beneficiary": beneficiary},
            )

        require_timestamp(now)
        state = self.state_manager.require_state()

        with self.accounts.beneficiary_lock(beneficiary):
            schedule = self.accounts.get(beneficiary)
            delta = claimable(schedule, now)

            if delta == 0:
                self._record_outcome("noop")
                logger.info(
                    "Nothing claimable",
                    extra={
                        "event": "claim.noop",
                        "beneficiary": beneficiary[:10],
                        "claimed_tokens": schedule.claimed_tokens,
                        "now": now,
                    },
                )
                return ClaimReceipt(
                    beneficiary=beneficiary,
                    amount=0,
                    claimed_tokens=schedule.claimed_tokens,
                    remaining_tokens=schedule.remaining_tokens,
                    status=schedule.status,
                    claimed_at=now,
                )

            updated = self.accounts.record_claim(beneficiary, delta)
            try:
                self.custody.transfer(
                    state.token_type,
                    state.custody_account,
                    beneficiary,
                    delta,
                )
            except Exception as exc:
                self.accounts.revert_claim(beneficiary, delta)
                self._record_outcome("transfer_failed")
                logger.error(
                    "Claim rolled back after failed transfer",
                    extra={
                        "event": "claim.rolled_back",
                        "beneficiary": beneficiary[:10],
                        "amount": delta,
                        **get_error_context(exc),
                    },
                )
                if isinstance(exc, TransferFailedError):
                    raise
                raise TransferFailedError(
                    f"Custody transfer failed: {exc}",
                    details={"beneficiary": beneficiary, "amount": delta},
                    recoverable=is_recoverable_error(exc),
                ) from exc

        self._record_outcome("settled")
        if self.metrics_enabled:
            metrics.record_tokens_released(state.token_type, delta)
        logger.info(
            "Claim settled",
            extra={
                "event": "claim.settled",
                "beneficiary": beneficiary[:10],
                "amount": delta,
                "claimed_tokens": updated.claimed_tokens,
                "total_tokens": updated.total_tokens,
                "status": updated.status.value,
            },
        )
        return ClaimReceipt(
            beneficiary=beneficiary,
            amount=delta,
            claimed_tokens=updated.claimed_tokens,
            remaining_tokens=updated.remaining_tokens,
            status=updated.status,
            claimed_at=now,
        )
