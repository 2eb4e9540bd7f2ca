"""
Per-beneficiary vesting account storage.

Accounts are kept in a ``RecordAddressBook`` keyed by the address derived from
``("vesting", beneficiary)``, so each beneficiary has at most one account.
Every mutation of an account happens under that beneficiary's own re-entrant
lock; accounts of different beneficiaries never contend.
"""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from typing import Callable, Iterator, Optional

from .addressing import VESTING_NAMESPACE, RecordAddressBook
from .exceptions import (
    ClaimOverflowError,
    DuplicateBeneficiaryError,
    InvalidScheduleError,
    NotFoundError,
)
from .schedule import VestingAccount, validate_schedule

logger = logging.getLogger(__name__)


class VestingAccountStore:
    """Owns the collection of vesting accounts and their lifecycle."""

    def __init__(self, namespace: str = VESTING_NAMESPACE):
        self._accounts: RecordAddressBook[VestingAccount] = RecordAddressBook(namespace)
        self._locks: dict[str, threading.RLock] = {}
        self._registry_lock = threading.Lock()
        self._create_lock = threading.Lock()

    @property
    def namespace(self) -> str:
        return self._accounts.namespace

    def _lock_for(self, beneficiary: str) -> threading.RLock:
        with self._registry_lock:
            lock = self._locks.get(beneficiary)
            if lock is None:
                lock = threading.RLock()
                self._locks[beneficiary] = lock
            return lock

    @contextmanager
    def beneficiary_lock(self, beneficiary: str) -> Iterator[None]:
        """Serialize all reads and writes of one beneficiary's account."""
        with self._lock_for(beneficiary):
            yield

    def _require(self, beneficiary: str) -> VestingAccount:
        account = self._accounts.lookup(beneficiary) if beneficiary else None
        if account is None:
            raise NotFoundError(
                "No vesting account for beneficiary.",
                details={"beneficiary": beneficiary},
            )
        return account

    def create(
        self,
        beneficiary: str,
        total_tokens: int,
        started_at: int,
        end_at: int,
        cliff_period_till: int,
        funding: Optional[Callable[[], None]] = None,
    ) -> VestingAccount:
        """
        Create the vesting account of ``beneficiary``.

        ``funding`` runs after validation and before the account is stored;
        if it raises, nothing is stored and the exception propagates.

        Raises:
            InvalidScheduleError: bad allocation or time ordering
            DuplicateBeneficiaryError: beneficiary already has an account
        """
        if not beneficiary:
            raise InvalidScheduleError("Beneficiary cannot be empty.")
        validate_schedule(total_tokens, started_at, end_at, cliff_period_till)

        with self._create_lock:
            if beneficiary in self._accounts:
                logger.warning(
                    "Duplicate vesting account rejected",
                    extra={"event": "vesting.duplicate", "beneficiary": beneficiary[:10]},
                )
                raise DuplicateBeneficiaryError(
                    "Beneficiary already has a vesting account.",
                    details={"beneficiary": beneficiary},
                )

            if funding is not None:
                funding()

            account = VestingAccount(
                beneficiary=beneficiary,
                total_tokens=total_tokens,
                started_at=started_at,
                end_at=end_at,
                cliff_period_till=cliff_period_till,
                address=self._accounts.address_of(beneficiary),
            )
            self._accounts.insert_new(beneficiary, account)

        logger.info(
            "Vesting account created",
            extra={
                "event": "vesting.created",
                "beneficiary": beneficiary[:10],
                "total_tokens": total_tokens,
                "cliff_period_till": cliff_period_till,
                "end_at": end_at,
            },
        )
        return account.copy()

    def get(self, beneficiary: str) -> VestingAccount:
        """Snapshot of the beneficiary's account, or ``NotFoundError``."""
        with self.beneficiary_lock(beneficiary):
            return self._require(beneficiary).copy()

    def find(self, beneficiary: str) -> Optional[VestingAccount]:
        try:
            return self.get(beneficiary)
        except NotFoundError:
            return None

    def record_claim(self, beneficiary: str, delta: int) -> VestingAccount:
        """Add ``delta`` to the claimed amount; never past the allocation."""
        if not isinstance(delta, int) or isinstance(delta, bool) or delta <= 0:
            raise ValueError("Claim delta must be a positive integer.")

        with self.beneficiary_lock(beneficiary):
            account = self._require(beneficiary)
            new_claimed = account.claimed_tokens + delta
            if new_claimed > account.total_tokens:
                logger.error(
                    "Claim would exceed allocation",
                    extra={
                        "event": "vesting.overflow",
                        "beneficiary": beneficiary[:10],
                        "claimed_tokens": account.claimed_tokens,
                        "delta": delta,
                        "total_tokens": account.total_tokens,
                    },
                )
                raise ClaimOverflowError(
                    "Claimed tokens would exceed total allocation.",
                    details={
                        "beneficiary": beneficiary,
                        "claimed_tokens": account.claimed_tokens,
                        "delta": delta,
                        "total_tokens": account.total_tokens,
                    },
                )
            account.claimed_tokens = new_claimed
            return account.copy()

    def revert_claim(self, beneficiary: str, delta: int) -> VestingAccount:
        """Undo a ``record_claim`` whose settlement failed."""
        with self.beneficiary_lock(beneficiary):
            account = self._require(beneficiary)
            if delta <= 0 or delta > account.claimed_tokens:
                raise ValueError("Cannot revert more than was claimed.")
            account.claimed_tokens -= delta
            return account.copy()

    def restore(self, account: VestingAccount) -> None:
        """Insert a persisted account as-is."""
        validate_schedule(
            account.total_tokens,
            account.started_at,
            account.end_at,
            account.cliff_period_till,
        )
        if not 0 <= account.claimed_tokens <= account.total_tokens:
            raise InvalidScheduleError(
                "Claimed tokens out of range.",
                details={"beneficiary": account.beneficiary},
            )
        stored = account.copy()
        stored.address = self._accounts.address_of(account.beneficiary)
        with self._create_lock:
            if not self._accounts.insert_new(account.beneficiary, stored):
                raise DuplicateBeneficiaryError(
                    "Beneficiary already has a vesting account.",
                    details={"beneficiary": account.beneficiary},
                )

    def list_accounts(self) -> list[VestingAccount]:
        accounts = []
        for account in self._accounts:
            with self.beneficiary_lock(account.beneficiary):
                accounts.append(account.copy())
        return sorted(accounts, key=lambda a: a.beneficiary)

    def __contains__(self, beneficiary: object) -> bool:
        return beneficiary in self._accounts

    def __len__(self) -> int:
        return len(self._accounts)
