"""
Vesting vault facade.

Wires the vault state manager, the vesting account store, the custody
mechanism and the claim processor behind the three vault operations:
``initialize_vault``, ``initialize_vesting`` and ``claim``.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Optional

from . import metrics
from .account_store import VestingAccountStore
from .addressing import VAULT_NAMESPACE, VESTING_NAMESPACE
from .claim_processor import ClaimProcessor, ClaimReceipt
from .exceptions import InvalidScheduleError, VaultNotInitializedError
from .schedule import VestingAccount, claimable, require_timestamp, schedule_progress
from .token_custody import InMemoryTokenLedger, TokenCustody
from .vault_state import VaultState, VaultStateManager

if TYPE_CHECKING:
    from ..config import VaultConfig

logger = logging.getLogger(__name__)

SNAPSHOT_VERSION = 1


class VestingVault:
    """
    Custodial token pool with per-beneficiary linear vesting.

    Usage:
        ledger = InMemoryTokenLedger()
        vault = VestingVault(custody=ledger)
        vault.initialize_vault("admin", "VEST", now=0)
        ledger.mint("VEST", "admin", 100)
        vault.initialize_vesting("admin", "alice", 100, end_at=10, cliff_period_till=2, now=0)
        vault.claim("alice", "alice", now=5)  # 50
    """

    def __init__(
        self,
        custody: Optional[TokenCustody] = None,
        authority: Optional[str] = None,
        vault_namespace: str = VAULT_NAMESPACE,
        vesting_namespace: str = VESTING_NAMESPACE,
        metrics_enabled: bool = True,
    ):
        self.custody = custody if custody is not None else InMemoryTokenLedger()
        self.state_manager = VaultStateManager(authority=authority, namespace=vault_namespace)
        self.accounts = VestingAccountStore(namespace=vesting_namespace)
        self.metrics_enabled = metrics_enabled
        self.processor = ClaimProcessor(
            self.state_manager,
            self.accounts,
            self.custody,
            metrics_enabled=metrics_enabled,
        )

    @classmethod
    def from_config(cls, config: "VaultConfig", custody: Optional[TokenCustody] = None) -> "VestingVault":
        return cls(
            custody=custody,
            authority=config.authority,
            vault_namespace=config.vault_namespace,
            vesting_namespace=config.vesting_namespace,
            metrics_enabled=config.metrics_enabled,
        )

    @property
    def state(self) -> Optional[VaultState]:
        return self.state_manager.state

    def initialize_vault(self, admin: str, token_type: str, now: int) -> VaultState:
        return self.state_manager.initialize_vault(admin, token_type, now)

    def initialize_vesting(
        self,
        caller: str,
        beneficiary: str,
        total_tokens: int,
        end_at: int,
        cliff_period_till: int,
        now: int,
        token_type: Optional[str] = None,
    ) -> VestingAccount:
        """
        Deposit ``total_tokens`` from the admin into custody and record the
        beneficiary's schedule, starting at ``now``.

        The deposit happens inside the creation step: a rejected deposit
        leaves no account, and a rejected schedule moves no tokens.

        Raises:
            InvalidTimestampError: ``now`` is not an integer
            InvalidAdminError: caller is not the vault admin
            TokenMismatchError: ``token_type`` differs from the vault's
            InvalidScheduleError / DuplicateBeneficiaryError: from the store
            TransferFailedError: the admin could not fund the deposit
        """
        require_timestamp(now)
        state = self.state_manager.require_admin(caller)
        if token_type is not None:
            self.state_manager.ensure_token(token_type)
        if beneficiary == state.custody_account:
            raise InvalidScheduleError("Custody account cannot be a beneficiary.")

        def fund() -> None:
            self.custody.transfer(state.token_type, caller, state.custody_account, total_tokens)

        account = self.accounts.create(
            beneficiary,
            total_tokens,
            now,
            end_at,
            cliff_period_till,
            funding=fund,
        )
        if self.metrics_enabled:
            metrics.record_schedule_created(state.token_type, total_tokens)
        return account

    def claim(self, caller: str, beneficiary: str, now: int) -> int:
        return self.processor.claim(caller, beneficiary, now)

    def claim_with_receipt(self, caller: str, beneficiary: str, now: int) -> ClaimReceipt:
        return self.processor.claim_with_receipt(caller, beneficiary, now)

    def get_vesting(self, beneficiary: str) -> VestingAccount:
        return self.accounts.get(beneficiary)

    def claimable(self, beneficiary: str, now: int) -> int:
        return claimable(self.accounts.get(beneficiary), now)

    def progress(self, beneficiary: str, now: int) -> dict[str, Any]:
        return schedule_progress(self.accounts.get(beneficiary), now)

    def custody_balance(self) -> int:
        """Tokens currently held in custody (in-memory ledger only)."""
        state = self.state_manager.require_state()
        if not isinstance(self.custody, InMemoryTokenLedger):
            raise TypeError("Custody balance is only tracked by the in-memory ledger.")
        return self.custody.balance_of(state.token_type, state.custody_account)

    def to_dict(self) -> dict[str, Any]:
        """Serializable snapshot of vault, accounts and (in-memory) balances."""
        state = self.state_manager.state
        data: dict[str, Any] = {
            "version": SNAPSHOT_VERSION,
            "vault": state.to_dict() if state is not None else None,
            "accounts": [account.to_dict() for account in self.accounts.list_accounts()],
        }
        if isinstance(self.custody, InMemoryTokenLedger):
            data["ledger"] = self.custody.to_dict()
        return data

    @classmethod
    def from_dict(
        cls,
        data: dict[str, Any],
        custody: Optional[TokenCustody] = None,
        **kwargs: Any,
    ) -> "VestingVault":
        if custody is None and "ledger" in data:
            custody = InMemoryTokenLedger.from_dict(data["ledger"])
        vault = cls(custody=custody, **kwargs)

        if data.get("vault") is not None:
            vault.state_manager.restore(VaultState.from_dict(data["vault"]))
        elif data.get("accounts"):
            raise VaultNotInitializedError("Snapshot has accounts but no vault state.")

        for entry in data.get("accounts", []):
            vault.accounts.restore(VestingAccount.from_dict(entry))
        logger.debug(
            "Vault restored from snapshot",
            extra={"event": "vault.restored", "accounts": len(vault.accounts)},
        )
        return vault
