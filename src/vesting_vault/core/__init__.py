"""
Vesting vault core.

- Vault state: initialize-once singleton naming the admin and accepted token
- Schedule engine: pure linear-with-cliff claimable computation
- Account store: one vesting account per beneficiary, per-beneficiary locking
- Claim processor: authorization and atomic claim settlement
- Token custody: transfer boundary plus an in-memory ledger
"""

from .account_store import VestingAccountStore
from .claim_processor import ClaimProcessor, ClaimReceipt
from .schedule import VestingAccount, VestingStatus, claimable, vested_amount
from .token_custody import InMemoryTokenLedger, TokenCustody
from .vault import VestingVault
from .vault_state import VaultState, VaultStateManager

__all__ = [
    # Vault state
    "VaultState",
    "VaultStateManager",
    # Schedules
    "VestingAccount",
    "VestingStatus",
    "claimable",
    "vested_amount",
    # Accounts and claims
    "VestingAccountStore",
    "ClaimProcessor",
    "ClaimReceipt",
    # Custody
    "TokenCustody",
    "InMemoryTokenLedger",
    # Facade
    "VestingVault",
]
