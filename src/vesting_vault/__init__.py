"""
Vesting Vault - custodial token pool with linear, cliff-gated vesting.
"""

from .core import (
    InMemoryTokenLedger,
    VestingAccount,
    VestingStatus,
    VestingVault,
    claimable,
)

__version__ = "0.1.0"
__all__ = [
    "VestingVault",
    "VestingAccount",
    "VestingStatus",
    "InMemoryTokenLedger",
    "claimable",
]
