import pytest

from vesting_vault.core.token_custody import InMemoryTokenLedger
from vesting_vault.core.vault import VestingVault

ADMIN = "admin_wallet"
TOKEN = "VEST"
T = 1_700_000_000
ADMIN_FUNDS = 1_000_000


@pytest.fixture
def ledger():
    return InMemoryTokenLedger()


@pytest.fixture
def vault(ledger):
    """Initialized vault whose admin holds ADMIN_FUNDS tokens."""
    v = VestingVault(custody=ledger, authority=ADMIN)
    v.initialize_vault(ADMIN, TOKEN, now=T)
    ledger.mint(TOKEN, ADMIN, ADMIN_FUNDS)
    return v


@pytest.fixture
def alice_vault(vault):
    """Vault with the reference schedule: 100 tokens, cliff T+2, end T+10."""
    vault.initialize_vesting(ADMIN, "alice", 100, end_at=T + 10, cliff_period_till=T + 2, now=T)
    return vault
