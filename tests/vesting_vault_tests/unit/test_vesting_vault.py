"""
Tests for the VestingVault facade: schedule creation with deposits,
snapshots and metrics.
"""

import pytest
from prometheus_client import REGISTRY

from vesting_vault.config import VaultConfig
from vesting_vault.core.exceptions import (
    AlreadyInitializedError,
    DuplicateBeneficiaryError,
    InvalidAdminError,
    InvalidScheduleError,
    InvalidTimestampError,
    TokenMismatchError,
    TransferFailedError,
    VaultNotInitializedError,
)
from vesting_vault.core.token_custody import InMemoryTokenLedger
from vesting_vault.core.vault import VestingVault

ADMIN = "admin_wallet"
TOKEN = "VEST"
T = 1_700_000_000
ADMIN_FUNDS = 1_000_000


def sample(name, **labels):
    return REGISTRY.get_sample_value(name, labels) or 0.0


class TestInitializeVesting:
    def test_deposit_moves_tokens_into_custody(self, alice_vault, ledger):
        assert ledger.balance_of(TOKEN, ADMIN) == ADMIN_FUNDS - 100
        assert alice_vault.custody_balance() == 100

    def test_schedule_starts_now(self, alice_vault):
        account = alice_vault.get_vesting("alice")
        assert account.started_at == T
        assert account.end_at == T + 10
        assert account.cliff_period_till == T + 2

    def test_requires_initialized_vault(self):
        vault = VestingVault()
        with pytest.raises(VaultNotInitializedError):
            vault.initialize_vesting(ADMIN, "alice", 100, T + 10, T + 2, now=T)

    def test_only_admin(self, vault, ledger):
        ledger.mint(TOKEN, "mallory", 100)
        with pytest.raises(InvalidAdminError):
            vault.initialize_vesting("mallory", "alice", 100, T + 10, T + 2, now=T)
        assert "alice" not in vault.accounts

    def test_token_mismatch(self, vault):
        with pytest.raises(TokenMismatchError):
            vault.initialize_vesting(ADMIN, "alice", 100, T + 10, T + 2, now=T, token_type="OTHER")
        assert "alice" not in vault.accounts

    def test_invalid_schedule_moves_no_tokens(self, vault, ledger):
        with pytest.raises(InvalidScheduleError):
            vault.initialize_vesting(ADMIN, "alice", 100, end_at=T, cliff_period_till=T, now=T)
        assert ledger.balance_of(TOKEN, ADMIN) == ADMIN_FUNDS
        assert ledger.transfer_count == 0

    def test_cliff_before_now_rejected(self, vault):
        with pytest.raises(InvalidScheduleError):
            vault.initialize_vesting(ADMIN, "alice", 100, T + 10, T - 1, now=T)

    def test_non_integer_time_moves_no_tokens(self, vault, ledger):
        with pytest.raises(InvalidTimestampError):
            vault.initialize_vesting(ADMIN, "alice", 100, T + 10, T + 2, now=float(T))
        assert "alice" not in vault.accounts
        assert ledger.transfer_count == 0

    def test_insufficient_admin_funds(self, vault, ledger):
        with pytest.raises(TransferFailedError):
            vault.initialize_vesting(ADMIN, "alice", ADMIN_FUNDS + 1, T + 10, T + 2, now=T)
        assert "alice" not in vault.accounts
        assert ledger.balance_of(TOKEN, ADMIN) == ADMIN_FUNDS

    def test_duplicate_keeps_first_and_deposit(self, alice_vault, ledger):
        with pytest.raises(DuplicateBeneficiaryError):
            alice_vault.initialize_vesting(ADMIN, "alice", 500, T + 100, T + 50, now=T + 1)
        account = alice_vault.get_vesting("alice")
        assert account.total_tokens == 100
        assert account.end_at == T + 10
        assert ledger.balance_of(TOKEN, ADMIN) == ADMIN_FUNDS - 100
        assert alice_vault.custody_balance() == 100

    def test_custody_cannot_be_beneficiary(self, vault):
        with pytest.raises(InvalidScheduleError):
            vault.initialize_vesting(
                ADMIN, vault.state.custody_account, 100, T + 10, T + 2, now=T
            )

    def test_independent_beneficiaries(self, alice_vault, ledger):
        alice_vault.initialize_vesting(ADMIN, "bob", 1000, T + 100, T, now=T)
        assert alice_vault.claim("bob", "bob", T + 50) == 500
        assert alice_vault.claim("alice", "alice", T + 50) == 100
        assert alice_vault.custody_balance() == 500


class TestVaultLifecycle:
    def test_reinitialize_rejected(self, vault):
        with pytest.raises(AlreadyInitializedError):
            vault.initialize_vault(ADMIN, TOKEN, now=T + 1)

    def test_authority_from_config(self):
        config = VaultConfig(authority="authority")
        vault = VestingVault.from_config(config)
        with pytest.raises(InvalidAdminError):
            vault.initialize_vault("mallory", TOKEN, now=T)
        vault.initialize_vault("authority", TOKEN, now=T)

    def test_claimable_and_progress(self, alice_vault):
        assert alice_vault.claimable("alice", T + 5) == 50
        progress = alice_vault.progress("alice", T + 5)
        assert progress["claimable_tokens"] == 50
        assert progress["status"] == "pending"

    def test_snapshot_round_trip(self, alice_vault):
        alice_vault.claim("alice", "alice", T + 5)
        restored = VestingVault.from_dict(alice_vault.to_dict())

        assert restored.state == alice_vault.state
        assert restored.get_vesting("alice") == alice_vault.get_vesting("alice")
        assert restored.custody_balance() == 50
        assert restored.claim("alice", "alice", T + 10) == 50
        assert restored.custody.balance_of(TOKEN, "alice") == 100

    def test_snapshot_of_empty_vault(self):
        data = VestingVault().to_dict()
        assert data["vault"] is None
        restored = VestingVault.from_dict(data)
        assert restored.state is None

    def test_snapshot_with_accounts_but_no_vault(self, alice_vault):
        data = alice_vault.to_dict()
        data["vault"] = None
        with pytest.raises(VaultNotInitializedError):
            VestingVault.from_dict(data)

    def test_custody_balance_needs_ledger(self):
        class ExternalCustody:
            def transfer(self, token_type, source, destination, amount):
                pass

        vault = VestingVault(custody=ExternalCustody())
        vault.initialize_vault(ADMIN, TOKEN, now=T)
        with pytest.raises(TypeError):
            vault.custody_balance()


class TestMetrics:
    def test_claim_metrics(self, alice_vault):
        settled_before = sample("vesting_vault_claims_total", outcome="settled")
        noop_before = sample("vesting_vault_claims_total", outcome="noop")
        released_before = sample("vesting_vault_tokens_released_total", token_type=TOKEN)

        alice_vault.claim("alice", "alice", T + 5)
        alice_vault.claim("alice", "alice", T + 5)

        assert sample("vesting_vault_claims_total", outcome="settled") == settled_before + 1
        assert sample("vesting_vault_claims_total", outcome="noop") == noop_before + 1
        assert sample("vesting_vault_tokens_released_total", token_type=TOKEN) == released_before + 50

    def test_schedule_metrics(self, vault):
        created_before = sample("vesting_vault_schedules_created_total", token_type=TOKEN)
        deposited_before = sample("vesting_vault_tokens_deposited_total", token_type=TOKEN)

        vault.initialize_vesting(ADMIN, "carol", 40, T + 10, T, now=T)

        assert sample("vesting_vault_schedules_created_total", token_type=TOKEN) == created_before + 1
        assert sample("vesting_vault_tokens_deposited_total", token_type=TOKEN) == deposited_before + 40

    def test_metrics_disabled(self, ledger):
        vault = VestingVault(custody=ledger, metrics_enabled=False)
        vault.initialize_vault(ADMIN, "QUIET", now=T)
        ledger.mint("QUIET", ADMIN, 10)
        vault.initialize_vesting(ADMIN, "dave", 10, T + 10, T, now=T)
        vault.claim("dave", "dave", T + 10)
        assert sample("vesting_vault_tokens_released_total", token_type="QUIET") == 0.0
        assert sample("vesting_vault_schedules_created_total", token_type="QUIET") == 0.0
