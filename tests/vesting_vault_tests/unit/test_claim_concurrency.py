"""
Concurrent claim requests.

Claims for one beneficiary are serialized, so any number of simultaneous
requests at the same time deliver the claimable amount exactly once. Claims
for different beneficiaries proceed independently.
"""

from __future__ import annotations

import threading
import time
from concurrent.futures import ThreadPoolExecutor

import pytest

from vesting_vault.core.exceptions import TransferFailedError
from vesting_vault.core.token_custody import InMemoryTokenLedger
from vesting_vault.core.vault import VestingVault

pytestmark = pytest.mark.concurrency

ADMIN = "admin_wallet"
TOKEN = "VEST"
T = 1_700_000_000


class SlowLedger(InMemoryTokenLedger):
    """Ledger that yields mid-transfer to widen race windows."""

    def transfer(self, token_type, source, destination, amount):
        time.sleep(0.001)
        super().transfer(token_type, source, destination, amount)


def test_two_concurrent_claims_deliver_once(alice_vault, ledger):
    barrier = threading.Barrier(2)
    results = []
    lock = threading.Lock()

    def claim():
        barrier.wait()
        amount = alice_vault.claim("alice", "alice", T + 5)
        with lock:
            results.append(amount)

    threads = [threading.Thread(target=claim) for _ in range(2)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert sorted(results) == [0, 50]
    assert ledger.balance_of(TOKEN, "alice") == 50
    assert alice_vault.get_vesting("alice").claimed_tokens == 50


def test_many_concurrent_claims_with_slow_custody():
    ledger = SlowLedger()
    vault = VestingVault(custody=ledger)
    vault.initialize_vault(ADMIN, TOKEN, now=T)
    ledger.mint(TOKEN, ADMIN, 1_000)
    vault.initialize_vesting(ADMIN, "alice", 1_000, end_at=T + 100, cliff_period_till=T, now=T)

    with ThreadPoolExecutor(max_workers=16) as pool:
        amounts = list(pool.map(lambda _: vault.claim("alice", "alice", T + 37), range(64)))

    assert sum(amounts) == 370
    assert amounts.count(370) == 1
    assert ledger.balance_of(TOKEN, "alice") == 370


def test_concurrent_claims_across_times_never_exceed_total(alice_vault, ledger):
    errors = []

    def claim(offset):
        try:
            alice_vault.claim("alice", "alice", T + offset)
        except Exception as e:
            errors.append(e)

    threads = [threading.Thread(target=claim, args=(i % 15,)) for i in range(60)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert errors == []
    account = alice_vault.get_vesting("alice")
    assert account.claimed_tokens == 100
    assert ledger.balance_of(TOKEN, "alice") == 100
    assert alice_vault.custody_balance() == 0


def test_concurrent_claims_with_transfer_failures(alice_vault, ledger):
    """Failed settlements roll back; the claimed total always matches delivery."""
    ledger.fail_next_transfers(3)
    failures = []
    lock = threading.Lock()

    def claim():
        try:
            alice_vault.claim("alice", "alice", T + 5)
        except TransferFailedError as e:
            with lock:
                failures.append(e)

    threads = [threading.Thread(target=claim) for _ in range(10)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(failures) == 3
    assert alice_vault.get_vesting("alice").claimed_tokens == ledger.balance_of(TOKEN, "alice")
    assert ledger.balance_of(TOKEN, "alice") == 50


def test_different_beneficiaries_do_not_block_each_other(vault, ledger):
    for name in ("alice", "bob"):
        vault.initialize_vesting(ADMIN, name, 100, end_at=T + 10, cliff_period_till=T, now=T)

    alice_holding = threading.Event()
    release_alice = threading.Event()
    bob_done = threading.Event()

    def hold_alice():
        with vault.accounts.beneficiary_lock("alice"):
            alice_holding.set()
            release_alice.wait(timeout=5)

    def claim_bob():
        alice_holding.wait(timeout=5)
        vault.claim("bob", "bob", T + 10)
        bob_done.set()

    holder = threading.Thread(target=hold_alice)
    claimer = threading.Thread(target=claim_bob)
    holder.start()
    claimer.start()

    try:
        assert bob_done.wait(timeout=5), "bob's claim blocked on alice's lock"
    finally:
        release_alice.set()
        holder.join()
        claimer.join()

    assert ledger.balance_of(TOKEN, "bob") == 100
