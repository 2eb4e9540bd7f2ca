"""
Vesting vault instrumentation.

Provides Prometheus metrics that track schedule creation, claim outcomes and
how many tokens have moved in and out of vault custody, with helper
functions that are safe to call from the settlement path.
"""

from __future__ import annotations

from prometheus_client import Counter, Gauge

schedules_created_counter = Counter(
    "vesting_vault_schedules_created_total",
    "Total number of vesting schedules created",
    ["token_type"],
)

claim_outcomes_counter = Counter(
    "vesting_vault_claims_total",
    "Total number of claim requests by outcome",
    ["outcome"],
)

tokens_released_counter = Counter(
    "vesting_vault_tokens_released_total",
    "Total tokens transferred from custody to beneficiaries",
    ["token_type"],
)

tokens_deposited_counter = Counter(
    "vesting_vault_tokens_deposited_total",
    "Total tokens deposited into custody for vesting schedules",
    ["token_type"],
)

custody_locked_gauge = Gauge(
    "vesting_vault_custody_locked_tokens",
    "Tokens currently held in vault custody awaiting release",
    ["token_type"],
)


def record_schedule_created(token_type: str, amount: int) -> None:
    """Count a new schedule and its deposit."""
    schedules_created_counter.labels(token_type=token_type).inc()
    if amount <= 0:
        return
    tokens_deposited_counter.labels(token_type=token_type).inc(amount)
    custody_locked_gauge.labels(token_type=token_type).inc(amount)


def record_claim_outcome(outcome: str) -> None:
    claim_outcomes_counter.labels(outcome=outcome).inc()


def record_tokens_released(token_type: str, amount: int) -> None:
    """Increment release counters after a settled claim."""
    if amount <= 0:
        return

    tokens_released_counter.labels(token_type=token_type).inc(amount)
    custody_locked_gauge.labels(token_type=token_type).dec(amount)
