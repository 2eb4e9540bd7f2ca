#!/usr/bin/env python3
"""
Vesting Vault CLI

Local operations surface for a vault persisted in a JSON snapshot file:
- Vault initialization
- Ledger funding (local in-memory ledger only)
- Vesting schedule creation
- Beneficiary claims
- Schedule inspection

The wall clock is read here and nowhere else; every command that needs a
time accepts ``--now`` to override it.
"""

from __future__ import annotations

import json
import logging
import sys
import time
from typing import Any, Callable, Optional

import click
from rich import box
from rich.console import Console
from rich.table import Table

from ..config import VaultConfig
from ..core.exceptions import VaultError
from ..core.logging_config import setup_logging
from ..core.persistence import VaultStorage
from ..core.token_custody import InMemoryTokenLedger
from ..core.vault import VestingVault

logger = logging.getLogger(__name__)
console = Console()


def _handle_cli_error(exc: Exception, exit_code: int = 1) -> None:
    """Centralized CLI error handler for consistent messaging/exit codes."""
    code = exc.code if isinstance(exc, VaultError) else type(exc).__name__
    logger.error("CLI error: %s", exc, extra={"event": "cli.error", "error_code": code})
    click.echo(f"Error: {code}: {exc}", err=True)
    sys.exit(exit_code)


def _now(value: Optional[int]) -> int:
    return int(time.time()) if value is None else value


def _load_vault(ctx: click.Context) -> VestingVault:
    config: VaultConfig = ctx.obj["config"]
    storage: VaultStorage = ctx.obj["storage"]
    kwargs = {
        "authority": config.authority,
        "vault_namespace": config.vault_namespace,
        "vesting_namespace": config.vesting_namespace,
        "metrics_enabled": config.metrics_enabled,
    }
    data = storage.load()
    if data is None:
        return VestingVault(custody=InMemoryTokenLedger(), **kwargs)
    return VestingVault.from_dict(data, **kwargs)


def _run(ctx: click.Context, operation: Callable[[VestingVault], Any], persist: bool = True) -> Any:
    """Load the vault, apply ``operation`` and save the result."""
    try:
        vault = _load_vault(ctx)
        result = operation(vault)
        if persist:
            ctx.obj["storage"].save(vault.to_dict())
        return result
    except VaultError as exc:
        _handle_cli_error(exc)


def _emit(ctx: click.Context, payload: dict[str, Any], title: str) -> None:
    if ctx.obj["json_output"]:
        click.echo(json.dumps(payload, sort_keys=True))
        return

    table = Table(title=title, box=box.SIMPLE)
    table.add_column("Field", style="cyan")
    table.add_column("Value", style="green")
    for key, value in payload.items():
        table.add_row(str(key), str(value))
    console.print(table)


@click.group()
@click.option("--state-file", type=click.Path(dir_okay=False), help="Vault snapshot file")
@click.option("--json", "json_output", is_flag=True, help="Emit JSON instead of tables")
@click.pass_context
def cli(ctx: click.Context, state_file: Optional[str], json_output: bool):
    """Token vesting vault operations."""
    try:
        config = VaultConfig.from_env()
    except VaultError as exc:
        _handle_cli_error(exc)

    setup_logging(
        name="vesting_vault",
        log_file=config.log_file,
        level=config.log_level,
        environment=config.network.value,
        json_format=config.json_logs,
    )

    ctx.ensure_object(dict)
    ctx.obj["config"] = config
    ctx.obj["storage"] = VaultStorage(state_file or config.state_file)
    ctx.obj["json_output"] = json_output


@cli.command("init-vault")
@click.option("--admin", required=True, help="Administrator identity")
@click.option("--token-type", required=True, help="Token the vault accepts")
@click.option("--now", type=int, help="Timestamp override (seconds)")
@click.pass_context
def init_vault(ctx: click.Context, admin: str, token_type: str, now: Optional[int]):
    """Create the vault singleton."""
    state = _run(ctx, lambda vault: vault.initialize_vault(admin, token_type, _now(now)))
    _emit(ctx, state.to_dict(), "Vault")


@cli.command("mint")
@click.option("--account", required=True, help="Account to credit")
@click.option("--amount", required=True, type=int, help="Tokens to credit")
@click.pass_context
def mint(ctx: click.Context, account: str, amount: int):
    """Credit tokens on the local ledger (for local runs and demos)."""

    def operation(vault: VestingVault) -> int:
        state = vault.state_manager.require_state()
        try:
            return vault.custody.mint(state.token_type, account, amount)
        except ValueError as exc:
            raise click.BadParameter(str(exc), param_hint="--amount") from exc

    balance = _run(ctx, operation)
    _emit(ctx, {"account": account, "balance": balance}, "Balance")


@cli.command("init-vesting")
@click.option("--admin", required=True, help="Administrator identity (depositor)")
@click.option("--beneficiary", required=True, help="Beneficiary identity")
@click.option("--amount", required=True, type=int, help="Total tokens to vest")
@click.option("--end-at", required=True, type=int, help="Schedule end timestamp")
@click.option("--cliff-till", required=True, type=int, help="Cliff end timestamp")
@click.option("--now", type=int, help="Schedule start timestamp override")
@click.pass_context
def init_vesting(
    ctx: click.Context,
    admin: str,
    beneficiary: str,
    amount: int,
    end_at: int,
    cliff_till: int,
    now: Optional[int],
):
    """Deposit tokens and create a beneficiary's vesting schedule."""
    account = _run(
        ctx,
        lambda vault: vault.initialize_vesting(
            admin, beneficiary, amount, end_at, cliff_till, _now(now)
        ),
    )
    _emit(ctx, account.to_dict(), "Vesting Schedule")


@cli.command("claim")
@click.option("--caller", required=True, help="Identity submitting the claim")
@click.option("--beneficiary", required=True, help="Beneficiary to claim for")
@click.option("--now", type=int, help="Timestamp override (seconds)")
@click.pass_context
def claim(ctx: click.Context, caller: str, beneficiary: str, now: Optional[int]):
    """Claim vested tokens."""
    receipt = _run(ctx, lambda vault: vault.claim_with_receipt(caller, beneficiary, _now(now)))
    _emit(ctx, receipt.to_dict(), "Claim")


@cli.command("show")
@click.option("--beneficiary", help="Show a single schedule")
@click.option("--now", type=int, help="Timestamp override (seconds)")
@click.pass_context
def show(ctx: click.Context, beneficiary: Optional[str], now: Optional[int]):
    """Show vault state or a beneficiary's vesting progress."""
    at = _now(now)

    def operation(vault: VestingVault) -> dict[str, Any]:
        if beneficiary:
            return vault.progress(beneficiary, at)
        state = vault.state_manager.require_state()
        return {
            **state.to_dict(),
            "accounts": len(vault.accounts),
            "custody_balance": vault.custody_balance(),
        }

    payload = _run(ctx, operation, persist=False)
    _emit(ctx, payload, "Vesting Progress" if beneficiary else "Vault")


def main() -> None:
    cli(obj={})


if __name__ == "__main__":
    main()
