"""
Token custody boundary.

The vault never moves balances itself. It asks a ``TokenCustody``
implementation to transfer tokens between the vault's custody account and
holder accounts; a transfer either completes or raises
``TransferFailedError``. ``InMemoryTokenLedger`` is the in-process
implementation used by the CLI and the test suite.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Protocol

from .exceptions import TransferFailedError

logger = logging.getLogger(__name__)


class TokenCustody(Protocol):
    """Synchronous, all-or-nothing token transfer mechanism."""

    def transfer(self, token_type: str, source: str, destination: str, amount: int) -> None:
        ...


class InMemoryTokenLedger:
    """
    Thread-safe integer balances keyed by ``(token_type, account)``.

    Usage:
        ledger = InMemoryTokenLedger()
        ledger.mint("VEST", "admin", 1_000)
        ledger.transfer("VEST", "admin", custody_address, 100)
    """

    def __init__(self) -> None:
        self._balances: dict[tuple[str, str], int] = {}
        self._lock = threading.Lock()
        self._pending_failures = 0
        self.transfer_count = 0

    def mint(self, token_type: str, account: str, amount: int) -> int:
        """Credit ``amount`` new tokens to ``account`` and return its balance."""
        if not isinstance(amount, int) or isinstance(amount, bool) or amount <= 0:
            raise ValueError("Mint amount must be a positive integer.")
        if not token_type or not account:
            raise ValueError("Token type and account are required.")

        with self._lock:
            key = (token_type, account)
            self._balances[key] = self._balances.get(key, 0) + amount
            balance = self._balances[key]

        logger.info(
            "Tokens minted",
            extra={
                "event": "ledger.minted",
                "token_type": token_type,
                "account": account[:10],
                "amount": amount,
            },
        )
        return balance

    def balance_of(self, token_type: str, account: str) -> int:
        with self._lock:
            return self._balances.get((token_type, account), 0)

    def fail_next_transfers(self, count: int = 1) -> None:
        """Make the next ``count`` transfers fail (fault injection)."""
        with self._lock:
            self._pending_failures += count

    def transfer(self, token_type: str, source: str, destination: str, amount: int) -> None:
        """
        Move ``amount`` from ``source`` to ``destination``.

        Raises:
            TransferFailedError: if the amount is not positive, the source
                lacks funds, or a failure was injected. No balance changes.
        """
        details = {
            "token_type": token_type,
            "source": source,
            "destination": destination,
            "amount": amount,
        }
        if not isinstance(amount, int) or isinstance(amount, bool) or amount <= 0:
            raise TransferFailedError("Transfer amount must be a positive integer.", details=details)

        with self._lock:
            if self._pending_failures > 0:
                self._pending_failures -= 1
                raise TransferFailedError("Custody transfer rejected.", details=details)

            source_key = (token_type, source)
            available = self._balances.get(source_key, 0)
            if available < amount:
                raise TransferFailedError(
                    f"Insufficient balance: {available} < {amount}", details=details
                )

            self._balances[source_key] = available - amount
            dest_key = (token_type, destination)
            self._balances[dest_key] = self._balances.get(dest_key, 0) + amount
            self.transfer_count += 1

        logger.debug(
            "Tokens transferred",
            extra={
                "event": "ledger.transferred",
                "token_type": token_type,
                "from_address": source[:10],
                "to_address": destination[:10],
                "amount": amount,
            },
        )

    def to_dict(self) -> dict[str, Any]:
        with self._lock:
            return {
                "balances": [
                    {"token_type": token, "account": account, "amount": amount}
                    for (token, account), amount in sorted(self._balances.items())
                ]
            }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "InMemoryTokenLedger":
        ledger = cls()
        for entry in data.get("balances", []):
            ledger._balances[(entry["token_type"], entry["account"])] = int(entry["amount"])
        return ledger
