"""
Deterministic record addressing.

Vault records are located by a content-derived address computed from a
namespace seed and an owner identity, so a beneficiary's vesting account can
be found without a separate index. The address is a SHA-256 digest over a
length-prefixed encoding of its inputs, which keeps distinct
``(namespace, owner)`` pairs from colliding on concatenation.
"""

from __future__ import annotations

import hashlib
import threading
from typing import Dict, Generic, Iterator, Optional, TypeVar

VAULT_NAMESPACE = "vault"
VESTING_NAMESPACE = "vesting"
CUSTODY_NAMESPACE = "custody"

_ADDRESS_DOMAIN = b"VESTING_VAULT_ADDRESS_V1"

T = TypeVar("T")


def _encode_part(value: str) -> bytes:
    raw = value.encode("utf-8")
    return len(raw).to_bytes(4, "big") + raw


def derive_address(namespace: str, owner: str) -> str:
    """Derive the stable record address for ``owner`` inside ``namespace``."""
    if not namespace:
        raise ValueError("Namespace cannot be empty.")
    if not owner:
        raise ValueError("Owner identity cannot be empty.")

    hasher = hashlib.sha256()
    hasher.update(_ADDRESS_DOMAIN)
    hasher.update(_encode_part(namespace))
    hasher.update(_encode_part(owner))
    return f"0x{hasher.hexdigest()}"


def derive_vault_address(namespace: str = VAULT_NAMESPACE) -> str:
    """Address of the singleton vault record for a fixed namespace."""
    if not namespace:
        raise ValueError("Namespace cannot be empty.")

    hasher = hashlib.sha256()
    hasher.update(_ADDRESS_DOMAIN)
    hasher.update(_encode_part(namespace))
    return f"0x{hasher.hexdigest()}"


class RecordAddressBook(Generic[T]):
    """Keyed map from derived addresses to records of one namespace."""

    def __init__(self, namespace: str):
        if not namespace:
            raise ValueError("Namespace cannot be empty.")
        self.namespace = namespace
        self._records: Dict[str, T] = {}
        self._lock = threading.Lock()

    def address_of(self, owner: str) -> str:
        return derive_address(self.namespace, owner)

    def lookup(self, owner: str) -> Optional[T]:
        with self._lock:
            return self._records.get(self.address_of(owner))

    def insert_new(self, owner: str, record: T) -> bool:
        """Store ``record`` unless the owner's address is already taken."""
        address = self.address_of(owner)
        with self._lock:
            if address in self._records:
                return False
            self._records[address] = record
            return True

    def __contains__(self, owner: object) -> bool:
        if not isinstance(owner, str) or not owner:
            return False
        with self._lock:
            return self.address_of(owner) in self._records

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def __iter__(self) -> Iterator[T]:
        with self._lock:
            records = list(self._records.values())
        return iter(records)
