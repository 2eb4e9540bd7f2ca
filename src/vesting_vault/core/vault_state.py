"""
Vault state singleton.

A deployment has exactly one ``VaultState``: who administers the vault, which
token it accepts, and where custody lives. The state is owned by an explicitly
constructed ``VaultStateManager`` that callers pass around, and it can be set
only once.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import asdict, dataclass
from typing import Any, Optional

from .addressing import CUSTODY_NAMESPACE, VAULT_NAMESPACE, derive_address, derive_vault_address
from .exceptions import (
    AlreadyInitializedError,
    InvalidAdminError,
    TokenMismatchError,
    VaultNotInitializedError,
)
from .schedule import require_timestamp

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VaultState:
    """Immutable vault configuration record."""

    admin: str
    token_type: str
    address: str
    custody_account: str
    initialized_at: int

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "VaultState":
        return cls(**data)


class VaultStateManager:
    """
    Owns the vault singleton and enforces initialize-once semantics.

    If ``authority`` is set only that identity may initialize the vault;
    otherwise the first caller becomes the admin.
    """

    def __init__(self, authority: Optional[str] = None, namespace: str = VAULT_NAMESPACE):
        self.authority = authority
        self.namespace = namespace
        self._state: Optional[VaultState] = None
        self._lock = threading.Lock()

    @property
    def state(self) -> Optional[VaultState]:
        return self._state

    @property
    def is_initialized(self) -> bool:
        return self._state is not None

    def initialize_vault(self, admin: str, token_type: str, now: int) -> VaultState:
        """Create the vault singleton for ``admin`` and ``token_type``."""
        if not admin:
            raise InvalidAdminError("Admin identity cannot be empty.")
        if not token_type:
            raise TokenMismatchError("Token type cannot be empty.")
        require_timestamp(now)

        with self._lock:
            if self._state is not None:
                logger.warning(
                    "Vault initialization rejected: already initialized",
                    extra={"event": "vault.already_initialized", "admin": admin[:10]},
                )
                raise AlreadyInitializedError(
                    "Vault has already been initialized.",
                    details={"admin": self._state.admin},
                )
            if self.authority is not None and admin != self.authority:
                logger.warning(
                    "Vault initialization rejected: caller is not the authority",
                    extra={"event": "vault.invalid_admin", "admin": admin[:10]},
                )
                raise InvalidAdminError(
                    "Caller is not authorized to initialize the vault.",
                    details={"caller": admin},
                )

            address = derive_vault_address(self.namespace)
            self._state = VaultState(
                admin=admin,
                token_type=token_type,
                address=address,
                custody_account=derive_address(CUSTODY_NAMESPACE, address),
                initialized_at=now,
            )

        logger.info(
            "Vault initialized",
            extra={
                "event": "vault.initialized",
                "admin": admin[:10],
                "token_type": token_type,
                "vault_address": self._state.address[:10],
            },
        )
        return self._state

    def restore(self, state: VaultState) -> None:
        """Load a previously persisted state into an empty manager."""
        with self._lock:
            if self._state is not None:
                raise AlreadyInitializedError("Vault has already been initialized.")
            self._state = state

    def require_state(self) -> VaultState:
        state = self._state
        if state is None:
            raise VaultNotInitializedError("Vault has not been initialized.")
        return state

    def require_admin(self, caller: str) -> VaultState:
        state = self.require_state()
        if caller != state.admin:
            logger.warning(
                "Admin check failed",
                extra={"event": "vault.admin_mismatch", "caller": str(caller)[:10]},
            )
            raise InvalidAdminError(
                "Only the vault admin may perform this operation.",
                details={"caller": caller},
            )
        return state

    def ensure_token(self, token_type: str) -> VaultState:
        state = self.require_state()
        if token_type != state.token_type:
            raise TokenMismatchError(
                f"Vault accepts {state.token_type}, not {token_type}.",
                details={"expected": state.token_type, "actual": token_type},
            )
        return state
