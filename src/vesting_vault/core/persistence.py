"""
Vesting vault snapshot storage.

Provides durable vault snapshots with:
- Atomic writes (temp file + rename)
- SHA-256 checksum verification on load
- A single rolling backup of the previous snapshot
"""

import hashlib
import json
import logging
import os
import shutil
import time
from threading import Lock
from typing import Any, Dict, Optional

from .exceptions import CorruptedStateError, StorageError

logger = logging.getLogger(__name__)

SNAPSHOT_FORMAT_VERSION = "1.0"


class VaultStorage:
    """
    JSON snapshot file for one vault.

    The file holds ``{"metadata": {...}, "vault": {...}}`` where the metadata
    carries a checksum of the canonical JSON encoding of the vault data.
    """

    def __init__(self, state_file: str):
        self.state_file = state_file
        self.backup_file = state_file + ".bak"
        self.lock = Lock()

    @staticmethod
    def _calculate_checksum(data: str) -> str:
        return hashlib.sha256(data.encode("utf-8")).hexdigest()

    @staticmethod
    def _canonical(vault_data: Dict[str, Any]) -> str:
        return json.dumps(vault_data, indent=2, sort_keys=True)

    def exists(self) -> bool:
        return os.path.exists(self.state_file)

    def save(self, vault_data: Dict[str, Any], create_backup: bool = True) -> str:
        """
        Write ``vault_data`` atomically and return its checksum.

        Raises:
            StorageError: if the snapshot cannot be written
        """
        with self.lock:
            checksum = self._calculate_checksum(self._canonical(vault_data))
            package = {
                "metadata": {
                    "timestamp": time.time(),
                    "checksum": checksum,
                    "accounts": len(vault_data.get("accounts", [])),
                    "version": SNAPSHOT_FORMAT_VERSION,
                },
                "vault": vault_data,
            }

            directory = os.path.dirname(os.path.abspath(self.state_file))
            temp_file = self.state_file + ".tmp"
            try:
                os.makedirs(directory, exist_ok=True)
                if create_backup and os.path.exists(self.state_file):
                    shutil.copy2(self.state_file, self.backup_file)

                with open(temp_file, "w", encoding="utf-8") as f:
                    json.dump(package, f, indent=2, sort_keys=True)
                    f.flush()
                    os.fsync(f.fileno())

                os.replace(temp_file, self.state_file)
            except (OSError, shutil.Error) as e:
                logger.error(
                    "Failed to save vault snapshot",
                    extra={
                        "event": "storage.save_failed",
                        "state_file": self.state_file,
                        "error": str(e),
                        "error_type": type(e).__name__,
                    },
                )
                raise StorageError(
                    f"Failed to save vault snapshot: {e}",
                    details={"state_file": self.state_file},
                ) from e

        logger.debug(
            "Vault snapshot saved",
            extra={"event": "storage.saved", "checksum": checksum[:8]},
        )
        return checksum

    def load(self) -> Optional[Dict[str, Any]]:
        """
        Load the vault data, or ``None`` when no snapshot exists yet.

        Raises:
            CorruptedStateError: unreadable JSON, missing or mismatched checksum
            StorageError: if the file cannot be read
        """
        with self.lock:
            if not os.path.exists(self.state_file):
                return None

            try:
                with open(self.state_file, "r", encoding="utf-8") as f:
                    package = json.load(f)
            except json.JSONDecodeError as e:
                raise CorruptedStateError(
                    f"Vault snapshot is not valid JSON: {e}",
                    details={"state_file": self.state_file},
                ) from e
            except OSError as e:
                raise StorageError(
                    f"Failed to read vault snapshot: {e}",
                    details={"state_file": self.state_file},
                ) from e

            if not isinstance(package, dict) or "vault" not in package:
                raise CorruptedStateError(
                    "Vault snapshot is missing its vault section.",
                    details={"state_file": self.state_file},
                )

            vault_data = package["vault"]
            metadata = package.get("metadata")
            expected = metadata.get("checksum") if isinstance(metadata, dict) else None
            if not expected:
                raise CorruptedStateError(
                    "Vault snapshot has no checksum.",
                    details={"state_file": self.state_file},
                )
            if self._calculate_checksum(self._canonical(vault_data)) != expected:
                logger.error(
                    "Vault snapshot checksum mismatch",
                    extra={"event": "storage.checksum_mismatch", "state_file": self.state_file},
                )
                raise CorruptedStateError(
                    "Vault snapshot checksum verification failed.",
                    details={"state_file": self.state_file},
                )

            return vault_data
