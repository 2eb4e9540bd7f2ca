"""
Vesting Vault Configuration

Settings come from ``VESTING_VAULT_*`` environment variables, optionally
layered over a YAML file named by ``VESTING_VAULT_CONFIG``. Environment
variables win over the file.

SECURITY NOTICE:
- On mainnet the vault authority MUST be configured; the first-caller
  admin policy is only allowed on testnet.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, fields
from enum import Enum
from pathlib import Path
from typing import Any, Mapping, Optional

import yaml

from .core.addressing import VAULT_NAMESPACE, VESTING_NAMESPACE
from .core.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

ENV_PREFIX = "VESTING_VAULT_"
CONFIG_FILE_ENV = "VESTING_VAULT_CONFIG"
DEFAULT_STATE_FILE = os.path.join("data", "vesting_vault.json")


class NetworkType(Enum):
    TESTNET = "testnet"
    MAINNET = "mainnet"


_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


def _parse_bool(key: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    normalized = str(value).strip().lower()
    if normalized in _TRUE:
        return True
    if normalized in _FALSE:
        return False
    raise ConfigurationError(f"{key} must be a boolean, got {value!r}")


def _read_yaml_config(path: Path) -> dict[str, Any]:
    """Load YAML config into dict."""
    if not path.exists():
        raise ConfigurationError(f"Config file {path} does not exist.")
    try:
        with path.open("r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle) or {}
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Config file {path} is not valid YAML: {e}") from e
    if not isinstance(data, dict):
        raise ConfigurationError(f"Config file {path} must contain a mapping.")
    return data


@dataclass
class VaultConfig:
    """Runtime settings for a vesting vault deployment."""

    network: NetworkType = NetworkType.TESTNET
    authority: Optional[str] = None
    vault_namespace: str = VAULT_NAMESPACE
    vesting_namespace: str = VESTING_NAMESPACE
    state_file: str = DEFAULT_STATE_FILE
    log_level: str = "INFO"
    log_file: Optional[str] = None
    json_logs: bool = True
    metrics_enabled: bool = True

    def __post_init__(self) -> None:
        if isinstance(self.network, str):
            try:
                self.network = NetworkType(self.network.strip().lower())
            except ValueError as e:
                raise ConfigurationError(f"Unknown network: {self.network}") from e

        self.log_level = str(self.log_level).upper()
        if not isinstance(getattr(logging, self.log_level, None), int):
            raise ConfigurationError(f"Unknown log level: {self.log_level}")

        if not self.vault_namespace or not self.vesting_namespace:
            raise ConfigurationError("Record namespaces cannot be empty.")
        if self.vault_namespace == self.vesting_namespace:
            raise ConfigurationError("Vault and vesting namespaces must differ.")

        if self.authority is not None:
            self.authority = str(self.authority).strip() or None

        if self.network is NetworkType.MAINNET and not self.authority:
            raise ConfigurationError(
                "CRITICAL: VESTING_VAULT_AUTHORITY is required on mainnet."
            )
        if self.authority is None:
            logger.warning(
                "No vault authority configured; the first caller becomes admin",
                extra={"event": "config.no_authority", "network": self.network.value},
            )

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any]) -> "VaultConfig":
        known = {f.name for f in fields(cls)}
        unknown = set(values) - known
        if unknown:
            raise ConfigurationError(f"Unknown config keys: {', '.join(sorted(unknown))}")

        kwargs = dict(values)
        for key in ("json_logs", "metrics_enabled"):
            if key in kwargs:
                kwargs[key] = _parse_bool(key, kwargs[key])
        return cls(**kwargs)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "VaultConfig":
        """Build the config from the environment (and its YAML file, if any)."""
        env = os.environ if environ is None else environ

        values: dict[str, Any] = {}
        config_file = env.get(CONFIG_FILE_ENV, "").strip()
        if config_file:
            values.update(_read_yaml_config(Path(config_file)))

        for f in fields(cls):
            raw = env.get(ENV_PREFIX + f.name.upper())
            if raw is not None and raw.strip() != "":
                values[f.name] = raw.strip()

        return cls.from_mapping(values)
