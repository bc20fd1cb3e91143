"""Configuration management for the App Store Server API client.

This module handles loading and validating client configuration from a
config file and environment variables.
"""

import json
import logging
import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional, Union


# Default configuration values
DEFAULT_TIMEOUT = 30.0
DEFAULT_CONFIG_PATH = Path.home() / ".app-store-server-api" / "config.json"
MIN_TIMEOUT = 0.1
MAX_TIMEOUT = 300.0

logger = logging.getLogger(__name__)


class ConfigurationError(ValueError):
    """Exception raised when client configuration is invalid."""

    pass


class Environment(str, Enum):
    """Server environment a client talks to."""

    PRODUCTION = "Production"
    SANDBOX = "Sandbox"

    @classmethod
    def parse(cls, value: Union["Environment", str]) -> "Environment":
        """Accept an Environment or a case-insensitive name/value string."""
        if isinstance(value, cls):
            return value
        normalized = str(value).strip().lower()
        for member in cls:
            if normalized in (member.name.lower(), member.value.lower()):
                return member
        raise ConfigurationError(
            f"environment must be one of {[m.name.lower() for m in cls]}. "
            f"Got: {value!r}"
        )


@dataclass(frozen=True)
class ClientConfig:
    """Immutable configuration for an App Store Server API client.

    Args:
        signing_key: PEM encoded EC (P-256) private key from App Store Connect
        key_id: Identifier of the signing key
        issuer_id: Issuer ID from the Keys page in App Store Connect
        bundle_id: Bundle ID of the app
        environment: Target environment (production or sandbox)
        timeout: Request timeout in seconds
    """

    signing_key: str
    key_id: str
    issuer_id: str
    bundle_id: str
    environment: Environment
    timeout: float

    def __post_init__(self):
        """Validate configuration after initialization."""
        for field_name in ("signing_key", "key_id", "issuer_id", "bundle_id"):
            value = getattr(self, field_name)
            if not isinstance(value, str) or not value.strip():
                raise ConfigurationError(f"{field_name} cannot be empty")

        # Frozen dataclass: coerce through object.__setattr__
        object.__setattr__(self, "environment", Environment.parse(self.environment))

        try:
            timeout = float(self.timeout)
        except (TypeError, ValueError):
            raise ConfigurationError(f"timeout must be a number. Got: {self.timeout!r}")
        if timeout < MIN_TIMEOUT or timeout > MAX_TIMEOUT:
            raise ConfigurationError(
                f"timeout must be between {MIN_TIMEOUT} and {MAX_TIMEOUT} seconds. "
                f"Got: {timeout}"
            )
        object.__setattr__(self, "timeout", timeout)

    def __repr__(self) -> str:
        return (
            f"ClientConfig(key_id={self.key_id!r}, issuer_id={self.issuer_id!r}, "
            f"bundle_id={self.bundle_id!r}, environment={self.environment.name}, "
            f"timeout={self.timeout})"
        )


def _read_signing_key_file(path_value: str) -> str:
    path = Path(path_value).expanduser()
    if not path.exists():
        raise FileNotFoundError(f"Signing key file not found: {path}")
    return path.read_text(encoding="utf-8")


def load_config(
    config_path: Optional[str] = None, use_env: bool = False
) -> ClientConfig:
    """Load configuration from file and/or environment variables.

    Args:
        config_path: Path to config JSON file (default: ~/.app-store-server-api/config.json)
        use_env: Whether to use environment variables (overrides file config)

    Returns:
        ClientConfig instance

    Raises:
        FileNotFoundError: If config file or signing key file not found
        json.JSONDecodeError: If config file contains invalid JSON
        ConfigurationError: If required fields are missing or invalid

    Environment Variables:
        APP_STORE_SIGNING_KEY: PEM signing key text (overrides file)
        APP_STORE_SIGNING_KEY_PATH: Path to the PEM signing key (used when
            APP_STORE_SIGNING_KEY is not set)
        APP_STORE_KEY_ID: Signing key identifier
        APP_STORE_ISSUER_ID: Issuer identifier
        APP_STORE_BUNDLE_ID: App bundle identifier
        APP_STORE_ENVIRONMENT: "production" or "sandbox"
        APP_STORE_TIMEOUT: Timeout in seconds
    """
    config_data: Dict[str, Any] = {}

    if config_path is not None or (not use_env):
        path = Path(config_path) if config_path else DEFAULT_CONFIG_PATH
        path = path.expanduser().resolve()

        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")

        file_perms = os.stat(path).st_mode & 0o777
        if file_perms != 0o600:
            logger.warning(
                f"Configuration file {path} has insecure permissions {oct(file_perms)}. "
                f"Recommend setting to 0600: chmod 0600 {path}"
            )

        with open(path) as f:
            config_data = json.load(f)

        if "signing_key" not in config_data and "signing_key_path" in config_data:
            config_data["signing_key"] = _read_signing_key_file(
                config_data["signing_key_path"]
            )
        config_data.pop("signing_key_path", None)

    if use_env:
        if "APP_STORE_SIGNING_KEY" in os.environ:
            config_data["signing_key"] = os.environ["APP_STORE_SIGNING_KEY"]
        elif "APP_STORE_SIGNING_KEY_PATH" in os.environ:
            config_data["signing_key"] = _read_signing_key_file(
                os.environ["APP_STORE_SIGNING_KEY_PATH"]
            )

        env_fields = {
            "APP_STORE_KEY_ID": "key_id",
            "APP_STORE_ISSUER_ID": "issuer_id",
            "APP_STORE_BUNDLE_ID": "bundle_id",
            "APP_STORE_ENVIRONMENT": "environment",
            "APP_STORE_TIMEOUT": "timeout",
        }
        for env_name, field_name in env_fields.items():
            if env_name in os.environ:
                config_data[field_name] = os.environ[env_name]

    required = {
        "signing_key": "APP_STORE_SIGNING_KEY or APP_STORE_SIGNING_KEY_PATH",
        "key_id": "APP_STORE_KEY_ID",
        "issuer_id": "APP_STORE_ISSUER_ID",
        "bundle_id": "APP_STORE_BUNDLE_ID",
        "environment": "APP_STORE_ENVIRONMENT",
    }
    for field_name, env_hint in required.items():
        if field_name not in config_data:
            raise ConfigurationError(
                f"Missing required field: {field_name}\n"
                f"  Fix: Set {env_hint} environment variable\n"
                f"  Or: Add '{field_name}' to {DEFAULT_CONFIG_PATH}"
            )

    if "timeout" not in config_data:
        config_data["timeout"] = DEFAULT_TIMEOUT

    unknown = set(config_data) - set(ClientConfig.__dataclass_fields__)
    if unknown:
        raise ConfigurationError(f"Unknown configuration fields: {sorted(unknown)}")

    return ClientConfig(**config_data)
