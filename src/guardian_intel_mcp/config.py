"""Configuration management for Guardian Intel MCP.

Security design:
- API key stored as SecretStr (never logged)
- Credential file permissions enforced (600)
- Config objects cannot be pickled
- URL validation restricts schemes to http/https
"""

from __future__ import annotations

import logging
import os
import stat
from dataclasses import dataclass
from pathlib import Path
from urllib.parse import urlparse

from .errors import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://threat-intel-api.abusix.com/beta"
DEFAULT_TIMEOUT_SECONDS = 30.0
HEALTH_CHECK_TIMEOUT_SECONDS = 5.0

API_KEY_ENV = "ABUSIX_API_KEY"
BASE_URL_ENV = "ABUSIX_BASE_URL"
TIMEOUT_ENV = "GUARDIAN_INTEL_TIMEOUT"


# =============================================================================
# Environment Variable Parsing Helpers
# =============================================================================


def _parse_float_env(name: str, default: float) -> float:
    """Parse float environment variable with fallback to default.

    Logs a warning if the value is invalid instead of crashing.
    """
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        logger.warning(
            f"Invalid float value for {name}: '{value}', using default {default}"
        )
        return default


# =============================================================================
# Secret String Type
# =============================================================================


class SecretStr:
    """String type that hides its value in logs and repr.

    Security: Prevents accidental credential exposure in logs,
    error messages, or debug output.
    """

    def __init__(self, value: str) -> None:
        self._value = value

    def get_secret_value(self) -> str:
        """Get the actual secret value."""
        return self._value

    def __repr__(self) -> str:
        return "SecretStr('***')"

    def __str__(self) -> str:
        return "***"

    def __eq__(self, other: object) -> bool:
        if isinstance(other, SecretStr):
            return self._value == other._value
        return False

    def __hash__(self) -> int:
        return hash(self._value)

    def __bool__(self) -> bool:
        return bool(self._value)

    def __len__(self) -> int:
        return len(self._value)


# =============================================================================
# Configuration Class
# =============================================================================


@dataclass(frozen=True)
class Config:
    """Immutable client configuration.

    Security:
    - api_key is SecretStr (never logged)
    - Cannot be pickled (prevents serialization of secrets)
    - URL validated before use
    - frozen=True prevents accidental mutation
    """

    api_key: SecretStr
    base_url: str = DEFAULT_BASE_URL
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    health_timeout_seconds: float = HEALTH_CHECK_TIMEOUT_SECONDS

    def __post_init__(self) -> None:
        """Validate configuration after initialization.

        Note: Uses object.__setattr__ because dataclass is frozen.
        """
        if isinstance(self.api_key, str):
            object.__setattr__(self, "api_key", SecretStr(self.api_key))
        object.__setattr__(self, "base_url", _validate_url(self.base_url))
        self._validate_values()

    def _validate_values(self) -> None:
        """Validate configuration values (called from __post_init__)."""
        if not self.api_key or not self.api_key.get_secret_value().strip():
            raise ConfigurationError(
                "Guardian Intel API key is required and cannot be empty"
            )

        if self.timeout_seconds <= 0 or self.timeout_seconds > 300:
            raise ConfigurationError("timeout_seconds must be between 0 and 300")

        if self.health_timeout_seconds <= 0:
            raise ConfigurationError("health_timeout_seconds must be positive")

    def __repr__(self) -> str:
        """Safe repr that never includes the API key."""
        return (
            f"Config(base_url={self.base_url!r}, "
            f"api_key=***, timeout={self.timeout_seconds}s)"
        )

    def __str__(self) -> str:
        return self.__repr__()

    def __getstate__(self) -> None:
        """Prevent pickling to avoid credential serialization."""
        raise TypeError("Config cannot be pickled (contains secrets)")

    def __reduce__(self) -> None:  # type: ignore[override]
        """Prevent pickling via reduce."""
        raise TypeError("Config cannot be pickled (contains secrets)")

    @classmethod
    def load(cls, api_key: str | None = None, base_url: str | None = None) -> Config:
        """Load configuration from arguments, environment and files.

        API key sources (precedence order):
        1. ``api_key`` argument (the ``--api-key`` CLI flag)
        2. ABUSIX_API_KEY environment variable
        3. ~/.config/guardian-intel-mcp/api_key file
        4. .env file in working directory

        Returns:
            Config: Validated configuration

        Raises:
            ConfigurationError: If no key is found or a value is invalid
        """
        key = api_key.strip() if api_key else None
        if not key:
            key = _load_api_key()
        if not key:
            raise ConfigurationError(
                "Guardian Intel API key not found. Set ABUSIX_API_KEY environment "
                "variable or pass --api-key."
            )

        url = base_url or os.getenv(BASE_URL_ENV) or DEFAULT_BASE_URL
        timeout = _parse_float_env(TIMEOUT_ENV, DEFAULT_TIMEOUT_SECONDS)

        return cls(
            api_key=SecretStr(key),
            base_url=url,
            timeout_seconds=timeout,
        )


# =============================================================================
# API Key Loading
# =============================================================================


def _load_api_key() -> str | None:
    """Load the API key from the environment or credential files.

    Security: Credential file permissions are enforced.
    """
    # 1. Environment variable (highest priority)
    key = os.getenv(API_KEY_ENV)
    if key is not None:
        stripped = key.strip()
        if stripped:
            logger.debug(f"Loaded API key from {API_KEY_ENV} environment variable")
            return stripped
        # Set but blank: treat as explicitly invalid, don't fall through
        if key:
            return None

    # 2. Config file
    config_file = Path.home() / ".config" / "guardian-intel-mcp" / "api_key"
    key = _load_key_file(config_file)
    if key:
        logger.debug("Loaded API key from config file")
        return key

    # 3. .env file in current directory
    env_file = Path.cwd() / ".env"
    key = _load_key_from_env_file(env_file)
    if key:
        logger.debug("Loaded API key from .env file")
        return key

    return None


def _load_key_file(path: Path) -> str | None:
    """Load API key from file with permission check.

    Security: Refuses to load the key if file permissions are too open.
    """
    if not path.exists():
        return None

    mode = path.stat().st_mode
    # Group or other may not read/write (requires 600 or 400)
    if mode & (stat.S_IRGRP | stat.S_IROTH | stat.S_IWGRP | stat.S_IWOTH):
        logger.warning(
            "API key file has insecure permissions",
            extra={"path": str(path), "mode": oct(mode)},
        )
        raise ConfigurationError(
            f"API key file {path} has insecure permissions. Run: chmod 600 {path}"
        )

    try:
        key = path.read_text().strip()
        return key or None
    except OSError as e:
        logger.warning(f"Failed to read API key file: {e}")
        return None


def _load_key_from_env_file(path: Path) -> str | None:
    """Load API key from a .env file."""
    if not path.exists():
        return None

    mode = path.stat().st_mode
    if mode & (stat.S_IROTH | stat.S_IWOTH):
        logger.warning(
            ".env file has insecure permissions (world-readable)",
            extra={"path": str(path), "mode": oct(mode)},
        )

    try:
        content = path.read_text()
    except OSError as e:
        logger.warning(f"Failed to read .env file: {e}")
        return None

    for line in content.splitlines():
        line = line.strip()
        if not line or line.startswith("#"):
            continue

        if line.startswith(f"{API_KEY_ENV}="):
            value = line.split("=", 1)[1].strip()
            # Remove quotes if present
            if (value.startswith('"') and value.endswith('"')) or (
                value.startswith("'") and value.endswith("'")
            ):
                value = value[1:-1]
            return value or None

    return None


# =============================================================================
# URL Validation
# =============================================================================

_LOCAL_PREFIXES = ("10.", "192.168.") + tuple(f"172.{n}." for n in range(16, 32))


def _validate_url(url: str) -> str:
    """Validate and normalize the API base URL."""
    url = (url or "").strip().rstrip("/")

    if not url:
        raise ConfigurationError("Guardian Intel base URL cannot be empty")

    parsed = urlparse(url)

    if parsed.scheme not in ("http", "https"):
        raise ConfigurationError(
            f"Invalid URL scheme: {parsed.scheme}. Use http or https."
        )

    if not parsed.netloc:
        raise ConfigurationError("Invalid URL: missing host")

    if parsed.scheme == "http":
        host = parsed.hostname or ""
        is_local = host in ("localhost", "127.0.0.1", "::1") or host.startswith(
            _LOCAL_PREFIXES
        )
        if not is_local:
            logger.warning(
                "Using HTTP for non-local Guardian Intel API - API key sent in plaintext",
                extra={"url": url},
            )

    return url
