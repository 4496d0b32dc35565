"""
Configuration Module
====================

Immutable, environment-aware configuration for the Central Truck
authentication core.

Features:
- Immutable configuration after initialization
- Environment variable override support (CENTRALTRUCK_ prefix)
- No secrets in default values
- OS-aware path handling
"""

from __future__ import annotations

import hashlib
import os
import platform
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Final, Optional


APP_DIR_NAME: Final[str] = "CentralTruck"

_SENSITIVE_KEYS: Final[frozenset[str]] = frozenset({
    "password", "secret", "key", "token", "api_key",
    "private", "credential", "salt", "hash",
})


def _is_sensitive_key(key: str) -> bool:
    """Check if a configuration key might contain sensitive data."""
    key_lower = key.lower()
    return any(sensitive in key_lower for sensitive in _SENSITIVE_KEYS)


def _get_default_data_dir() -> Path:
    """Get OS-appropriate default data directory."""
    system = platform.system().lower()

    if system == "windows":
        base = Path(os.environ.get("LOCALAPPDATA", Path.home() / "AppData" / "Local"))
    elif system == "darwin":
        base = Path.home() / "Library" / "Application Support"
    else:
        base = Path(os.environ.get("XDG_DATA_HOME", Path.home() / ".local" / "share"))

    return base / APP_DIR_NAME


def _get_default_log_dir() -> Path:
    """Get OS-appropriate default log directory."""
    system = platform.system().lower()

    if system == "windows":
        base = Path(os.environ.get("LOCALAPPDATA", Path.home() / "AppData" / "Local"))
        return base / APP_DIR_NAME / "Logs"
    elif system == "darwin":
        return Path.home() / "Library" / "Logs" / APP_DIR_NAME
    else:
        return Path(os.environ.get("XDG_STATE_HOME", Path.home() / ".local" / "state")) / APP_DIR_NAME / "logs"


@dataclass(frozen=True, slots=True)
class PathConfig:
    """Immutable path configuration with OS-aware defaults."""

    data_dir: Path = field(default_factory=_get_default_data_dir)
    log_dir: Path = field(default_factory=_get_default_log_dir)

    def __post_init__(self) -> None:
        for field_name in ("data_dir", "log_dir"):
            path = getattr(self, field_name)
            if not path.is_absolute():
                raise ValueError(f"{field_name} must be an absolute path: {path}")

    @property
    def local_store_path(self) -> Path:
        """SQLite file backing the local key-value store."""
        return self.data_dir / "centraltruck.db"


@dataclass(frozen=True, slots=True)
class SecurityConfig:
    """
    Immutable security configuration.

    Durations are in seconds, artificial delays in milliseconds.
    """

    # Password hashing
    kdf_iterations: int = 100_000
    salt_length: int = 16
    hash_length: int = 32

    # Sessions
    session_ttl_seconds: int = 8 * 60 * 60

    # Brute-force throttling
    max_login_attempts: int = 5
    attempt_window_seconds: int = 15 * 60
    lockout_duration_seconds: int = 15 * 60

    # Artificial delays
    throttle_base_ms: int = 300
    throttle_step_ms: int = 150
    throttle_cap_ms: int = 1500
    empty_input_delay_ms: int = 300
    locked_delay_ms: int = 500
    store_error_delay_ms: int = 400

    def __post_init__(self) -> None:
        if self.kdf_iterations < 100_000:
            raise ValueError("kdf_iterations must be at least 100,000")
        if self.salt_length < 16:
            raise ValueError("salt_length must be at least 16 bytes")
        if self.hash_length < 16:
            raise ValueError("hash_length must be at least 16 bytes")
        if self.max_login_attempts < 1:
            raise ValueError("max_login_attempts must be at least 1")
        for name in (
            "session_ttl_seconds",
            "attempt_window_seconds",
            "lockout_duration_seconds",
        ):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive")
        for name in (
            "throttle_base_ms",
            "throttle_step_ms",
            "throttle_cap_ms",
            "empty_input_delay_ms",
            "locked_delay_ms",
            "store_error_delay_ms",
        ):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} cannot be negative")


class StoreConfigError(ValueError):
    """Raised when the remote credential store configuration is incomplete."""
    pass


@dataclass(frozen=True, slots=True)
class StoreConfig:
    """Remote document store (Firestore) configuration."""

    project_id: str = ""
    database: Optional[str] = None
    admins_collection: str = "admins"
    drivers_collection: str = "drivers"

    def validate(self) -> None:
        """
        Ensure every required key is present.

        Raises:
            StoreConfigError: listing the missing keys
        """
        required = ("project_id", "admins_collection", "drivers_collection")
        missing = [name for name in required if not getattr(self, name).strip()]
        if missing:
            raise StoreConfigError(
                f"Incomplete store configuration. Missing: {', '.join(missing)}"
            )


@dataclass(frozen=True, slots=True)
class LoggingConfig:
    """Immutable logging configuration."""

    level: str = "INFO"
    max_file_size_bytes: int = 10 * 1024 * 1024  # 10 MB
    backup_count: int = 5
    enable_console: bool = True
    enable_file: bool = True
    enable_json: bool = False

    def __post_init__(self) -> None:
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if self.level.upper() not in valid_levels:
            raise ValueError(f"Invalid log level: {self.level}")


_INT_FIELDS: Final[dict[str, tuple[str, ...]]] = {
    "security": (
        "kdf_iterations",
        "session_ttl_seconds",
        "max_login_attempts",
        "attempt_window_seconds",
        "lockout_duration_seconds",
        "throttle_base_ms",
        "throttle_step_ms",
        "throttle_cap_ms",
        "empty_input_delay_ms",
        "locked_delay_ms",
        "store_error_delay_ms",
    ),
    "logging": ("max_file_size_bytes", "backup_count"),
}

_BOOL_FIELDS: Final[dict[str, tuple[str, ...]]] = {
    "logging": ("enable_console", "enable_file", "enable_json"),
}

_STR_FIELDS: Final[dict[str, tuple[str, ...]]] = {
    "store": ("project_id", "database", "admins_collection", "drivers_collection"),
    "logging": ("level",),
}


class CentralTruckConfig:
    """
    Centralized, immutable configuration loader with environment overrides.

    Usage:
        config = CentralTruckConfig.load()
        ttl = config.security.session_ttl_seconds
        db_path = config.paths.local_store_path
    """

    __slots__ = ("_paths", "_security", "_store", "_logging", "_frozen", "_config_hash")

    _instance: Optional[CentralTruckConfig] = None

    def __init__(
        self,
        paths: Optional[PathConfig] = None,
        security: Optional[SecurityConfig] = None,
        store: Optional[StoreConfig] = None,
        logging: Optional[LoggingConfig] = None,
    ) -> None:
        """Initialize configuration. Use CentralTruckConfig.load() for standard initialization."""
        object.__setattr__(self, "_frozen", False)
        object.__setattr__(self, "_paths", paths or PathConfig())
        object.__setattr__(self, "_security", security or SecurityConfig())
        object.__setattr__(self, "_store", store or StoreConfig())
        object.__setattr__(self, "_logging", logging or LoggingConfig())
        object.__setattr__(self, "_config_hash", self._compute_hash())
        object.__setattr__(self, "_frozen", True)

    def _compute_hash(self) -> str:
        config_str = f"{self._paths}|{self._security}|{self._store}|{self._logging}"
        return hashlib.sha256(config_str.encode()).hexdigest()[:16]

    @property
    def paths(self) -> PathConfig:
        return self._paths

    @property
    def security(self) -> SecurityConfig:
        return self._security

    @property
    def store(self) -> StoreConfig:
        return self._store

    @property
    def logging(self) -> LoggingConfig:
        return self._logging

    @property
    def config_hash(self) -> str:
        """Get configuration integrity hash."""
        return self._config_hash

    @classmethod
    def load(cls, env_prefix: str = "CENTRALTRUCK") -> CentralTruckConfig:
        """
        Load configuration with environment variable overrides.

        Environment variables use the given prefix and double underscores
        between section and key.

        Examples:
            CENTRALTRUCK_LOGGING__LEVEL=DEBUG
            CENTRALTRUCK_SECURITY__SESSION_TTL_SECONDS=3600
            CENTRALTRUCK_STORE__PROJECT_ID=central-truck-prod
            CENTRALTRUCK_PATHS__DATA_DIR=/var/lib/centraltruck

        Args:
            env_prefix: Prefix for environment variables

        Returns:
            Configured CentralTruckConfig instance
        """
        overrides = cls._parse_env_overrides(env_prefix)

        paths_kwargs: dict[str, Any] = {}
        for name in ("data_dir", "log_dir"):
            if f"paths.{name}" in overrides:
                paths_kwargs[name] = Path(overrides[f"paths.{name}"])

        sections: dict[str, dict[str, Any]] = {"security": {}, "store": {}, "logging": {}}
        for section, names in _INT_FIELDS.items():
            for name in names:
                key = f"{section}.{name}"
                if key in overrides:
                    sections[section][name] = int(overrides[key])
        for section, names in _BOOL_FIELDS.items():
            for name in names:
                key = f"{section}.{name}"
                if key in overrides:
                    sections[section][name] = overrides[key].lower() == "true"
        for section, names in _STR_FIELDS.items():
            for name in names:
                key = f"{section}.{name}"
                if key in overrides:
                    sections[section][name] = overrides[key]

        return cls(
            paths=PathConfig(**paths_kwargs) if paths_kwargs else None,
            security=SecurityConfig(**sections["security"]) if sections["security"] else None,
            store=StoreConfig(**sections["store"]) if sections["store"] else None,
            logging=LoggingConfig(**sections["logging"]) if sections["logging"] else None,
        )

    @staticmethod
    def _parse_env_overrides(prefix: str) -> dict[str, str]:
        """Parse environment variables with the given prefix."""
        overrides: dict[str, str] = {}
        prefix_upper = f"{prefix.upper()}_"

        for key, value in os.environ.items():
            if key.startswith(prefix_upper):
                # CENTRALTRUCK_SECTION__KEY -> section.key
                config_key = key[len(prefix_upper):].lower().replace("__", ".")

                # Sensitive-looking keys are never taken from the environment
                if _is_sensitive_key(config_key.rpartition(".")[2]):
                    continue

                overrides[config_key] = value

        return overrides

    @classmethod
    def get_instance(cls) -> CentralTruckConfig:
        """Get or create the process-wide configuration instance."""
        if cls._instance is None:
            cls._instance = cls.load()
        return cls._instance

    @classmethod
    def reset_instance(cls) -> None:
        """Reset the singleton instance. Use only for testing."""
        cls._instance = None

    def ensure_directories(self) -> None:
        """Create the data and log directories with owner-only permissions."""
        import stat

        for directory in (self._paths.data_dir, self._paths.log_dir):
            directory.mkdir(parents=True, exist_ok=True)

            if platform.system().lower() != "windows":
                directory.chmod(stat.S_IRWXU)

    def __repr__(self) -> str:
        return f"CentralTruckConfig(hash={self._config_hash})"

    def __setattr__(self, name: str, value: Any) -> None:
        """Prevent modification after initialization."""
        if hasattr(self, "_frozen") and self._frozen:
            raise AttributeError("CentralTruckConfig is immutable after initialization")
        super().__setattr__(name, value)
