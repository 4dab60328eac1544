"""Runtime settings for tree-buddy"""

import os
from dataclasses import dataclass, field
from pathlib import Path

from tree_buddy.constants import (
    APP_NAME,
    GIT_TIMEOUT,
    NETWORK_TIMEOUT,
    REFRESH_THROTTLE,
    SCAN_CACHE_TTL,
    SCAN_MAX_DEPTH,
    STATUS_CONCURRENCY,
)


def _default_config_dir() -> Path:
    return Path.home() / ".config" / APP_NAME


def _default_cache_dir() -> Path:
    return Path.home() / ".cache" / APP_NAME


ENV_PREFIX = "TREE_BUDDY_"


@dataclass
class Settings:
    """Tunables for git invocation, refresh scheduling and storage locations."""

    # Git invocation
    git_timeout: float = GIT_TIMEOUT
    network_timeout: float = NETWORK_TIMEOUT
    status_concurrency: int = STATUS_CONCURRENCY

    # Refresh scheduling
    refresh_throttle: float = REFRESH_THROTTLE

    # Discovery
    scan_cache_ttl: float = SCAN_CACHE_TTL
    scan_max_depth: int = SCAN_MAX_DEPTH

    # Storage
    config_dir: Path = field(default_factory=_default_config_dir)
    cache_dir: Path = field(default_factory=_default_cache_dir)

    def __post_init__(self):
        """Validate settings after initialization."""
        self.config_dir = Path(self.config_dir).expanduser()
        self.cache_dir = Path(self.cache_dir).expanduser()
        self._validate_positive("git_timeout", self.git_timeout)
        self._validate_positive("network_timeout", self.network_timeout)
        self._validate_positive("status_concurrency", self.status_concurrency)
        if self.refresh_throttle < 0:
            raise ValueError(f"refresh_throttle cannot be negative, got {self.refresh_throttle}")
        if self.scan_cache_ttl < 0:
            raise ValueError(f"scan_cache_ttl cannot be negative, got {self.scan_cache_ttl}")
        if self.scan_max_depth < 0:
            raise ValueError(f"scan_max_depth cannot be negative, got {self.scan_max_depth}")

    @staticmethod
    def _validate_positive(name: str, value) -> None:
        if value <= 0:
            raise ValueError(f"{name} must be positive, got {value}")

    def to_dict(self) -> dict:
        return {
            "git_timeout": self.git_timeout,
            "network_timeout": self.network_timeout,
            "status_concurrency": self.status_concurrency,
            "refresh_throttle": self.refresh_throttle,
            "scan_cache_ttl": self.scan_cache_ttl,
            "scan_max_depth": self.scan_max_depth,
            "config_dir": str(self.config_dir),
            "cache_dir": str(self.cache_dir),
        }

    @classmethod
    def from_dict(cls, values: dict) -> "Settings":
        """Create Settings from a dictionary, ignoring unknown keys."""
        known_fields = set(cls.__dataclass_fields__)
        filtered = {k: v for k, v in values.items() if k in known_fields}
        return cls(**filtered)

    @classmethod
    def from_env(cls, environ=None) -> "Settings":
        """Create Settings from TREE_BUDDY_* environment variables.

        For example ``TREE_BUDDY_GIT_TIMEOUT=10`` or
        ``TREE_BUDDY_CONFIG_DIR=/tmp/tb``.
        """
        environ = os.environ if environ is None else environ
        casts = {
            "git_timeout": float,
            "network_timeout": float,
            "status_concurrency": int,
            "refresh_throttle": float,
            "scan_cache_ttl": float,
            "scan_max_depth": int,
            "config_dir": Path,
            "cache_dir": Path,
        }
        values = {}
        for key, cast in casts.items():
            raw = environ.get(ENV_PREFIX + key.upper())
            if raw is None or raw == "":
                continue
            try:
                values[key] = cast(raw)
            except ValueError as e:
                raise ValueError(f"Invalid value for {ENV_PREFIX}{key.upper()}: {raw!r}") from e
        return cls(**values)
