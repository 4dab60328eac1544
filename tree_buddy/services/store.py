"""JSON persistence for the config and the scan cache."""
import json
import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Optional

from tree_buddy.config import Config
from tree_buddy.exceptions import ConfigError
from tree_buddy.models.worktree import ScanCache
from tree_buddy.settings import Settings

# Import fcntl for POSIX file locking (Unix/Linux/macOS)
try:
    import fcntl
    HAS_FCNTL = True
except ImportError:
    HAS_FCNTL = False

logger = logging.getLogger(__name__)

CONFIG_FILE = "config.json"
SCAN_CACHE_FILE = "scan.json"


class ConfigStore:
    """Loads and saves the user config and the scan cache."""

    def __init__(self, settings: Optional[Settings] = None):
        """Initialize the store.

        Args:
            settings: Provides config_dir and cache_dir (defaults to
                ~/.config/tree-buddy and ~/.cache/tree-buddy)
        """
        settings = settings or Settings()
        self.config_file = Path(settings.config_dir) / CONFIG_FILE
        self.scan_cache_file = Path(settings.cache_dir) / SCAN_CACHE_FILE

    @contextmanager
    def _acquire_lock(self, file_handle, operation: str = "read"):
        """Acquire file lock for store operations.

        Args:
            file_handle: Open file handle to lock
            operation: Type of operation ("read" or "write")

        Yields:
            None when lock is acquired
        """
        if not HAS_FCNTL:
            logger.debug("File locking not available on this platform")
            yield
            return

        try:
            # Acquire exclusive lock for writes, shared lock for reads
            lock_type = fcntl.LOCK_EX if operation == "write" else fcntl.LOCK_SH
            fcntl.flock(file_handle.fileno(), lock_type)
            yield
        finally:
            try:
                fcntl.flock(file_handle.fileno(), fcntl.LOCK_UN)
            except OSError as e:
                logger.debug(f"Error releasing lock: {e}")

    def _read_json(self, path: Path) -> Optional[dict]:
        if not path.exists():
            logger.debug(f"No file at {path}")
            return None

        try:
            with open(path, "r", encoding="utf-8") as f:
                with self._acquire_lock(f, operation="read"):
                    raw = f.read()
        except OSError as e:
            logger.warning(f"Failed to read {path}: {e}")
            return None

        if not raw.strip():
            return None

        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.warning(f"Invalid JSON in {path}: {e}")
            return None

        if not isinstance(data, dict):
            logger.warning(f"Ignoring {path}: top-level value is not an object")
            return None
        return data

    def _write_json(self, path: Path, data: dict) -> None:
        """Atomic write: write to temp file, then rename."""
        path.parent.mkdir(parents=True, exist_ok=True)
        temp_file = path.with_suffix(".tmp")
        try:
            with open(temp_file, "w", encoding="utf-8") as f:
                with self._acquire_lock(f, operation="write"):
                    json.dump(data, f, indent=2)
                    f.flush()

            # Atomic rename (POSIX systems guarantee atomicity)
            temp_file.replace(path)
        finally:
            if temp_file.exists():
                try:
                    temp_file.unlink()
                except OSError:
                    pass

    def load(self) -> Config:
        """Load the config, falling back to defaults when missing or invalid."""
        data = self._read_json(self.config_file)
        if data is None:
            return Config()

        try:
            config = Config.from_dict(data)
        except (ConfigError, KeyError, TypeError, ValueError) as e:
            logger.warning(f"Invalid config in {self.config_file}, using defaults: {e}")
            return Config()

        logger.debug(f"Loaded config with {len(config.projects)} projects")
        return config

    def save(self, config: Config) -> None:
        """Save the config. Failures are logged, not raised."""
        try:
            self._write_json(self.config_file, config.to_dict())
            logger.debug(f"Saved config with {len(config.projects)} projects")
        except OSError as e:
            logger.warning(f"Failed to save config: {e}")

    def load_scan_cache(self) -> Optional[ScanCache]:
        data = self._read_json(self.scan_cache_file)
        if data is None:
            return None

        try:
            return ScanCache.from_dict(data)
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Invalid scan cache, ignoring it: {e}")
            return None

    def save_scan_cache(self, cache: ScanCache) -> None:
        try:
            self._write_json(self.scan_cache_file, cache.to_dict())
            logger.debug(f"Saved scan cache with {len(cache.candidates)} candidates")
        except OSError as e:
            logger.warning(f"Failed to save scan cache: {e}")

    def clear_scan_cache(self) -> None:
        try:
            if self.scan_cache_file.exists():
                self.scan_cache_file.unlink()
                logger.info("Scan cache cleared")
        except OSError as e:
            logger.warning(f"Failed to clear scan cache: {e}")
