"""Desktop integration: trash, open, reveal, terminal."""

import os
import shutil
import subprocess
import sys
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Protocol
from urllib.parse import quote

from tree_buddy.logging_config import get_logger

logger = get_logger(__name__)


class PlatformAdapter(Protocol):
    """What the orchestration layer needs from the host platform."""

    def trash_item(self, path: str) -> None: ...

    def open_path(self, path: str) -> None: ...

    def show_item_in_folder(self, path: str) -> None: ...

    def open_terminal(self, path: str) -> None: ...

    def get_documents_path(self) -> str: ...

    def quit(self) -> None: ...


def default_trash_dir() -> Path:
    if sys.platform == "darwin":
        return Path.home() / ".Trash"
    data_home = os.environ.get("XDG_DATA_HOME") or str(Path.home() / ".local" / "share")
    return Path(data_home) / "Trash"


def trash_info(path: Path, deleted_at: Optional[datetime] = None) -> str:
    """Render the freedesktop ``.trashinfo`` record for ``path``."""
    deleted_at = deleted_at or datetime.now()
    return (
        "[Trash Info]\n"
        f"Path={quote(str(path))}\n"
        f"DeletionDate={deleted_at.strftime('%Y-%m-%dT%H:%M:%S')}\n"
    )


class LocalPlatform:
    """PlatformAdapter for macOS and freedesktop Linux.

    On Linux the trash follows the freedesktop layout: items go to
    ``<trash>/files`` with a restore record in ``<trash>/info``. The macOS
    ``~/.Trash`` folder is flat.
    """

    def __init__(
        self,
        trash_dir: Optional[Path] = None,
        documents_dir: Optional[Path] = None,
        freedesktop: Optional[bool] = None,
    ):
        self.trash_dir = trash_dir or default_trash_dir()
        self.documents_dir = documents_dir
        self.freedesktop = sys.platform != "darwin" if freedesktop is None else freedesktop

    @property
    def files_dir(self) -> Path:
        return self.trash_dir / "files" if self.freedesktop else self.trash_dir

    @property
    def info_dir(self) -> Path:
        return self.trash_dir / "info"

    def _reserve_name(self, source: Path) -> str:
        """Pick a free name in the trash, claiming its info file on Linux."""
        name = source.name
        attempt = 0
        while True:
            if not (self.files_dir / name).exists():
                if not self.freedesktop:
                    return name
                try:
                    with open(self.info_dir / f"{name}.trashinfo", "x") as f:
                        f.write(trash_info(source))
                    return name
                except FileExistsError:
                    pass
            attempt += 1
            name = f"{source.name}.{attempt}"

    def trash_item(self, path: str) -> None:
        """Move ``path`` into the trash directory.

        Raises:
            FileNotFoundError: if ``path`` does not exist
        """
        source = Path(path).absolute()
        if not source.exists():
            raise FileNotFoundError(path)

        self.files_dir.mkdir(parents=True, exist_ok=True)
        if self.freedesktop:
            self.info_dir.mkdir(parents=True, exist_ok=True)

        name = self._reserve_name(source)
        try:
            shutil.move(str(source), str(self.files_dir / name))
        except OSError:
            if self.freedesktop:
                (self.info_dir / f"{name}.trashinfo").unlink(missing_ok=True)
            raise
        logger.info(f"Moved {path} to trash")

    def _spawn(self, args: List[str], cwd: Optional[str] = None) -> None:
        logger.debug(f"Spawning {' '.join(args)}")
        subprocess.Popen(args, cwd=cwd, stdout=subprocess.DEVNULL, stderr=subprocess.DEVNULL)

    def open_path(self, path: str) -> None:
        opener = "open" if sys.platform == "darwin" else "xdg-open"
        self._spawn([opener, path])

    def show_item_in_folder(self, path: str) -> None:
        if sys.platform == "darwin":
            self._spawn(["open", "-R", path])
        else:
            self._spawn(["xdg-open", str(Path(path).parent)])

    def open_terminal(self, path: str) -> None:
        if sys.platform == "darwin":
            self._spawn(["open", "-a", "Terminal", path])
        else:
            terminal = os.environ.get("TERMINAL") or "x-terminal-emulator"
            self._spawn([terminal], cwd=path)

    def get_documents_path(self) -> str:
        if self.documents_dir is not None:
            return str(self.documents_dir)
        documents = Path.home() / "Documents"
        return str(documents if documents.is_dir() else Path.home())

    def quit(self) -> None:
        raise SystemExit(0)
