"""Filesystem queries used by version discovery and launcher lookup."""

from __future__ import annotations

from pathlib import Path
from typing import Protocol


class FileSystem(Protocol):
    """Read-only filesystem interface."""

    def path_exists(self, path: Path) -> bool:
        """Return True when the path exists."""

    def directory_list(self, path: Path) -> list[str]:
        """
        List entry names of a directory.

        Raises:
            OSError: If the directory cannot be read.
        """

    def text_read(self, path: Path) -> str:
        """
        Read a text file.

        Raises:
            OSError: If the file cannot be read.
        """


class LocalFileSystem:
    """FileSystem backed by the host filesystem."""

    def path_exists(self, path: Path) -> bool:
        return Path(path).exists()

    def directory_list(self, path: Path) -> list[str]:
        return sorted(entry.name for entry in Path(path).iterdir())

    def text_read(self, path: Path) -> str:
        # newline="" keeps \r\n intact so foreign line endings stay detectable
        with open(path, "r", encoding="utf-8", errors="replace", newline="") as f:
            return f.read()
