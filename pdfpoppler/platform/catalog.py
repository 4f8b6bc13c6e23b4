"""Version discovery inside a binary distribution root"""

from __future__ import annotations

import logging
import re
from pathlib import Path

from pdfpoppler.common.settings import settings
from pdfpoppler.common.types import VersionEntry
from pdfpoppler.platform.filesystem import FileSystem, LocalFileSystem

logger = logging.getLogger(__name__)


def binaryName_get(base: str, platform: str) -> str:
    """Platform-specific executable file name"""
    return f"{base}.exe" if platform == "win32" else base


class VersionCatalog:
    """Scans a distribution root for installed (version, variant) pairs"""

    _PATTERN = re.compile(settings.VERSION_DIR_PATTERN)

    def __init__(self, platform: str, file_system: FileSystem | None = None) -> None:
        """
        Initialize catalog

        Args:
            platform: Platform id, decides the probe binary name
            file_system: Filesystem queries (host filesystem by default)
        """
        self._platform: str = platform
        self._fs: FileSystem = file_system or LocalFileSystem()

    def probeBinary_get(self) -> str:
        """Executable whose presence qualifies a bin/ directory"""
        return binaryName_get(settings.PROBE_BINARY, self._platform)

    def binDirectory_isUsable(self, bin_dir: Path) -> bool:
        """True when bin_dir holds the probe executable"""
        return self._fs.path_exists(bin_dir / self.probeBinary_get())

    def versions_scan(self, base_path: Path) -> list[VersionEntry]:
        """
        List usable versioned directories below base_path

        Unreadable or missing roots yield an empty list.

        Args:
            base_path: Distribution root

        Returns:
            Entries sorted by version descending, display-bundle variant first
        """
        try:
            names = self._fs.directory_list(base_path)
        except OSError as e:
            logger.debug(f"Cannot list distribution root {base_path}: {e}")
            return []

        entries: list[VersionEntry] = []
        for name in names:
            match = self._PATTERN.match(name)
            if not match:
                continue
            entry = VersionEntry(
                version=match.group(1),
                has_virtual_display_bundle=match.group(2) == "-xvfb",
                directory=base_path / name,
            )
            if self.binDirectory_isUsable(entry.binDirectory_get()):
                entries.append(entry)
            else:
                logger.debug(f"Skipping {name}: no {self.probeBinary_get()} in bin/")

        return sorted(
            entries,
            key=lambda e: (e.versionKey_get(), e.has_virtual_display_bundle),
            reverse=True,
        )

    @staticmethod
    def versions_unique(entries: list[VersionEntry]) -> list[str]:
        """Distinct version strings in catalog order"""
        seen: list[str] = []
        for entry in entries:
            if entry.version not in seen:
                seen.append(entry.version)
        return seen
