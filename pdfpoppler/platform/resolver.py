"""Binary directory resolution"""

from __future__ import annotations

import logging
import os
import stat
import threading
from pathlib import Path
from typing import Optional

from pdfpoppler.common.errors import ConfigurationError, ExecutableNotFoundError
from pdfpoppler.common.settings import settings
from pdfpoppler.common.types import ResolvedConfiguration, VersionEntry
from pdfpoppler.platform.candidates import firstCandidate_find
from pdfpoppler.platform.catalog import VersionCatalog
from pdfpoppler.platform.filesystem import FileSystem, LocalFileSystem
from pdfpoppler.platform.packages import (
    ImportPackageLoader,
    PackageLoader,
    packageBinaryPath_get,
    packageDirectory_get,
)

logger = logging.getLogger(__name__)


def versionEntry_select(
    entries: list[VersionEntry],
    requested_version: Optional[str],
    prefer_virtual_display: bool,
) -> Optional[VersionEntry]:
    """
    Pick one installed version

    An explicit version accepts either variant (the preferred one first).
    Without one, the highest version of the preferred variant wins, then the
    highest version overall.

    Args:
        entries: Catalog entries, version descending
        requested_version: Explicit "major.minor", or None
        prefer_virtual_display: Preferred variant

    Returns:
        Selected entry, or None when entries is empty and no version was requested

    Raises:
        ConfigurationError: If the requested version is not installed
    """
    if requested_version:
        same_version = [e for e in entries if e.version == requested_version]
        match = firstCandidate_find(
            same_version, lambda e: e.has_virtual_display_bundle == prefer_virtual_display
        ) or firstCandidate_find(same_version, lambda e: True)
        if match is None:
            available = VersionCatalog.versions_unique(entries)
            raise ConfigurationError(
                f"Requested poppler version {requested_version} not found. "
                f"Available: {', '.join(available) if available else 'none'}"
            )
        return match

    preferred = firstCandidate_find(
        entries, lambda e: e.has_virtual_display_bundle == prefer_virtual_display
    )
    if preferred is not None:
        return preferred
    return entries[0] if entries else None


class BinaryResolver:
    """Resolves the Poppler bin/ directory for one configuration

    Priority:
    1. Explicit binary_path
    2. Explicit binary_package
    3. Platform default packages
    """

    def __init__(
        self,
        config: ResolvedConfiguration,
        file_system: FileSystem | None = None,
        package_loader: PackageLoader | None = None,
    ) -> None:
        """
        Initialize resolver

        Args:
            config: Resolved configuration
            file_system: Filesystem queries (host filesystem by default)
            package_loader: Binary package loader (importlib by default)
        """
        self._config: ResolvedConfiguration = config
        self._fs: FileSystem = file_system or LocalFileSystem()
        self._loader: PackageLoader = package_loader or ImportPackageLoader()
        self._catalog: VersionCatalog = VersionCatalog(config.platform, self._fs)

    def resolve(self) -> Path:
        """
        Resolve the executable directory

        Returns:
            bin/ directory holding the Poppler executables

        Raises:
            ConfigurationError: If an override cannot be satisfied
            ExecutableNotFoundError: If no binary package is installed
        """
        if self._config.binary_path:
            return self._customPath_resolve(self._config.binary_path)

        if self._config.binary_package:
            return self._package_resolve(self._config.binary_package)

        return self._platformDefault_resolve()

    def versions_discover(self, base_path: Optional[Path] = None) -> list[VersionEntry]:
        """
        List installed versions for diagnostics

        Args:
            base_path: Distribution root; derived from configuration when None

        Returns:
            Catalog entries, or an empty list when nothing can be found
        """
        try:
            search_path = base_path or self._basePath_get()
        except (ImportError, OSError) as e:
            logger.debug(f"Version discovery skipped: {e}")
            return []
        if search_path is None:
            return []
        return self._catalog.versions_scan(search_path)

    def legacyCandidates_get(self) -> tuple[str, ...]:
        """Legacy directory names in priority order"""
        if self._config.prefer_virtual_display:
            return settings.LEGACY_DIRS_PREFER_DISPLAY
        return settings.LEGACY_DIRS_PLAIN

    def _customPath_resolve(self, custom_path: str) -> Path:
        resolved = Path(custom_path).expanduser().resolve()
        if not self._fs.path_exists(resolved):
            raise ConfigurationError(f"Custom binary path not found: {resolved}")
        logger.debug(f"Using explicit binary path {resolved}")
        return resolved

    def _package_resolve(self, package_name: str) -> Path:
        try:
            package = self._loader.package_load(package_name)
            binary_path = packageBinaryPath_get(package)
            if binary_path is None:
                # Package without binary_path(): binaries live beside the module
                binary_path = packageDirectory_get(package)
        except ImportError as e:
            raise ConfigurationError(
                f"Failed to load binary package '{package_name}': {e}"
            ) from e
        logger.debug(f"Using binary package {package_name} at {binary_path}")
        return binary_path

    def _platformPackages_get(self) -> tuple[str, ...]:
        packages = settings.PLATFORM_PACKAGES.get(self._config.platform)
        if not packages:
            raise ConfigurationError(
                f"Unsupported platform: {self._config.platform}. "
                "Set binary_path or binary_package to use custom binaries."
            )
        return packages

    def _packageBase_load(self, package_name: str) -> Optional[Path]:
        try:
            package = self._loader.package_load(package_name)
        except ImportError:
            logger.debug(f"Binary package {package_name} not installed")
            return None
        base_path = packageBinaryPath_get(package)
        if base_path is None:
            logger.debug(f"Binary package {package_name} exposes no binary_path()")
        return base_path

    def _platformDefault_resolve(self) -> Path:
        packages = self._platformPackages_get()
        for package_name in packages:
            base_path = self._packageBase_load(package_name)
            if base_path is None:
                continue
            logger.debug(f"Selecting version from {package_name} at {base_path}")
            return self._version_select(base_path)

        raise ExecutableNotFoundError(
            packages[0],
            f"No binary package found for platform: {self._config.platform}. "
            f"Install one of: {', '.join(packages)}",
        )

    def _version_select(self, base_path: Path) -> Path:
        entries = self._catalog.versions_scan(base_path)
        entry = versionEntry_select(
            entries, self._config.version, self._config.prefer_virtual_display
        )
        if entry is not None:
            logger.info(
                f"Selected poppler {entry.version}"
                f"{' (xvfb)' if entry.has_virtual_display_bundle else ''} at {entry.directory}"
            )
            return entry.binDirectory_get()
        return self._legacy_fallback(base_path)

    def _legacy_fallback(self, base_path: Path) -> Path:
        folder = firstCandidate_find(
            self.legacyCandidates_get(),
            lambda name: self._catalog.binDirectory_isUsable(base_path / name / "bin"),
        )
        if folder is not None:
            logger.info(f"Using legacy layout {folder} at {base_path}")
            return base_path / folder / "bin"

        logger.warning(f"No poppler layout recognised under {base_path}, using it as is")
        return base_path

    def _basePath_get(self) -> Optional[Path]:
        if self._config.binary_path:
            binary_path = Path(self._config.binary_path)
            # .../poppler-X.Y/bin -> distribution root two levels up
            if binary_path.name == "bin":
                return binary_path.parent.parent
            return binary_path.parent

        for package_name in settings.PLATFORM_PACKAGES.get(self._config.platform, ()):
            base_path = self._packageBase_load(package_name)
            if base_path is not None:
                return base_path
        return None


class ExecutablePermissionFixer:
    """Marks distribution files executable after resolution

    Archive extraction does not reliably keep the execute bit. The fix is
    best effort: every failure is logged at debug level and swallowed.
    """

    _EXEC_BITS = stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH

    def __init__(self, platform: str) -> None:
        self._platform: str = platform

    def permissions_apply(self, root: Path) -> int:
        """
        Add execute bits to every file below root

        Args:
            root: Binary root (parent of bin/)

        Returns:
            Number of files whose mode changed
        """
        if self._platform == "win32":
            return 0

        changed = 0
        try:
            for dirpath, _dirnames, filenames in os.walk(root):
                for filename in filenames:
                    if self._file_mark(Path(dirpath) / filename):
                        changed += 1
        except Exception as e:
            logger.debug(f"Permission fix under {root} aborted: {e}")
        return changed

    def permissionsAsync_apply(self, root: Path) -> threading.Thread:
        """
        Run permissions_apply on a daemon thread

        Args:
            root: Binary root

        Returns:
            The started thread
        """
        thread = threading.Thread(
            target=self.permissions_apply, args=(root,), name="pdfpoppler-chmod", daemon=True
        )
        thread.start()
        return thread

    def _file_mark(self, path: Path) -> bool:
        try:
            mode = path.stat().st_mode
            if mode & self._EXEC_BITS == self._EXEC_BITS:
                return False
            path.chmod(mode | self._EXEC_BITS)
            return True
        except OSError as e:
            logger.debug(f"Cannot mark {path} executable: {e}")
            return False
