"""Process environment construction for spawned Poppler tools"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Mapping, Optional

from pdfpoppler.common.settings import settings
from pdfpoppler.common.types import ResolvedConfiguration
from pdfpoppler.platform.filesystem import FileSystem, LocalFileSystem
from pdfpoppler.platform.packages import ImportPackageLoader, PackageLoader, fontconfigEnv_load

logger = logging.getLogger(__name__)


def searchPath_prepend(existing: Optional[str], entry: str, separator: str) -> str:
    """
    Prepend one entry to a search-path variable value

    Args:
        existing: Current value (may be None or empty)
        entry: Directory to put first
        separator: Platform path separator

    Returns:
        New value without empty elements
    """
    if not existing:
        return entry
    return f"{entry}{separator}{existing}"


def binaryRoot_get(bin_dir: Path) -> Path:
    """Distribution directory holding bin/, lib/ and share/"""
    bin_dir = Path(bin_dir)
    return bin_dir.parent if bin_dir.name == "bin" else bin_dir


class ProcessEnvironmentBuilder:
    """Builds the environment every spawned tool runs with"""

    def __init__(
        self,
        config: ResolvedConfiguration,
        file_system: FileSystem | None = None,
        package_loader: PackageLoader | None = None,
        host_environ: Optional[Mapping[str, str]] = None,
    ) -> None:
        """
        Initialize builder

        Args:
            config: Resolved configuration
            file_system: Filesystem queries (host filesystem by default)
            package_loader: Binary package loader (importlib by default)
            host_environ: Host environment (os.environ by default)
        """
        self._config: ResolvedConfiguration = config
        self._fs: FileSystem = file_system or LocalFileSystem()
        self._loader: PackageLoader = package_loader or ImportPackageLoader()
        self._host_environ: Mapping[str, str] = (
            os.environ if host_environ is None else host_environ
        )

    def librarySeparator_get(self) -> str:
        return ";" if self._config.platform == "win32" else ":"

    def libraryVariable_get(self) -> str:
        return settings.LIBRARY_PATH_VARIABLES.get(self._config.platform, "LD_LIBRARY_PATH")

    def environment_build(self, bin_dir: Path) -> dict[str, str]:
        """
        Build the full environment for tools living in bin_dir

        Args:
            bin_dir: Resolved executable directory

        Returns:
            Fresh environment mapping (host copy plus additions and overrides)
        """
        env: dict[str, str] = dict(self._host_environ)
        root = binaryRoot_get(bin_dir)
        lib_var = self.libraryVariable_get()
        separator = self.librarySeparator_get()

        lib_dir = root / "lib"
        if self._fs.path_exists(lib_dir):
            env[lib_var] = searchPath_prepend(env.get(lib_var), str(lib_dir), separator)
            logger.debug(f"{lib_var} prefixed with {lib_dir}")

        # Without bundled fonts, form text baked in upstream renders invisible
        fontconfig_env = fontconfigEnv_load(self._loader, settings.FONTS_PACKAGE)
        if fontconfig_env:
            env.update(fontconfig_env)
            env.setdefault("FC_CACHEDIR", settings.FONT_CACHE_DIR)

        if self._config.is_serverless:
            self._serverless_apply(env, root, lib_var, separator)

        env.update(self._config.execution.env)
        return env

    def _serverless_apply(
        self, env: dict[str, str], root: Path, lib_var: str, separator: str
    ) -> None:
        env["DISPLAY"] = settings.VIRTUAL_DISPLAY
        env["XAUTHORITY"] = settings.XAUTHORITY_PATH

        extension_lib = Path(settings.PLATFORM_EXTENSION_LIB)
        if self._fs.path_exists(extension_lib):
            env[lib_var] = searchPath_prepend(env.get(lib_var), str(extension_lib), separator)

        # Bundled keyboard layouts silence xkbcomp warnings on minimal hosts
        xkb_dir = root / "share" / "xkb"
        if self._fs.path_exists(xkb_dir):
            env["XKB_CONFIG_ROOT"] = str(xkb_dir)
