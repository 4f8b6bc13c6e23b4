"""Binary distribution packages.

A binary package is an importable Python module that ships Poppler builds.
It exposes ``binary_path()`` returning the distribution root (the directory
holding ``poppler-X.Y[-xvfb]`` folders) and may expose ``fontconfig_env()``
returning fontconfig variables for bundled fonts.
"""

from __future__ import annotations

import importlib
import logging
from pathlib import Path
from types import ModuleType
from typing import Optional, Protocol

logger = logging.getLogger(__name__)


class PackageLoader(Protocol):
    """Loads binary packages by name."""

    def package_load(self, name: str) -> ModuleType:
        """
        Import a binary package.

        Raises:
            ImportError: If the package is not installed.
        """


class ImportPackageLoader:
    """PackageLoader backed by importlib."""

    def package_load(self, name: str) -> ModuleType:
        return importlib.import_module(name)


def packageBinaryPath_get(package: ModuleType) -> Optional[Path]:
    """
    Return the distribution root a package advertises.

    Args:
        package: Loaded package module.

    Returns:
        Path from binary_path(), or None when the package exposes none.
    """
    binary_path = getattr(package, "binary_path", None)
    if not callable(binary_path):
        return None
    return Path(binary_path())


def packageDirectory_get(package: ModuleType) -> Path:
    """Directory containing the package module itself."""
    module_file = getattr(package, "__file__", None)
    if module_file is None:
        raise ImportError(f"Package {package.__name__} has no location on disk")
    return Path(module_file).resolve().parent


def fontconfigEnv_load(loader: PackageLoader, package_name: str) -> Optional[dict[str, str]]:
    """
    Fetch fontconfig variables from the fonts package, if installed.

    Args:
        loader: Package loader.
        package_name: Fonts package name.

    Returns:
        Variables to merge, or None when the package or hook is missing.
    """
    try:
        package = loader.package_load(package_name)
    except ImportError:
        return None
    fontconfig_env = getattr(package, "fontconfig_env", None)
    if not callable(fontconfig_env):
        return None
    env = {str(k): str(v) for k, v in fontconfig_env().items()}
    logger.debug(f"Fontconfig environment from {package_name}: {sorted(env)}")
    return env
