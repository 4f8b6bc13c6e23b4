"""Pytest configuration and shared fixtures for pdfpoppler tests

This module provides fake binary distributions, fake package loaders and
an in-memory filesystem used across the unit tests.
"""

import logging
import os
import stat
import sys
import types
from pathlib import Path
from typing import Callable, Iterable, Optional

import pytest


class FakePackageLoader:
    """PackageLoader serving prebuilt modules; unknown names raise ImportError"""

    def __init__(self, modules: Optional[dict[str, types.ModuleType]] = None) -> None:
        self.modules: dict[str, types.ModuleType] = dict(modules or {})
        self.requested: list[str] = []

    def package_load(self, name: str) -> types.ModuleType:
        self.requested.append(name)
        if name not in self.modules:
            raise ImportError(f"No module named '{name}'")
        return self.modules[name]


class FakeFileSystem:
    """In-memory FileSystem: a set of existing paths plus file contents"""

    def __init__(
        self,
        existing: Iterable[Path] = (),
        texts: Optional[dict[Path, str]] = None,
        listings: Optional[dict[Path, list[str]]] = None,
    ) -> None:
        self.texts: dict[Path, str] = {Path(k): v for k, v in (texts or {}).items()}
        self.listings: dict[Path, list[str]] = {Path(k): v for k, v in (listings or {}).items()}
        self.existing: set[Path] = {Path(p) for p in existing} | set(self.texts)

    def path_exists(self, path: Path) -> bool:
        return Path(path) in self.existing

    def directory_list(self, path: Path) -> list[str]:
        if Path(path) not in self.listings:
            raise FileNotFoundError(str(path))
        return list(self.listings[Path(path)])

    def text_read(self, path: Path) -> str:
        if Path(path) not in self.texts:
            raise FileNotFoundError(str(path))
        return self.texts[Path(path)]


def binary_module(
    name: str,
    root: Optional[Path] = None,
    fontconfig: Optional[dict[str, str]] = None,
    module_file: Optional[Path] = None,
) -> types.ModuleType:
    """Build a binary package module exposing binary_path() and fontconfig_env()"""
    module = types.ModuleType(name)
    if root is not None:
        module.binary_path = lambda: str(root)  # type: ignore[attr-defined]
    if fontconfig is not None:
        module.fontconfig_env = lambda: dict(fontconfig)  # type: ignore[attr-defined]
    if module_file is not None:
        module.__file__ = str(module_file)
    return module


def tool_write(bin_dir: Path, name: str, body: str) -> Path:
    """Write an executable Python script acting as a Poppler tool"""
    bin_dir.mkdir(parents=True, exist_ok=True)
    path = bin_dir / name
    path.write_text(f"#!{sys.executable}\n{body}")
    path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return path


@pytest.fixture
def distribution_factory(tmp_path: Path) -> Callable[..., Path]:
    """Create a distribution root holding poppler-X.Y[-xvfb]/bin directories

    Returns:
        Function taking directory names (and optional extra tool names)
        and returning the distribution root.
    """

    def _create(*names: str, tools: Iterable[str] = ("pdftocairo",), probe: bool = True) -> Path:
        root = tmp_path / "dist"
        root.mkdir(exist_ok=True)
        for name in names:
            bin_dir = root / name / "bin"
            bin_dir.mkdir(parents=True, exist_ok=True)
            for tool in tools:
                if tool == "pdftocairo" and not probe:
                    continue
                (bin_dir / tool).write_text("#!/bin/sh\n")
        return root

    return _create


@pytest.fixture
def package_loader_factory() -> type[FakePackageLoader]:
    """FakePackageLoader class"""
    return FakePackageLoader


@pytest.fixture
def file_system_factory() -> type[FakeFileSystem]:
    """FakeFileSystem class"""
    return FakeFileSystem


@pytest.fixture
def module_factory() -> Callable[..., types.ModuleType]:
    """binary_module builder"""
    return binary_module


@pytest.fixture
def tool_factory() -> Callable[[Path, str, str], Path]:
    """tool_write helper"""
    return tool_write


@pytest.fixture
def host_environ() -> dict[str, str]:
    """Minimal host environment: no display, no CI, no test runner markers"""
    return {"PATH": os.environ.get("PATH", "/usr/bin:/bin"), "HOME": "/home/tester", "LANG": "C.UTF-8"}


@pytest.fixture(autouse=True)
def setup_logging(caplog):
    """Setup logging for tests"""
    caplog.set_level(logging.DEBUG)


# Markers for test organization
def pytest_configure(config) -> None:
    """Register custom pytest markers used by this test suite."""
    config.addinivalue_line("markers", "requires_x11: mark test as requiring X11 display")
