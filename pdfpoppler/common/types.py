"""Common types and data structures for pdfpoppler"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping, Optional


@dataclass(frozen=True)
class RuntimeContext:
    """Host facts read once from environment variables"""
    is_serverless: bool
    is_ci: bool
    has_display: bool
    is_test_runner: bool = False

    def isHeadless(self) -> bool:
        """Serverless and CI hosts are treated as headless"""
        return self.is_serverless or self.is_ci


@dataclass(frozen=True)
class VersionEntry:
    """One installed distribution directory (poppler-X.Y[-xvfb])"""
    version: str
    has_virtual_display_bundle: bool
    directory: Path

    def versionKey_get(self) -> tuple[int, int]:
        """Numeric (major, minor) for ordering"""
        major, minor = self.version.split(".")
        return int(major), int(minor)

    def binDirectory_get(self) -> Path:
        """Executable directory of this entry"""
        return self.directory / "bin"


@dataclass(frozen=True)
class ExecutionOptions:
    """Options applied to every spawned process"""
    encoding: str
    max_output_bytes: int
    timeout_s: Optional[float] = None
    env: Mapping[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class ResolvedConfiguration:
    """Immutable configuration owned by one wrapper instance"""
    platform: str
    is_serverless: bool
    is_ci: bool
    has_display: bool
    is_test_runner: bool
    prefer_virtual_display: bool
    prefer_virtual_display_override: Optional[bool]
    execution: ExecutionOptions
    binary_path: Optional[str] = None
    binary_package: Optional[str] = None
    version: Optional[str] = None


@dataclass(frozen=True)
class WrappedCommand:
    """Final command line after display wrapping"""
    command: str
    args: tuple[str, ...]
    env: Mapping[str, str]
    launcher: Optional[Path] = None

    def argv_get(self) -> list[str]:
        """Command followed by its arguments"""
        return [self.command, *self.args]


@dataclass(frozen=True)
class ResolvedExecutionPlan:
    """Everything needed to spawn one tool invocation"""
    executable: Path
    binary_root: Path
    env: Mapping[str, str]
    wrapped: WrappedCommand
