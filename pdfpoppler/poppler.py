"""
Poppler wrapper instance.

A Poppler instance resolves everything once, in its constructor:
configuration, binary directory and base process environment. The results
are read-only, so differently configured instances can coexist in one
process. Each tool call then spawns one supervised process.

Example:
    poppler = Poppler()
    info = poppler.run("pdfinfo", [], "document.pdf")

    with poppler.stream("pdftocairo", ["-png", "-singlefile", "{input}", "-"], data) as out:
        for chunk in out:
            sink.write(chunk)
"""

from __future__ import annotations

import logging
import os
import re
from dataclasses import replace
from pathlib import Path
from types import MappingProxyType
from typing import Any, BinaryIO, Mapping, Optional, Sequence, Union

from pdfpoppler.common.config import (
    ConfigLoader,
    FileConfig,
    PopplerConfig,
    configuration_resolve,
)
from pdfpoppler.common.errors import ExecutableNotFoundError
from pdfpoppler.common.settings import settings
from pdfpoppler.common.types import ResolvedConfiguration, ResolvedExecutionPlan, VersionEntry
from pdfpoppler.inputs import BytesInput, PathInput, PdfInput, pdfInput_from, pdfPath_validate
from pdfpoppler.platform.catalog import binaryName_get
from pdfpoppler.platform.context import context_detect
from pdfpoppler.platform.filesystem import FileSystem, LocalFileSystem
from pdfpoppler.platform.packages import ImportPackageLoader, PackageLoader
from pdfpoppler.platform.resolver import BinaryResolver, ExecutablePermissionFixer
from pdfpoppler.process.display import DisplayVirtualizationShim, displayRequired_check
from pdfpoppler.process.environment import ProcessEnvironmentBuilder, binaryRoot_get
from pdfpoppler.process.lifecycle import InputData, ProcessLifecycleManager, ProcessStream

logger = logging.getLogger(__name__)

# PdfInput, a path, bytes-like data or a binary stream
PdfSource = Optional[Union[PdfInput, str, Path, bytes, bytearray, memoryview, BinaryIO]]

_VERSION_PATTERN = re.compile(r"poppler-(\d+\.\d+)")


class Poppler:
    """Runs Poppler command-line tools with a resolved binary distribution"""

    def __init__(
        self,
        config: Optional[PopplerConfig] = None,
        *,
        config_file: Optional[Union[str, Path]] = None,
        environ: Optional[Mapping[str, str]] = None,
        file_system: Optional[FileSystem] = None,
        package_loader: Optional[PackageLoader] = None,
    ) -> None:
        """
        Resolve configuration, binaries and environment

        Args:
            config: Explicit configuration (highest precedence)
            config_file: YAML file; POPPLER_CONFIG or the standard locations
                are used when None
            environ: Host environment (os.environ by default)
            file_system: Filesystem queries (host filesystem by default)
            package_loader: Binary package loader (importlib by default)

        Raises:
            ConfigurationError: If the configuration cannot be satisfied
            ExecutableNotFoundError: If no binary distribution is installed
        """
        self._environ: Mapping[str, str] = os.environ if environ is None else environ
        self._fs: FileSystem = file_system or LocalFileSystem()
        self._loader: PackageLoader = package_loader or ImportPackageLoader()

        file_config = self._fileConfig_load(config_file)
        context = context_detect(self._environ)
        self._config: ResolvedConfiguration = configuration_resolve(
            config or PopplerConfig(), context, self._environ, file_config
        )
        logger.debug(f"Resolved configuration: {self._config}")

        self._resolver = BinaryResolver(self._config, self._fs, self._loader)
        self._bin_dir: Path = self._resolver.resolve()
        self._binary_root: Path = binaryRoot_get(self._bin_dir)

        env_builder = ProcessEnvironmentBuilder(
            self._config, self._fs, self._loader, self._environ
        )
        self._env: Mapping[str, str] = MappingProxyType(env_builder.environment_build(self._bin_dir))

        self._shim = DisplayVirtualizationShim(self._bin_dir, self._fs)
        self._needs_display: bool = displayRequired_check(self._config)
        self._lifecycle = ProcessLifecycleManager(self._config.execution)

        if self._config.binary_path:
            logger.debug("Explicit binary path, leaving file modes untouched")
        else:
            ExecutablePermissionFixer(self._config.platform).permissionsAsync_apply(
                self._binary_root
            )

        logger.info(
            f"Poppler binaries at {self._bin_dir} "
            f"(virtual display {'on' if self._needs_display else 'off'})"
        )

    # =========================================================================
    # Factories
    # =========================================================================

    @classmethod
    def serverlessInstance_create(
        cls, config: Optional[PopplerConfig] = None, **kwargs: Any
    ) -> "Poppler":
        """Instance for serverless functions; prefers the virtual display variant"""
        config = config or PopplerConfig()
        return cls(
            replace(
                config,
                is_serverless=True,
                prefer_virtual_display=_default_true(config.prefer_virtual_display),
            ),
            **kwargs,
        )

    @classmethod
    def ciInstance_create(cls, config: Optional[PopplerConfig] = None, **kwargs: Any) -> "Poppler":
        """Instance for CI runners; prefers the virtual display variant"""
        config = config or PopplerConfig()
        return cls(
            replace(
                config,
                is_ci=True,
                prefer_virtual_display=_default_true(config.prefer_virtual_display),
            ),
            **kwargs,
        )

    @classmethod
    def binaryPathInstance_create(
        cls, binary_path: Union[str, Path], config: Optional[PopplerConfig] = None, **kwargs: Any
    ) -> "Poppler":
        """Instance using the executables in binary_path"""
        config = config or PopplerConfig()
        return cls(replace(config, binary_path=str(binary_path), binary_package=None), **kwargs)

    # =========================================================================
    # Tool execution
    # =========================================================================

    def plan_get(self, tool: str, args: Sequence[str] = ()) -> ResolvedExecutionPlan:
        """
        Build the execution plan for one tool call

        Args:
            tool: Tool base name (e.g. "pdfinfo")
            args: Tool arguments

        Returns:
            ResolvedExecutionPlan with the final command line

        Raises:
            ExecutableNotFoundError: If the tool is not in the binary directory
        """
        executable = self._bin_dir / binaryName_get(tool, self._config.platform)
        if not self._fs.path_exists(executable):
            raise ExecutableNotFoundError(tool)

        needs_display = self._needs_display and tool in settings.DISPLAY_DEPENDENT_TOOLS
        wrapped = self._shim.displayWrap_apply(str(executable), args, self._env, needs_display)
        return ResolvedExecutionPlan(
            executable=executable,
            binary_root=self._binary_root,
            env=wrapped.env,
            wrapped=wrapped,
        )

    def run(self, tool: str, args: Sequence[str] = (), pdf_input: PdfSource = None) -> bytes:
        """
        Run a tool to completion

        Args:
            tool: Tool base name
            args: Tool arguments; "{input}" marks where the PDF goes
            pdf_input: PDF path, data or stream; None when the tool takes none

        Returns:
            Complete stdout

        Raises:
            PopplerError: Classified failure
        """
        plan, input_data = self._invocation_prepare(tool, args, pdf_input)
        return self._lifecycle.buffered_run(
            plan.wrapped.command, plan.wrapped.args, plan.env, input_data
        )

    def stream(self, tool: str, args: Sequence[str] = (), pdf_input: PdfSource = None) -> ProcessStream:
        """
        Run a tool and stream its stdout

        Returns:
            ProcessStream; close it (or use it as a context manager) to stop early
        """
        plan, input_data = self._invocation_prepare(tool, args, pdf_input)
        return self._lifecycle.streaming_run(
            plan.wrapped.command, plan.wrapped.args, plan.env, input_data
        )

    def _invocation_prepare(
        self, tool: str, args: Sequence[str], pdf_input: PdfSource
    ) -> tuple[ResolvedExecutionPlan, InputData]:
        arguments = list(args)
        input_data: InputData = None

        if pdf_input is not None:
            pdf = pdfInput_from(pdf_input)
            if isinstance(pdf, PathInput):
                token = str(pdfPath_validate(pdf.path))
            elif isinstance(pdf, BytesInput):
                token = "-"
                input_data = pdf.data
            else:
                token = "-"
                input_data = pdf.stream
            if settings.INPUT_MARKER in arguments:
                arguments[arguments.index(settings.INPUT_MARKER)] = token
            else:
                arguments.append(token)

        return self.plan_get(tool, arguments), input_data

    # =========================================================================
    # Diagnostics
    # =========================================================================

    def binaryDirectory_get(self) -> Path:
        return self._bin_dir

    def configuration_get(self) -> ResolvedConfiguration:
        return self._config

    def environment_get(self) -> Mapping[str, str]:
        """Base environment of every spawned tool (read-only)"""
        return self._env

    def versions_list(self) -> list[VersionEntry]:
        """Installed versions of the current distribution"""
        return self._resolver.versions_discover()

    def version_get(self) -> Optional[str]:
        """Version parsed from the binary directory, or None for unversioned layouts"""
        match = _VERSION_PATTERN.search(str(self._bin_dir))
        return match.group(1) if match else None

    def bundledVirtualDisplay_has(self) -> bool:
        """True when the selected distribution is a virtual display variant"""
        path = str(self._bin_dir)
        return "-xvfb" in path or "poppler-xvfb" in path

    def serverless_check(self) -> bool:
        return self._config.is_serverless

    def virtualDisplay_required(self) -> bool:
        """True when display-dependent tools get wrapped"""
        return self._needs_display

    def _fileConfig_load(self, config_file: Optional[Union[str, Path]]) -> FileConfig:
        if config_file is None:
            config_file = self._environ.get("POPPLER_CONFIG") or None
        path = Path(config_file).expanduser() if config_file else None
        file_config = ConfigLoader.config_load(path)
        if path is not None:
            logger.debug(f"Loaded configuration file {path}")
        return file_config


def _default_true(value: Optional[bool]) -> bool:
    return True if value is None else value
