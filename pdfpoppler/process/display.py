"""Virtual display wrapping for display-dependent tools"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Mapping, Sequence

from pdfpoppler.common.settings import settings
from pdfpoppler.common.types import ResolvedConfiguration, WrappedCommand
from pdfpoppler.platform.candidates import firstCandidate_find
from pdfpoppler.platform.filesystem import FileSystem, LocalFileSystem

logger = logging.getLogger(__name__)


def displayRequired_check(config: ResolvedConfiguration) -> bool:
    """
    Decide whether a virtual display must be provided

    Args:
        config: Resolved configuration

    Returns:
        True when the preference is not explicitly disabled, no display is
        attached, the host is unattended and the platform can virtualise.
    """
    if config.prefer_virtual_display_override is False:
        return False
    if config.has_display:
        return False
    if not (config.is_serverless or config.is_ci or config.is_test_runner):
        return False
    return config.platform == "linux"


def lineEndings_normalize(text: str) -> str:
    """Convert CRLF and lone CR line endings to LF"""
    return text.replace("\r\n", "\n").replace("\r", "\n")


class DisplayVirtualizationShim:
    """Wraps commands in an xvfb-run style launcher when no display is attached"""

    def __init__(self, bin_dir: Path, file_system: FileSystem | None = None) -> None:
        """
        Initialize shim

        Args:
            bin_dir: Resolved executable directory (may hold a bundled launcher)
            file_system: Filesystem queries (host filesystem by default)
        """
        self._bundled: Path = Path(bin_dir) / settings.LAUNCHER_NAME
        self._fs: FileSystem = file_system or LocalFileSystem()

    def launcherCandidates_get(self) -> list[Path]:
        """Launcher scripts in priority order, bundled first"""
        return [self._bundled, *(Path(p) for p in settings.SYSTEM_LAUNCHER_PATHS)]

    def launcher_find(self) -> Path | None:
        """First launcher script that exists"""
        return firstCandidate_find(self.launcherCandidates_get(), self._fs.path_exists)

    def displayWrap_apply(
        self,
        command: str,
        args: Sequence[str],
        env: Mapping[str, str],
        needs_display: bool,
    ) -> WrappedCommand:
        """
        Produce the command line that actually runs

        Args:
            command: Real executable
            args: Its arguments
            env: Built environment
            needs_display: Result of displayRequired_check

        Returns:
            WrappedCommand; unchanged when no display is needed
        """
        if not needs_display:
            return WrappedCommand(command=command, args=tuple(args), env=dict(env))

        wrapped_env = dict(env)
        wrapped_env["DISPLAY"] = settings.VIRTUAL_DISPLAY

        launcher = self.launcher_find()
        if launcher is None:
            logger.warning(
                f"No {settings.LAUNCHER_NAME} found, running {Path(command).name} "
                f"against DISPLAY={settings.VIRTUAL_DISPLAY} without a launcher"
            )
            wrapped_env["XAUTHORITY"] = settings.XAUTHORITY_PATH
            return WrappedCommand(command=command, args=tuple(args), env=wrapped_env)

        normalized = self._normalizedScript_get(launcher)
        if normalized is not None:
            logger.debug(f"Launcher {launcher} has foreign line endings, evaluating corrected text")
            return WrappedCommand(
                command=settings.SHELL_INTERPRETER,
                args=("-c", normalized, str(launcher), command, *args),
                env=wrapped_env,
                launcher=launcher,
            )

        if launcher == self._bundled:
            # Bundled scripts may have lost their execute bit
            logger.debug(f"Using bundled launcher {launcher}")
            return WrappedCommand(
                command=settings.SHELL_INTERPRETER,
                args=(str(launcher), command, *args),
                env=wrapped_env,
                launcher=launcher,
            )

        logger.debug(f"Using system launcher {launcher}")
        return WrappedCommand(
            command=str(launcher),
            args=(*settings.VIRTUAL_SCREEN_ARGS, command, *args),
            env=wrapped_env,
            launcher=launcher,
        )

    def _normalizedScript_get(self, launcher: Path) -> str | None:
        try:
            text = self._fs.text_read(launcher)
        except OSError as e:
            logger.debug(f"Cannot read launcher {launcher}: {e}")
            return None
        if "\r" not in text:
            return None
        return lineEndings_normalize(text)
