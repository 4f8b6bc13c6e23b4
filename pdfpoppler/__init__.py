"""
pdfpoppler: run Poppler command-line tools anywhere
Binary resolution, process environments and headless display handling
"""

import subprocess
from pathlib import Path


def _get_git_hash() -> str:
    """Get short git hash, or 'dev' if not in git repo"""
    try:
        repo_path = Path(__file__).parent.parent
        result = subprocess.run(
            ["git", "rev-parse", "--short=4", "HEAD"],
            cwd=repo_path,
            capture_output=True,
            text=True,
            timeout=1,
        )
        if result.returncode == 0:
            return result.stdout.strip()
    except Exception:
        pass
    return "dev"


__version__ = f"1.4.0.{_get_git_hash()}"
__author__ = "pdfpoppler contributors"

from pdfpoppler.common.config import ConfigBuilder, PopplerConfig  # noqa: E402
from pdfpoppler.common.errors import (  # noqa: E402
    ConfigurationError,
    ErrorKind,
    ExecutableNotFoundError,
    InvalidInputError,
    OutputLimitExceededError,
    PageOutOfRangeError,
    PasswordProtectedError,
    PopplerError,
    ProcessError,
    ProcessTimeoutError,
    UnclassifiedProcessError,
)
from pdfpoppler.inputs import BytesInput, PathInput, StreamInput, pdfInput_from  # noqa: E402
from pdfpoppler.poppler import Poppler  # noqa: E402

__all__ = [
    "BytesInput",
    "ConfigBuilder",
    "ConfigurationError",
    "ErrorKind",
    "ExecutableNotFoundError",
    "InvalidInputError",
    "OutputLimitExceededError",
    "PageOutOfRangeError",
    "PasswordProtectedError",
    "PathInput",
    "Poppler",
    "PopplerConfig",
    "PopplerError",
    "ProcessError",
    "ProcessTimeoutError",
    "StreamInput",
    "UnclassifiedProcessError",
    "pdfInput_from",
]
