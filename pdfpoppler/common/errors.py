"""Error taxonomy for resolution, environment and process failures"""

from __future__ import annotations

from enum import Enum
from typing import Optional


class ErrorKind(Enum):
    """Machine-checkable failure kinds"""
    CONFIGURATION = "configuration"
    EXECUTABLE_NOT_FOUND = "executable_not_found"
    INVALID_INPUT = "invalid_input"
    PASSWORD_PROTECTED = "password_protected"
    PAGE_OUT_OF_RANGE = "page_out_of_range"
    TIMEOUT = "timeout"
    OUTPUT_LIMIT = "output_limit"
    UNCLASSIFIED = "unclassified"


class PopplerError(Exception):
    """Base class for every pdfpoppler failure

    Always keeps the raw diagnostic text (stderr of the failed tool, when
    there was one) next to the human readable message.
    """

    kind: ErrorKind = ErrorKind.UNCLASSIFIED

    def __init__(self, message: str, stderr: str = "") -> None:
        super().__init__(message)
        self.message: str = message
        self.stderr: str = stderr


class ConfigurationError(PopplerError):
    """Unsatisfiable configuration, raised before any process spawns"""

    kind = ErrorKind.CONFIGURATION


class ExecutableNotFoundError(PopplerError):
    """A required Poppler executable (or binary package) is missing"""

    kind = ErrorKind.EXECUTABLE_NOT_FOUND

    def __init__(self, binary: str, message: Optional[str] = None) -> None:
        super().__init__(message or f"Poppler binary not found: {binary}")
        self.binary: str = binary


class PageOutOfRangeError(PopplerError):
    """Requested page lies outside 1..total_pages"""

    kind = ErrorKind.PAGE_OUT_OF_RANGE

    def __init__(self, page: int, total_pages: int) -> None:
        super().__init__(f"Page {page} is out of range (1-{total_pages})")
        self.page: int = page
        self.total_pages: int = total_pages


class ProcessError(PopplerError):
    """Failure of a spawned process"""

    def __init__(
        self, message: str, stderr: str = "", exit_code: Optional[int] = None
    ) -> None:
        super().__init__(message, stderr)
        self.exit_code: Optional[int] = exit_code


class InvalidInputError(ProcessError):
    """Input is not a readable PDF"""

    kind = ErrorKind.INVALID_INPUT


class PasswordProtectedError(ProcessError):
    """PDF is encrypted and no usable password was given"""

    kind = ErrorKind.PASSWORD_PROTECTED


class UnclassifiedProcessError(ProcessError):
    """Process failed for a reason the classifier does not recognise"""

    kind = ErrorKind.UNCLASSIFIED


class ProcessTimeoutError(ProcessError):
    """Process outlived the configured timeout and was terminated"""

    kind = ErrorKind.TIMEOUT

    def __init__(self, timeout_s: float, stderr: str = "") -> None:
        super().__init__(f"Process timed out after {timeout_s}s", stderr)
        self.timeout_s: float = timeout_s


class OutputLimitExceededError(ProcessError):
    """Buffered output grew past max_output_bytes"""

    kind = ErrorKind.OUTPUT_LIMIT

    def __init__(self, limit: int, stderr: str = "") -> None:
        super().__init__(f"Process output exceeded {limit} bytes", stderr)
        self.limit: int = limit
