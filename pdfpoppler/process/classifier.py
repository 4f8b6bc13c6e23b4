"""Failure classification for Poppler process errors

Pure text matching over the lower-cased error message and diagnostics.
The phrase lists are heuristics matched against what Poppler tools print;
they are pinned by characterization tests.
"""

from __future__ import annotations

from typing import Optional, Union

from pdfpoppler.common.errors import (
    InvalidInputError,
    PasswordProtectedError,
    ProcessError,
    UnclassifiedProcessError,
)

__all__ = [
    "INVALID_INPUT_PHRASES",
    "PASSWORD_PHRASES",
    "classify",
]

PASSWORD_PHRASES: tuple[str, ...] = ("encrypted", "password", "permission denied")

INVALID_INPUT_PHRASES: tuple[str, ...] = (
    "not a pdf",
    "invalid pdf",
    "corrupted",
    "couldn't open",
    "error opening",
    "syntax error",
    "command line error",
    "damaged",
)


def _message_get(process_error: Union[BaseException, str, None]) -> str:
    if process_error is None:
        return ""
    return str(process_error)


def classify(
    process_error: Union[BaseException, str, None],
    diagnostic_text: str = "",
    exit_code: Optional[int] = None,
) -> ProcessError:
    """
    Map a failed process to a typed error

    Password checks run first: an encrypted file also fails to open.

    Args:
        process_error: Error (or message) describing the failure
        diagnostic_text: Captured stderr
        exit_code: Exit status, if the process ran

    Returns:
        Error instance to raise; never raises itself
    """
    message = _message_get(process_error)
    haystack = f"{message}\n{diagnostic_text}".lower()

    if any(phrase in haystack for phrase in PASSWORD_PHRASES):
        return PasswordProtectedError(
            _composed_get(message, diagnostic_text, "PDF is password protected"),
            diagnostic_text,
            exit_code,
        )

    if any(phrase in haystack for phrase in INVALID_INPUT_PHRASES):
        return InvalidInputError(
            _composed_get(message, diagnostic_text, "Invalid or corrupted PDF file"),
            diagnostic_text,
            exit_code,
        )

    return UnclassifiedProcessError(
        _composed_get(message, diagnostic_text, "Process failed"),
        diagnostic_text,
        exit_code,
    )


def _composed_get(message: str, diagnostic_text: str, fallback: str) -> str:
    base = message or fallback
    stripped = diagnostic_text.strip()
    if stripped:
        return f"{base}\nStderr: {stripped}"
    return base
