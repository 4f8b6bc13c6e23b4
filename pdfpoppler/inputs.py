"""
PDF input types and argument validation.

A tool call receives its PDF as exactly one of:
- PathInput: a file on disk, passed by name
- BytesInput: in-memory data, fed through stdin
- StreamInput: a readable binary stream, copied to stdin in chunks
"""

from __future__ import annotations

import io
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, Union

from pdfpoppler.common.errors import InvalidInputError, PageOutOfRangeError

__all__ = [
    "BytesInput",
    "PathInput",
    "PdfInput",
    "StreamInput",
    "outputDirectory_validate",
    "outputPrefix_validate",
    "pageNumber_validate",
    "pdfInput_from",
    "pdfPath_validate",
]


@dataclass(frozen=True)
class PathInput:
    """PDF file on disk"""
    path: Path


@dataclass(frozen=True)
class BytesInput:
    """PDF held in memory"""
    data: bytes


@dataclass(frozen=True)
class StreamInput:
    """PDF read from a binary stream"""
    stream: BinaryIO


PdfInput = Union[PathInput, BytesInput, StreamInput]


def pdfInput_from(value: object) -> PdfInput:
    """
    Wrap a raw value in the matching input type

    Args:
        value: Path or str, bytes-like data, or a binary stream. Existing
            PdfInput values pass through.

    Returns:
        PdfInput

    Raises:
        TypeError: For any other value
    """
    if isinstance(value, (PathInput, BytesInput, StreamInput)):
        return value
    if isinstance(value, (str, Path)):
        return PathInput(Path(value))
    if isinstance(value, (bytes, bytearray, memoryview)):
        return BytesInput(bytes(value))
    if isinstance(value, io.IOBase):
        return StreamInput(value)  # type: ignore[arg-type]
    raise TypeError(
        f"Unsupported PDF input {type(value).__name__}; "
        "expected a path, bytes or a binary stream"
    )


def _nulByte_reject(text: str, what: str) -> None:
    if "\0" in text:
        raise InvalidInputError(f"{what} contains a NUL byte")


def pdfPath_validate(path: Union[str, Path]) -> Path:
    """
    Check that path names an existing .pdf file

    Returns:
        Resolved path

    Raises:
        InvalidInputError: If the path is unusable
    """
    _nulByte_reject(str(path), "PDF path")
    resolved = Path(path).expanduser().resolve()
    if not resolved.exists():
        raise InvalidInputError(f"PDF file not found: {resolved}")
    if not resolved.is_file():
        raise InvalidInputError(f"PDF path is not a file: {resolved}")
    if resolved.suffix.lower() != ".pdf":
        raise InvalidInputError(f"Not a PDF file (expected .pdf extension): {resolved}")
    return resolved


def outputDirectory_validate(path: Union[str, Path]) -> Path:
    """
    Check that path names an existing directory

    Returns:
        Resolved path

    Raises:
        InvalidInputError: If the directory is unusable
    """
    _nulByte_reject(str(path), "Output directory")
    resolved = Path(path).expanduser().resolve()
    if not resolved.exists():
        raise InvalidInputError(f"Output directory not found: {resolved}")
    if not resolved.is_dir():
        raise InvalidInputError(f"Output path is not a directory: {resolved}")
    return resolved


def outputPrefix_validate(prefix: str) -> str:
    """
    Check that prefix is a bare file name stem

    Raises:
        InvalidInputError: For empty prefixes, separators or '..'
    """
    _nulByte_reject(prefix, "Output prefix")
    if not prefix:
        raise InvalidInputError("Output prefix must not be empty")
    if "/" in prefix or "\\" in prefix:
        raise InvalidInputError(f"Output prefix must not contain path separators: {prefix}")
    if ".." in prefix:
        raise InvalidInputError(f"Output prefix must not contain '..': {prefix}")
    return prefix


def pageNumber_validate(page: int, total_pages: int) -> int:
    """
    Check that page lies within 1..total_pages

    Raises:
        PageOutOfRangeError: Otherwise
    """
    if page < 1 or page > total_pages:
        raise PageOutOfRangeError(page, total_pages)
    return page
