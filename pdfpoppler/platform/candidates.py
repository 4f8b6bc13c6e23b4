"""Ordered fallback chains."""

from __future__ import annotations

from typing import Callable, Iterable, Optional, TypeVar

T = TypeVar("T")


def firstCandidate_find(candidates: Iterable[T], predicate: Callable[[T], bool]) -> Optional[T]:
    """
    Return the first candidate accepted by the predicate.

    Every fallback chain (versions, legacy directories, launcher scripts,
    binary packages) is expressed as an ordered candidate list evaluated here,
    so priority order can be tested without touching the filesystem.

    Args:
        candidates: Candidates in priority order.
        predicate: Acceptance test.

    Returns:
        First accepted candidate, or None.
    """
    for candidate in candidates:
        if predicate(candidate):
            return candidate
    return None
