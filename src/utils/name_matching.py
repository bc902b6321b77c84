"""Name matching helpers for title searches and genre labels."""

from __future__ import annotations

from typing import Callable, Iterable, Sequence, TypeVar

__all__ = ["pick_candidate", "unique_casefold"]

T = TypeVar("T")


def pick_candidate(query: str, candidates: Sequence[T], name_of: Callable[[T], str]) -> T | None:
    """Picks the best search result for a title query.

    An entry whose name equals the query case-insensitively wins;
    otherwise the first (highest-ranked) entry is returned.

    Args:
        query: The title that was searched for.
        candidates: Search results in ranking order.
        name_of: Extracts the display name of a candidate.

    Returns:
        The chosen candidate, or None if there are no candidates.
    """
    if not candidates:
        return None
    wanted = query.strip().casefold()
    for candidate in candidates:
        if (name_of(candidate) or "").strip().casefold() == wanted:
            return candidate
    return candidates[0]


def unique_casefold(*groups: Iterable[str]) -> list[str]:
    """Concatenates string groups, dropping case-insensitive duplicates.

    The first spelling seen wins and order is preserved. Blank entries
    are skipped and the rest are stripped.
    """
    seen: set[str] = set()
    result: list[str] = []
    for group in groups:
        for value in group:
            cleaned = (value or "").strip()
            key = cleaned.casefold()
            if cleaned and key not in seen:
                seen.add(key)
                result.append(cleaned)
    return result
