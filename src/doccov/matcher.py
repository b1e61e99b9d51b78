"""
Fuzzy name matching for drift suggestions.

Used to suggest the intended parameter, export or member when documentation
names something that does not exist (typos, renames, abbreviations).
"""
import difflib
import re
from typing import Iterable, Optional

from doccov.constants import FUZZY_MATCH_CUTOFF


def find_closest_match(
    text: str,
    candidates: Iterable[str],
    cutoff: float = FUZZY_MATCH_CUTOFF,
) -> Optional[str]:
    """
    Find the candidate most similar to text.

    Similarity is difflib's ratio on lowercased names. When nothing reaches
    the cutoff, a candidate that starts with or contains the text (or is
    contained by it) is accepted, preferring the closest length. This catches
    abbreviations such as ``tax`` for ``taxRate``.

    Args:
        text: The name that failed to resolve
        candidates: Names that do exist
        cutoff: Minimum similarity ratio (0.0 to 1.0)

    Returns:
        The best candidate, or None if none is plausible
    """
    by_lower: dict[str, str] = {}
    for candidate in candidates:
        if candidate and candidate != text:
            by_lower.setdefault(candidate.lower(), candidate)
    if not by_lower or not text:
        return None

    needle = text.lower()
    matches = difflib.get_close_matches(needle, list(by_lower), n=1, cutoff=cutoff)
    if matches:
        return by_lower[matches[0]]

    # Containment fallback, sorted for determinism
    contained = sorted(
        (abs(len(lower) - len(needle)), not lower.startswith(needle), lower)
        for lower in by_lower
        if len(needle) >= 2 and (needle in lower or lower in needle)
    )
    if contained:
        return by_lower[contained[0][2]]
    return None


def split_camel_case(name: str) -> list[str]:
    """'fetchUserById' -> ['fetch', 'user', 'by', 'id']."""
    spaced = re.sub(r'([a-z0-9])([A-Z])', r'\1 \2', name)
    spaced = re.sub(r'([A-Z]+)([A-Z][a-z])', r'\1 \2', spaced)
    return [w for w in re.split(r'[\s_-]+', spaced.lower()) if w]


def find_replacement(removed: str, candidates: Iterable[str]) -> Optional[str]:
    """
    Suggest which candidate replaces a removed name.

    A candidate sharing the removed name's last camelCase word wins
    (``evaluateChainhook`` -> ``replayChainhook``); otherwise the
    closest fuzzy match is used.
    """
    candidates = [c for c in candidates if c != removed]
    words = split_camel_case(removed)
    if words:
        same_suffix = [c for c in candidates if split_camel_case(c)[-1:] == words[-1:]]
        if same_suffix:
            return find_closest_match(removed, same_suffix, cutoff=0.0)
    return find_closest_match(removed, candidates)
