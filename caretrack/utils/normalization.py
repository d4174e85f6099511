"""Normalization helpers for stored names, contact fields and search terms."""

import re
import unicodedata
from typing import Optional

_WHITESPACE_RE = re.compile(r"\s+")


def _collapse(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    return _WHITESPACE_RE.sub(" ", value).strip() or None


def normalize_name(name: Optional[str]) -> Optional[str]:
    """Trim a person or organisation name and collapse inner runs of spaces."""
    return _collapse(name)


def normalize_email(email: Optional[str]) -> Optional[str]:
    collapsed = _collapse(email)
    return collapsed.lower() if collapsed else None


def fold_accents(value: str) -> str:
    """Strip diacritics, e.g. José -> Jose."""
    decomposed = unicodedata.normalize("NFKD", value)
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def normalize_search_text(value: Optional[str]) -> Optional[str]:
    """
    Fold a value for case- and accent-insensitive matching.

    Returns None for empty or whitespace-only input.
    """
    collapsed = _collapse(value)
    if collapsed is None:
        return None
    return fold_accents(collapsed).casefold()


def normalize_identifier(value: Optional[str]) -> Optional[str]:
    """
    Comparable form of an NDIS number or similar identifier.

    Spaces and dashes are dropped ("430 000 000-01" == "43000000001").
    """
    if value is None:
        return None
    cleaned = re.sub(r"[\s-]+", "", value).lower()
    return cleaned or None


def matches_search(term: Optional[str], *values: Optional[str]) -> bool:
    """
    True when ``term`` occurs in any of ``values`` after folding.

    An empty term matches everything so list filters can pass it through.
    """
    needle = normalize_search_text(term)
    if needle is None:
        return True
    return any(needle in (normalize_search_text(value) or "") for value in values)
