"""Text normalization for accent-insensitive Vietnamese search."""

import re
import unicodedata


_COMBINING_MARKS = re.compile("[\u0300-\u036f]")
_WHITESPACE = re.compile(r"\s+")


def remove_vietnamese_accents(text: str) -> str:
    """Strip diacritics and fold đ/Đ to d/D.

    Decomposes to NFD, drops combining marks in U+0300..U+036F, then folds
    the stroked d, which has no decomposition.
    """
    decomposed = unicodedata.normalize("NFD", text)
    stripped = _COMBINING_MARKS.sub("", decomposed)
    return stripped.replace("đ", "d").replace("Đ", "D")


def normalize_for_search(text: str) -> str:
    """Accent-fold and lowercase. Idempotent."""
    return remove_vietnamese_accents(text).lower()


def collapse_whitespace(text: str) -> str:
    """Collapse runs of whitespace into single spaces and trim."""
    return _WHITESPACE.sub(" ", text).strip()
