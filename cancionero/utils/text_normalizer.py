"""Text normalization utilities for catalog search and request input.

This module handles two distinct normalization concerns:

1. **Search normalization** -- ``normalize`` folds artist/title/style text
   into a canonical lowercase, accent-free, symbol-free form.  The catalog
   stores that form next to the display text (``artistNorm``, ``titleNorm``,
   ``stylesNorm``) and uses it both as the uniqueness key and as the target
   of every search filter, so "Fito Páez", "FITO PAEZ" and "fito-paez" all
   land on ``"fito paez"``.

2. **Input cleaning** -- ``clean_text`` only tidies whitespace on request
   form fields (names, notes).  It keeps case and accents because those
   values are shown back to the admin exactly as typed.

``tokenize`` splits a normalized query into search terms and
``escape_for_literal_match`` makes each one safe to hand to the document
store's ``$regex`` operator.
"""

from __future__ import annotations

import re
import unicodedata
from typing import Any

# Letters that NFD does not decompose but that users expect to fold to
# plain ASCII.  Applied after lowercasing, so only lowercase keys are needed
# (uppercase ``Æ``/``Œ``/``Ø`` lowercase into these first).
_FLATTEN: dict[str, str] = {
    "ß": "ss",
    "æ": "ae",
    "œ": "oe",
    "ø": "o",
    "đ": "d",
    "ð": "d",
    "ł": "l",
    "þ": "th",
}

_FLATTEN_TABLE = str.maketrans(_FLATTEN)

# Characters with special meaning inside a $regex pattern.
_REGEX_META = re.compile(r"[.*+?^${}()|\[\]\\]")

_NBSP = "\u00a0"


def _is_kept(char: str) -> bool:
    """Return True for Unicode letters, numbers and whitespace."""
    return char.isspace() or unicodedata.category(char)[0] in ("L", "N")


def normalize(text: Any) -> str:
    """Fold *text* into its canonical search form.

    Steps: lowercase, NFD decomposition, drop combining marks, flatten
    ligatures and stroked letters, replace every character that is not a
    letter, number or whitespace with a space, collapse whitespace, trim.

    The result is idempotent (``normalize(normalize(x)) == normalize(x)``)
    and ``None`` maps to ``""``.

    Args:
        text: Any value; non-strings are converted with ``str()``.

    Returns:
        Canonical lowercase text, possibly empty.
    """
    if text is None:
        return ""

    folded = unicodedata.normalize("NFD", str(text).lower())
    folded = "".join(ch for ch in folded if unicodedata.category(ch) != "Mn")
    folded = folded.translate(_FLATTEN_TABLE)
    folded = "".join(ch if _is_kept(ch) else " " for ch in folded)

    # str.split() with no argument splits on any Unicode whitespace run
    # and drops leading/trailing whitespace in one go.
    return " ".join(folded.split())


def escape_for_literal_match(text: str | None) -> str:
    """Escape regex metacharacters so *text* matches literally."""
    if not text:
        return ""
    return _REGEX_META.sub(r"\\\g<0>", str(text))


def tokenize(query: Any) -> list[str]:
    """Normalize *query* and split it into whitespace-separated tokens."""
    normalized = normalize(query)
    return normalized.split(" ") if normalized else []


def clean_text(value: Any) -> str:
    """Tidy whitespace in a free-text form field.

    Non-strings become ``""``.  Non-breaking spaces count as spaces, runs
    of whitespace collapse to one space, and the ends are trimmed.  Case
    and accents are preserved.
    """
    if not isinstance(value, str):
        return ""
    return " ".join(value.replace(_NBSP, " ").split())
