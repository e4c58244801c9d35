"""Column aliasing for catalog CSV exports.

Karaoke catalogs come from spreadsheets with headers in English or Spanish
("Artista", "Canción", "Género"...).  Each canonical field maps to an
ordered list of accepted header names.  Headers are compared by their
``normalize()`` form, so case, accents and punctuation do not matter:
"Intérprete", "INTERPRETE" and "interprete:" all match ``interprete``.
"""

from __future__ import annotations

from typing import Mapping

from cancionero.utils.text_normalizer import normalize

# Order matters: the first alias with a non-empty value wins.
COLUMN_ALIASES: dict[str, tuple[str, ...]] = {
    "artist": ("artist", "artista", "artist name", "autor", "author", "interprete"),
    "title": ("title", "cancion", "song title", "tema", "name", "song name"),
    "styles": ("styles", "style", "genre", "genres", "genero"),
}

REQUIRED_FIELDS: tuple[str, ...] = ("artist", "title")


def match_columns(fields: list[str]) -> dict[str, list[str]]:
    """Map each canonical field to the header names that alias it, in alias order."""
    by_norm: dict[str, list[str]] = {}
    for name in fields:
        by_norm.setdefault(normalize(name), []).append(name)

    matched: dict[str, list[str]] = {}
    for canonical, aliases in COLUMN_ALIASES.items():
        columns: list[str] = []
        for alias in aliases:
            columns.extend(by_norm.get(alias, []))
        matched[canonical] = columns
    return matched


def has_required_columns(fields: list[str]) -> bool:
    """True when the header has at least one artist-like and one title-like column."""
    matched = match_columns(fields)
    return all(matched[f] for f in REQUIRED_FIELDS)


def resolve_field(
    row: Mapping[str, str],
    field: str,
    columns: dict[str, list[str]] | None = None,
) -> str:
    """Return the first non-empty value among *field*'s alias columns.

    Args:
        row: One parsed CSV row keyed by header name.
        field: Canonical field name (``artist``, ``title`` or ``styles``).
        columns: Output of :func:`match_columns` for the row's header.
            Computed from the row's own keys when omitted.

    Returns:
        The raw cell value, or ``""`` if no alias column holds a value.
    """
    if field not in COLUMN_ALIASES:
        raise KeyError(f"Unknown catalog field: {field}")
    if columns is None:
        columns = match_columns(list(row.keys()))
    for name in columns.get(field, []):
        value = row.get(name)
        if value is not None and str(value).strip():
            return str(value)
    return ""
