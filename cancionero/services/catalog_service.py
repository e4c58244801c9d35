"""Read-side catalog service: search, pagination and artist browsing.

Query-string parsing is deliberately forgiving.  ``page``/``limit`` keep
their leading integer (``"3abc"`` → 3, ``"abc"`` → default) and are
clamped to at least 1.  ``limit=all`` or ``limit=0`` asks for the whole
result set, capped at ``max_limit``, as a single page: ``total_pages`` is 1
and ``has_next`` is False even when the cap cut the result short.
"""

from __future__ import annotations

import math
import re
from typing import Any, Iterable

from cancionero.interfaces.catalog_provider import ICatalogProvider
from cancionero.models.song import ArtistCount, ArtistSongs, SongPage
from cancionero.utils.logging import get_logger
from cancionero.utils.text_normalizer import normalize, tokenize

_logger = get_logger(__name__)

DEFAULT_PAGE_SIZE = 20
DEFAULT_MAX_LIMIT = 2000

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")
_ALL_LIMITS = ("all", "0")


def parse_int(value: Any, default: int, minimum: int = 1) -> int:
    """Parse the leading integer of *value*; *default* when there is none."""
    if value is None:
        return default
    if isinstance(value, int) and not isinstance(value, bool):
        return max(value, minimum)
    match = _LEADING_INT.match(str(value))
    if match is None:
        return default
    return max(int(match.group(1)), minimum)


def is_all_limit(limit: Any) -> bool:
    """True for ``limit=all`` or ``limit=0``, the "whole result set" request."""
    return limit is not None and str(limit).strip().lower() in _ALL_LIMITS


def resolve_paging(
    page: Any,
    limit: Any,
    max_limit: int = DEFAULT_MAX_LIMIT,
    default_page_size: int = DEFAULT_PAGE_SIZE,
) -> tuple[int, int]:
    """Return ``(page, per_page)`` from raw query values."""
    page_num = parse_int(page, 1)
    if is_all_limit(limit):
        return 1, max_limit
    per_page = min(parse_int(limit, default_page_size), max_limit)
    return page_num, per_page


def parse_styles(style: Iterable[str] | str | None = None, styles: str | None = None) -> list[str]:
    """Merge ``?style=a&style=b`` and ``?styles=a,b`` into unique normalized styles."""
    raw: list[str] = []
    if isinstance(style, str):
        raw.append(style)
    elif style:
        raw.extend(style)
    if styles:
        raw.extend(styles.split(","))

    result: list[str] = []
    for value in raw:
        norm = normalize(value)
        if norm and norm not in result:
            result.append(norm)
    return result


class CatalogService:
    """Search and browse the song catalog."""

    def __init__(
        self,
        catalog: ICatalogProvider,
        max_limit: int = DEFAULT_MAX_LIMIT,
        default_page_size: int = DEFAULT_PAGE_SIZE,
    ) -> None:
        self._catalog = catalog
        self._max_limit = max(1, max_limit)
        self._default_page_size = max(1, default_page_size)

    @property
    def max_limit(self) -> int:
        return self._max_limit

    async def search(
        self,
        query: str | None = "",
        styles: list[str] | None = None,
        page: Any = None,
        limit: Any = None,
    ) -> SongPage:
        """Return one page of songs matching every query token.

        Args:
            query: Free text; normalized and split on whitespace.
            styles: Already-normalized style filter (see :func:`parse_styles`).
            page: Raw page number (1-based).
            limit: Raw page size, or ``"all"``/``"0"``.
        """
        page_num, per_page = resolve_paging(page, limit, self._max_limit, self._default_page_size)
        single_page = is_all_limit(limit)
        tokens = tokenize(query)
        skip = (page_num - 1) * per_page

        items, total = await self._catalog.search(tokens, list(styles or []), skip, per_page)
        _logger.debug(
            "catalog_search",
            tokens=tokens,
            styles=styles,
            page=page_num,
            per_page=per_page,
            total=total,
        )
        return SongPage(
            items=items,
            total=total,
            page=page_num,
            per_page=per_page,
            total_pages=1 if single_page else max(1, math.ceil(total / per_page)),
            has_next=not single_page and skip + len(items) < total,
        )

    async def list_artists(self, query: str | None = "") -> list[ArtistCount]:
        return await self._catalog.list_artists(tokenize(query))

    async def list_songs_for_artist(self, name: str) -> ArtistSongs:
        """All titles for the artist whose normalized name equals *name*'s."""
        artist_norm = normalize(name)
        if not artist_norm:
            return ArtistSongs(artist=name or "", items=[])

        songs = await self._catalog.songs_for_artist(artist_norm)
        display = songs[0]["artist"] if songs else name
        return ArtistSongs(artist=display, items=[{"title": s["title"]} for s in songs])
