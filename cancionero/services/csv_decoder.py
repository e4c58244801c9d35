# =============================================================================
# cancionero/services/csv_decoder.py — Catalog CSV Decoding & Schema Sniffing
# =============================================================================
#
# Turns the raw bytes of a spreadsheet export into header-keyed rows.
# Catalog files arrive from Excel on Windows, LibreOffice, Google Sheets...
# so neither the encoding nor the delimiter can be trusted.
#
# Decoding order (first match wins):
#   1. A forced encoding (CSV_ENCODING / --encoding) bypasses every heuristic.
#   2. Empty input decodes to "".
#   3. UTF-8 BOM, then UTF-16 LE/BE BOMs.
#   4. More than 10% NUL bytes in the first 512 bytes → UTF-16 LE without BOM.
#   5. UTF-8; if that produced U+FFFD replacement characters the file is
#      re-read as Windows-1252 (Excel's "CSV" default on Spanish locales).
#
# Schema sniffing:
#   - An Excel "sep=;" first line is dropped.
#   - The delimiter is guessed from the header line (";" vs ",").
#   - If the parse yields no artist-like or no title-like column, or no rows,
#     it is retried once with the other delimiter.  A second failure raises
#     CsvSchemaError before anything is written to the database.
# =============================================================================

from __future__ import annotations

import csv
import io
import re
from dataclasses import dataclass, field

from cancionero.services.column_aliases import has_required_columns
from cancionero.utils.errors import ConfigurationError, CsvSchemaError
from cancionero.utils.logging import get_logger

_logger = get_logger(__name__)

_UTF8_BOM = b"\xef\xbb\xbf"
_UTF16_LE_BOM = b"\xff\xfe"
_UTF16_BE_BOM = b"\xfe\xff"

_NULL_PROBE_BYTES = 512
_NULL_RATIO_THRESHOLD = 0.1

# Accepted CSV_ENCODING values (lowercased, "-" and "_" removed) → Python codec.
_FORCED_CODECS: dict[str, str] = {
    "utf8": "utf-8-sig",
    "win1252": "cp1252",
    "windows1252": "cp1252",
    "cp1252": "cp1252",
    "latin1": "cp1252",
    "utf16le": "utf-16-le",
    "utf16be": "utf-16-be",
}

_SEP_DIRECTIVE = re.compile(r"^sep=.", re.IGNORECASE)


@dataclass(frozen=True)
class ParsedCsv:
    """Rows keyed by lowercased header name, plus the header itself."""

    rows: list[dict[str, str]] = field(default_factory=list)
    fields: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class SniffResult:
    """Outcome of :func:`sniff_catalog_csv`."""

    rows: list[dict[str, str]]
    fields: list[str]
    delimiter: str
    retried: bool = False
    directive_found: bool = False


# ─── DECODING ────────────────────────────────────────────────────────────────


def decode(data: bytes, forced_encoding: str | None = "auto") -> str:
    """Decode a catalog file's bytes into text.

    Args:
        data: Raw file contents.
        forced_encoding: ``"auto"`` (or empty) to detect; otherwise one of
            ``utf8``, ``win1252``/``latin1``, ``utf16le``, ``utf16be``.

    Raises:
        ConfigurationError: If *forced_encoding* is not a supported value.
    """
    forced = (forced_encoding or "auto").strip().lower()
    if forced != "auto":
        key = forced.replace("-", "").replace("_", "")
        codec = _FORCED_CODECS.get(key)
        if codec is None:
            raise ConfigurationError(
                f"Unsupported CSV encoding {forced_encoding!r}; "
                "use auto, utf8, win1252, latin1, utf16le or utf16be"
            )
        _logger.info("csv_encoding_forced", encoding=forced)
        return data.decode(codec, errors="replace")

    if not data:
        return ""

    if data.startswith(_UTF8_BOM):
        return data[len(_UTF8_BOM):].decode("utf-8", errors="replace")
    if data.startswith(_UTF16_LE_BOM):
        return data[len(_UTF16_LE_BOM):].decode("utf-16-le", errors="replace")
    if data.startswith(_UTF16_BE_BOM):
        return data[len(_UTF16_BE_BOM):].decode("utf-16-be", errors="replace")

    probe = data[:_NULL_PROBE_BYTES]
    if probe.count(0) / len(probe) > _NULL_RATIO_THRESHOLD:
        _logger.info("csv_encoding_detected", encoding="utf-16-le", reason="null_bytes")
        return data.decode("utf-16-le", errors="replace")

    text = data.decode("utf-8", errors="replace")
    if "\ufffd" in text:
        _logger.info("csv_encoding_detected", encoding="cp1252", reason="invalid_utf8")
        return data.decode("cp1252", errors="replace")
    return text


# ─── DELIMITERS & PARSING ────────────────────────────────────────────────────


def detect_delimiter(header_line: str) -> str:
    """Return ``";"`` when the header has more semicolons than commas, else ``","``."""
    if header_line.count(";") > header_line.count(","):
        return ";"
    return ","


def strip_excel_directive(text: str) -> tuple[str, bool]:
    """Drop an Excel ``sep=X`` first line.  Returns ``(text, directive_found)``."""
    first, _, rest = text.partition("\n")
    if _SEP_DIRECTIVE.match(first):
        return rest, True
    return text, False


def parse_rows(text: str, delimiter: str) -> ParsedCsv:
    """Parse CSV *text* with a header row.

    Quotes are ``"`` and are escaped by doubling.  Fully blank lines are
    skipped.  Header names are trimmed and lowercased.  Cells beyond the
    header width are joined (with *delimiter*) into the last column, so an
    unquoted ``Rock;Pop`` styles cell survives a ``;``-delimited file.
    Missing trailing cells become empty strings.

    Raises:
        CsvSchemaError: If the text cannot be tokenized at all.
    """
    reader = csv.reader(
        io.StringIO(text, newline=""),
        delimiter=delimiter,
        quotechar='"',
        doublequote=True,
    )

    header: list[str] | None = None
    rows: list[dict[str, str]] = []
    try:
        for cells in reader:
            if not any(cell.strip() for cell in cells):
                continue
            if header is None:
                header = [cell.strip().lower() for cell in cells]
                continue

            width = len(header)
            if len(cells) > width:
                cells = cells[: width - 1] + [delimiter.join(cells[width - 1:])]
            rows.append({name: (cells[i] if i < len(cells) else "") for i, name in enumerate(header)})
    except csv.Error as exc:
        raise CsvSchemaError(f"Malformed CSV: {exc}") from exc

    return ParsedCsv(rows=rows, fields=header or [])


def _other_delimiter(delimiter: str) -> str:
    return "," if delimiter == ";" else ";"


def _is_usable(parsed: ParsedCsv) -> bool:
    return bool(parsed.rows) and has_required_columns(parsed.fields)


def sniff_catalog_csv(text: str) -> SniffResult:
    """Detect delimiter and columns, parse, and retry once with the other delimiter.

    Raises:
        CsvSchemaError: If neither delimiter yields artist and title
            columns with at least one row.
    """
    text, directive_found = strip_excel_directive(text)
    if directive_found:
        _logger.info("csv_excel_directive_skipped")

    header_line = next((line for line in text.splitlines() if line.strip()), "")
    delimiter = detect_delimiter(header_line)
    parsed = parse_rows(text, delimiter)
    detected_fields = parsed.fields
    _logger.info("csv_headers_detected", delimiter=delimiter, fields=parsed.fields)

    retried = False
    if not _is_usable(parsed):
        retried = True
        delimiter = _other_delimiter(delimiter)
        parsed = parse_rows(text, delimiter)
        _logger.info("csv_headers_retried", delimiter=delimiter, fields=parsed.fields)

    if not _is_usable(parsed):
        raise CsvSchemaError(
            "No artist/title columns detected in CSV, or it has no rows",
            fields=detected_fields,
        )

    return SniffResult(
        rows=parsed.rows,
        fields=parsed.fields,
        delimiter=delimiter,
        retried=retried,
        directive_found=directive_found,
    )
