"""Utility modules for Cancionero.

- **errors** -- Domain exception hierarchy rooted at CancioneroError; the API
  middleware maps each subclass onto an HTTP status.
- **logging** -- structlog setup with a dual-renderer pattern: coloured
  console output in development, structured JSON in production.
- **text_normalizer** -- Search normalization for catalog text plus the
  whitespace cleaner used on request form fields.
"""

# -- Domain exception hierarchy --------------------------------------------
from cancionero.utils.errors import (
    CancioneroError,
    ConfigurationError,
    CsvSchemaError,
    InvalidArgumentError,
    NotFoundError,
    StorageError,
    UnauthorizedError,
    ValidationError,
)

# -- Structured logging setup ----------------------------------------------
from cancionero.utils.logging import configure_logging, get_logger

# -- Text normalization ------------------------------------------------------
from cancionero.utils.text_normalizer import (
    clean_text,
    escape_for_literal_match,
    normalize,
    tokenize,
)

__all__ = [
    "CancioneroError",
    "ConfigurationError",
    "CsvSchemaError",
    "InvalidArgumentError",
    "NotFoundError",
    "StorageError",
    "UnauthorizedError",
    "ValidationError",
    "clean_text",
    "configure_logging",
    "escape_for_literal_match",
    "get_logger",
    "normalize",
    "tokenize",
]
