"""Shared-secret authentication for the admin console.

Every ``/api/admin`` route depends on :func:`require_admin_key`, which
compares the ``x-admin-key`` header against ``ADMIN_KEY`` in constant time.
Both values are trimmed first so a stray newline in the env file or a
pasted space in the client does not lock the host out.
"""

from __future__ import annotations

import hmac
from typing import Annotated

from fastapi import Header, Request

from cancionero.config.settings import Settings
from cancionero.utils.errors import ConfigurationError, UnauthorizedError


def admin_key_matches(provided: str | None, expected: str) -> bool:
    """Constant-time comparison of the trimmed keys (UTF-8 bytes)."""
    if not provided:
        return False
    return hmac.compare_digest(
        provided.strip().encode("utf-8"),
        expected.strip().encode("utf-8"),
    )


async def require_admin_key(
    request: Request,
    x_admin_key: Annotated[str | None, Header()] = None,
) -> None:
    """FastAPI dependency guarding the admin routes.

    Raises:
        ConfigurationError: ``ADMIN_KEY`` is not set on the server (500).
        UnauthorizedError: Header missing or wrong (401).
    """
    settings: Settings = request.app.state.settings
    expected = (settings.admin_key or "").strip()
    if not expected:
        raise ConfigurationError("ADMIN_KEY is not configured on the server")

    if not admin_key_matches(x_admin_key, expected):
        raise UnauthorizedError("Unauthorized")
