"""Request queue service: validation, enum coercion and live notifications.

# ─── HOW A REQUEST FLOWS ──────────────────────────────────────────────
#
#   POST /api/requests ──► RequestService.create()
#       1. clean_text() every string field (NBSP, whitespace runs, trim)
#       2. check required fields and length limits, collecting EVERY
#          violation into one ValidationError (the form shows them all)
#       3. coerce source/performer to a known value (or reject them when
#          STRICT_ENUMS is on)
#       4. await the insert
#       5. only then broadcast "request:new" to admins + watchers
#
# Status changes and deletions follow the same order: the database write
# is awaited before anything is emitted, so a client never hears about a
# change that did not commit.  Broadcast failures are logged and dropped.
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Callable, Iterable, Mapping

from cancionero.interfaces.notifier import INotifier
from cancionero.interfaces.request_provider import IRequestProvider
from cancionero.models.request import (
    MAX_LENGTHS,
    PERFORMER_VALUES,
    SOURCE_VALUES,
    STATUS_VALUES,
    Performer,
    RequestListing,
    RequestSource,
    RequestStatus,
    SongRequest,
    StatusChange,
)
from cancionero.utils.errors import InvalidArgumentError, NotFoundError, ValidationError
from cancionero.utils.logging import get_logger
from cancionero.utils.text_normalizer import clean_text

_logger = get_logger(__name__)

REQUIRED_FIELDS: tuple[str, ...] = ("fullName", "artist", "title")
MIN_FULL_NAME_LENGTH = 2

# Checked in order; the first non-empty one is stored as ``notes``.
NOTES_ALIASES: tuple[str, ...] = ("notes", "observaciones", "obs")

# Older clients sent source="user" for the public form.
_LEGACY_SOURCES = {"user": RequestSource.PUBLIC.value}

EVENT_NEW = "request:new"
EVENT_UPDATE = "request:update"
EVENT_DELETE = "request:delete"
EVENT_CLEAR = "requests:clear"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_status_filter(status_filter: str | Iterable[str] | None) -> list[str]:
    """Turn ``"pending,on_stage"`` (or a list of such strings) into valid statuses.

    Values must match a status exactly (surrounding whitespace aside);
    anything else is dropped.  An empty result means "no filter".
    """
    if not status_filter:
        return []
    parts = [status_filter] if isinstance(status_filter, str) else list(status_filter)

    statuses: list[str] = []
    for part in parts:
        for value in str(part).split(","):
            value = value.strip()
            if value in STATUS_VALUES and value not in statuses:
                statuses.append(value)
    return statuses


class RequestService:
    """Creates, lists and updates song requests and announces the changes.

    Parameters
    ----------
    requests:
        Request queue storage.
    notifier:
        Realtime fan-out.  ``None`` disables broadcasting (import tools, tests).
    strict_enums:
        When True, a non-empty unknown ``source``/``performer`` is a
        validation error instead of being coerced to the default.
    clock:
        Returns the current time; injectable for tests.
    """

    def __init__(
        self,
        requests: IRequestProvider,
        notifier: INotifier | None = None,
        strict_enums: bool = False,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._requests = requests
        self._notifier = notifier
        self._strict_enums = strict_enums
        self._clock = clock

    # -- Create ------------------------------------------------------------

    def validate(self, fields: Mapping[str, Any], quick: bool = False) -> dict[str, Any]:
        """Clean and validate raw form *fields*; return the document to store.

        Raises
        ------
        ValidationError
            With one ``{"field", "message"}`` entry per problem found.
        """
        errors: list[dict[str, str]] = []
        cleaned = {name: clean_text(fields.get(name)) for name in REQUIRED_FIELDS}

        for name in REQUIRED_FIELDS:
            if not cleaned[name]:
                errors.append({"field": name, "message": f"{name} is required"})
        if cleaned["fullName"] and len(cleaned["fullName"]) < MIN_FULL_NAME_LENGTH:
            errors.append(
                {
                    "field": "fullName",
                    "message": f"fullName must be at least {MIN_FULL_NAME_LENGTH} characters",
                }
            )

        notes = next(
            (clean_text(fields.get(alias)) for alias in NOTES_ALIASES if clean_text(fields.get(alias))),
            "",
        )

        for name, value in (*cleaned.items(), ("notes", notes)):
            limit = MAX_LENGTHS[name]
            if len(value) > limit:
                errors.append({"field": name, "message": f"{name} must be at most {limit} characters"})

        if quick:
            source = RequestSource.QUICK.value
            performer = Performer.HOST.value
        else:
            source = self._coerce_source(fields.get("source"), errors)
            default_performer = (
                Performer.HOST.value if source == RequestSource.QUICK.value else Performer.GUEST.value
            )
            performer = self._coerce_enum(
                "performer", fields.get("performer"), PERFORMER_VALUES, default_performer, errors
            )

        if errors:
            raise ValidationError("Invalid request", details=errors)

        return {
            **cleaned,
            "notes": notes or None,
            "source": source,
            "performer": performer,
            "status": RequestStatus.PENDING.value,
        }

    def _coerce_source(self, raw: Any, errors: list[dict[str, str]]) -> str:
        value = clean_text(raw).lower()
        value = _LEGACY_SOURCES.get(value, value)
        return self._coerce_enum("source", value, SOURCE_VALUES, RequestSource.PUBLIC.value, errors)

    def _coerce_enum(
        self,
        name: str,
        raw: Any,
        allowed: tuple[str, ...],
        default: str,
        errors: list[dict[str, str]],
    ) -> str:
        value = clean_text(raw).lower()
        if value in allowed:
            return value
        if value and self._strict_enums:
            errors.append(
                {"field": name, "message": f"{name} must be one of: {', '.join(allowed)}"}
            )
        return default

    async def create(self, fields: Mapping[str, Any], quick: bool = False) -> SongRequest:
        """Validate and store a new request, then broadcast ``request:new``."""
        document = self.validate(fields, quick=quick)
        now = self._clock()
        document["createdAt"] = now
        document["updatedAt"] = now

        request = await self._requests.insert(document)
        _logger.info(
            "request_created",
            request_id=request.id,
            source=request.source.value,
            performer=request.performer.value,
        )
        await self._broadcast(EVENT_NEW, request.to_wire())
        return request

    # -- Read --------------------------------------------------------------

    async def list_requests(self, status_filter: str | Iterable[str] | None = None) -> RequestListing:
        """Return the queue newest first, with counters for every status."""
        statuses = parse_status_filter(status_filter)
        data = await self._requests.list_requests(statuses or None)
        stored = await self._requests.count_by_status()
        counts = {status: int(stored.get(status, 0)) for status in STATUS_VALUES}
        return RequestListing(data=data, counts=counts)

    # -- Update / delete ---------------------------------------------------

    async def set_status(self, request_id: str, status: Any) -> SongRequest:
        """Move a request to *status* and broadcast ``request:update``.

        Raises
        ------
        InvalidArgumentError
            Unknown status or malformed id.
        NotFoundError
            No request with that id.
        """
        value = status.strip() if isinstance(status, str) else ""
        if value not in STATUS_VALUES:
            raise InvalidArgumentError(
                "Invalid status",
                details=[{"field": "status", "message": f"status must be one of: {', '.join(STATUS_VALUES)}"}],
            )

        updated = await self._requests.update_status(request_id, value, self._clock())
        if updated is None:
            raise NotFoundError("Request not found")

        _logger.info("request_status_changed", request_id=updated.id, status=value)
        change = StatusChange(id=updated.id, status=updated.status, updated_at=updated.updated_at)
        await self._broadcast(EVENT_UPDATE, change.to_wire())
        return updated

    async def remove(self, request_id: str) -> int:
        """Delete one request and broadcast ``request:delete``."""
        deleted = await self._requests.delete(request_id)
        if not deleted:
            raise NotFoundError("Request not found")
        _logger.info("request_deleted", request_id=request_id)
        await self._broadcast(EVENT_DELETE, {"id": request_id})
        return 1

    async def remove_all(self) -> int:
        """Delete the whole queue and broadcast ``requests:clear``."""
        deleted = await self._requests.delete_all()
        _logger.info("requests_cleared", deleted=deleted)
        await self._broadcast(EVENT_CLEAR, None)
        return deleted

    async def _broadcast(self, event: str, payload: dict[str, Any] | None) -> None:
        if self._notifier is None:
            return
        try:
            await self._notifier.notify_request_watchers(event, payload)
        except Exception as exc:
            _logger.warning("broadcast_failed", event_name=event, error=str(exc))
