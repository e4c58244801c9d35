"""Public interface definitions for the storage and realtime adapters.

Business logic (importer, services, routes) talks only to these abstract
base classes.  Concrete adapters are built once in ``cancionero.main``
(or the import CLI) and injected, so tests can swap in in-memory stores
and mock notifiers.

CONCRETE PROVIDER MAP:
    Interface            →  Concrete implementation
    ─────────────────────────────────────────────────────────────────────
    ICatalogProvider     →  MongoCatalogProvider   (cancionero/providers/catalog/)
    IRequestProvider     →  MongoRequestProvider   (cancionero/providers/requests/)
    INotifier            →  SocketIONotifier       (cancionero/realtime/)
"""

from cancionero.interfaces.catalog_provider import ICatalogProvider
from cancionero.interfaces.notifier import ROOM_ADMINS, ROOM_PUBLIC, ROOM_REQUESTS, INotifier
from cancionero.interfaces.request_provider import IRequestProvider

__all__ = [
    "ICatalogProvider",
    "INotifier",
    "IRequestProvider",
    "ROOM_ADMINS",
    "ROOM_PUBLIC",
    "ROOM_REQUESTS",
]
