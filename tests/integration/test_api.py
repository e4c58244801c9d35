"""Integration tests for the REST API using TestClient and an in-memory MongoDB."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest
import socketio
from bson import ObjectId
from fastapi.testclient import TestClient

from cancionero.main import create_app, create_asgi_app
from cancionero.services.catalog_service import CatalogService
from cancionero.services.request_service import RequestService

_ADMIN = {"x-admin-key": "s3cret"}
_FORM = {"fullName": "Ana López", "artist": "Gilda", "title": "Fuiste"}


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


@pytest.fixture
def seeded_db(mongo_db, make_song):
    asyncio.run(
        mongo_db["songs"].insert_many(
            [
                make_song("Fito Páez", "Mariposa Tecknicolor", ["Rock", "Pop"]),
                make_song("Fito Páez", "11 y 6", ["Rock"]),
                make_song("Soda Stereo", "De Música Ligera", ["Rock"]),
                make_song("Gilda", "No Me Arrepiento de Este Amor", ["Cumbia"]),
            ]
        )
    )
    return mongo_db


@pytest.fixture
def build_app(test_settings, mock_config, seeded_db, catalog_provider, request_provider, mock_notifier):
    """Factory for FastAPI apps wired to mongomock providers; the lifespan is not run."""

    def _build(**http_overrides):
        app_config = {**mock_config, "http": {**mock_config["http"], **http_overrides}}
        application = create_app(test_settings, app_config)
        application.state.catalog_service = CatalogService(catalog_provider, max_limit=2000)
        application.state.request_service = RequestService(request_provider, notifier=mock_notifier)
        return application

    return _build


@pytest.fixture
def app(build_app):
    return build_app()


@pytest.fixture
def client(app) -> TestClient:
    return TestClient(app)


def _create(client: TestClient, **overrides) -> dict:
    response = client.post("/api/requests", json={**_FORM, **overrides})
    assert response.status_code == 201
    return response.json()["request"]


# ---------------------------------------------------------------------------
# System
# ---------------------------------------------------------------------------


class TestSystem:
    def test_health(self, client) -> None:
        response = client.get("/api/health")
        assert response.status_code == 200
        body = response.json()
        assert body["ok"] is True
        assert body["status"] == "ok"
        assert body["version"] == "0.1.0"
        assert body["env"] == "test"

    def test_unknown_api_path_uses_error_shape(self, client) -> None:
        response = client.get("/api/nope")
        assert response.status_code == 404
        assert response.json()["error"] == "NOT_FOUND"

    def test_cors_preflight(self, client) -> None:
        response = client.options(
            "/api/admin/requests",
            headers={
                "Origin": "https://karaoke.example",
                "Access-Control-Request-Method": "PATCH",
                "Access-Control-Request-Headers": "x-admin-key",
            },
        )
        assert response.status_code == 200
        assert response.headers["access-control-allow-origin"] == "*"

    def test_unexpected_error_is_generic_500(self, app, client) -> None:
        failing = MagicMock()
        failing.search = AsyncMock(side_effect=RuntimeError("mongodb://user:pw@db lost"))
        app.state.catalog_service = failing

        response = client.get("/api/songs")

        assert response.status_code == 500
        assert response.json() == {"error": "SERVER_ERROR", "message": "Internal server error"}

    def test_asgi_wrapper_mounts_socketio(self, app) -> None:
        assert isinstance(create_asgi_app(app), socketio.ASGIApp)

    def test_large_responses_are_gzipped(self, build_app) -> None:
        client = TestClient(build_app(gzip_minimum_size=100))

        response = client.get("/api/songs", params={"limit": "all"}, headers={"Accept-Encoding": "gzip"})

        assert response.status_code == 200
        assert response.headers["content-encoding"] == "gzip"
        assert response.json()["total"] == 4

    def test_small_responses_are_not_compressed(self, client) -> None:
        response = client.get("/api/health", headers={"Accept-Encoding": "gzip"})
        assert "content-encoding" not in response.headers

    def test_oversized_body_rejected(self, client, mock_notifier) -> None:
        response = client.post("/api/requests", json={**_FORM, "notes": "x" * 1_100_000})

        assert response.status_code == 413
        assert response.json()["error"] == "PAYLOAD_TOO_LARGE"
        mock_notifier.notify_request_watchers.assert_not_awaited()

    def test_body_limit_is_configurable(self, build_app) -> None:
        client = TestClient(build_app(max_body_bytes=256))
        assert client.post("/api/requests", json={**_FORM, "notes": "x" * 300}).status_code == 413
        assert client.post("/api/requests", json=_FORM).status_code == 201


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------


class TestCatalogRoutes:
    def test_search(self, client) -> None:
        response = client.get("/api/songs", params={"q": "FITO páez"})

        assert response.status_code == 200
        body = response.json()
        assert body["total"] == 2
        assert body["perPage"] == 20
        assert body["totalPages"] == 1
        assert body["hasNext"] is False
        assert [item["title"] for item in body["items"]] == ["11 y 6", "Mariposa Tecknicolor"]
        assert set(body["items"][0]) == {"id", "artist", "title", "styles"}
        assert response.headers["x-total-count"] == "2"
        assert "max-age=60" in response.headers["cache-control"]

    def test_pagination(self, client) -> None:
        body = client.get("/api/songs", params={"page": "2", "limit": "3"}).json()
        assert body["page"] == 2
        assert body["total"] == 4
        assert body["totalPages"] == 2
        assert len(body["items"]) == 1
        assert body["hasNext"] is False

    def test_garbage_paging_falls_back(self, client) -> None:
        body = client.get("/api/songs", params={"page": "abc", "limit": "-3"}).json()
        assert body["page"] == 1
        assert body["perPage"] == 1

    def test_limit_all(self, client) -> None:
        body = client.get("/api/songs", params={"limit": "all", "page": "5"}).json()
        assert body["page"] == 1
        assert body["perPage"] == 2000
        assert body["totalPages"] == 1
        assert len(body["items"]) == 4

    def test_style_filters(self, client) -> None:
        assert client.get("/api/songs", params={"style": "CUMBIA"}).json()["total"] == 1
        assert client.get("/api/songs?style=pop&style=cumbia").json()["total"] == 2
        assert client.get("/api/songs", params={"styles": "pop,cumbia"}).json()["total"] == 2

    def test_artists(self, client) -> None:
        body = client.get("/api/artists").json()
        assert {"artist": "Fito Páez", "count": 2} in body["items"]
        assert len(body["items"]) == 3

    def test_artist_songs(self, client) -> None:
        response = client.get("/api/artists/fito paez/songs")
        assert response.status_code == 200
        assert response.json() == {
            "artist": "Fito Páez",
            "items": [{"title": "11 y 6"}, {"title": "Mariposa Tecknicolor"}],
        }


# ---------------------------------------------------------------------------
# Public request submission
# ---------------------------------------------------------------------------


class TestRequestRoutes:
    def test_create(self, client, mock_notifier) -> None:
        response = client.post("/api/requests", json={**_FORM, "observaciones": "en Do"})

        assert response.status_code == 201
        body = response.json()
        assert body["ok"] is True
        request = body["request"]
        assert request["fullName"] == "Ana López"
        assert request["notes"] == "en Do"
        assert request["status"] == "pending"
        assert request["source"] == "public"
        assert request["performer"] == "guest"
        assert ObjectId.is_valid(request["id"])
        assert "createdAt" in request
        mock_notifier.notify_request_watchers.assert_awaited_once()
        assert mock_notifier.notify_request_watchers.await_args.args[0] == "request:new"

    def test_create_reports_every_invalid_field(self, client, mock_notifier) -> None:
        response = client.post("/api/requests", json={"fullName": "A", "title": "x" * 181})

        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "VALIDATION_ERROR"
        fields = [d["field"] for d in body["details"]]
        assert fields == ["artist", "fullName", "title"]
        mock_notifier.notify_request_watchers.assert_not_awaited()

    def test_create_without_body(self, client) -> None:
        response = client.post("/api/requests")
        assert response.status_code == 400
        assert response.json()["error"] == "VALIDATION_ERROR"

    def test_create_with_malformed_json(self, client) -> None:
        response = client.post(
            "/api/requests",
            content=b"{not json",
            headers={"Content-Type": "application/json"},
        )
        assert response.status_code == 400
        assert response.json()["error"] == "VALIDATION_ERROR"

    def test_quick_add(self, client) -> None:
        response = client.post("/api/requests/quick", json={**_FORM, "source": "public", "performer": "guest"})
        assert response.status_code == 201
        request = response.json()["request"]
        assert request["source"] == "quick"
        assert request["performer"] == "host"


# ---------------------------------------------------------------------------
# Admin console
# ---------------------------------------------------------------------------


class TestAdminAuth:
    def test_missing_key(self, client) -> None:
        response = client.get("/api/admin/requests")
        assert response.status_code == 401
        assert response.json()["error"] == "UNAUTHORIZED"
        assert "no-store" in response.headers["cache-control"]

    def test_wrong_key(self, client) -> None:
        response = client.get("/api/admin/ping", headers={"x-admin-key": "nope"})
        assert response.status_code == 401

    def test_key_not_configured(self, app, client, test_settings) -> None:
        app.state.settings = test_settings.model_copy(update={"admin_key": ""})
        response = client.get("/api/admin/ping", headers=_ADMIN)
        assert response.status_code == 500
        assert response.json()["error"] == "CONFIGURATION_ERROR"

    def test_ping(self, client) -> None:
        response = client.get("/api/admin/ping", headers={"x-admin-key": " s3cret "})
        assert response.status_code == 200
        assert response.json()["ok"] is True
        assert response.headers["pragma"] == "no-cache"
        assert response.headers["expires"] == "0"

    def test_public_routes_are_not_no_store(self, client) -> None:
        response = client.get("/api/health")
        assert "no-store" not in response.headers.get("cache-control", "")


class TestAdminQueue:
    def test_list_with_counts(self, client) -> None:
        _create(client)
        _create(client, title="Corazón Valiente")

        response = client.get("/api/admin/requests", headers=_ADMIN)

        assert response.status_code == 200
        body = response.json()
        assert len(body["data"]) == 2
        assert body["counts"] == {"pending": 2, "on_stage": 0, "done": 0, "no_show": 0}
        assert "no-store" in response.headers["cache-control"]

    def test_status_filter(self, client) -> None:
        first = _create(client)
        _create(client, title="Corazón Valiente")
        client.patch(f"/api/admin/requests/{first['id']}/status", json={"status": "done"}, headers=_ADMIN)

        body = client.get("/api/admin/requests?status=done,bogus", headers=_ADMIN).json()

        assert [r["id"] for r in body["data"]] == [first["id"]]
        assert body["counts"]["done"] == 1

    def test_update_status(self, client, mock_notifier) -> None:
        created = _create(client)
        mock_notifier.reset_mock()

        response = client.patch(
            f"/api/admin/requests/{created['id']}/status",
            json={"status": "on_stage"},
            headers=_ADMIN,
        )

        assert response.status_code == 200
        assert response.json()["status"] == "on_stage"
        assert response.json()["fullName"] == "Ana López"
        mock_notifier.notify_request_watchers.assert_awaited_once()
        assert mock_notifier.notify_request_watchers.await_args.args[0] == "request:update"

    def test_update_invalid_status(self, client) -> None:
        created = _create(client)
        response = client.patch(
            f"/api/admin/requests/{created['id']}/status",
            json={"status": "asleep"},
            headers=_ADMIN,
        )
        assert response.status_code == 400
        assert response.json()["error"] == "INVALID_ARGUMENT"

    def test_status_must_match_exactly(self, client) -> None:
        created = _create(client)
        response = client.patch(
            f"/api/admin/requests/{created['id']}/status",
            json={"status": "ON_STAGE"},
            headers=_ADMIN,
        )
        assert response.status_code == 400
        assert response.json()["error"] == "INVALID_ARGUMENT"

    def test_update_malformed_id(self, client) -> None:
        response = client.patch("/api/admin/requests/123/status", json={"status": "done"}, headers=_ADMIN)
        assert response.status_code == 400
        assert response.json()["error"] == "INVALID_ARGUMENT"

    def test_update_unknown_id(self, client) -> None:
        response = client.patch(
            f"/api/admin/requests/{ObjectId()}/status",
            json={"status": "done"},
            headers=_ADMIN,
        )
        assert response.status_code == 404
        assert response.json()["error"] == "NOT_FOUND"

    def test_delete_one(self, client, mock_notifier) -> None:
        created = _create(client)

        response = client.delete(f"/api/admin/requests/{created['id']}", headers=_ADMIN)

        assert response.json() == {"ok": True, "deleted": 1}
        mock_notifier.notify_request_watchers.assert_awaited_with("request:delete", {"id": created["id"]})
        assert client.delete(f"/api/admin/requests/{created['id']}", headers=_ADMIN).status_code == 404

    def test_delete_all(self, client, mock_notifier) -> None:
        _create(client)
        _create(client)

        response = client.delete("/api/admin/requests", headers=_ADMIN)

        assert response.json() == {"ok": True, "deleted": 2}
        mock_notifier.notify_request_watchers.assert_awaited_with("requests:clear", None)
        assert client.get("/api/admin/requests", headers=_ADMIN).json()["data"] == []
