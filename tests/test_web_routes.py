"""Tests for the FastAPI render service."""

import time
from urllib.parse import quote

import pytest
from fastapi.testclient import TestClient

from pagelens.config import Settings
from pagelens.web.app import create_app


@pytest.fixture
def client(server_settings: Settings):
    app = create_app(server_settings, schedule=False)
    with TestClient(app) as client:
        yield client


def render_path(url: str, template: str) -> str:
    return f"/render?url={quote(url, safe='')}&template={quote(template, safe='')}"


class TestCatalogRoutes:
    def test_status_before_refresh(self, client: TestClient) -> None:
        response = client.get("/api/status")

        assert response.status_code == 200
        assert response.json() == {
            "parsers": [],
            "templates": [],
            "last_refresh_at": None,
            "last_refresh_error": None,
            "refreshing": False,
        }

    def test_refresh_and_status(self, client: TestClient) -> None:
        """An explicit refresh shall load the catalog and report failures."""
        response = client.post("/api/refresh")

        assert response.status_code == 200
        data = response.json()
        assert data["ok"] is False
        assert data["parsers"] == 1
        assert data["templates"] == 1
        assert "Invalid definition" in data["error"]

        status = client.get("/api/status").json()
        assert [p["name"] for p in status["parsers"]] == ["Bug Court cases"]
        assert [t["name"] for t in status["templates"]] == ["Compact"]
        assert status["last_refresh_at"] is not None
        assert status["last_refresh_error"] == data["error"]


class TestRenderRoute:
    def test_render_case_page(self, client: TestClient, server_url: str) -> None:
        client.post("/api/refresh")
        url = f"{server_url}/cases/BCC-2024-001"

        response = client.get(render_path(url, "Compact"))

        assert response.status_code == 200
        assert response.headers["content-type"] == "text/html; charset=utf-8"
        assert "<h1>Beetle v. Ant Colony</h1>" in response.text
        assert f'href="{url}"' in response.text

    def test_unknown_template(self, client: TestClient, server_url: str) -> None:
        client.post("/api/refresh")

        response = client.get(render_path(f"{server_url}/cases/1", "Fancy"))

        assert response.status_code == 404
        assert response.headers["content-type"].startswith("text/plain")
        assert response.text == "Template Fancy not found"

    def test_unmatched_url(self, client: TestClient) -> None:
        client.post("/api/refresh")

        response = client.get(render_path("https://nomatch.example", "Compact"))

        assert response.status_code == 404
        assert response.text == "No matching parsers for https://nomatch.example"

    def test_missing_parameters(self, client: TestClient) -> None:
        """A request without parameters shall be treated as not found."""
        response = client.get("/render")

        assert response.status_code == 404

    def test_upstream_failure(self, client: TestClient, server_url: str) -> None:
        client.post("/api/refresh")
        url = f"{server_url}/cases/BCC-1999-404"

        response = client.get(render_path(url, "Compact"))

        assert response.status_code == 500
        assert response.text == f"Not Found: {url}"


class TestLifespan:
    def test_scheduler_loads_catalog_on_startup(self, server_settings: Settings) -> None:
        """With scheduling on, the never-loaded catalog is refreshed at startup."""
        app = create_app(server_settings)

        with TestClient(app) as client:
            status = client.get("/api/status").json()
            for _ in range(50):
                if status["last_refresh_at"] is not None:
                    break
                time.sleep(0.1)
                status = client.get("/api/status").json()

        assert [t["name"] for t in status["templates"]] == ["Compact"]
        assert app.state.service is None

    def test_service_required(self, server_settings: Settings) -> None:
        """Routes shall fail loudly when the lifespan has not run."""
        client = TestClient(create_app(server_settings, schedule=False))

        with pytest.raises(RuntimeError, match="not initialized"):
            client.get("/api/status")
