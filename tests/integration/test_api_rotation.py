"""
Integration tests for the rotation API.
"""

from pathlib import Path

import httpx
import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from rotatv.api import api_router
from rotatv.config import load_config
from rotatv.main import create_app


@pytest.fixture
def app(rotation) -> FastAPI:
    """API app wired to the test rotation, without the full lifespan."""
    app = FastAPI()
    app.include_router(api_router)
    app.state.rotation = rotation
    return app


@pytest.fixture
async def client(app: FastAPI):
    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test") as client:
        yield client


@pytest.mark.integration
class TestRotationEndpoints:
    """Tests for /api/rotation."""

    async def test_status(self, client, rotation):
        await rotation.start()

        response = await client.get("/api/rotation/status")

        assert response.status_code == 200
        data = response.json()
        assert data["running"] is True
        assert data["cursor"]["current"]["id"] == rotation.current().id

    async def test_queue(self, client, rotation):
        await rotation.add("v2")

        response = await client.get("/api/rotation/queue")

        assert response.status_code == 200
        assert response.json()["items"][0]["id"] == "v2"
        assert response.json()["items"][0]["position"] == 1

    async def test_enqueue(self, client, rotation):
        response = await client.post("/api/rotation/queue/v3", json={"requested_by": "web"})

        assert response.status_code == 201
        assert response.json()["position"] == 1
        assert rotation.next_up().requested_by == "web"

    async def test_enqueue_unknown(self, client):
        response = await client.post("/api/rotation/queue/v99")

        assert response.status_code == 404
        assert response.json()["detail"] == "A video with ID v99 does not exist!"

    async def test_enqueue_duplicate(self, client, rotation):
        await rotation.add("v3")

        response = await client.post("/api/rotation/queue/v3")

        assert response.status_code == 409

    async def test_skip(self, client, rotation):
        await rotation.start()
        first = rotation.current()

        response = await client.post("/api/rotation/skip")

        assert response.status_code == 200
        assert response.json()["skipped"]["id"] == first.id
        assert response.json()["now_playing"]["id"] == rotation.current().id

    async def test_vote(self, client, rotation):
        await rotation.start()
        await rotation.cast_vote("u1", 2)

        response = await client.get("/api/rotation/vote")

        data = response.json()
        assert data["active"] is True
        assert data["ballots"] == 1
        assert [c["votes"] for c in data["choices"]] == [0, 1, 0]

    async def test_health(self, client, rotation):
        response = await client.get("/api/health")
        assert response.json()["status"] == "degraded"

        await rotation.start()

        response = await client.get("/api/health")
        assert response.json()["status"] == "ok"
        assert response.json()["components"]["rotation"] == "running"


@pytest.mark.integration
class TestRotationUnavailable:
    """Tests for the API before the rotation is wired."""

    def test_returns_503(self):
        app = FastAPI()
        app.include_router(api_router)

        with TestClient(app) as client:
            response = client.get("/api/rotation/status")

        assert response.status_code == 503


@pytest.mark.integration
class TestApplicationLifespan:
    """Tests for the full application start-up."""

    def test_lifespan_starts_rotation(self, temp_dir: Path, temp_catalog_file: Path):
        config_file = temp_dir / "app.yaml"
        config_file.write_text(
            "rotation:\n"
            f"  catalog_file: \"{temp_catalog_file.as_posix()}\"\n"
            "  initial_queue_size: 1\n"
            "voting:\n"
            "  poll_size: 2\n"
        )
        load_config(str(config_file))

        with TestClient(create_app()) as client:
            health = client.get("/api/health").json()
            status = client.get("/api/rotation/status").json()

        assert health["components"]["rotation"] == "running"
        assert status["cursor"]["state"] in ("playing_main", "room_fallback")
        assert len(status["voting"]["choices"]) <= 2
