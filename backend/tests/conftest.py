"""
Shared fixtures: an in-memory store with two accounts, and an API client
wired to it.

    acme   owns sensors door-1 (lobby) and lab-1 (lab), tag badge-1
    globex owns sensor gx-1 (hall), and its own tag badge-1
    nobody has a valid token but no sensors
"""

import pytest
from fastapi.testclient import TestClient

from tagtracker.main import app
from tagtracker.routers import get_store
from tagtracker.services import MemoryStore


def seed_data() -> dict:
    return {
        "tokens": [
            {"token": "token-acme", "owner": "acme"},
            {"token": "token-globex", "owner": "globex"},
            {"token": "token-nobody", "owner": "nobody"},
        ],
        "maps": [
            {"map_id": "floor-1", "owner": "acme"},
            {"map_id": "hq", "owner": "globex"},
        ],
        "sectors": [
            {"sector_id": "lobby", "map_id": "floor-1", "owner": "acme"},
            {"sector_id": "lab", "map_id": "floor-1", "owner": "acme"},
            {"sector_id": "hall", "map_id": "hq", "owner": "globex"},
        ],
        "sensors": [
            {"sensor_id": "door-1", "name": "Front Door", "pos_x": 0, "pos_y": 0,
             "map_id": "floor-1", "sector_id": "lobby", "owner": "acme"},
            {"sensor_id": "lab-1", "name": "Lab Entrance", "pos_x": 10, "pos_y": 4,
             "map_id": "floor-1", "sector_id": "lab", "owner": "acme"},
            {"sensor_id": "gx-1", "name": "Hall", "pos_x": 1, "pos_y": 1,
             "map_id": "hq", "sector_id": "hall", "owner": "globex"},
        ],
        "tags": [
            {"tag_id": "badge-1", "name": "badge-1", "owner": "acme"},
            {"tag_id": "badge-1", "name": "badge-1", "owner": "globex"},
        ],
        "notifications": [
            {"tag_id": "badge-1", "sensor_id": "door-1", "timestamp": 1000},
            {"tag_id": "badge-1", "sensor_id": "lab-1", "timestamp": 2000},
            {"tag_id": "badge-1", "sensor_id": "gx-1", "timestamp": 2500},
            {"tag_id": "badge-1", "sensor_id": "door-1", "timestamp": 3000},
        ],
    }


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore(seed_data())


@pytest.fixture
def client(store):
    app.dependency_overrides[get_store] = lambda: store
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def acme() -> dict:
    return {"Authorization": "Bearer token-acme"}


@pytest.fixture
def globex() -> dict:
    return {"Authorization": "Bearer token-globex"}


@pytest.fixture
def nobody() -> dict:
    return {"Authorization": "Bearer token-nobody"}
