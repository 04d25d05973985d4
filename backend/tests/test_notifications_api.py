import asyncio
import json

from fastapi.testclient import TestClient

from tagtracker import main
from tagtracker.main import app
from tagtracker.services import MessageSubscriber, NotificationIngestor


def timestamps(response):
    return [n["timestamp"] for n in response.json()["response"]]


# =============================================================================
# AUTHENTICATION
# =============================================================================

def test_missing_or_unknown_token(client):
    response = client.get("/notifications/")
    assert response.status_code == 401
    assert response.content == b""

    response = client.get("/notifications/", headers={"Authorization": "Bearer nope"})
    assert response.status_code == 401


def test_bare_token_is_accepted(client):
    response = client.get("/notifications/", headers={"Authorization": "token-acme"})
    assert response.status_code == 200


# =============================================================================
# ALL / RANGE
# =============================================================================

def test_all_notifications_for_owner(client, acme, globex):
    response = client.get("/notifications/", headers=acme)
    assert response.status_code == 200
    assert timestamps(response) == [1000, 2000, 3000]

    response = client.get("/notifications/", headers=globex)
    assert timestamps(response) == [2500]


def test_all_notifications_without_sensors(client, nobody):
    assert client.get("/notifications/", headers=nobody).status_code == 204


def test_range_queries(client, acme):
    assert timestamps(client.get("/notifications/2000/", headers=acme)) == [2000]
    assert timestamps(client.get("/notifications/2000-/", headers=acme)) == [2000, 3000]
    assert timestamps(client.get("/notifications/-2000/", headers=acme)) == [1000, 2000]
    assert timestamps(client.get("/notifications/1500-2500/", headers=acme)) == [2000]


def test_range_without_matches(client, acme):
    assert client.get("/notifications/5000-/", headers=acme).status_code == 204


def test_malformed_range(client, acme):
    for value in ["-", "abc", "1-x", "1_000", "+5"]:
        response = client.get(f"/notifications/{value}/", headers=acme)
        assert response.status_code == 406
        assert response.json() == {"detail": "URL is malformed!"}


def test_range_without_sensors(client, nobody):
    response = client.get("/notifications/1000-/", headers=nobody)
    assert response.status_code == 406


# =============================================================================
# SENSOR / TAG
# =============================================================================

def test_sensor_notifications(client, acme):
    assert timestamps(client.get("/notifications/sensor/door-1/", headers=acme)) == [1000, 3000]
    assert timestamps(client.get("/notifications/sensor/door-1/2000-", headers=acme)) == [3000]
    assert client.get("/notifications/sensor/door-1/4000", headers=acme).status_code == 204


def test_someone_elses_sensor(client, acme):
    response = client.get("/notifications/sensor/gx-1/", headers=acme)
    assert response.status_code == 406
    assert response.json() == {"detail": "No sensor 'gx-1' found!"}


def test_sensor_malformed_range(client, acme):
    assert client.get("/notifications/sensor/door-1/-", headers=acme).status_code == 406


def test_tag_notifications_stay_within_the_account(client, acme, globex):
    # Both accounts have a badge-1; each only sees its own detections
    assert timestamps(client.get("/notifications/tag/badge-1/", headers=acme)) == [1000, 2000, 3000]
    assert timestamps(client.get("/notifications/tag/badge-1/", headers=globex)) == [2500]
    assert timestamps(client.get("/notifications/tag/badge-1/-1500", headers=acme)) == [1000]


def test_unknown_tag(client, acme):
    response = client.get("/notifications/tag/badge-404/", headers=acme)
    assert response.status_code == 406
    assert response.json() == {"detail": "No tag 'badge-404' found!"}


# =============================================================================
# VISITS
# =============================================================================

def test_visits(client, acme):
    response = client.get("/notifications/visit/0-", headers=acme)
    assert response.status_code == 200
    visits = {v["sector_id"]: v["visits"] for v in response.json()["response"]}
    assert visits == {"lobby": 2, "lab": 1}


def test_visits_errors(client, acme, nobody):
    assert client.get("/notifications/visit/-", headers=acme).status_code == 406
    assert client.get("/notifications/visit/99999999999999999999-", headers=acme).status_code == 406
    assert client.get("/notifications/visit/9000-", headers=acme).status_code == 204

    response = client.get("/notifications/visit/0-", headers=nobody)
    assert response.status_code == 406
    assert response.json() == {"detail": "No sensors found!"}


def test_visits_end_to_end(client, store, acme):
    """Owner with A->X and B->Y; tag T seen at A, B, A."""
    ingestor = NotificationIngestor(store, clock=iter([10_001, 10_002, 10_003]).__next__)

    async def publish(sensor_id):
        body = json.dumps({"tag_id": "T", "sensor_id": sensor_id}).encode("utf-8")
        return await ingestor.handle_message("notifications", body)

    def visits():
        response = client.get("/notifications/visit/10000-", headers=acme)
        return {v["sector_id"]: v["visits"] for v in response.json()["response"]}

    asyncio.run(publish("door-1"))
    asyncio.run(publish("lab-1"))
    assert visits() == {"lobby": 1, "lab": 1}

    asyncio.run(publish("door-1"))
    assert visits() == {"lobby": 2, "lab": 1}

    # Ingestion created the tag for acme
    assert client.get("/notifications/tag/T/", headers=acme).status_code == 200


# =============================================================================
# DELETE
# =============================================================================

def test_delete_all(client, acme, globex):
    response = client.delete("/notifications/", headers=acme)
    assert response.status_code == 200
    assert response.json() == {"message": "All notifications deleted!"}

    assert client.get("/notifications/", headers=acme).status_code == 204
    assert timestamps(client.get("/notifications/", headers=globex)) == [2500]

    # Nothing left to delete
    assert client.delete("/notifications/", headers=acme).status_code == 406


def test_delete_all_without_sensors(client, nobody):
    assert client.delete("/notifications/", headers=nobody).status_code == 204


# =============================================================================
# SERVICE ENDPOINTS
# =============================================================================

def test_internal_errors_are_not_leaked(store, acme):
    class ExplodingService:
        async def list_for_owner(self, owner, timestamps=None):
            raise RuntimeError("secret connection string")

    from tagtracker.routers import get_store
    from tagtracker.routers.notifications import get_notification_service

    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_notification_service] = lambda: ExplodingService()
    try:
        response = TestClient(app, raise_server_exceptions=False).get("/notifications/", headers=acme)
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == 500
    assert response.json() == {"detail": "Internal server error"}


def test_root_and_health(client):
    assert client.get("/").json()["name"] == "Tag Tracker API"
    health = client.get("/health").json()
    assert health["status"] == "healthy"


def test_health_hides_broker_details(client, monkeypatch):
    subscriber = MessageSubscriber(broker_host="broker.internal", topic="secret/topic", handler=None, broker_port=8883)
    monkeypatch.setattr(main, "_subscriber", subscriber)

    mqtt = client.get("/health").json()["mqtt"]
    assert mqtt == {"connected": False, "messages_received": 0, "messages_dropped": 0}
    assert "broker.internal" not in client.get("/health").text
