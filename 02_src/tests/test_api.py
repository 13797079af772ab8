"""Tests for the traceability HTTP API."""

import pytest
from fastapi.testclient import TestClient

from agritrace.api.app import create_fastapi_app
from agritrace.app import Application
from agritrace.models import Role, UserProfile

FARMER = {"X-User-Id": "farmer-1"}
PROCESSOR = {"X-User-Id": "proc-1"}


@pytest.fixture
def application():
    """Create an unstarted in-memory application."""
    return Application(db_path=":memory:")


@pytest.fixture
def client(application):
    """Run the API with its lifespan and seed identities."""

    async def seed():
        await application.storage.save_user(
            UserProfile(id="farmer-1", name="Amina Okoro", role=Role.FARMER)
        )
        await application.storage.save_user(
            UserProfile(id="proc-1", name="Kano Mills", role=Role.PROCESSOR)
        )

    with TestClient(create_fastapi_app(application)) as test_client:
        test_client.portal.call(seed)
        yield test_client


class TestVtiEndpoints:
    """Tests for /vti endpoints."""

    def test_generate_and_fetch(self, client):
        """Test minting a unit and reading it back."""
        response = client.post(
            "/api/traceability/vti",
            json={"type": "crate", "metadata": {"name": "Crate 7"}, "currentLocation": {"lat": 6.5, "lng": 3.4}},
            headers=FARMER,
        )
        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "success"

        response = client.get(f"/api/traceability/vti/{body['vtiId']}")
        assert response.status_code == 200
        unit = response.json()
        assert unit["type"] == "crate"
        assert unit["status"] == "ACTIVE"
        assert unit["currentLocation"] == {"lat": 6.5, "lng": 3.4}
        assert unit["metadata"] == {"name": "Crate 7", "carbon_footprint_kgCO2e": 0}

    def test_generate_requires_caller(self, client):
        """Test that minting without an identity is 401."""
        response = client.post("/api/traceability/vti", json={"type": "crate"})
        assert response.status_code == 401
        assert response.json()["detail"] == "User not authenticated"

    def test_generate_rejects_empty_type(self, client):
        """Test that an empty type is a 400."""
        response = client.post("/api/traceability/vti", json={"type": ""}, headers=FARMER)
        assert response.status_code == 400

    def test_unknown_vti_is_404(self, client):
        """Test fetching an unknown unit."""
        response = client.get("/api/traceability/vti/ghost")
        assert response.status_code == 404
        assert response.json()["detail"] == "VTI with ID ghost not found"


class TestEventEndpoints:
    """Tests for event logging endpoints."""

    def test_log_event_for_unit(self, client):
        """Test appending a generic event to a unit."""
        vti_id = client.post(
            "/api/traceability/vti", json={"type": "crate"}, headers=FARMER
        ).json()["vtiId"]

        response = client.post(
            "/api/traceability/events",
            json={
                "vtiId": vti_id,
                "eventType": "SHIPPED",
                "actorRef": "proc-1",
                "payload": {"carrier": "TransAfrica"},
            },
            headers=PROCESSOR,
        )
        assert response.status_code == 200
        assert response.json()["vtiId"] == vti_id
        assert response.json()["message"] == f"Event SHIPPED logged successfully for {vti_id}"

    def test_log_event_unknown_vti(self, client):
        """Test that an unknown unit is 404."""
        response = client.post(
            "/api/traceability/events",
            json={"vtiId": "ghost", "eventType": "SHIPPED", "actorRef": "A1"},
            headers=FARMER,
        )
        assert response.status_code == 404

    def test_log_event_without_scope(self, client):
        """Test that an event needs a unit or a field."""
        response = client.post(
            "/api/traceability/events",
            json={"eventType": "OBSERVED", "actorRef": "A1"},
            headers=FARMER,
        )
        assert response.status_code == 400
        assert response.json()["detail"] == "Either fieldContextId or vtiId is required"

    def test_log_event_unknown_type(self, client):
        """Test that an unknown event type is 400."""
        response = client.post(
            "/api/traceability/events",
            json={"fieldContextId": "F1", "eventType": "TELEPORTED", "actorRef": "A1"},
            headers=FARMER,
        )
        assert response.status_code == 400

    def test_harvest_requires_farmer(self, client):
        """Test that processors cannot record harvests."""
        response = client.post(
            "/api/traceability/events/harvest",
            json={"fieldContextId": "F1", "cropType": "maize", "actorRef": "proc-1"},
            headers=PROCESSOR,
        )
        assert response.status_code == 403

    def test_harvest_requires_caller(self, client):
        """Test that an anonymous harvest is 401."""
        response = client.post(
            "/api/traceability/events/harvest",
            json={"fieldContextId": "F1", "cropType": "maize", "actorRef": "A1"},
        )
        assert response.status_code == 401

    def test_input_application_negative_quantity(self, client):
        """Test that a negative quantity is 400."""
        response = client.post(
            "/api/traceability/events/input-application",
            json={
                "fieldContextId": "F1",
                "inputId": "urea",
                "applicationDate": "2024-04-12",
                "quantity": -1,
                "unit": "kg",
                "actorRef": "farmer-1",
            },
            headers=FARMER,
        )
        assert response.status_code == 400

    def test_input_application_non_finite_quantity(self, client):
        """Test that a NaN quantity in the JSON body is 400 and nothing is logged."""
        body = (
            '{"fieldContextId": "F1", "inputId": "urea", "applicationDate": "2024-04-12",'
            ' "quantity": NaN, "unit": "kg", "actorRef": "farmer-1"}'
        )
        response = client.post(
            "/api/traceability/events/input-application",
            content=body,
            headers={**FARMER, "Content-Type": "application/json"},
        )
        assert response.status_code == 400
        assert "finite" in response.json()["detail"]

        events = client.get("/api/traceability/fields/F1/events", headers=FARMER).json()["events"]
        assert events == []

    @pytest.mark.parametrize(
        "geo",
        [
            {"lat": "north", "lng": 3.4},
            {"lat": 200, "lng": 3.4},
            {"lat": 6.5},
            "6.5,3.4",
        ],
    )
    def test_malformed_geo_location_is_400(self, client, geo):
        """Test that every malformed location is the same validation error."""
        response = client.post(
            "/api/traceability/events",
            json={
                "fieldContextId": "F1",
                "eventType": "OBSERVED",
                "actorRef": "farmer-1",
                "geoLocation": geo,
            },
            headers=FARMER,
        )
        assert response.status_code == 400

    def test_missing_body_field_is_422(self, client):
        """Test that request-shape errors are reported by FastAPI."""
        response = client.post(
            "/api/traceability/events/observation",
            json={"fieldContextId": "F1"},
            headers=FARMER,
        )
        assert response.status_code == 422


class TestLineageEndpoints:
    """Tests for history and batch endpoints."""

    def _record_season(self, client) -> str:
        client.post(
            "/api/traceability/events/input-application",
            json={
                "fieldContextId": "F1",
                "inputId": "urea",
                "applicationDate": "2024-04-12",
                "quantity": 10,
                "unit": "kg",
                "actorRef": "farmer-1",
            },
            headers=FARMER,
        ).raise_for_status()
        client.post(
            "/api/traceability/events/observation",
            json={
                "fieldContextId": "F1",
                "observationType": "pest",
                "observationDate": "2024-04-20",
                "details": "Fall armyworm on edge rows",
                "actorRef": "farmer-1",
            },
            headers=FARMER,
        ).raise_for_status()
        response = client.post(
            "/api/traceability/events/harvest",
            json={
                "fieldContextId": "F1",
                "cropType": "maize",
                "actorRef": "farmer-1",
                "yieldKg": 1200,
            },
            headers=FARMER,
        )
        response.raise_for_status()
        return response.json()["vtiId"]

    def test_unit_history(self, client):
        """Test that a harvested batch shows its field's pre-harvest events."""
        vti_id = self._record_season(client)

        response = client.get(f"/api/traceability/vti/{vti_id}/history")
        assert response.status_code == 200
        body = response.json()
        assert body["vti"]["id"] == vti_id
        assert body["vti"]["metadata"]["fieldContextId"] == "F1"
        assert [e["eventType"] for e in body["events"]] == [
            "INPUT_APPLIED",
            "OBSERVED",
            "HARVESTED",
        ]
        assert body["events"][0]["actor"]["name"] == "Amina Okoro"
        assert body["events"][1]["payload"]["aiAnalysis"]

    def test_unit_history_unknown(self, client):
        """Test that an unknown unit's history is 404."""
        assert client.get("/api/traceability/vti/ghost/history").status_code == 404

    def test_field_events(self, client):
        """Test the field's event listing."""
        self._record_season(client)

        response = client.get("/api/traceability/fields/F1/events", headers=FARMER)
        assert response.status_code == 200
        assert len(response.json()["events"]) == 3

    def test_field_events_requires_caller(self, client):
        """Test that listing field events is 401 without an identity."""
        assert client.get("/api/traceability/fields/F1/events").status_code == 401

    def test_recent_batches(self, client):
        """Test the recent public batches listing."""
        vti_id = self._record_season(client)

        response = client.get("/api/traceability/batches/recent")
        assert response.status_code == 200
        batches = response.json()["batches"]
        assert batches[0]["id"] == vti_id
        assert batches[0]["productName"] == "maize"
        assert batches[0]["producerName"] == "Amina Okoro"

    def test_recent_batches_limit_validated(self, client):
        """Test that the limit must be positive."""
        assert client.get("/api/traceability/batches/recent?limit=0").status_code == 422


class TestErrorMapping:
    """Tests for unexpected failures."""

    def test_unexpected_error_is_500(self, client, application, monkeypatch):
        """Test that unexpected errors are hidden behind a generic message."""

        async def boom(vti_id):
            raise RuntimeError("disk on fire")

        monkeypatch.setattr(application.registry, "get", boom)

        response = client.get("/api/traceability/vti/anything")
        assert response.status_code == 500
        assert response.json()["detail"] == "Failed to fetch VTI"
