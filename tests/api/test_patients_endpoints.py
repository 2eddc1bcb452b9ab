"""Tests for the patient intake and search endpoints."""

from unittest.mock import Mock

import pytest
from fastapi.testclient import TestClient

from intake_hub.adapters.storage.json_file_adapter import JsonFileRecordStore
from intake_hub.api.dependencies import get_error_log, get_record_store
from intake_hub.api.main import app
from intake_hub.domain.ports import RecordStorePort, StoreUnavailableError
from intake_hub.services.broadcast_hub import BroadcastHub, get_broadcast_hub


@pytest.fixture
def make_client(error_log):
    """Build a TestClient wired to the given store."""
    clients = []

    def _make(store):
        app.dependency_overrides[get_record_store] = lambda: store
        app.dependency_overrides[get_error_log] = lambda: error_log
        app.dependency_overrides[get_broadcast_hub] = lambda: BroadcastHub()
        test_client = TestClient(app)
        test_client.__enter__()
        clients.append(test_client)
        return test_client

    yield _make

    for test_client in clients:
        test_client.__exit__(None, None, None)
    app.dependency_overrides.clear()


@pytest.fixture
def client(make_client, file_store):
    return make_client(file_store)


class TestRegisterPatient:

    def test_register_returns_201_with_stored_record(self, client, patient_payload):
        response = client.post("/api/patients", json=patient_payload)

        assert response.status_code == 201
        body = response.json()
        assert body["message"] == "Patient registered successfully"
        assert body["patient"]["id"] == 0
        for field, value in patient_payload.items():
            assert body["patient"][field] == value

    def test_registered_patient_is_searchable(self, client, patient_payload):
        client.post("/api/patients", json=patient_payload)

        response = client.get("/api/patients/search", params={"name": "lee"})

        assert response.status_code == 200
        results = response.json()
        assert len(results) == 1
        assert results[0]["firstName"] == "Ann"
        assert results[0]["lastName"] == "Lee"

    def test_missing_fields_return_400_and_store_unchanged(self, client, file_store):
        response = client.post("/api/patients", json={"firstName": "Bob"})

        assert response.status_code == 400
        assert response.json()["error"] == "All fields are required"
        assert "lastName" in response.json()["missing_fields"]
        assert file_store.count() == 0

    @pytest.mark.parametrize("body", [[1, 2], "Ann", None])
    def test_non_object_body_returns_400(self, client, file_store, body):
        response = client.post("/api/patients", json=body)
        assert response.status_code == 400
        assert file_store.count() == 0

    def test_malformed_json_returns_400(self, client):
        response = client.post(
            "/api/patients",
            content="{not json",
            headers={"Content-Type": "application/json"},
        )
        assert response.status_code == 400
        assert "error" in response.json()

    def test_extra_fields_are_not_stored(self, client, make_payload):
        response = client.post("/api/patients", json=make_payload(notes="walk-in"))
        assert response.status_code == 201
        assert "notes" not in response.json()["patient"]

    def test_storage_failure_returns_500_with_details(self, make_client, tmp_path, error_log, patient_payload):
        blocked = tmp_path / "blocked.json"
        blocked.mkdir()
        store = JsonFileRecordStore(data_file=str(blocked))
        client = make_client(store)

        response = client.post("/api/patients", json=patient_payload)

        assert response.status_code == 500
        body = response.json()
        assert body["error"] == "Failed to save patient data"
        assert body["details"]["code"] == "EISDIR"
        assert body["details"]["path"] == str(blocked)
        assert body["details"]["message"]
        assert "Error code: EISDIR" in error_log.path.read_text()


class TestSearchPatients:

    def test_search_is_case_insensitive(self, client, make_payload):
        client.post("/api/patients", json=make_payload(firstName="John", lastName="Smith"))
        client.post("/api/patients", json=make_payload(firstName="Smitty", lastName="Jones"))

        lower = client.get("/api/patients/search", params={"name": "smith"}).json()
        upper = client.get("/api/patients/search", params={"name": "SMITH"}).json()

        assert lower == upper
        assert [p["firstName"] for p in lower] == ["John"]

    def test_no_match_returns_empty_array(self, client, patient_payload):
        client.post("/api/patients", json=patient_payload)
        response = client.get("/api/patients/search", params={"name": "zzz"})
        assert response.status_code == 200
        assert response.json() == []

    def test_missing_name_returns_400(self, client):
        response = client.get("/api/patients/search")
        assert response.status_code == 400
        assert response.json() == {"error": "Name parameter is required"}

    def test_empty_name_returns_400(self, client):
        response = client.get("/api/patients/search", params={"name": ""})
        assert response.status_code == 400

    def test_unavailable_store_returns_500(self, make_client):
        store = Mock(spec=RecordStorePort)
        store.backend_name = "postgresql"
        store.search.side_effect = StoreUnavailableError(
            "Failed to connect to PostgreSQL", operation="connect", path="patient_documents"
        )
        client = make_client(store)

        response = client.get("/api/patients/search", params={"name": "ann"})

        assert response.status_code == 500
        assert response.json()["error"] == "Patient store unavailable"
        assert response.json()["details"]["path"] == "patient_documents"


class TestInfoEndpoints:

    def test_root(self, client):
        body = client.get("/").json()
        assert body["docs"] == "/api/docs"
        assert body["websocket"] == "/ws"

    def test_health_reports_store(self, client, patient_payload):
        client.post("/api/patients", json=patient_payload)

        response = client.get("/api/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["store"] == {"status": "connected", "backend": "file", "record_count": 1}
        assert body["connections"] == 0

    def test_health_reports_unreachable_store(self, make_client):
        store = Mock(spec=RecordStorePort)
        store.backend_name = "postgresql"
        store.check_health.return_value = False
        client = make_client(store)

        body = client.get("/api/health").json()

        assert body["status"] == "unhealthy"
        assert body["store"]["status"] == "disconnected"

    def test_process_time_header(self, client):
        response = client.get("/")
        assert "X-Process-Time" in response.headers
