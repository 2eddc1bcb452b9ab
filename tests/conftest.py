"""Shared fixtures for Intake-Hub tests."""

import pytest

from intake_hub.adapters.storage.json_file_adapter import JsonFileRecordStore
from intake_hub.infrastructure.error_log import ErrorLogWriter


@pytest.fixture
def patient_payload():
    """A complete, valid intake record in wire format."""
    return {
        "firstName": "Ann",
        "lastName": "Lee",
        "dob": "1990-01-01",
        "gender": "F",
        "contactNumber": "555-0100",
        "email": "a@x.com",
        "address": "1 Main St",
    }


@pytest.fixture
def make_payload(patient_payload):
    """Factory for valid records with overridden fields."""
    def _make(**overrides):
        payload = dict(patient_payload)
        payload.update(overrides)
        return payload
    return _make


@pytest.fixture
def data_file(tmp_path):
    """Path of a JSON data file inside a not-yet-existing directory."""
    return tmp_path / "data" / "patients.json"


@pytest.fixture
def file_store(data_file):
    """Initialized, empty JSON file store."""
    store = JsonFileRecordStore(data_file=str(data_file))
    store.initialize()
    return store


@pytest.fixture
def error_log(tmp_path):
    """Error log writer inside the test's temp directory."""
    return ErrorLogWriter(str(tmp_path / "logs" / "error.log"))
