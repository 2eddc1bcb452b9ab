"""Domain core: patient records, storage port and search rules."""

from intake_hub.domain.patient_record import REQUIRED_FIELDS, PatientRecord, StoredRecord
from intake_hub.domain.ports import (
    IntakeError,
    InvalidQueryError,
    RecordStorePort,
    StorageError,
    StoreUnavailableError,
    ValidationError,
    coerce_record,
)
from intake_hub.domain.search_index import search_records, validate_query

__all__ = [
    "REQUIRED_FIELDS",
    "PatientRecord",
    "StoredRecord",
    "IntakeError",
    "InvalidQueryError",
    "RecordStorePort",
    "StorageError",
    "StoreUnavailableError",
    "ValidationError",
    "coerce_record",
    "search_records",
    "validate_query",
]
