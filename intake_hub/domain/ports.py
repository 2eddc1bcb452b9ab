"""Domain Ports - Abstract Contracts for Patient Record Storage.

This module defines the Port interface (abstract contract) that storage
Adapters must implement, together with the exception hierarchy shared by the
domain, the adapters and the API layer.

Architecture:
    - Pure abstract interfaces with zero infrastructure dependencies
    - Adapters (PostgreSQL, JSON file) implement RecordStorePort
    - The API layer maps exceptions to HTTP responses; adapters never see HTTP
"""

from abc import ABC, abstractmethod
from typing import Any, Iterable, Mapping, Optional

from intake_hub.domain.patient_record import PatientRecord, StoredRecord


# ============================================================================
# Custom Exception Hierarchy
# ============================================================================

class IntakeError(Exception):
    """Base exception for all intake-related errors."""
    pass


class ValidationError(IntakeError):
    """Raised when a candidate record is missing required fields.

    Attributes:
        missing_fields: Names of the required fields that were absent or empty
    """

    def __init__(self, message: str, missing_fields: Optional[Iterable[str]] = None):
        super().__init__(message)
        self.missing_fields = list(missing_fields or [])


class InvalidQueryError(IntakeError):
    """Raised when a search is issued without a usable name parameter."""

    def __init__(self, message: str, parameter: str = "name"):
        super().__init__(message)
        self.parameter = parameter


class StorageError(IntakeError):
    """Raised when a durable write or read fails.

    The code/path/message triple is echoed to API callers, so adapters should
    fill them with backend-level values (errno name or SQLSTATE, file path or
    table name, backend message).

    Attributes:
        operation: Store operation that failed (create, search, initialize)
        code: Backend error code (e.g. 'EACCES', '23505')
        path: File path or table the failure relates to
        details: Additional error context
    """

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        code: Optional[str] = None,
        path: Optional[str] = None,
        details: Optional[dict] = None,
    ):
        super().__init__(message)
        self.message = message
        self.operation = operation
        self.code = code
        self.path = path
        self.details = details or {}

    def to_details(self) -> dict:
        """Return the caller-facing details payload."""
        return {"code": self.code, "path": self.path, "message": self.message}


class StoreUnavailableError(StorageError):
    """Raised when the backing store cannot be reached (degraded mode)."""
    pass


# ============================================================================
# Storage Port
# ============================================================================

class RecordStorePort(ABC):
    """Abstract contract for patient record storage backends.

    Key Principles:
        - Append-only: records are created and searched, never updated or deleted
        - Durable: create returns only after the record is persisted
        - Visibility: a record is visible to search iff its create returned
        - Ownership: callers receive copies, never the backing sequence

    Example Usage:
        ```python
        store = JsonFileRecordStore(data_file="data/patients.json")
        store.initialize()
        stored = store.create({"firstName": "Ann", ...})
        matches = store.search("ann")
        ```
    """

    backend_name: str = "unknown"

    @abstractmethod
    def initialize(self) -> None:
        """Prepare the backend for use.

        Implementations must not raise for an unreachable database or a
        corrupt data file; they log the problem and start degraded, or load
        what they can after preserving the original file.
        """
        pass

    @abstractmethod
    def create(self, record: Mapping[str, Any]) -> StoredRecord:
        """Validate and durably persist one record.

        Parameters:
            record: Candidate record (mapping or PatientRecord)

        Returns:
            StoredRecord carrying the backend-assigned identifier

        Raises:
            ValidationError: If a required field is absent or empty
            StorageError: If the durable write fails
            StoreUnavailableError: If the backend cannot be reached
        """
        pass

    @abstractmethod
    def search(self, name_part: Optional[str]) -> list[StoredRecord]:
        """Return records whose first or last name contains name_part.

        Raises:
            InvalidQueryError: If name_part is missing or empty
            StoreUnavailableError: If the backend cannot be reached
        """
        pass

    @abstractmethod
    def count(self) -> int:
        """Return the number of stored records."""
        pass

    @abstractmethod
    def check_health(self) -> bool:
        """Return True when the backend is reachable."""
        pass

    def close(self) -> None:
        """Release backend resources (default: nothing to release)."""
        return None


def coerce_record(record: Any) -> PatientRecord:
    """Validate a candidate and return it as a PatientRecord.

    Shared by IntakeService and the store adapters so that service-level and
    store-level validation always agree.

    Raises:
        ValidationError: Naming every missing, empty or non-string field
    """
    if isinstance(record, PatientRecord):
        return record
    missing = PatientRecord.missing_fields(record)
    if missing:
        raise ValidationError("All fields are required", missing_fields=missing)
    return PatientRecord.from_mapping(record)
