"""JSON File Storage Adapter.

This adapter implements RecordStorePort with an in-memory record sequence
mirrored to a single JSON file. The file holds a JSON array of patient
records and is rewritten in full on every successful create.

Architecture:
    - Implements RecordStorePort (Hexagonal Architecture)
    - The sequence is owned by the adapter instance and guarded by a lock
    - Search never touches disk
    - Ordinal position in the sequence is the record identifier

Crash Safety:
    By default the file is overwritten in place, so a crash mid-write can
    truncate it. With ``atomic_writes=True`` the sequence is written to a
    temporary file in the same directory and renamed over the target.
"""

import errno
import json
import logging
import os
import shutil
import tempfile
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Mapping, Optional

from intake_hub.domain.patient_record import PatientRecord, StoredRecord
from intake_hub.domain.ports import RecordStorePort, StorageError, coerce_record
from intake_hub.domain.search_index import search_records
from intake_hub.infrastructure.config_manager import StoreConfig

logger = logging.getLogger(__name__)


class JsonFileRecordStore(RecordStorePort):
    """File-backed implementation of RecordStorePort.

    Parameters:
        store_config: StoreConfig from configuration manager (preferred)
        data_file: Path to the JSON data file (if no store_config)
        atomic_writes: Use temp-file + rename instead of overwrite in place

    Example Usage:
        ```python
        store = JsonFileRecordStore(data_file="data/patients.json")
        store.initialize()
        stored = store.create(payload)
        ```
    """

    backend_name = "file"

    def __init__(
        self,
        store_config: Optional[StoreConfig] = None,
        data_file: Optional[str] = None,
        atomic_writes: bool = False,
    ):
        if store_config is not None:
            self.data_file = Path(store_config.data_file)
            self.atomic_writes = store_config.atomic_writes
        elif data_file is not None:
            self.data_file = Path(data_file)
            self.atomic_writes = atomic_writes
        else:
            raise ValueError("JsonFileRecordStore requires store_config or data_file")

        self._records: list[PatientRecord] = []
        self._lock = threading.Lock()
        self._initialized = False

    def initialize(self) -> None:
        """Create the data directory and load any previously persisted records.

        A missing file yields an empty store. Entries that are not complete
        patient records are skipped and logged by index. A file that cannot be
        parsed as a JSON array is logged and the store starts empty. In both
        cases the original file is preserved as ``<name>.corrupt-<timestamp>``
        before anything can rewrite it.

        Raises:
            StorageError: If the data directory cannot be created or an
                unreadable data file cannot be preserved
        """
        directory = self.data_file.parent
        try:
            if not directory.exists():
                directory.mkdir(parents=True, mode=0o755, exist_ok=True)
                logger.info(f"Created data directory at {directory}")
        except OSError as e:
            raise self._os_error(e, "initialize", "Failed to create data directory")

        with self._lock:
            self._records = self._load()
            self._initialized = True
        logger.info(f"Loaded {len(self._records)} patient records from {self.data_file}")

    def _load(self) -> list[PatientRecord]:
        if not self.data_file.exists():
            return []
        try:
            with open(self.data_file, "r", encoding="utf-8") as f:
                raw = json.load(f)
        except OSError as e:
            logger.error(f"Error loading patients data from {self.data_file}: {str(e)}", exc_info=True)
            return []
        except ValueError as e:
            # json.JSONDecodeError and UnicodeDecodeError are ValueErrors
            logger.error(f"Error loading patients data from {self.data_file}: {str(e)}")
            self._preserve(move=True)
            return []

        if not isinstance(raw, list):
            logger.error(
                f"Error loading patients data from {self.data_file}: "
                f"expected a JSON array, got {type(raw).__name__}"
            )
            self._preserve(move=True)
            return []

        records = []
        for index, item in enumerate(raw):
            missing = PatientRecord.missing_fields(item)
            if missing:
                logger.error(
                    f"Skipping patient entry {index} in {self.data_file}: "
                    f"missing or invalid fields {missing}"
                )
                continue
            records.append(PatientRecord.from_mapping(item))

        if len(records) < len(raw):
            logger.error(
                f"Error loading patients data from {self.data_file}: "
                f"skipped {len(raw) - len(records)} of {len(raw)} entries"
            )
            self._preserve(move=False)
        return records

    def _preserve(self, move: bool) -> Path:
        """Keep the current data file as ``<name>.corrupt-<timestamp>``.

        Raises:
            StorageError: If the copy or rename fails
        """
        stamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%S%fZ")
        backup = self.data_file.with_name(f"{self.data_file.name}.corrupt-{stamp}")
        try:
            if move:
                os.replace(self.data_file, backup)
            else:
                shutil.copy2(self.data_file, backup)
        except OSError as e:
            raise self._os_error(e, "initialize", "Failed to preserve unreadable data file")
        logger.warning(f"Preserved original data file as {backup}")
        return backup

    def _ensure_initialized(self) -> None:
        if not self._initialized:
            self.initialize()

    def create(self, record: Mapping[str, Any]) -> StoredRecord:
        """Append a record and rewrite the data file.

        The append is rolled back if the rewrite fails, so a record is visible
        to search only once create has returned.

        Raises:
            ValidationError: If a required field is absent or empty
            StorageError: If the data file cannot be written
        """
        patient = coerce_record(record)
        self._ensure_initialized()

        with self._lock:
            self._records.append(patient)
            try:
                self._write(self._records)
            except OSError as e:
                self._records.pop()
                raise self._os_error(e, "create", "Error saving patient data")
            position = len(self._records) - 1

        logger.info(f"Patient data saved successfully to {self.data_file}")
        return StoredRecord.from_record(patient, position)

    def _write(self, records: list[PatientRecord]) -> None:
        payload = json.dumps([record.to_document() for record in records])
        if not self.atomic_writes:
            with open(self.data_file, "w", encoding="utf-8") as f:
                f.write(payload)
                f.flush()
                os.fsync(f.fileno())
            return

        fd, tmp_path = tempfile.mkstemp(
            dir=str(self.data_file.parent), prefix=f".{self.data_file.name}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, self.data_file)
        except OSError:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise

    def _os_error(self, error: OSError, operation: str, summary: str) -> StorageError:
        code = errno.errorcode.get(error.errno) if error.errno is not None else None
        path = error.filename if error.filename is not None else str(self.data_file)
        message = error.strerror or str(error)
        return StorageError(
            f"{summary}: {message}",
            operation=operation,
            code=code,
            path=str(path),
            details={"data_file": str(self.data_file)},
        )

    def _snapshot(self) -> list[StoredRecord]:
        with self._lock:
            records = list(self._records)
        return [StoredRecord.from_record(record, index) for index, record in enumerate(records)]

    def search(self, name_part: Optional[str]) -> list[StoredRecord]:
        """Scan the in-memory sequence for matching names.

        Raises:
            InvalidQueryError: If name_part is missing or empty
        """
        self._ensure_initialized()
        return search_records(self._snapshot(), name_part)

    def all_records(self) -> list[StoredRecord]:
        """Return a copy of every stored record in store order."""
        self._ensure_initialized()
        return self._snapshot()

    def count(self) -> int:
        with self._lock:
            return len(self._records)

    def check_health(self) -> bool:
        """The store is healthy when its data directory is writable."""
        directory = self.data_file.parent
        return self._initialized and directory.exists() and os.access(directory, os.W_OK)

    def close(self) -> None:
        """Wait for any in-flight create to finish."""
        with self._lock:
            logger.info(f"JSON file store closed ({len(self._records)} records in {self.data_file})")
