"""Patient intake service.

Thin orchestration between the API layer and the record store: validate the
candidate, write it through the store, and make sure every storage failure is
recorded in the error log before the caller sees it.
"""

import logging
import traceback
from typing import Any, Optional

from intake_hub.domain.patient_record import StoredRecord
from intake_hub.domain.ports import RecordStorePort, StorageError, coerce_record
from intake_hub.infrastructure.error_log import ErrorLogWriter

logger = logging.getLogger(__name__)


class IntakeService:
    """Create and search patient records through a RecordStorePort.

    Parameters:
        store: Record store backend
        error_log: Collaborator receiving one entry per storage failure
    """

    def __init__(self, store: RecordStorePort, error_log: Optional[ErrorLogWriter] = None):
        self.store = store
        self.error_log = error_log

    def create(self, payload: Any) -> StoredRecord:
        """Validate and persist one record.

        Raises:
            ValidationError: If a required field is absent or empty (the store
                is never called)
            StorageError: If the durable write fails (already logged)
        """
        patient = coerce_record(payload)
        try:
            return self.store.create(patient)
        except StorageError as e:
            self._report_failure(e, patient.to_document())
            raise

    def search(self, name_part: Optional[str]) -> list[StoredRecord]:
        """Search stored records by name.

        Raises:
            InvalidQueryError: If name_part is missing or empty
            StoreUnavailableError: If the backend cannot be reached
        """
        return self.store.search(name_part)

    def _report_failure(self, error: StorageError, attempted: dict) -> None:
        stack = "".join(traceback.format_exception(type(error), error, error.__traceback__))
        logger.error(
            f"Storage failure: {error.message} "
            f"(code={error.code}, path={error.path}, backend={self.store.backend_name})"
        )
        if self.error_log is None:
            logger.error("No error log configured; storage failure recorded only in application log")
            return
        try:
            self.error_log.write_failure(
                message=error.message,
                code=error.code,
                path=error.path,
                stack=stack,
                record=attempted,
            )
        except OSError as log_error:
            logger.error(
                f"Failed to write to error log {self.error_log.path}: {str(log_error)}",
                exc_info=True,
            )
