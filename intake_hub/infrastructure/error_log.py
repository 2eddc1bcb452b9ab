"""Append-only storage failure log.

Every failed durable write is recorded here as one text entry before the
caller receives its error response. Entries are never rewritten or truncated.
"""

import logging
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

logger = logging.getLogger(__name__)

# Fields masked before a failed record is written to the log
MASKED_FIELDS = ("contactNumber", "email")


def mask_value(value: Any) -> Any:
    """Keep the last two characters of a string, mask the rest."""
    if not isinstance(value, str) or len(value) <= 2:
        return "[REDACTED]" if value else value
    return "*" * (len(value) - 2) + value[-2:]


def mask_record(record: Any) -> Any:
    """Return a copy of a candidate record with contact fields masked."""
    if not isinstance(record, dict):
        return record
    return {
        key: mask_value(value) if key in MASKED_FIELDS else value
        for key, value in record.items()
    }


class ErrorLogWriter:
    """Thread-safe appender for storage failure entries.

    Example Usage:
        ```python
        error_log = ErrorLogWriter("logs/error.log")
        error_log.write_failure(
            message="Error saving patient data: disk full",
            code="ENOSPC",
            path="data/patients.json",
            stack=traceback_text,
            record={"firstName": "Ann", ...},
        )
        ```
    """

    def __init__(self, path: str):
        """Initialize the writer, creating the log directory if needed.

        Raises:
            OSError: If the log directory cannot be created
        """
        self.path = Path(path)
        self._lock = threading.Lock()
        if not self.path.parent.exists():
            self.path.parent.mkdir(parents=True, mode=0o755, exist_ok=True)
            logger.info(f"Created logs directory at {self.path.parent}")

    def format_entry(
        self,
        message: str,
        code: Optional[str] = None,
        path: Optional[str] = None,
        stack: Optional[str] = None,
        record: Any = None,
        timestamp: Optional[datetime] = None,
    ) -> str:
        """Render one failure entry as text."""
        ts = (timestamp or datetime.now(timezone.utc)).isoformat()
        lines = [
            f"[{ts}] {message}",
            f"Error code: {code}",
            f"Error path: {path}",
        ]
        if record is not None:
            lines.append(f"Attempted record: {mask_record(record)}")
        lines.append(f"Stack trace: {stack or ''}")
        return "\n".join(lines) + "\n\n"

    def write_failure(
        self,
        message: str,
        code: Optional[str] = None,
        path: Optional[str] = None,
        stack: Optional[str] = None,
        record: Any = None,
    ) -> str:
        """Append one failure entry and return the text that was written.

        Raises:
            OSError: If the entry cannot be written
        """
        entry = self.format_entry(message, code=code, path=path, stack=stack, record=record)
        with self._lock:
            with open(self.path, "a", encoding="utf-8") as f:
                f.write(entry)
                f.flush()
        return entry
