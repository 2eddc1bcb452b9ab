"""Name search over stored patient records.

There is no persisted index: matching runs at query time over whatever
sequence the store hands in. The matching contract is shared by every backend
that searches in Python (the PostgreSQL backend expresses the same rule in
SQL).
"""

from typing import Iterable, Optional

from intake_hub.domain.patient_record import StoredRecord
from intake_hub.domain.ports import InvalidQueryError


def validate_query(name_part: Optional[str]) -> str:
    """Return name_part if usable, otherwise raise InvalidQueryError."""
    if not isinstance(name_part, str) or name_part == "":
        raise InvalidQueryError("Name parameter is required")
    return name_part


def search_records(records: Iterable[StoredRecord], name_part: Optional[str]) -> list[StoredRecord]:
    """Filter records by case-insensitive substring on first OR last name.

    Results keep store order; a record matching on both names appears once.

    Raises:
        InvalidQueryError: If name_part is missing or empty
    """
    needle = validate_query(name_part)
    return [record for record in records if record.matches_name(needle)]
