"""Patient Record Schema Definitions.

This module defines the canonical intake record and its stored counterpart.
Records travel over the wire with camelCase keys (``firstName``,
``contactNumber``...) and are exposed to Python code with snake_case
attributes.

Architecture:
    - Pure domain models with zero infrastructure dependencies
    - Models are frozen and validated before use (Pydantic V2)
"""

from typing import Any, Mapping, Union

from pydantic import BaseModel, ConfigDict, Field

# Wire names of the seven required fields, in canonical order
REQUIRED_FIELDS: tuple[str, ...] = (
    "firstName",
    "lastName",
    "dob",
    "gender",
    "contactNumber",
    "email",
    "address",
)


class PatientRecord(BaseModel):
    """One patient intake entry.

    All seven fields are required, must be strings and must be non-empty.
    Unknown keys in the incoming payload are ignored.

    Parameters:
        first_name: Given name (wire key ``firstName``)
        last_name: Family name (wire key ``lastName``)
        dob: Date of birth as entered by the client
        gender: Gender as entered by the client
        contact_number: Phone number (wire key ``contactNumber``)
        email: Email address
        address: Postal address
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore", strict=True)

    first_name: str = Field(..., alias="firstName", min_length=1)
    last_name: str = Field(..., alias="lastName", min_length=1)
    dob: str = Field(..., min_length=1)
    gender: str = Field(..., min_length=1)
    contact_number: str = Field(..., alias="contactNumber", min_length=1)
    email: str = Field(..., min_length=1)
    address: str = Field(..., min_length=1)

    @staticmethod
    def missing_fields(data: Any) -> list[str]:
        """Return the wire names of required fields that are absent or empty.

        A value counts as missing when it is absent, not a string, or the empty
        string. A payload that is not a mapping is missing every field.
        """
        if not isinstance(data, Mapping):
            return list(REQUIRED_FIELDS)
        return [
            name for name in REQUIRED_FIELDS
            if not isinstance(data.get(name), str) or data.get(name) == ""
        ]

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "PatientRecord":
        """Build a record from a wire-format mapping."""
        return cls.model_validate({name: data.get(name) for name in REQUIRED_FIELDS})

    def to_document(self) -> dict[str, str]:
        """Serialize to the wire/persisted format (camelCase keys only)."""
        return self.model_dump(by_alias=True, include=set(PatientRecord.model_fields))

    def matches_name(self, name_part: str) -> bool:
        """Case-insensitive substring match against first OR last name.

        Plain lowercasing, the same folding as PostgreSQL's lower(), so both
        backends return the same matches.
        """
        needle = name_part.lower()
        return needle in self.first_name.lower() or needle in self.last_name.lower()


class StoredRecord(PatientRecord):
    """A PatientRecord with its backend-assigned identifier attached.

    The identifier is the database-generated id (string) for the PostgreSQL
    backend or the ordinal position (int) for the JSON file backend. It takes
    no part in search.
    """

    id: Union[int, str]

    @classmethod
    def from_record(cls, record: PatientRecord, record_id: Union[int, str]) -> "StoredRecord":
        """Attach an identifier to an already validated record."""
        return cls(**record.to_document(), id=record_id)

    def to_public(self) -> dict[str, Any]:
        """Serialize for API responses (wire keys plus ``id``)."""
        payload: dict[str, Any] = self.to_document()
        payload["id"] = self.id
        return payload
