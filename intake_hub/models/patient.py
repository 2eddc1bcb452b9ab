"""Response models for the patient endpoints."""

from typing import Union

from pydantic import BaseModel, ConfigDict, Field


class PatientOut(BaseModel):
    """A stored patient record as returned to API clients."""

    model_config = ConfigDict(populate_by_name=True)

    id: Union[int, str] = Field(..., description="Backend-assigned identifier")
    first_name: str = Field(..., alias="firstName")
    last_name: str = Field(..., alias="lastName")
    dob: str
    gender: str
    contact_number: str = Field(..., alias="contactNumber")
    email: str
    address: str


class PatientCreatedResponse(BaseModel):
    """Body of a successful ``POST /api/patients``."""

    message: str = Field(default="Patient registered successfully")
    patient: PatientOut


class ErrorDetails(BaseModel):
    code: str | None = None
    path: str | None = None
    message: str | None = None


class ErrorResponse(BaseModel):
    """Body of a 4xx/5xx response."""

    error: str
    details: ErrorDetails | None = None
