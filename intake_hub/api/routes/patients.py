"""Patient intake and search endpoints."""

import logging
from typing import Any, Optional

from fastapi import APIRouter, Body, Query, status

from intake_hub.api.dependencies import IntakeServiceDep
from intake_hub.models.patient import ErrorResponse, PatientCreatedResponse, PatientOut

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/patients", tags=["patients"])


@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    response_model=PatientCreatedResponse,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
def register_patient(service: IntakeServiceDep, payload: Any = Body(None)) -> dict:
    """Register a patient.

    The body must be a JSON object with ``firstName``, ``lastName``, ``dob``,
    ``gender``, ``contactNumber``, ``email`` and ``address``, all non-empty
    strings. Missing fields give 400; a failed write gives 500 with the
    backend's code/path/message.
    """
    stored = service.create(payload)
    return {"message": "Patient registered successfully", "patient": stored.to_public()}


@router.get(
    "/search",
    response_model=list[PatientOut],
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
def search_patients(service: IntakeServiceDep, name: Optional[str] = Query(None)) -> list[dict]:
    """Find patients whose first or last name contains ``name`` (case-insensitive)."""
    results = service.search(name)
    logger.info(f"Patient search matched {len(results)} records")
    return [record.to_public() for record in results]
