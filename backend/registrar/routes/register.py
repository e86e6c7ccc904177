"""
Registration API route - public self-service intake.

POST /api/register validates the submission, inserts it if the admission
number is new, and maps the outcome onto the public JSON contract:
200 accepted, 400 invalid, 409 duplicate, 500 storage failure.
"""

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from registrar.schemas import ErrorResponse, RegistrationRequest, RegistrationResponse
from registrar.services.registration import (
    Accepted, RegistrationService, RejectedDuplicate, RejectedInvalid
)

router = APIRouter()

DUPLICATE_MESSAGE = "Admission number already registered."
INTERNAL_ERROR_MESSAGE = "Internal server error."


def get_registration_service(request: Request) -> RegistrationService:
    return request.app.state.registration_service


def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=ErrorResponse(error=message).model_dump())


@router.post(
    "/api/register",
    response_model=RegistrationResponse,
    responses={400: {"model": ErrorResponse}, 409: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def register_student(
    payload: RegistrationRequest,
    service: RegistrationService = Depends(get_registration_service),
):
    """Register a student. The admission number is stored uppercase."""
    outcome = await service.register(payload.name, payload.phone, payload.admission_number)

    if isinstance(outcome, Accepted):
        return RegistrationResponse(id=outcome.id)
    if isinstance(outcome, RejectedInvalid):
        return error_response(400, outcome.reason)
    if isinstance(outcome, RejectedDuplicate):
        return error_response(409, DUPLICATE_MESSAGE)
    return error_response(500, INTERNAL_ERROR_MESSAGE)
