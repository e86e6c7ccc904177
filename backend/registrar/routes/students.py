"""
Students API route - admin read-back of every registration.

GET /api/students requires the `admin-key` header to match the configured
admin secret. Records come back newest first.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Header, Request

from registrar.errors import StorageFailure, Unauthorized
from registrar.logging_config import get_logger, log_with_context
from registrar.routes.register import INTERNAL_ERROR_MESSAGE, error_response, get_registration_service
from registrar.schemas import ErrorResponse, StudentOut
from registrar.services.admin import AdminGate
from registrar.services.registration import RegistrationService

router = APIRouter()
logger = get_logger("admin")

UNAUTHORIZED_MESSAGE = "Unauthorized: Invalid Admin Password"


def get_admin_gate(request: Request) -> AdminGate:
    return request.app.state.admin_gate


@router.get(
    "/api/students",
    response_model=List[StudentOut],
    responses={403: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def list_students(
    request: Request,
    admin_key: Optional[str] = Header(None, alias="admin-key"),
    gate: AdminGate = Depends(get_admin_gate),
    service: RegistrationService = Depends(get_registration_service),
):
    """List all registered students, most recent first."""
    try:
        gate.authorize(admin_key)
    except Unauthorized as e:
        log_with_context(logger, "WARNING", "Rejected student listing: {}".format(e),
                         extra_data={"ip": request.client.host if request.client else "unknown"})
        return error_response(403, UNAUTHORIZED_MESSAGE)

    try:
        students = await service.list_students()
    except StorageFailure:
        return error_response(500, INTERNAL_ERROR_MESSAGE)

    log_with_context(logger, "INFO", "Student listing served: {} records".format(len(students)),
                     extra_data={"entries": len(students)})
    return [StudentOut.from_stored(s) for s in students]
