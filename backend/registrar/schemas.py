"""Pydantic request and response schemas for the HTTP API."""

from datetime import datetime
from typing import Optional, Union

from pydantic import BaseModel, Field

from registrar.storage.base import StoredStudent


class RegistrationRequest(BaseModel):
    """Body of POST /api/register. Presence is checked by the validator, not here."""
    name: Optional[str] = Field(None, description="Student's name")
    phone: Optional[str] = Field(None, description="Contact phone number")
    admission_number: Optional[str] = Field(None, description="Admission code, e.g. CT100 (any case)")


class RegistrationResponse(BaseModel):
    success: bool = True
    message: str = "Registration successful!"
    id: Union[int, str]


class ErrorResponse(BaseModel):
    error: str


class StudentOut(BaseModel):
    id: Union[int, str]
    name: str
    phone: str
    admission_number: str
    timestamp: datetime

    @classmethod
    def from_stored(cls, student: StoredStudent) -> "StudentOut":
        return cls(**student.to_dict())
