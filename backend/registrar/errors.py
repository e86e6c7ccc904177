"""
Error taxonomy for the registration desk.

InvalidInput and DuplicateKey are expected, user-facing outcomes.
Unauthorized guards the admin listing. StorageFailure is the only
infrastructure error and is never shown to callers in detail.
"""


class RegistrarError(Exception):
    """Base class for all registration desk errors."""


class InvalidInput(RegistrarError):
    """Submission failed validation. `reason` is safe to show to the client."""

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


class DuplicateKey(RegistrarError):
    """The normalized admission number is already stored."""

    def __init__(self, admission_number: str):
        super().__init__(f"Admission number {admission_number} already exists")
        self.admission_number = admission_number


class Unauthorized(RegistrarError):
    """Admin secret missing or wrong."""


class StorageFailure(RegistrarError):
    """I/O error, corrupt backing file, lost connectivity or a timed-out call."""
