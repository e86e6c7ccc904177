"""
Submission validation.

Admission numbers are case-insensitive on input and stored uppercase.
The canonical shape is two letters followed by three digits, e.g. CT100.
"""

import re

from registrar.errors import InvalidInput

ADMISSION_NUMBER_PATTERN = re.compile(r"[A-Z]{2}[0-9]{3}")

MISSING_FIELDS_MESSAGE = "All fields are required."
BAD_FORMAT_MESSAGE = "Admission number must be in the format AA123."


def _is_blank(value) -> bool:
    return value is None or not str(value).strip()


def normalize_admission_number(admission_number: str) -> str:
    """Uppercase only. Surrounding whitespace is kept so it fails the format check."""
    return admission_number.upper()


def validate(name: str, phone: str, admission_number: str) -> str:
    """
    Check a registration submission and return the normalized admission number.

    Raises:
        InvalidInput: a field is missing or blank, or the admission number
            is not two letters followed by three digits
    """
    if _is_blank(name) or _is_blank(phone) or _is_blank(admission_number):
        raise InvalidInput(MISSING_FIELDS_MESSAGE)

    # upper() folds some non-ASCII letters into ASCII (ß -> SS)
    if not admission_number.isascii():
        raise InvalidInput(BAD_FORMAT_MESSAGE)

    normalized = normalize_admission_number(admission_number)
    if not ADMISSION_NUMBER_PATTERN.fullmatch(normalized):
        raise InvalidInput(BAD_FORMAT_MESSAGE)
    return normalized
