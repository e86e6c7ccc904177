"""Shared-secret gate for the admin listing."""

import hmac
from typing import Optional

from registrar.errors import Unauthorized


class AdminGate:

    def __init__(self, secret: str):
        if not secret:
            raise ValueError("Admin secret must not be empty")
        self._secret = secret.encode("utf-8")

    def authorize(self, supplied_secret: Optional[str]) -> None:
        """Raise Unauthorized unless supplied_secret equals the configured secret."""
        if not supplied_secret:
            raise Unauthorized("Missing admin key")
        if not hmac.compare_digest(supplied_secret.encode("utf-8"), self._secret):
            raise Unauthorized("Invalid admin key")
