"""Error taxonomy for configforge.

Every failure raised by the engine carries:
- code: HTTP-style status code (400, 404, 409, 424, 500)
- response_id: Stable machine-readable identifier (e.g., "FIELD_NOT_UNIQUE")
- message: Human-readable description, safe to report verbatim
- data: Optional structured details

Client faults (4xx) indicate a problem with the caller's input. Server faults
(5xx) indicate a programming or deployment defect.
"""

from http import HTTPStatus
from typing import Any


class ConfigForgeError(Exception):
    """Base class for all configforge errors."""

    code: int = 500

    def __init__(
        self,
        message: str,
        response_id: str,
        data: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.response_id = response_id
        self.data = data or {}

    @property
    def status(self) -> str:
        """Canonical lowercase phrase for the status code."""
        return HTTPStatus(self.code).phrase.lower()

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.code,
            "status": self.status,
            "response_id": self.response_id,
            "message": self.message,
            "data": self.data,
        }

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.response_id!r}, {self.message!r})"


class ValidationError(ConfigForgeError):
    """A client-supplied value was rejected."""

    code = 400


class NotFoundError(ConfigForgeError):
    """The requested record does not exist."""

    code = 404


class ConflictError(ConfigForgeError):
    """The operation conflicts with existing records (e.g., record in use)."""

    code = 409


class FailedDependencyError(ConfigForgeError):
    """A required external package or module is not available."""

    code = 424


class ServerError(ConfigForgeError):
    """Programming, configuration or stored-data integrity fault."""

    code = 500


class LockTimeoutError(ServerError):
    """The exclusive config write lock could not be acquired."""
