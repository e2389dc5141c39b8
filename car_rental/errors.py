from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass
class AppError(Exception):
    code: str
    message: str
    status_code: int
    field: Optional[str] = None

    def to_dict(self) -> dict[str, str]:
        payload = {"code": self.code, "message": self.message}
        if self.field:
            payload["field"] = self.field
        return payload


class ValidationError(AppError):
    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(code="VALIDATION_ERROR", message=message, status_code=400, field=field)


class NotFoundError(AppError):
    def __init__(self, message: str):
        super().__init__(code="NOT_FOUND", message=message, status_code=404)


class ConflictError(AppError):
    """The request is well formed but cannot be honoured in the current state."""

    def __init__(self, message: str, code: str = "CONFLICT", status_code: int = 400):
        super().__init__(code=code, message=message, status_code=status_code)


class InvalidTransitionError(ConflictError):
    def __init__(self, message: str):
        super().__init__(message, code="INVALID_TRANSITION")


class ForbiddenError(ConflictError):
    def __init__(self, message: str):
        super().__init__(message, code="FORBIDDEN", status_code=403)


class UnauthorizedError(AppError):
    def __init__(self, message: str):
        super().__init__(code="UNAUTHORIZED", message=message, status_code=401)


class InfrastructureError(AppError):
    def __init__(self, message: str = "internal error, please retry later"):
        super().__init__(code="INTERNAL_ERROR", message=message, status_code=500)
