"""Domain-level exception primitives with stable machine-readable codes."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(eq=False)
class DomainError(Exception):
    """Use-case level error with stable code and HTTP mapping."""

    code: str
    http_status: int
    message: str
    details: dict[str, Any] | None = None

    def __str__(self) -> str:
        return self.message


class NotFoundError(DomainError):
    def __init__(self, code: str, message: str, details: dict[str, Any] | None = None):
        super().__init__(code=code, http_status=404, message=message, details=details)


class UnauthenticatedError(DomainError):
    def __init__(self, message: str = "Authentication required", details: dict[str, Any] | None = None):
        super().__init__(code="UNAUTHENTICATED", http_status=401, message=message, details=details)


class ConfigurationMissingError(DomainError):
    """Agreement-level setup (step templates, agreement link) is absent."""

    def __init__(self, code: str, message: str, details: dict[str, Any] | None = None):
        super().__init__(code=code, http_status=422, message=message, details=details)


class ValidationError(DomainError):
    def __init__(self, code: str, message: str, details: dict[str, Any] | None = None):
        super().__init__(code=code, http_status=400, message=message, details=details)


class ConflictError(DomainError):
    def __init__(self, code: str, message: str, details: dict[str, Any] | None = None):
        super().__init__(code=code, http_status=409, message=message, details=details)
