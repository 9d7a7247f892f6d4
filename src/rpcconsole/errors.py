"""Error hierarchy for the service console.

Every domain error carries a human-readable message, a recoverable flag and a
context dict that ends up in diagnostics. Collaborator failures never escape a
request: the pipeline renders them into the page, and the HTTP surface turns
the rest into an `ErrorResponse`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

# Codes shown in the "code" line of an exception fragment when the exception
# does not carry its own.
SERVICE_NOT_FOUND = -32601
METHOD_NOT_FOUND = -32602
SERVICE_LOAD_ERROR = -32603
CONFIGURATION_ERROR = -32010
UNSUPPORTED_CONTENT_TYPE = -32020
INTERNAL_ERROR = -32099


class ConsoleError(Exception):
    """Base class for all console errors."""

    error_type = "console"

    def __init__(
        self,
        message: str,
        *,
        recoverable: bool = False,
        context: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.recoverable = recoverable
        self.context = context or {}

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "type": self.error_type,
            "message": self.message,
            "recoverable": self.recoverable,
        }
        result.update(self.context)
        return result


class ServiceNotFoundError(ConsoleError):
    """No service with the requested name is known to the directory."""

    error_type = "service_not_found"

    def __init__(self, service_name: str, message: str | None = None) -> None:
        super().__init__(
            message or f"Service not found: {service_name}",
            context={"service_name": service_name},
        )
        self.service_name = service_name


class MethodNotFoundError(ConsoleError):
    """The service exists but does not expose the requested public method."""

    error_type = "method_not_found"

    def __init__(self, service_name: str, method_name: str) -> None:
        super().__init__(
            f"Method not found: {service_name}.{method_name}",
            context={"service_name": service_name, "method_name": method_name},
        )
        self.service_name = service_name
        self.method_name = method_name


class ServiceLoadError(ConsoleError):
    """A service module was found but could not be imported or instantiated."""

    error_type = "service_load"

    def __init__(self, service_name: str, reason: str) -> None:
        super().__init__(
            f"Could not load service {service_name}: {reason}",
            context={"service_name": service_name},
        )
        self.service_name = service_name


class ConfigurationError(ConsoleError):
    """Invalid configuration value."""

    error_type = "configuration"

    def __init__(self, message: str, *, setting: str | None = None) -> None:
        context = {"setting": setting} if setting else None
        super().__init__(message, context=context)
        self.setting = setting


class UnsupportedContentTypeError(ConsoleError):
    """The request declared a content type the console does not handle."""

    error_type = "unsupported_content_type"

    def __init__(self, content_type: str) -> None:
        super().__init__(
            f"Unsupported content type: {content_type}",
            context={"content_type": content_type},
        )
        self.content_type = content_type


_ERROR_CODES: list[tuple[type[ConsoleError], int]] = [
    (ServiceNotFoundError, SERVICE_NOT_FOUND),
    (MethodNotFoundError, METHOD_NOT_FOUND),
    (ServiceLoadError, SERVICE_LOAD_ERROR),
    (ConfigurationError, CONFIGURATION_ERROR),
    (UnsupportedContentTypeError, UNSUPPORTED_CONTENT_TYPE),
]


def get_error_code(exc: BaseException) -> int:
    """Return the numeric code for an exception.

    An integer `code` attribute on the exception wins; domain errors map to
    their fixed codes; anything else is 0.
    """
    code = getattr(exc, "code", None)
    if isinstance(code, int) and not isinstance(code, bool):
        return code
    for error_class, error_code in _ERROR_CODES:
        if isinstance(exc, error_class):
            return error_code
    if isinstance(exc, ConsoleError):
        return INTERNAL_ERROR
    return 0


@dataclass
class ErrorResponse:
    """Structured error payload for non-HTML responses."""

    error_type: str
    message: str
    recoverable: bool = False
    details: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": {
                "type": self.error_type,
                "message": self.message,
                "recoverable": self.recoverable,
                "details": self.details,
            }
        }


def error_response(exc: BaseException) -> ErrorResponse:
    """Convert any exception into an ErrorResponse."""
    if isinstance(exc, ConsoleError):
        return ErrorResponse(
            error_type=exc.error_type,
            message=exc.message,
            recoverable=exc.recoverable,
            details=dict(exc.context),
        )
    return ErrorResponse(
        error_type="internal",
        message=f"{type(exc).__name__}: {exc}",
    )
