from __future__ import annotations


class RoutingError(Exception):
    """Base for every error the routing core surfaces to callers."""

    status_code: int = 500
    error_code: str = "routing_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(RoutingError, ValueError):
    status_code = 400
    error_code = "validation_error"


class NotFoundError(RoutingError, LookupError):
    status_code = 404
    error_code = "not_found"


class ConflictError(RoutingError):
    status_code = 409
    error_code = "conflict"


class AccessDeniedError(RoutingError, PermissionError):
    status_code = 403
    error_code = "access_denied"


class PersistenceError(RoutingError):
    error_code = "persistence_error"


class InvocationError(RoutingError):
    """Raised by the skill invoker. ``error_type`` is stored on the route attempt."""

    error_type = "invocation"

    def __init__(self, message: str, skill_name: str):
        super().__init__(message)
        self.skill_name = skill_name


class ConfigurationError(InvocationError):
    error_code = "configuration_error"
    error_type = "configuration"


class SkillTimeoutError(InvocationError, TimeoutError):
    error_code = "timeout"
    error_type = "timeout"

    def __init__(self, skill_name: str, timeout_ms: int):
        super().__init__(f"Skill {skill_name} timed out after {timeout_ms}ms", skill_name)
        self.timeout_ms = timeout_ms


class RemoteError(InvocationError):
    error_code = "remote_error"
    error_type = "remote"

    def __init__(self, skill_name: str, status_code: int, remote_message: str | None):
        detail = remote_message or "Unknown error"
        super().__init__(f"Skill {skill_name} returned error: {status_code} - {detail}", skill_name)
        self.remote_status = status_code
        self.remote_message = remote_message


class TransportError(InvocationError):
    error_code = "transport_error"
    error_type = "transport"

    def __init__(self, skill_name: str, cause: Exception):
        super().__init__(f"Failed to invoke skill {skill_name}: {cause}", skill_name)
        self.cause = cause
