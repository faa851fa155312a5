"""Domain errors raised by services and mapped to HTTP responses by the API layer."""


class ServiceError(Exception):
    """Base class for service-layer errors."""

    status_code = 400

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class NotFoundError(ServiceError):
    """Requested resource does not exist (or is not visible to the caller)."""

    status_code = 404


class PermissionDeniedError(ServiceError):
    """Caller lacks the role required for the operation (e.g. club leader)."""

    status_code = 403


class ConflictError(ServiceError):
    """Operation is invalid for the current state of the resource."""

    status_code = 400


class ServiceUnavailableError(ServiceError):
    """A required external service is not configured."""

    status_code = 503
