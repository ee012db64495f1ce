"""Custom exception classes for the RateDeck API."""


class RateDeckError(Exception):
    """Base exception for RateDeck."""

    def __init__(self, code: str, message: str, details=None, status_code: int = 500):
        self.code = code
        self.message = message
        self.details = details
        self.status_code = status_code
        super().__init__(message)


class ValidationError(RateDeckError):
    """Request or input validation failure."""

    def __init__(self, message: str, details=None):
        super().__init__("VALIDATION_ERROR", message, details, status_code=400)


class NotFoundError(RateDeckError):
    """Resource not found."""

    def __init__(self, resource: str, resource_id: str | int):
        super().__init__(
            "NOT_FOUND",
            f"{resource} '{resource_id}' not found",
            status_code=404,
        )


class ConflictError(RateDeckError):
    """Resource state conflict, e.g. an illegal job status transition."""

    def __init__(self, message: str, details=None):
        super().__init__("CONFLICT", message, details, status_code=409)


class ImportValidationError(RateDeckError):
    """One or more imported rows were rejected; nothing was written."""

    def __init__(self, errors: list[dict]):
        super().__init__(
            "IMPORT_VALIDATION_ERROR",
            f"Import rejected: {len(errors)} validation error(s)",
            details=errors,
            status_code=422,
        )
        self.errors = errors


class WorkerControlError(RateDeckError):
    """The job worker could not be started or stopped."""

    def __init__(self, message: str):
        super().__init__("WORKER_CONTROL_ERROR", message, status_code=500)
