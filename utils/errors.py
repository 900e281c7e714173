"""
Error types raised by the booking core and rendered by the API error handler.

Each error carries an HTTP status and optional details that are merged into
the JSON body next to ``error``.
"""


class AppError(Exception):
    status_code = 400

    def __init__(self, message: str, **details):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict:
        body = {"error": self.message}
        body.update(self.details)
        return body


class ValidationError(AppError):
    status_code = 400


class NotFoundError(AppError):
    status_code = 404

    def __init__(self, kind: str, entity_id, message: str = None):
        super().__init__(
            message or f"{kind.capitalize()} not found with id {entity_id}",
            entity=kind,
            entity_id=entity_id,
        )


class ConflictError(AppError):
    status_code = 409


class ForbiddenError(AppError):
    status_code = 403


class InvalidStateError(AppError):
    status_code = 400

    def __init__(self, message: str, current_status: str):
        super().__init__(message, status=current_status)


class StorageError(AppError):
    """Persistence failure. The message never includes driver details."""
    status_code = 500

    def __init__(self, message: str = "Storage failure, please try again later"):
        super().__init__(message)
