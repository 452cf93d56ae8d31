"""
Application error taxonomy.

Every lifecycle operation raises one of these; the handlers registered in
venturelink.main turn them into the standard response envelope
({success, data, message}) with the matching HTTP status.
"""


class AppError(Exception):
    """Base class for errors that are safe to show to the caller."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(AppError):
    """Malformed input or enum violation."""
    status_code = 400


class NotFoundError(AppError):
    """
    Missing entity.

    Also used when the caller is not a participant of a record, so that
    outsiders cannot probe which ids exist.
    """
    status_code = 404


class ForbiddenError(AppError):
    """Caller's role may not perform the operation."""
    status_code = 403


class InvalidRoleError(ForbiddenError):
    """Sender/receiver role pairing is not investor <-> startup."""
    # Role-pairing failures answer 400, not 403
    status_code = 400


class ConflictError(AppError):
    """Duplicate request or a record that was already processed."""
    # Kept at 400 for client compatibility
    status_code = 400


class QuotaExceededError(ConflictError):
    """Startup has used every nudge it paid for."""
