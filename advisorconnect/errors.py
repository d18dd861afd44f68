"""Domain errors raised by services and rendered by the API exception handler"""

from typing import Optional


class AppError(Exception):
    """Base class for errors that map onto an HTTP response"""

    status_code = 500
    default_detail = "Internal error"

    def __init__(self, detail: Optional[str] = None, errors: Optional[dict] = None):
        self.detail = detail or self.default_detail
        self.errors = errors or {}
        super().__init__(self.detail)

    def to_dict(self) -> dict:
        body = {"detail": self.detail}
        if self.errors:
            body["errors"] = self.errors
        return body


class ValidationError(AppError):
    """Malformed or missing input; `errors` maps field name to message"""

    status_code = 400
    default_detail = "Invalid request data"


class ConflictError(AppError):
    status_code = 409
    default_detail = "Slug already taken"


class NotFoundError(AppError):
    status_code = 404
    default_detail = "Not found"


class LinkExpiredError(AppError):
    status_code = 400
    default_detail = "Scheduling link has expired"


class LinkExhaustedError(AppError):
    status_code = 400
    default_detail = "Scheduling link has reached its maximum uses"


class CredentialRefreshError(AppError):
    """The stored calendar credential could not be refreshed"""

    status_code = 401
    default_detail = "Calendar credential could not be refreshed"


class SideEffectError(AppError):
    """A post-booking side effect (calendar sync, email) failed"""

    status_code = 502
    default_detail = "Side effect failed"
