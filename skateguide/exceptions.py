"""
Typed errors raised by the service layer.

Services raise these and never translate them to HTTP themselves; the
exception handler registered in ``skateguide.main`` maps ``status_code``
to the response.
"""
from tenacity import retry, retry_if_exception_type, stop_after_attempt


class SkateGuideError(Exception):
    """Base class for all domain errors"""
    status_code = 500
    kind = "InternalError"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(SkateGuideError):
    """Malformed input: bad rating value, missing field, invalid coordinates"""
    status_code = 400
    kind = "ValidationError"


class UnauthorizedError(SkateGuideError):
    """Actor could not be resolved, or failed a credential check"""
    status_code = 401
    kind = "UnauthorizedError"


class ForbiddenError(SkateGuideError):
    """Actor is known but lacks the capability"""
    status_code = 403
    kind = "ForbiddenError"


class NotFoundError(SkateGuideError):
    status_code = 404
    kind = "NotFoundError"


class ConflictError(SkateGuideError):
    """Concurrent write detected by the storage layer"""
    status_code = 409
    kind = "ConflictError"


# A ConflictError gets exactly one more attempt before it reaches the caller
retry_once_on_conflict = retry(
    stop=stop_after_attempt(2),
    retry=retry_if_exception_type(ConflictError),
    reraise=True
)
