# app/errors.py
"""
Service-level errors. Services raise these; app.main renders them as
{"error": reason, "message": text} with the matching status code.
"""

from typing import Optional


class ServiceError(Exception):
    status_code = 500
    reason = "internal_error"

    def __init__(self, message: Optional[str] = None, reason: Optional[str] = None,
                 status_code: Optional[int] = None):
        self.message = message or self.reason.replace("_", " ")
        if reason:
            self.reason = reason
        if status_code:
            self.status_code = status_code
        super().__init__(self.message)


class BadRequest(ServiceError):
    status_code = 400
    reason = "bad_request"


class Unauthorized(ServiceError):
    status_code = 401
    reason = "unauthorized"


class Forbidden(ServiceError):
    status_code = 403
    reason = "forbidden"


class NotFound(ServiceError):
    status_code = 404
    reason = "not_found"


class Conflict(ServiceError):
    status_code = 409
    reason = "conflict"


class ServiceUnavailable(ServiceError):
    status_code = 503
    reason = "service_unavailable"
