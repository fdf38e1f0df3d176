# -*- coding: utf-8 -*-
"""Domain error taxonomy.

VALIDATION  - rejected synchronously, never retried (400)
NOT FOUND   - missing row, or a row the caller may not act on (404)
CONFLICT    - state changed underneath the caller; re-fetch and retry (409)
FORBIDDEN   - Access Guard denied a read; no data is returned (403)
DELIVERY    - channel failure; never escapes the business operation
EXTERNAL    - upstream collaborator unreachable; surfaced as a generic failure
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class ThryveError(Exception):
    status_code: int = 500
    default_detail: str = "Internal error"

    def __init__(self, detail: Optional[str] = None, **context: Any) -> None:
        self.detail = detail or self.default_detail
        self.context: Dict[str, Any] = context
        super().__init__(self.detail)

    def to_dict(self) -> Dict[str, Any]:
        return {"detail": self.detail, "error": type(self).__name__}


class ValidationError(ThryveError):
    status_code = 400
    default_detail = "Invalid request"


class InvalidSelfRequest(ValidationError):
    default_detail = "You cannot request access to your own readings"


class NotFound(ThryveError):
    status_code = 404
    default_detail = "Not found"


class ConflictError(ThryveError):
    status_code = 409
    default_detail = "Conflict"


class DuplicateRequest(ConflictError):
    default_detail = "A reading request for this user already exists"


class AlreadyResolved(ConflictError):
    default_detail = "Reading request has already been resolved"


class AuthorizationError(ThryveError):
    status_code = 403
    default_detail = "You do not have access to these readings"


class DeliveryError(ThryveError):
    """Channel-level failure. `permanent` marks the destination as gone."""

    status_code = 502
    default_detail = "Delivery failed"

    def __init__(self, detail: Optional[str] = None, *, permanent: bool = False, **context: Any) -> None:
        super().__init__(detail, **context)
        self.permanent = permanent


class ExternalServiceError(ThryveError):
    status_code = 502
    default_detail = "Upstream service failed"


class AssistantUnavailable(ExternalServiceError):
    status_code = 503
    default_detail = "The health assistant is unavailable right now. Please try again later."
