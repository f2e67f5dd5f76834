# order_api/errors.py
from __future__ import annotations

from typing import Any, Dict, List, Optional


class ServiceError(Exception):
    status_code = 500

    def __init__(self, message: str, details: Optional[List[Dict[str, Any]]] = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_body(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"erro": self.message}
        if self.details:
            body["detalhes"] = self.details
        return body


class ValidationFailed(ServiceError):
    status_code = 400


class BadRequest(ServiceError):
    status_code = 400


class Conflict(ServiceError):
    # unique violations are reported as bad requests by the public API
    status_code = 400


class Unauthorized(ServiceError):
    status_code = 401


class NotFound(ServiceError):
    status_code = 404


class NotificationError(ServiceError):
    status_code = 500
