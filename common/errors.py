# common/errors.py
"""
Base error types shared by services and views.

Service code raises subclasses of `ServiceError`; `BaseAsyncView.dispatch`
turns them into JSON responses using `status_code` and `detail`.
"""

from __future__ import annotations

from typing import Any, ClassVar


class ServiceError(Exception):
    status_code: ClassVar[int] = 400
    default_detail: ClassVar[str] = "The request could not be processed."
    retryable: ClassVar[bool] = False

    def __init__(self, detail: str | None = None, **context: Any) -> None:
        self.detail = detail or self.default_detail
        self.context = context
        super().__init__(self.detail)

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"detail": self.detail, "code": type(self).__name__}
        if self.context:
            payload["context"] = self.context
        if self.retryable:
            payload["retryable"] = True
        return payload


class PermissionDeniedError(ServiceError):
    status_code = 403
    default_detail = "You are not allowed to perform this action."


class NotAuthenticatedError(ServiceError):
    status_code = 401
    default_detail = "The X-Player-Id header is required."
