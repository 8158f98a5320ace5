"""Error taxonomy shared by every API endpoint.

Views raise these; ``portal.middleware.ApiErrorMiddleware`` turns them into
JSON responses of the form ``{"ok": false, "error": <code>, "message": ...}``.
"""
from __future__ import annotations


class PortalError(Exception):
    status = 500
    code = "internal_error"
    default_message = "Internal server error"

    def __init__(self, message: str | None = None, *, errors: dict | None = None):
        self.message = message or self.default_message
        self.errors = errors
        super().__init__(self.message)

    def as_dict(self) -> dict:
        payload = {"ok": False, "error": self.code, "message": self.message}
        if self.errors:
            payload["errors"] = self.errors
        return payload


class AuthenticationRequired(PortalError):
    status = 401
    code = "authentication_required"
    default_message = "Authentication required"


class AuthenticationFailed(PortalError):
    status = 401
    code = "authentication_failed"
    default_message = "Invalid username or password"


class InsufficientPrivilege(PortalError):
    status = 403
    code = "insufficient_privilege"
    default_message = "Insufficient privilege"


class ValidationFailure(PortalError):
    status = 400
    code = "validation_failed"
    default_message = "Invalid request"

    @classmethod
    def from_form(cls, form) -> "ValidationFailure":
        errors = {field: [str(e) for e in errs] for field, errs in form.errors.items()}
        first = next(iter(errors.values()), ["Invalid request"])[0]
        return cls(first, errors=errors)


class InvalidFileType(ValidationFailure):
    code = "invalid_file_type"
    default_message = "Invalid file type"


class FileTooLarge(ValidationFailure):
    status = 413
    code = "file_too_large"
    default_message = "File too large"


class NotFound(PortalError):
    status = 404
    code = "not_found"
    default_message = "Not found"


class FileNotFound(NotFound):
    default_message = "File not found"


class Conflict(PortalError):
    status = 409
    code = "conflict"
    default_message = "Conflict"


class Internal(PortalError):
    pass
