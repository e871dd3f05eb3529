"""Error taxonomy shared by the auth core and the HTTP layer.

Learn: One exception class, many kinds. Instead of a subclass per failure
(MissingCredentialError, RevokedCredentialError, ...), every failure raises
InkpressError with an ErrorKind. Call sites that need to react to a
particular failure branch on `err.kind`; the request boundary maps the kind
to an HTTP status and a fixed user-facing message.
"""

import enum
from typing import Optional


class ErrorKind(str, enum.Enum):
    MISSING_CREDENTIAL = "missing_credential"
    REVOKED_CREDENTIAL = "revoked_credential"
    INVALID_CREDENTIAL = "invalid_credential"
    IDENTITY_NOT_FOUND = "identity_not_found"
    INSUFFICIENT_ROLE = "insufficient_role"
    NOT_AUTHORIZED = "not_authorized"
    INVALID_OR_EXPIRED_TOKEN = "invalid_or_expired_token"
    PERSISTENCE_FAILURE = "persistence_failure"
    VALIDATION_FAILED = "validation_failed"
    NOT_FOUND = "not_found"


# kind → (HTTP status, default user-facing message)
_RESPONSES: dict[ErrorKind, tuple[int, str]] = {
    ErrorKind.MISSING_CREDENTIAL: (401, "No token provided"),
    ErrorKind.REVOKED_CREDENTIAL: (401, "Token is invalid"),
    ErrorKind.INVALID_CREDENTIAL: (401, "Token verification failed"),
    ErrorKind.IDENTITY_NOT_FOUND: (404, "User not found"),
    ErrorKind.INSUFFICIENT_ROLE: (401, "Admin access required"),
    ErrorKind.NOT_AUTHORIZED: (401, "Not authorized to modify this resource"),
    ErrorKind.INVALID_OR_EXPIRED_TOKEN: (400, "Invalid or expired token"),
    ErrorKind.PERSISTENCE_FAILURE: (500, "Database error occurred"),
    ErrorKind.VALIDATION_FAILED: (400, "Validation failed"),
    ErrorKind.NOT_FOUND: (404, "Resource not found"),
}


class InkpressError(Exception):
    """A per-request failure tagged with its ErrorKind.

    `message` is safe to show to clients. `detail` carries internal context
    (library error text, ids) and is only exposed outside production.
    """

    def __init__(
        self,
        kind: ErrorKind,
        message: Optional[str] = None,
        detail: Optional[str] = None,
    ):
        self.kind = kind
        self.message = message or _RESPONSES[kind][1]
        self.detail = detail
        super().__init__(self.message)

    @property
    def status_code(self) -> int:
        return _RESPONSES[self.kind][0]

    def __repr__(self) -> str:
        return f"InkpressError({self.kind.name}, {self.message!r})"
