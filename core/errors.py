"""
core/errors.py -- Exception taxonomy for the Expense API.

Every domain error carries the HTTP status and machine-readable code it maps
to, so api/main.py needs a single exception handler for the whole tree
instead of one per class.

  ExpenseApiError           500 internal_error   (base)
    ValidationError         400 validation_error
    AuthenticationError     401 unauthorized
      TokenInvalidError
      TokenExpiredError
      AccountNotFoundError
      IncorrectPasswordError
    NotFoundError           404 not_found        (absent OR owned by someone else)
    ConflictError           409 conflict
    CredentialFormatError   500 internal_error
    StoreError              500 store_error

5xx messages are replaced with a generic text before they reach a client.

Layer rule: core/ is the kernel. No imports from api/, auth/ or expenses/.
"""

from __future__ import annotations


class ExpenseApiError(Exception):
    """Base class for every error raised deliberately by this service."""

    status_code: int = 500
    code: str = "internal_error"
    default_message: str = "An unexpected error occurred."

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(ExpenseApiError):
    status_code = 400
    code = "validation_error"
    default_message = "Request validation failed."


class AuthenticationError(ExpenseApiError):
    status_code = 401
    code = "unauthorized"
    default_message = "Unauthorized"


class TokenInvalidError(AuthenticationError):
    """Bad signature, malformed structure, missing claims or tampering."""

    default_message = "Token is invalid."


class TokenExpiredError(AuthenticationError):
    default_message = "Token has expired."


class AccountNotFoundError(AuthenticationError):
    default_message = "No account found with this email"


class IncorrectPasswordError(AuthenticationError):
    default_message = "Incorrect password"


class NotFoundError(ExpenseApiError):
    status_code = 404
    code = "not_found"
    default_message = "Resource not found."


class ConflictError(ExpenseApiError):
    status_code = 409
    code = "conflict"
    default_message = "Resource already exists."


class CredentialFormatError(ExpenseApiError):
    """A stored password digest could not be parsed."""

    default_message = "Malformed password digest."


class StoreError(ExpenseApiError):
    code = "store_error"
    default_message = "Storage operation failed."
