"""Error taxonomy shared by the core services and the HTTP layer.

Domain errors are expected outcomes of valid input against current state and
are never retried. ``StoreError`` and its subclasses come from the
persistence wrapper.
"""

from __future__ import annotations


class ShelfError(Exception):
    """Base class for every error raised by PromptShelf services."""

    code = "error"
    default_message = "Request failed"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message)

    @property
    def message(self) -> str:
        return str(self)


# --- Not-found / denied ---


class NotFoundOrDenied(ShelfError):
    """The library (or something inside it) is absent or invisible to the actor."""

    code = "not_found"
    default_message = "Library not found or access denied"


class InsufficientPermission(ShelfError):
    code = "insufficient_permission"
    default_message = "Insufficient permissions"


# --- Invite state ---


class InvalidOrExpiredInvite(ShelfError):
    code = "invalid_or_expired_invite"
    default_message = "Invalid or expired invitation"


class EmailMismatch(ShelfError):
    code = "email_mismatch"
    default_message = "This invitation is not for your email address"


class AlreadyHasAccess(ShelfError):
    code = "already_has_access"
    default_message = "User already has access to this library"


class DuplicatePendingInvite(ShelfError):
    code = "duplicate_pending_invite"
    default_message = "Pending invitation already exists for this email"


# --- Owner protection ---


class CannotModifyOwner(ShelfError):
    code = "cannot_modify_owner"
    default_message = "Cannot change or remove the owner's access"


class NoExistingAccess(ShelfError):
    code = "no_existing_access"
    default_message = "User does not have access to this library"


# --- Private libraries ---


class LibraryLocked(ShelfError):
    code = "library_locked"
    default_message = "Library is locked"


class InvalidLibraryPassword(ShelfError):
    code = "invalid_library_password"
    default_message = "Invalid password"


# --- Accounts ---


class AuthenticationFailed(ShelfError):
    code = "authentication_failed"
    default_message = "Invalid email or password"


class EmailAlreadyRegistered(ShelfError):
    code = "email_already_registered"
    default_message = "User with this email already exists"


# --- Input ---


class ValidationFailed(ShelfError):
    code = "validation_failed"
    default_message = "Invalid input"


class DuplicateName(ShelfError):
    code = "duplicate_name"
    default_message = "An item with this name already exists"


# --- Infrastructure ---


class StoreError(ShelfError):
    """The database could not be reached or rejected a request unexpectedly."""

    code = "store_unavailable"
    default_message = "Database request failed"


class UniqueViolation(StoreError):
    code = "unique_violation"
    default_message = "Unique constraint violated"


class RowNotFound(StoreError):
    code = "row_not_found"
    default_message = "Row not found"
