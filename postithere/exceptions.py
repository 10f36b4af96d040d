"""Domain errors raised by the services and mapped to HTTP responses in `postithere.api.server`."""

from __future__ import annotations


class PostItHereError(Exception):
    """Base class for all errors raised by this package."""


# -----------------------------
# Persistence
# -----------------------------


class StorageError(PostItHereError):
    """The document store failed or did not acknowledge a write."""


class DuplicateDocumentError(StorageError):
    """An insert violated a unique index."""


# -----------------------------
# Request validation
# -----------------------------


class MissingFieldError(PostItHereError):
    def __init__(self, field: str):
        self.field = field
        super().__init__(f"Field '{field}' is required, but it was missing")


class InvalidParameterError(PostItHereError):
    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Parameter '{name}' must have a single value")


# -----------------------------
# Auth
# -----------------------------


class AuthenticationError(PostItHereError):
    """Missing, invalid or expired token, or wrong credentials.

    Always rendered without a body so that callers cannot tell the causes apart.
    """

    def __init__(self, reason: str = "unauthorized", *, challenge: bool = True):
        self.reason = reason
        self.challenge = challenge
        super().__init__(reason)


class RegistrationClosedError(PostItHereError):
    pass


class DuplicateEmailError(PostItHereError):
    def __init__(self, email: str):
        self.email = email
        super().__init__("email_exists")


class UserNotFoundError(PostItHereError):
    def __init__(self, user_id: str):
        self.user_id = user_id
        super().__init__(f"The user with the id {user_id} was not found")


# -----------------------------
# Forms
# -----------------------------


class FormNotFoundError(PostItHereError):
    def __init__(self, form_id: str):
        self.form_id = form_id
        super().__init__(f"The form with the formId {form_id} was not found")


class FormAlreadyExistsError(PostItHereError):
    def __init__(self, form_id: str):
        self.form_id = form_id
        super().__init__(f"The form with the formId {form_id} already exists")


class UnsupportedBodyError(PostItHereError):
    def __init__(self, content_type: str):
        self.content_type = content_type
        super().__init__(f"Unsupported content type '{content_type}', submit form data instead")
