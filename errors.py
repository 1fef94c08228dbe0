"""Exceptions raised by the storefront services.

Each subclass carries the HTTP status the API answers with; main.py turns
them into the ``{"success": false, "message": ...}`` envelope.
"""


class StorefrontError(Exception):
    """Base exception for all expected storefront failures."""

    status_code = 500

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ValidationFailed(StorefrontError):
    """Malformed or missing input."""

    status_code = 400


class Unauthorized(StorefrontError):
    """Missing, malformed, expired or forged credentials."""

    status_code = 401


class Forbidden(StorefrontError):
    """Authenticated, but not the owner of the resource."""

    status_code = 403


class NotFound(StorefrontError):
    status_code = 404


class Conflict(StorefrontError):
    """A unique field (email, username) is already taken.

    Answered with 400 to stay compatible with existing clients.
    """

    status_code = 400


class ConfigurationError(StorefrontError):
    """Raised at startup when a required setting is unusable."""
