"""Error taxonomy for the storefront API.

Every error carries the HTTP status it maps to and a public message that is
safe to return to the caller. Internal details stay in the logs.
"""

from __future__ import annotations


class StorefrontError(Exception):
    """Base class for errors rendered as ``{"error": message}``."""

    status_code = 500

    def __init__(self, message: str = "Internal server error"):
        super().__init__(message)
        self.message = message


class AuthFailure(StorefrontError):
    status_code = 401

    def __init__(self, message: str = "Invalid credentials"):
        super().__init__(message)


class NotAuthorized(StorefrontError):
    status_code = 403

    def __init__(self, message: str = "Not logged in"):
        super().__init__(message)


class ValidationFailure(StorefrontError):
    status_code = 400


class InvalidColor(ValidationFailure):
    def __init__(self, color: str):
        super().__init__(f"Unknown color: {color}")
        self.color = color


class EmptyCart(ValidationFailure):
    def __init__(self, message: str = "Cart is empty"):
        super().__init__(message)


class InsufficientStock(ValidationFailure):
    def __init__(self, color: str, requested: int, available: int):
        super().__init__(f"Not enough stock for {color}")
        self.color = color
        self.requested = requested
        self.available = available


class SignatureFailure(StorefrontError):
    """Webhook signature could not be verified."""

    status_code = 400

    def __init__(self, reason: str):
        super().__init__(f"Webhook Error: {reason}")
        self.reason = reason


class IntegrationFailure(StorefrontError):
    """An external collaborator (Stripe, SMTP, Redis) failed."""

    status_code = 500
