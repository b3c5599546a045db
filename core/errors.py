"""
core/errors.py -- Domain exception taxonomy for SellerHub.

Services raise these; api/main.py maps each one to an HTTP status and the
shared error envelope. Stores translate SQLAlchemy failures into
DuplicateEmail / DuplicateExternalAccount / StorageError at their boundary so
no caller above the store layer ever sees a driver exception.

Layer rule: core/ is the kernel. This module may not import from api/,
auth/, or sellers/.
"""

from __future__ import annotations

from typing import Optional


class SellerHubError(Exception):
    """Base class for every error the core raises on purpose."""

    code = "error"
    message = "Request failed."

    def __init__(self, message: Optional[str] = None) -> None:
        super().__init__(message or self.message)
        self.message = message or self.message


class ValidationError(SellerHubError):
    """Malformed or missing input, detected before any I/O."""

    code = "validation_error"
    message = "Request validation failed."


class DuplicateEmail(SellerHubError):
    code = "duplicate_email"
    message = "An account with that email already exists."


class DuplicateExternalAccount(SellerHubError):
    code = "duplicate_external_account"
    message = "A Global Seller with this Mercado Libre user ID already exists."


class InvalidCredentials(SellerHubError):
    """Unknown email and wrong password share this error on purpose."""

    code = "bad_credentials"
    message = "Invalid email or password."


class Unauthorized(SellerHubError):
    code = "unauthorized"
    message = "Authentication required."


class NotFoundOrForbidden(SellerHubError):
    """Raised when a record is absent OR owned by someone else.

    The two cases are indistinguishable to the caller so record ids cannot be
    probed for existence.
    """

    code = "not_found"
    message = "Global Seller not found or access denied."


class StorageError(SellerHubError):
    code = "storage_error"
    message = "The data store failed to complete the operation."


class ExternalServiceError(SellerHubError):
    """Marketplace API failure: non-2xx response, network error, or bad body.

    status is the upstream HTTP status, or None when no response arrived.
    """

    code = "external_service_error"
    message = "Marketplace API request failed."

    def __init__(self, status: Optional[int], message: str) -> None:
        super().__init__(message)
        self.status = status


class EnrichmentFailed(SellerHubError):
    """Profile fetch failed during a create/update; nothing was persisted.

    upstream_status / upstream_message are kept for logging only. The API
    layer reports the generic message to the caller.
    """

    code = "enrichment_failed"
    message = "Could not verify the Mercado Libre credentials."

    def __init__(self, upstream_status: Optional[int] = None, upstream_message: str = "") -> None:
        super().__init__()
        self.upstream_status = upstream_status
        self.upstream_message = upstream_message
