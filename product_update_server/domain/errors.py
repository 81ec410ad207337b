"""
Error kinds surfaced to callers of the update server.

Each error carries a stable machine-readable `code` and the HTTP status the
API responds with.
"""

from __future__ import annotations


class UpdateServerError(Exception):
    code = "product_update_server_error"
    status_code = 500
    default_message = "The update server could not complete the request."

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {
            "code": self.code,
            "message": self.message,
            "data": {"status": self.status_code},
        }


class NotFound(UpdateServerError):
    code = "product_update_server_not_found"
    status_code = 404
    default_message = "Requested product was not found."


class MissingIdentity(UpdateServerError):
    code = "product_update_server_missing_identity"
    status_code = 400
    default_message = "Customer email, ID or membership plan is required to validate access."


class Forbidden(UpdateServerError):
    code = "product_update_server_forbidden"
    status_code = 403
    default_message = "Customer is not authorized for this download."


class CatalogUnavailable(UpdateServerError):
    """Raised by catalog adapters that are absent or misconfigured."""

    code = "product_update_server_catalog_unavailable"
    status_code = 503
    default_message = "The product catalog is not available."


class AccessOracleError(UpdateServerError):
    """A purchase or membership lookup failed; access is never granted on this path."""

    code = "product_update_server_oracle_unavailable"
    status_code = 502
    default_message = "Customer access could not be verified."
