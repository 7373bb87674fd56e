"""
Billing error taxonomy.

Services raise these; the API layer maps each one to a status code. An
unresolvable rate is not an error: the resolver returns ``Unresolved``.
"""
from typing import Any, Dict, Optional


class BillingError(Exception):
    status_code = 500

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ValidationError(BillingError):
    """Malformed or missing input. Never retried automatically."""
    status_code = 400


class NotFound(BillingError):
    status_code = 404


class Forbidden(BillingError):
    status_code = 403


class ConflictError(BillingError):
    """Write collides with an existing natural key."""
    status_code = 409


class IntegrityViolation(BillingError):
    """A data invariant is broken. Surfaced, never auto-corrected."""
    status_code = 500
