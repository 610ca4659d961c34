# campus_portal/core/errors.py
from __future__ import annotations


class ValidationError(ValueError):
    """Missing or malformed required input."""

    status_code = 400


class InvalidState(ValueError):
    """Action not valid for the listing's current status."""

    status_code = 400


class AlreadyApplied(ValueError):
    status_code = 400


class NotFound(LookupError):
    status_code = 404


class Forbidden(PermissionError):
    status_code = 403


class UpstreamFailure(RuntimeError):
    """Image storage (or another collaborator) failed."""

    status_code = 502


DOMAIN_ERRORS = (
    ValidationError,
    InvalidState,
    AlreadyApplied,
    NotFound,
    Forbidden,
    UpstreamFailure,
)
