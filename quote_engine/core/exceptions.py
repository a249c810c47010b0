"""Custom exceptions for the quote engine."""


class QuoteEngineError(Exception):
    """Base exception for the quote engine."""

    status_code = 500
    error_code = "internal_error"


class ValidationError(QuoteEngineError):
    """Raised when input is malformed or violates a business rule."""

    status_code = 400
    error_code = "validation_error"


class AuthenticationError(QuoteEngineError):
    """Raised when the caller's token cannot be verified."""

    status_code = 401
    error_code = "authentication_error"


class AuthorizationError(QuoteEngineError):
    """Raised when the caller's role lacks a required scope."""

    status_code = 403
    error_code = "authorization_error"


class NotFoundError(QuoteEngineError):
    """Raised when a resource is unknown or not owned by the caller."""

    status_code = 404
    error_code = "not_found"


class ConflictError(QuoteEngineError):
    """Raised when a write collides with the current state of a resource."""

    status_code = 409
    error_code = "conflict"


class DependencyError(QuoteEngineError):
    """Raised when a collaborator service is unreachable."""

    status_code = 502
    error_code = "dependency_error"


class ConfigurationError(QuoteEngineError):
    """Raised when configuration is invalid."""

    error_code = "configuration_error"
