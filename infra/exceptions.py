"""
Custom exceptions for application errors.

Transport errors (connection, availability) derive from ConnectionError so
retry policies can match them as a family. Protocol errors derive from
RuntimeError and are never retried automatically.
"""


class FatalValidationError(RuntimeError):
    """Fatal validation error that prevents application from starting."""
    pass


class AuthorizationError(ConnectionError):
    """Authentication/authorization failed."""
    pass


class ServiceUnavailableError(ConnectionError):
    """Service is temporarily unavailable."""
    pass


class ValidationError(RuntimeError):
    """Malformed request payload. Rejected before any state is touched."""
    pass


class InfraConnectionError(ConnectionError):
    """Infrastructure connection error for retry logic."""
    pass


class CacheUnavailableError(ConnectionError):
    """Key-value store read or write failed."""
    pass


class StorageFailure(RuntimeError):
    """Vector index write failed."""
    pass


class DerivationFailure(RuntimeError):
    """External summary/embedding call failed or timed out."""
    pass


class ArityMismatchError(DerivationFailure):
    """Derived batch length differs from the input batch length."""

    def __init__(self, expected: int, actual: int, what: str = "results") -> None:
        super().__init__(f"{what} count mismatch: expected {expected}, got {actual}")
        self.expected = expected
        self.actual = actual


class ParseError(RuntimeError):
    """Source text could not be turned into a syntax tree."""
    pass
