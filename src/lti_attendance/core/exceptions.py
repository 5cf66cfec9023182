class DomainError(Exception):
    """Base exception for business rule violations."""


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""


class FieldMappingError(ValidationError):
    """Raised when a field mapping does not fit the report it is applied to."""


class AuthenticationError(DomainError):
    """Raised when an LTI launch cannot be trusted."""


class AuthorizationError(DomainError):
    """Raised when a user lacks permission for an action."""


class NotFoundError(DomainError):
    """Raised when a requested record does not exist."""


class UpstreamError(DomainError):
    """Raised when Moodle (web services or database) fails."""
