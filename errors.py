"""
Exception hierarchy raised by route handlers and service helpers.

Each class carries the HTTP status it maps to; main.py turns them into
``{"error": message}`` JSON responses.
"""


class MarketplaceError(Exception):
    """Base class for all application errors"""
    status_code = 500

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ValidationError(MarketplaceError):
    """Request data failed validation"""
    status_code = 400


class AuthenticationError(MarketplaceError):
    """No valid session"""
    status_code = 401

    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message)


class AuthorizationError(MarketplaceError):
    """Caller is not allowed to do this"""
    status_code = 403

    def __init__(self, message: str = "Forbidden"):
        super().__init__(message)


class ResourceNotFoundError(MarketplaceError):
    status_code = 404

    def __init__(self, resource_type: str, identifier=None):
        self.resource_type = resource_type
        self.identifier = identifier
        super().__init__(f"{resource_type} not found")


class ConflictError(MarketplaceError):
    """Resource already exists"""
    status_code = 409


class UnprocessableError(MarketplaceError):
    status_code = 422


class RateLimitError(MarketplaceError):
    status_code = 429


class UpstreamServiceError(MarketplaceError):
    """A third-party API failed or returned garbage"""
    status_code = 502

    def __init__(self, service: str, message: str, status_code: int | None = None):
        self.service = service
        if status_code is not None:
            self.status_code = status_code
        super().__init__(message)


class ServiceNotConfiguredError(MarketplaceError):
    """Credentials for a third-party service are missing"""
    status_code = 503

    def __init__(self, service: str, message: str | None = None):
        self.service = service
        super().__init__(message or f"{service} is not configured")
