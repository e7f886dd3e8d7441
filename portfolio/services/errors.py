"""
Exceptions raised by the service layer. Routers translate them to HTTP errors.
"""


class ServiceError(Exception):
    """Base class for expected service-layer failures."""


class NotFoundError(ServiceError, LookupError):
    """The referenced row does not exist."""


class ConflictError(ServiceError):
    """The write would violate a uniqueness rule."""
