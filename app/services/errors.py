"""
Exceptions raised by the service layer and mapped to HTTP errors by routers.
"""


class ServiceError(Exception):
    """Base class for service errors."""


class NotFoundError(ServiceError):
    """A referenced record does not exist."""


class InvalidJobStateError(ServiceError):
    """The job's current status does not allow the requested operation."""


class ModelImportError(ServiceError):
    """A source model could not be imported."""
