# Overview: Service-layer error taxonomy shared by routes and services.

"""
Errors raised by the service layer.

Every error carries the HTTP status the routes answer with. Cross-tenant
lookups raise NotFound, never a distinct error, so a caller cannot learn
that an entity exists in another store.
"""


class ServiceError(Exception):
    """Base class for errors that map to a client-visible response."""
    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message

    def to_dict(self) -> dict:
        return {"error": self.message}


class ValidationError(ServiceError):
    """400-level input problem."""
    status_code = 400
    default_message = "Invalid input"


class Unauthorized(ServiceError):
    status_code = 401
    default_message = "Unauthorized"


class Forbidden(ServiceError):
    status_code = 403
    default_message = "Access denied"


class NotFound(ServiceError):
    status_code = 404
    default_message = "Not found"


class ConflictError(ServiceError):
    """409-level business rule conflict (e.g., duplicate barcode)."""
    status_code = 409
    default_message = "Conflict"


class SessionExpired(ServiceError):
    """A QR grant or customer session is past its expiry."""
    status_code = 401
    default_message = "Session expired. Please scan a new QR code."

    def to_dict(self) -> dict:
        return {"error": self.message, "expired": True}


class NoPhoto(ServiceError):
    status_code = 400
    default_message = "Please upload a photo first"


class GenerationFailed(ServiceError):
    """The external image generator errored or timed out."""
    status_code = 502
    default_message = "Failed to generate try-on image"


class NotConfigured(ServiceError):
    """
    Degraded-mode signal: no image generation credential is configured.

    Never returned to clients; the try-on orchestrator catches it and falls
    back to the garment image.
    """
    status_code = 503
    default_message = "Image generation is not configured"
