"""
Courier Exception Hierarchy

Structured exception classes for the API surface and its service layer.
All exceptions include code, message, and details for audit trail and
debugging, plus the HTTP status the API boundary renders them with.

Exception Hierarchy:
    CourierError
    ├── ValidationError
    ├── AuthenticationError
    ├── PermissionDeniedError
    ├── NotFoundError
    ├── ConflictError
    ├── RateLimitExceededError
    ├── ShipmentError
    │   ├── TrackingCodeExhaustedError
    │   └── ShipmentCreationError
    ├── StorageError
    ├── EmailDeliveryError
    ├── UpstreamServiceError
    │   └── GeocodingUpstreamError
    └── ServiceNotConfiguredError
        └── GeocodingNotConfiguredError
"""
import logging
from typing import Optional, Dict, Any

logger = logging.getLogger(__name__)


class CourierError(Exception):
    """
    Base exception for all courier service errors.

    Attributes:
        message: Human-readable error description (safe to show to clients)
        code: Machine-readable error code for programmatic handling
        details: Additional context for debugging/audit (never sent to clients)
        severity: P0-P3 severity level
    """

    default_code: str = "COURIER_ERROR"
    default_severity: str = "P2"
    status_code: int = 500

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        severity: Optional[str] = None,
    ):
        self.message = message
        self.code = code or self.default_code
        self.details = details or {}
        self.severity = severity or self.default_severity
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "code": self.code,
            "message": self.message,
            "severity": self.severity,
            "details": self.details,
        }

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(code={self.code!r}, message={self.message!r})"


# =============================================================================
# CLIENT ERRORS
# =============================================================================

class ValidationError(CourierError):
    """Input rejected by a business rule after schema validation passed."""
    default_code = "VALIDATION_FAILED"
    default_severity = "P3"
    status_code = 400


class AuthenticationError(CourierError):
    """Missing, expired or invalid session."""
    default_code = "UNAUTHORIZED"
    default_severity = "P3"
    status_code = 401


class PermissionDeniedError(CourierError):
    default_code = "FORBIDDEN"
    default_severity = "P3"
    status_code = 403


class NotFoundError(CourierError):
    """Unknown id or tracking code."""
    default_code = "NOT_FOUND"
    default_severity = "P3"
    status_code = 404


class ConflictError(CourierError):
    """Duplicate value for a unique field (carrier code, user email)."""
    default_code = "CONFLICT"
    default_severity = "P3"
    status_code = 409


class RateLimitExceededError(CourierError):
    """
    Fixed-window limit exhausted for an (endpoint, client) bucket.

    Carries the limiter result so the handler can emit Retry-After.
    """
    default_code = "RATE_LIMITED"
    default_severity = "P3"
    status_code = 429

    def __init__(self, reset_at: float, retry_after: int, **kwargs):
        self.reset_at = reset_at
        self.retry_after = retry_after
        super().__init__("Too many requests. Please try again later.", **kwargs)


# =============================================================================
# SHIPMENT ERRORS
# =============================================================================

class ShipmentError(CourierError):
    """Base exception for shipment write-path failures."""
    default_code = "SHIPMENT_ERROR"
    default_severity = "P1"
    status_code = 500


class TrackingCodeExhaustedError(ShipmentError):
    """Every candidate tracking code collided with an existing shipment."""
    default_code = "TRACKING_CODE_EXHAUSTED"

    def __init__(self, attempts: int, **kwargs):
        details = kwargs.pop("details", {})
        details["attempts"] = attempts
        super().__init__(
            "Failed to generate unique tracking code. Please try again.",
            details=details,
            **kwargs,
        )


class ShipmentCreationError(ShipmentError):
    """The shipment + first event transaction was rolled back."""
    default_code = "SHIPMENT_CREATE_FAILED"


# =============================================================================
# EXTERNAL SERVICE ERRORS
# =============================================================================

class StorageError(CourierError):
    """Object storage upload/delete failures."""
    default_code = "STORAGE_ERROR"
    default_severity = "P2"
    status_code = 500


class EmailDeliveryError(CourierError):
    """The email provider rejected or could not be reached for a send."""
    default_code = "EMAIL_FAILED"
    default_severity = "P2"
    status_code = 500


class UpstreamServiceError(CourierError):
    """A third-party API on the critical response path failed."""
    default_code = "UPSTREAM_FAILED"
    default_severity = "P2"
    status_code = 502


class GeocodingUpstreamError(UpstreamServiceError):
    default_code = "GEOCODER_FAILED"


class ServiceNotConfiguredError(CourierError):
    """Required third-party credentials are absent."""
    default_code = "SERVICE_NOT_CONFIGURED"
    default_severity = "P1"
    status_code = 503


class GeocodingNotConfiguredError(ServiceNotConfiguredError):
    default_code = "GEOCODER_NOT_CONFIGURED"

    def __init__(self, **kwargs):
        super().__init__("Mapbox service not configured", **kwargs)
