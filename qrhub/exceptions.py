"""Application-level exceptions.

Scan pipeline rejections all derive from ScanRejectedError. Every rejection carries
the same public message so anonymous scanners can't tell the causes apart; the
concrete class (and error_code) is only used for logging and tests.
"""


PUBLIC_NOT_FOUND_MESSAGE = 'QR code not found or inactive'


class QRHubError(Exception):
    """Base exception for all application-specific errors."""

    error_code = 'app:qrhub_error'


class ConfigurationError(QRHubError):
    """Base exception for all configuration errors."""

    error_code = 'config:configuration_error'


class BadConfigurationError(ConfigurationError):
    """Raised when the application is configured with invalid parameters."""

    error_code = 'config:bad_configuration_error'


class UpstreamDegradedError(QRHubError):
    """Raised when a best-effort dependency (geolocation, UA parsing) fails.

    Never reaches a handler: callers downgrade to default values.
    """

    error_code = 'scan:upstream_degraded'


class ScanRejectedError(QRHubError):
    """Base exception for scans that end in the REJECTED state."""

    error_code = 'scan:rejected'
    public_message = PUBLIC_NOT_FOUND_MESSAGE


class QRCodeUnavailableError(ScanRejectedError):
    """Raised when a short code is missing, malformed, unknown, inactive or deleted."""

    error_code = 'scan:not_found'


class RateLimitExceededError(ScanRejectedError):
    """Raised when an IP scanned the same code too often within the rate limit window."""

    error_code = 'scan:rate_limited'

    def __init__(self, message: str = '', *, retry_after: int = 60):
        super().__init__(message)
        self.retry_after = retry_after


class PersistenceFailureError(ScanRejectedError):
    """Raised when the scan store is unavailable while resolving or recording a scan."""

    error_code = 'scan:persistence_failure'
