"""
Error taxonomy for the proxy layer.

Each error carries the HTTP status it should be rendered with and a
message that is safe to show to API clients. The Flask app registers a
single handler for FleetDashError (see app.py).
"""

from typing import Optional


class FleetDashError(Exception):
    """Base class for errors surfaced to API clients."""

    status_code = 500
    default_message = 'Internal server error occurred'

    def __init__(self, message: Optional[str] = None, status_code: Optional[int] = None):
        self.message = message or self.default_message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {'error': self.message}


class ConfigurationError(FleetDashError):
    """A required credential or setting is missing."""

    status_code = 500
    default_message = (
        'API token not configured. Please set the FLEET_API_TOKEN environment variable.'
    )


class UpstreamRejected(FleetDashError):
    """The fleet API answered with a non-2xx status."""

    default_message = 'Unknown error occurred'

    def __init__(self, status_code: int, message: Optional[str] = None):
        super().__init__(message, status_code=status_code)


class UpstreamUnreachable(FleetDashError):
    """No response was received from the fleet API."""

    status_code = 503
    default_message = 'Unable to reach the fleet API. Please try again later'


class InternalError(FleetDashError):
    """Anything else: unexpected payload shapes, aggregation failures."""

    status_code = 500


class InvalidRequest(FleetDashError):
    """Malformed query parameters."""

    status_code = 400
    default_message = 'Invalid request'
