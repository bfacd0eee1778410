class RoutePlannerError(Exception):
    """Base exception for refuel planning errors."""


class ExternalServiceError(RoutePlannerError):
    """Raised when an upstream API call fails."""


class GeocodeError(RoutePlannerError):
    """Raised when an address cannot be resolved to coordinates."""


class InvalidAddressError(GeocodeError):
    """Raised when the formatted address is empty."""


class RouteError(RoutePlannerError):
    """Raised when the routing provider returns no route."""


class InsufficientRangeError(RoutePlannerError):
    """Raised when the usable range is exhausted by the safety reserve."""


class EnrichmentError(RoutePlannerError):
    """Raised when every candidate failed its with-stop route computation."""


class StationDatasetEmptyError(RoutePlannerError):
    """Raised when no fuel stations are loaded."""
