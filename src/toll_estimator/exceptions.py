class TollEstimatorError(Exception):
    """Base exception for toll estimation errors."""


class ExternalServiceError(TollEstimatorError):
    """Raised when an upstream API call fails."""


class RouteAccessDeniedError(ExternalServiceError):
    """Raised when an upstream service rejects our credentials or quota."""


class InvalidLocationError(TollEstimatorError):
    """Raised when an input location cannot be resolved."""


class NoRouteFoundError(TollEstimatorError):
    """Raised when a drivable route cannot be generated."""


class StaleRequestError(TollEstimatorError):
    """Raised when a result belongs to route inputs that have since changed."""
