"""Error taxonomy for routing and navigation failures."""


class RoutingError(Exception):
    """Base class for failures reported by a route provider"""

    kind = "RoutingError"
    default_message = "Routing failed."

    def __init__(self, message: str = ""):
        super().__init__(message or self.default_message)

    @property
    def message(self) -> str:
        return str(self)


class AddressNotFound(RoutingError):
    kind = "AddressNotFound"
    default_message = "Could not find address."


class NoResult(RoutingError):
    """An empty search or completion resolution"""
    kind = "NoResult"
    default_message = "Unable to find destination."


class NoRouteAvailable(RoutingError):
    kind = "NoRouteAvailable"
    default_message = "No route available. Please try a different destination."


class RerouteFailed(RoutingError):
    """Reroute attempt failed; logged and swallowed while the old route stays active"""
    kind = "RerouteFailed"
    default_message = "Reroute failed."


class PolylineEmpty(ValueError):
    """Raised by geometry helpers handed a polyline with no points"""
