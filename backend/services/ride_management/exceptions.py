"""Custom exceptions for ride management."""


class RideConflictError(Exception):
    """Raised when a conditional update no longer matches the stored ride.

    Another writer won the race or the ride moved on. Callers reset to
    their idle state instead of surfacing an error.
    """
    pass


class RideNotFoundError(RideConflictError):
    """Raised when a ride cannot be found. Handled like a conflict."""
    pass


class ActiveRideExistsError(Exception):
    """Raised when user already has an active ride."""
    pass


class DriverNotAvailableError(Exception):
    """Raised when driver is not online and verified."""
    pass


class InvalidTransitionError(Exception):
    """Raised when a caller asks for a phase the machine does not know."""
    pass


class TransportError(Exception):
    """Raised when an external collaborator (push, routing) is unreachable."""
    pass


class RoutingUnavailableError(TransportError):
    """Raised when the routing provider cannot produce a route."""
    pass
