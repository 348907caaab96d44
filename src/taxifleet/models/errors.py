class FleetSimulationError(Exception):
    """Base class for errors raised by the fleet simulation."""


class InvalidStateTransition(FleetSimulationError):
    """Raised when an agent state change violates its state machine."""


class DestinationUnreachable(FleetSimulationError, ValueError):
    """Raised when a target point is not on (or not connected to) the road network."""

    def __init__(self, point, reason: str = "off navigable surface"):
        self.point = point
        self.reason = reason
        super().__init__(f"Destination {point} unreachable: {reason}")
