# errors.py
"""
Exception types raised by the simulation core.

Every error is raised synchronously at the point of the failing operation and
leaves Field, Particle and Simulator state untouched, so callers may correct
their input and retry.
"""


class SimulationError(Exception):
    """Base class for all errors raised by the simulator."""
    pass


class ConfigurationError(SimulationError, ValueError):
    """Raised for an illegal delta time, time range, mass or scenario document."""
    pass


class FieldSpecError(SimulationError, TypeError):
    """Raised when a field area or particle option has the wrong shape."""
    pass


class ExpressionError(SimulationError, ValueError):
    """Raised when a border expression cannot be parsed or uses unknown names."""
    pass


class SimulatingError(SimulationError, RuntimeError):
    """Raised when state is mutated while a simulation run is in progress."""
    pass


class TrajectoryError(SimulationError, LookupError):
    """Raised when a trajectory is queried before simulation or out of range."""
    pass
