# particle.py
"""
Charged point particles and their recorded trajectories.

This module defines the Particle class, which owns a particle's physical
constants (mass, charge), its fixed starting point and the time-stamped
trajectory written by the Simulator. All state is held as exact Fractions;
float views are produced on demand for rendering.
"""
import logging
import uuid
from dataclasses import dataclass
from fractions import Fraction
from typing import Any, Dict, List, NamedTuple, Optional, Tuple

import numpy as np

from constants import (
    DEFAULT_PARTICLE_CHARGE, DEFAULT_PARTICLE_MASS, DEFAULT_PARTICLE_POSITION,
    DEFAULT_PARTICLE_VELOCITY, ID_LENGTH
)
from errors import ConfigurationError, FieldSpecError, TrajectoryError
from numeric import ZERO, Vector2, to_fraction, to_vector

# --- Data Contracts ---
#
# class Particle:
#   - __init__(self, options: Optional[Dict[str, Any]] = None):
#     - Inputs:
#       - options: {"mass"?, "charge"?, "position"?: {"x"?, "y"?}, "v"?: {"x"?, "y"?}}
#         Each value may be a number, numeric string or Fraction and is
#         defaulted independently (mass 100, charge 1, origin, (1, 0)).
#     - Errors: ConfigurationError for mass <= 0, FieldSpecError for bad shapes.
#     - Invariants: starting_point is fixed at time 0 and never mutated.
#
#   - point_at_time(self, time, in_number: bool = False) -> TrajectoryPoint:
#     - Outputs: the sample at `time`, extrapolated from the last recorded
#       sample at or before it with that sample's velocity.
#     - Errors: TrajectoryError if not simulated or `time` is out of range.
#
#   - bounding_box(self) -> BoundingBox:
#     - Outputs: float (top, bottom, left, right) enclosing every position.
#     - Errors: TrajectoryError if not simulated.

PARTICLE_OPTIONS = ('mass', 'charge', 'position', 'v')


@dataclass(frozen=True)
class TrajectoryPoint:
    """A timestamped (position, velocity) sample of a particle's motion."""
    time: Fraction
    position: Vector2
    velocity: Vector2

    def to_float(self) -> "TrajectoryPoint":
        """Returns the same sample with float components."""
        return TrajectoryPoint(
            time=float(self.time),
            position=Vector2(*self.position.to_float()),
            velocity=Vector2(*self.velocity.to_float()),
        )


class BoundingBox(NamedTuple):
    """Axis-aligned box enclosing a trajectory."""
    top: float
    bottom: float
    left: float
    right: float


class Particle:
    """
    A charged point particle with its simulated trajectory.
    """
    def __init__(self, options: Optional[Dict[str, Any]] = None, **kwargs: Any):
        """
        Initializes the particle from creation options.

        Args:
            options (Optional[Dict[str, Any]]): Particle creation options.
                Keyword arguments of the same names are merged on top.
        """
        if options is not None and not isinstance(options, dict):
            raise FieldSpecError(
                f"particle options are expected to be an object, but received {type(options).__name__}"
            )
        options = {**(options or {}), **kwargs}
        unknown = sorted(set(options) - set(PARTICLE_OPTIONS))
        if unknown:
            logging.warning(f"Ignoring unknown particle options: {unknown}")

        mass = options.get('mass')
        charge = options.get('charge')
        self._mass = to_fraction(DEFAULT_PARTICLE_MASS if mass is None else mass, 'mass')
        if self._mass <= 0:
            raise ConfigurationError(f"`mass` of particle should be positive, but received {self._mass}")
        self._charge = to_fraction(DEFAULT_PARTICLE_CHARGE if charge is None else charge, 'charge')
        self._starting_point = TrajectoryPoint(
            time=ZERO,
            position=to_vector(options.get('position'), 'position', DEFAULT_PARTICLE_POSITION),
            velocity=to_vector(options.get('v'), 'v', DEFAULT_PARTICLE_VELOCITY),
        )
        self._trajectory: List[TrajectoryPoint] = []
        self._id = uuid.uuid4().hex[:ID_LENGTH]

        logging.debug(
            f"Particle {self._id} created: mass={self._mass}, charge={self._charge}, "
            f"position={self._starting_point.position.to_float()}, "
            f"v={self._starting_point.velocity.to_float()}"
        )

    def __repr__(self) -> str:
        return (
            f"Particle(id={self._id!r}, mass={self._mass}, charge={self._charge}, "
            f"points={len(self._trajectory)})"
        )

    @property
    def id(self) -> str:
        return self._id

    @property
    def mass(self) -> Fraction:
        return self._mass

    @property
    def charge(self) -> Fraction:
        return self._charge

    @property
    def starting_point(self) -> TrajectoryPoint:
        return self._starting_point

    @property
    def trajectory(self) -> Tuple[TrajectoryPoint, ...]:
        return tuple(self._trajectory)

    def clear_trajectory(self) -> None:
        """Drops every recorded sample. Called by the Simulator before a run."""
        self._trajectory = []

    def record(self, point: TrajectoryPoint) -> None:
        """Appends a sample. Samples must arrive in ascending time order."""
        self._trajectory.append(point)

    def snapshot(self) -> "Particle":
        """
        Returns a copy that shares the immutable samples but not the list,
        so later runs do not change what the caller holds.
        """
        copy = Particle.__new__(Particle)
        copy.__dict__.update(self.__dict__)
        copy._trajectory = list(self._trajectory)
        return copy

    def point_at_time(self, time: Any, in_number: bool = False) -> TrajectoryPoint:
        """
        Looks up the particle's state at an arbitrary time inside the
        recorded window.

        Velocity is piecewise constant between samples, consistent with the
        first-order integrator, so the position is extrapolated linearly from
        the last sample at or before `time`.

        Args:
            time: The query time (number, numeric string or Fraction).
            in_number (bool): Return float components instead of Fractions.

        Returns:
            TrajectoryPoint: The interpolated sample.
        """
        if not self._trajectory:
            raise TrajectoryError(f"particle {self._id} does not have a trajectory, please simulate first")
        target = to_fraction(time, 'time')
        time_begin = self._trajectory[0].time
        time_end = self._trajectory[-1].time
        if target < time_begin or time_end < target:
            raise TrajectoryError(
                f"particle {self._id} does not have a point at time {time}, "
                f"recorded range is [{float(time_begin)}, {float(time_end)}]; "
                "please reset the time range and simulate again"
            )

        before = self._trajectory[0]
        for point in self._trajectory:
            if point.time == target:
                before = point
                break
            elif point.time < target:
                before = point
            else:
                break

        if before.time == target:
            result = before
        else:
            elapsed = target - before.time
            result = TrajectoryPoint(
                time=target,
                position=Vector2(
                    before.position.x + before.velocity.x * elapsed,
                    before.position.y + before.velocity.y * elapsed,
                ),
                velocity=before.velocity,
            )
        return result.to_float() if in_number else result

    def bounding_box(self) -> BoundingBox:
        """Returns the axis-aligned box enclosing every recorded position."""
        if not self._trajectory:
            raise TrajectoryError(f"particle {self._id} does not have a trajectory, please simulate first")
        first = self._trajectory[0].position
        top = bottom = first.y
        left = right = first.x
        for point in self._trajectory:
            x, y = point.position
            if x < left:
                left = x
            if right < x:
                right = x
            if top < y:
                top = y
            if y < bottom:
                bottom = y
        return BoundingBox(top=float(top), bottom=float(bottom), left=float(left), right=float(right))

    def trajectory_array(self) -> np.ndarray:
        """
        Returns the recorded positions as a float64 array of shape (N, 2).
        """
        if not self._trajectory:
            return np.zeros((0, 2), dtype=np.float64)
        return np.array([point.position.to_float() for point in self._trajectory], dtype=np.float64)
