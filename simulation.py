# simulation.py
"""
Handles the trajectory integration of charged particles through a Field.

This module defines the two interchangeable step functions (a naive
first-order update and an analytic solver for motion in a locally constant
field) and the Simulator class, which owns the Field, the particles and the
run configuration and drives the integration loop.
"""
import logging
import math
import time
import uuid
from enum import Enum
from fractions import Fraction
from typing import Any, Callable, Dict, List, Optional, Tuple

from constants import DEFAULT_DELTA_TIME, DEFAULT_LOG_THROTTLE_STEPS, DEFAULT_TIME_FROM, DEFAULT_TIME_TO
from errors import ConfigurationError, FieldSpecError, SimulatingError
from field import Field, FieldArea, FieldSample
from numeric import HALF, Vector2, bound_fraction, exact_sin_cos, to_fraction
from particle import Particle, TrajectoryPoint

# --- Data Contracts ---
#
# naive_step / accurate_step(field, particle, delta_time, last_point) -> TrajectoryPoint:
#   - Inputs: the Field, the Particle (mass, charge), the exact step size and
#     the sample to advance from.
#   - Outputs: the sample one step later.
#   - Invariants: pure; with E = 0 and B = 0 both give p + v * dt exactly.
#
# class Simulator:
#   - __init__(self, options: Optional[Dict[str, Any]] = None):
#     - Inputs: {"deltaTime"?, "simulationTimeRange"?: {"from"?, "to"?}}
#       (snake_case "delta_time" / "time_range" are accepted as well).
#     - Errors: ConfigurationError for delta_time <= 0, from < 0 or to < from.
#
#   - start_simulate(self, accurate: bool = False, on_progress=None) -> None:
#     - Side Effects: replaces every particle's trajectory.
#     - Invariants: each particle records ceil(to/dt) - floor(from/dt) samples,
#       or exactly one when that span is zero.
#
#   - Every mutator raises SimulatingError while a run is in progress.

StepFunction = Callable[[Field, Particle, Fraction, TrajectoryPoint], TrajectoryPoint]
ProgressCallback = Callable[[float], None]


class RunState(Enum):
    """Lifecycle of a Simulator: idle -> running -> simulated (-> running ...)."""
    IDLE = "idle"
    RUNNING = "running"
    SIMULATED = "simulated"


def _sample_field(field: Field, point: TrajectoryPoint) -> FieldSample:
    return field.field_at(point.position.x, point.position.y, point.time)


def _make_point(point_time: Fraction, position: Vector2, velocity: Vector2) -> TrajectoryPoint:
    return TrajectoryPoint(
        time=point_time,
        position=Vector2(bound_fraction(position.x), bound_fraction(position.y)),
        velocity=Vector2(bound_fraction(velocity.x), bound_fraction(velocity.y)),
    )


def _acceleration(sample: FieldSample, particle: Particle, velocity: Vector2) -> Vector2:
    """a = F / m with F = qE + q(v x B), B along the out-of-plane axis."""
    q, m = particle.charge, particle.mass
    force_x = q * sample.ex + q * velocity.y * sample.bz
    force_y = q * sample.ey - q * velocity.x * sample.bz
    return Vector2(force_x / m, force_y / m)


def _advance_naive(
    sample: FieldSample, particle: Particle, delta_time: Fraction, last_point: TrajectoryPoint
) -> TrajectoryPoint:
    position, velocity = last_point.position, last_point.velocity
    a = _acceleration(sample, particle, velocity)
    # Position moves with the velocity from before this step's update.
    return _make_point(
        point_time=last_point.time + delta_time,
        position=Vector2(position.x + velocity.x * delta_time, position.y + velocity.y * delta_time),
        velocity=Vector2(velocity.x + a.x * delta_time, velocity.y + a.y * delta_time),
    )


def naive_step(
    field: Field, particle: Particle, delta_time: Fraction, last_point: TrajectoryPoint
) -> TrajectoryPoint:
    """
    Advances one step with the instantaneous Lorentz force.

    The velocity is updated by a * dt while the position is updated with the
    velocity from before the update.
    """
    return _advance_naive(_sample_field(field, last_point), particle, delta_time, last_point)


def accurate_step(
    field: Field, particle: Particle, delta_time: Fraction, last_point: TrajectoryPoint
) -> TrajectoryPoint:
    """
    Advances one step with the closed-form solution for a field held constant
    at the sampled value.

    With Bz == 0 the motion is a parabola under constant force. Otherwise the
    velocity splits into the E x B drift Vd = (Ey/Bz, -Ex/Bz) and a circular
    part Vc = v - Vd that rotates at omega = -q * Bz / m around a centre at
    radius vector R = (m * Vc_y, -m * Vc_x) / (q * Bz) from the particle.
    When there is no circular part (or no charge) the motion is uniform and
    the naive update is used.

    Args:
        field (Field): The field to sample at the last point.
        particle (Particle): Supplies mass and charge.
        delta_time (Fraction): The step size.
        last_point (TrajectoryPoint): The sample to advance from.

    Returns:
        TrajectoryPoint: The sample delta_time later.
    """
    sample = _sample_field(field, last_point)
    position, velocity = last_point.position, last_point.velocity
    next_time = last_point.time + delta_time

    if sample.bz == 0:
        a = _acceleration(sample, particle, velocity)
        return _make_point(
            point_time=next_time,
            position=Vector2(
                position.x + (velocity.x + HALF * a.x * delta_time) * delta_time,
                position.y + (velocity.y + HALF * a.y * delta_time) * delta_time,
            ),
            velocity=Vector2(velocity.x + a.x * delta_time, velocity.y + a.y * delta_time),
        )

    if particle.charge == 0:
        return _advance_naive(sample, particle, delta_time, last_point)

    drift = Vector2(sample.ey / sample.bz, -sample.ex / sample.bz)
    circular = Vector2(velocity.x - drift.x, velocity.y - drift.y)
    if circular.x == 0 and circular.y == 0:
        # Velocity already equals the drift: zero radius, straight line.
        return _advance_naive(sample, particle, delta_time, last_point)

    q_bz = particle.charge * sample.bz
    radius = Vector2(particle.mass * circular.y / q_bz, -particle.mass * circular.x / q_bz)
    center = Vector2(position.x + radius.x, position.y + radius.y)
    omega = -q_bz / particle.mass
    sin_theta, cos_theta = exact_sin_cos(omega * delta_time)

    return _make_point(
        point_time=next_time,
        position=Vector2(
            center.x + radius.y * sin_theta - radius.x * cos_theta + drift.x * delta_time,
            center.y - radius.y * cos_theta - radius.x * sin_theta + drift.y * delta_time,
        ),
        velocity=Vector2(
            circular.x * cos_theta - circular.y * sin_theta + drift.x,
            circular.y * cos_theta + circular.x * sin_theta + drift.y,
        ),
    )


def _pick(options: Dict[str, Any], *names: str) -> Any:
    for name in names:
        if options.get(name) is not None:
            return options[name]
    return None


def _ensure_delta_time_legal(delta_time: Fraction) -> None:
    if delta_time <= 0:
        msg = f"`deltaTime` of simulation should be positive, but received {delta_time}"
        logging.error(msg)
        raise ConfigurationError(msg)


def _ensure_time_range_legal(time_from: Fraction, time_to: Fraction) -> None:
    if time_from < 0:
        msg = f"`from` in simulation time range should be zero or positive, but received {time_from}"
        logging.error(msg)
        raise ConfigurationError(msg)
    if time_to < time_from:
        msg = (
            f"`from` in simulation time range should not be larger than `to`, "
            f"but received {time_from} and {time_to}"
        )
        logging.error(msg)
        raise ConfigurationError(msg)


class Simulator:
    """
    Owns one Field, a collection of Particles and the run configuration,
    and integrates every particle's trajectory on demand.
    """
    def __init__(self, options: Optional[Dict[str, Any]] = None, **kwargs: Any):
        """
        Initializes the simulator configuration.

        Args:
            options (Optional[Dict[str, Any]]): Simulation configuration input.
                Keyword arguments of the same names are merged on top.
        """
        if options is not None and not isinstance(options, dict):
            raise FieldSpecError(
                f"simulator options are expected to be an object, but received {type(options).__name__}"
            )
        options = {**(options or {}), **kwargs}
        delta_time = _pick(options, 'deltaTime', 'delta_time')
        time_range = _pick(options, 'simulationTimeRange', 'time_range') or {}
        if not isinstance(time_range, dict):
            raise FieldSpecError(
                f"`simulationTimeRange` is expected to be an object with `from` and `to`, "
                f"but received {type(time_range).__name__}"
            )

        self._delta_time = to_fraction(DEFAULT_DELTA_TIME if delta_time is None else delta_time, 'deltaTime')
        time_from = time_range.get('from')
        time_to = time_range.get('to')
        self._time_from = to_fraction(DEFAULT_TIME_FROM if time_from is None else time_from, 'from')
        self._time_to = to_fraction(DEFAULT_TIME_TO if time_to is None else time_to, 'to')
        _ensure_delta_time_legal(self._delta_time)
        _ensure_time_range_legal(self._time_from, self._time_to)

        self._field = Field()
        self._particles: List[Particle] = []
        self._state = RunState.IDLE
        self._progress = math.nan
        self._id = uuid.uuid4().hex[:8]
        self.log_throttle_steps = DEFAULT_LOG_THROTTLE_STEPS

        logging.info(
            f"Simulator {self._id} initialized: deltaTime={float(self._delta_time)}, "
            f"time range=[{float(self._time_from)}, {float(self._time_to)}]"
        )

    def __repr__(self) -> str:
        return (
            f"Simulator(id={self._id!r}, state={self._state.value}, areas={len(self._field)}, "
            f"particles={len(self._particles)})"
        )

    @property
    def id(self) -> str:
        return self._id

    def _ensure_idle(self, action: str) -> None:
        if self._state is RunState.RUNNING:
            raise SimulatingError(f"Simulating now. {action} is not allowed")

    # --- Configuration ---

    def set_delta_time(self, delta_time: Any) -> None:
        self._ensure_idle("Setting delta time")
        candidate = to_fraction(delta_time, 'deltaTime')
        _ensure_delta_time_legal(candidate)
        self._delta_time = candidate
        logging.info(f"Delta time set to {float(candidate)}.")

    def get_delta_time(self) -> float:
        return float(self._delta_time)

    def set_simulation_time_range(self, time_range: Optional[Dict[str, Any]] = None, **kwargs: Any) -> None:
        """
        Updates `from` and/or `to` of the recorded time window.

        Args:
            time_range (Optional[Dict[str, Any]]): {"from"?, "to"?}; a missing
                key keeps its current value.
        """
        self._ensure_idle("Setting time range")
        if time_range is not None and not isinstance(time_range, dict):
            raise FieldSpecError(
                f"time range is expected to be an object with `from` and `to`, "
                f"but received {type(time_range).__name__}"
            )
        time_range = {**(time_range or {}), **kwargs}
        time_from = self._time_from if time_range.get('from') is None else to_fraction(time_range['from'], 'from')
        time_to = self._time_to if time_range.get('to') is None else to_fraction(time_range['to'], 'to')
        _ensure_time_range_legal(time_from, time_to)
        self._time_from, self._time_to = time_from, time_to
        logging.info(f"Simulation time range set to [{float(time_from)}, {float(time_to)}].")

    def get_simulation_time_range(self) -> Dict[str, float]:
        return {'from': float(self._time_from), 'to': float(self._time_to)}

    # --- Field areas and particles ---

    def create_field_area(self, spec: Optional[Dict[str, Any]] = None, **kwargs: Any) -> str:
        self._ensure_idle("Creating a field area")
        return self._field.create_area(spec, **kwargs)

    def delete_field_area(self, area_id: str) -> bool:
        self._ensure_idle("Deleting a field area")
        return self._field.delete_area(area_id)

    def create_particle(self, options: Optional[Dict[str, Any]] = None, **kwargs: Any) -> str:
        self._ensure_idle("Creating a particle")
        particle = Particle(options, **kwargs)
        self._particles.append(particle)
        logging.info(f"Particle {particle.id} created ({len(self._particles)} in total).")
        return particle.id

    def delete_particle(self, particle_id: str) -> bool:
        self._ensure_idle("Deleting a particle")
        for index, particle in enumerate(self._particles):
            if particle.id == particle_id:
                del self._particles[index]
                logging.info(f"Particle {particle_id} deleted.")
                return True
        logging.debug(f"No particle with id {particle_id} to delete.")
        return False

    # --- Integration ---

    def start_simulate(self, accurate: bool = False, on_progress: Optional[ProgressCallback] = None) -> None:
        """
        Recomputes the trajectory of every particle.

        Blocks until all particles are done. Particles are simulated one after
        another and never interact.

        Args:
            accurate (bool): Use the analytic step instead of the naive one.
            on_progress (Optional[ProgressCallback]): Called with the overall
                progress fraction after every step.
        """
        if self._state is RunState.RUNNING:
            raise SimulatingError("Simulating now. Please wait.")

        step = accurate_step if accurate else naive_step
        steps_before = math.floor(self._time_from / self._delta_time)
        steps_until_end = math.ceil(self._time_to / self._delta_time)

        self._state = RunState.RUNNING
        self._progress = 0.0
        logging.info(
            f"Simulation started ({'accurate' if accurate else 'naive'} mode): "
            f"{len(self._particles)} particles, {steps_before} warm-up steps, "
            f"{steps_until_end - steps_before} recorded steps each."
        )
        started = time.perf_counter()

        try:
            for index, particle in enumerate(self._particles):
                particle_started = time.perf_counter()
                self._simulate_particle(index, particle, step, steps_before, steps_until_end, on_progress)
                logging.info(
                    f"Particle {index + 1}/{len(self._particles)} ({particle.id}) simulated: "
                    f"{len(particle.trajectory)} points in {time.perf_counter() - particle_started:.3f}s"
                )
        except Exception:
            logging.error("Simulation aborted by an error; trajectories have been cleared.")
            for particle in self._particles:
                particle.clear_trajectory()
            self._state = RunState.IDLE
            self._progress = math.nan
            raise

        self._state = RunState.SIMULATED
        self._progress = math.nan
        logging.info(f"Simulation finished in {time.perf_counter() - started:.3f}s.")

    def _simulate_particle(
        self,
        index: int,
        particle: Particle,
        step: StepFunction,
        steps_before: int,
        steps_until_end: int,
        on_progress: Optional[ProgressCallback],
    ) -> None:
        particle.clear_trajectory()

        # Warm-up steps before the recorded window are not kept.
        current = particle.starting_point
        for step_index in range(1, steps_before + 1):
            current = step(self._field, particle, self._delta_time, current)
            self._report_progress(index, step_index, steps_until_end, on_progress)

        if steps_until_end == steps_before:
            particle.record(current)

        last_point = current
        for step_index in range(steps_before + 1, steps_until_end + 1):
            last_point = step(self._field, particle, self._delta_time, last_point)
            particle.record(last_point)
            self._report_progress(index, step_index, steps_until_end, on_progress)
            if step_index % self.log_throttle_steps == 0:
                logging.debug(
                    f"Particle {particle.id} step {step_index}/{steps_until_end} "
                    f"at t={float(last_point.time):.4f}"
                )

        self._report_progress(index, 1, 1, None)

    def _report_progress(
        self, index: int, step_index: int, total_steps: int, on_progress: Optional[ProgressCallback]
    ) -> None:
        fraction = step_index / total_steps if total_steps else 1.0
        self._progress = (index + fraction) / len(self._particles)
        if on_progress is not None:
            on_progress(self._progress)

    # --- Queries ---

    def get_state(self) -> RunState:
        return self._state

    def get_is_simulated(self) -> bool:
        return self._state is RunState.SIMULATED

    def get_is_simulating(self) -> bool:
        return self._state is RunState.RUNNING

    def get_simulate_progress(self) -> float:
        return self._progress if self._state is RunState.RUNNING else math.nan

    def get_field_area(self) -> Tuple[FieldArea, ...]:
        return self._field.areas

    def get_particles(self) -> Tuple[Particle, ...]:
        return tuple(particle.snapshot() for particle in self._particles)

    def get_particle(self, particle_id: str) -> Optional[Particle]:
        for particle in self._particles:
            if particle.id == particle_id:
                return particle.snapshot()
        return None

    def field_at(self, x: Any, y: Any, t: Any) -> FieldSample:
        """Joint field of all areas at (x, y, t)."""
        return self._field.field_at(x, y, t)
