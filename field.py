# field.py
"""
The electromagnetic field model.

A Field is an unordered collection of field areas. Each area pairs a spatial
border predicate with an electric field E = (Ex, Ey) in the plane and a
magnetic field Bz along the out-of-plane axis. Where several areas cover the
same point their contributions are summed.
"""
import logging
import uuid
from dataclasses import dataclass
from enum import Enum
from fractions import Fraction
from typing import Any, Dict, List, NamedTuple, Optional, Tuple

from constants import ID_LENGTH
from errors import ConfigurationError, FieldSpecError
from expression import BorderExpression
from numeric import ZERO, Vector2, to_fraction

# --- Data Contracts ---
#
# class Field:
#   - create_area(self, spec: Dict[str, Any]) -> str:
#     - Inputs: {"border": False | str | (x, y) -> bool,
#                "E": {"x", "y"} | (x, y, t) -> {"x", "y"},
#                "B": {"z"} | number | (x, y, t) -> {"z"} | number}
#     - Outputs: the new area's unique id.
#     - Errors: FieldSpecError naming the offending option; nothing is added.
#   - delete_area(self, area_id: str) -> bool:
#     - Outputs: True if an area was removed, False for unknown ids.
#   - field_at(self, x, y, t) -> FieldSample:
#     - Outputs: (Ex, Ey, Bz) summed over every area whose border holds.
#     - Invariants: independent of area creation order; zero when uncovered.


class SourceKind(Enum):
    """How a field area option is evaluated."""
    CONSTANT = "constant"
    FUNCTION = "function"
    EXPRESSION = "expression"


@dataclass(frozen=True)
class FieldSource:
    """
    A tagged field option: a pre-coerced constant, a user callable, or a
    compiled border expression.
    """
    kind: SourceKind
    value: Any

    def evaluate(self, *args: Any) -> Any:
        if self.kind is SourceKind.CONSTANT:
            return self.value
        return self.value(*args)


class FieldSample(NamedTuple):
    """The superposed field at one point and time."""
    ex: Fraction
    ey: Fraction
    bz: Fraction


def _component(value: Any, name: str) -> Fraction:
    if isinstance(value, str):
        try:
            return to_fraction(value, name)
        except ConfigurationError:
            raise FieldSpecError(
                f"`{name}` is expected to be a number or numeric string, but received str {value!r}"
            ) from None
    return to_fraction(value, name)


def _as_electric_vector(value: Any, name: str) -> Vector2:
    if isinstance(value, dict):
        if 'x' not in value or 'y' not in value:
            raise FieldSpecError(f"`{name}` is expected to have both `x` and `y`, but received keys {sorted(value)}")
        return Vector2(_component(value['x'], f"{name}.x"), _component(value['y'], f"{name}.y"))
    if isinstance(value, (tuple, list)) and len(value) == 2:
        return Vector2(_component(value[0], f"{name}.x"), _component(value[1], f"{name}.y"))
    raise FieldSpecError(
        f"`{name}` option of field area is expected to be an object with `x` and `y` or a function, "
        f"but received {type(value).__name__}"
    )


def _as_magnetic_scalar(value: Any, name: str) -> Fraction:
    if isinstance(value, dict):
        if 'z' not in value:
            raise FieldSpecError(f"`{name}` is expected to have `z`, but received keys {sorted(value)}")
        return _component(value['z'], f"{name}.z")
    if isinstance(value, (list, tuple)) or value is None:
        raise FieldSpecError(
            f"`{name}` option of field area is expected to be an object with `z`, a number or a function, "
            f"but received {type(value).__name__}"
        )
    return _component(value, name)


def _border_source(border: Any) -> FieldSource:
    if border is False:
        return FieldSource(SourceKind.CONSTANT, True)
    if isinstance(border, str):
        return FieldSource(SourceKind.EXPRESSION, BorderExpression(border))
    if callable(border):
        return FieldSource(SourceKind.FUNCTION, border)
    raise FieldSpecError(
        "`border` option of field area is expected to be False, a string expression or a function, "
        f"but received {type(border).__name__}"
    )


def _electric_source(electric: Any) -> FieldSource:
    if callable(electric):
        return FieldSource(SourceKind.FUNCTION, electric)
    return FieldSource(SourceKind.CONSTANT, _as_electric_vector(electric, 'E'))


def _magnetic_source(magnetic: Any) -> FieldSource:
    if callable(magnetic):
        return FieldSource(SourceKind.FUNCTION, magnetic)
    return FieldSource(SourceKind.CONSTANT, _as_magnetic_scalar(magnetic, 'B'))


@dataclass(frozen=True)
class FieldArea:
    """
    One region of the field. Immutable once created.

    Attributes:
        id (str): Opaque unique identifier.
        border (FieldSource): Predicate of the position (x, y).
        electric (FieldSource): E as a function of (x, y, t).
        magnetic (FieldSource): Bz as a function of (x, y, t).
    """
    id: str
    border: FieldSource
    electric: FieldSource
    magnetic: FieldSource

    def contains(self, x: Fraction, y: Fraction) -> bool:
        return bool(self.border.evaluate(x, y))

    def electric_at(self, x: Fraction, y: Fraction, t: Fraction) -> Vector2:
        if self.electric.kind is SourceKind.CONSTANT:
            return self.electric.value
        return _as_electric_vector(self.electric.evaluate(float(x), float(y), float(t)), 'E')

    def magnetic_at(self, x: Fraction, y: Fraction, t: Fraction) -> Fraction:
        if self.magnetic.kind is SourceKind.CONSTANT:
            return self.magnetic.value
        return _as_magnetic_scalar(self.magnetic.evaluate(float(x), float(y), float(t)), 'B')


class Field:
    """
    An ordered collection of field areas with point-wise superposition.
    """
    def __init__(self):
        self._areas: List[FieldArea] = []

    def __len__(self) -> int:
        return len(self._areas)

    @property
    def areas(self) -> Tuple[FieldArea, ...]:
        """A read-only snapshot of the current areas."""
        return tuple(self._areas)

    def create_area(self, spec: Optional[Dict[str, Any]] = None, **kwargs: Any) -> str:
        """
        Validates an area specification and adds the area.

        Args:
            spec (Dict[str, Any]): Mapping with `border`, `E` and `B` options.
                Keyword arguments of the same names are merged on top.

        Returns:
            str: The id of the new area.
        """
        if spec is not None and not isinstance(spec, dict):
            raise FieldSpecError(
                f"field area options are expected to be an object, but received {type(spec).__name__}"
            )
        options = {**(spec or {}), **kwargs}
        area = FieldArea(
            id=uuid.uuid4().hex[:ID_LENGTH],
            border=_border_source(options.get('border')),
            electric=_electric_source(options.get('E')),
            magnetic=_magnetic_source(options.get('B')),
        )
        self._areas.append(area)
        logging.info(
            f"Field area {area.id} created "
            f"(border: {area.border.kind.value}, E: {area.electric.kind.value}, B: {area.magnetic.kind.value})."
        )
        return area.id

    def delete_area(self, area_id: str) -> bool:
        """Removes the area with the given id. Returns whether one was removed."""
        for index, area in enumerate(self._areas):
            if area.id == area_id:
                del self._areas[index]
                logging.info(f"Field area {area_id} deleted.")
                return True
        logging.debug(f"No field area with id {area_id} to delete.")
        return False

    def field_at(self, x: Any, y: Any, t: Any) -> FieldSample:
        """
        Superposes every area covering (x, y) at time t.

        Returns:
            FieldSample: (Ex, Ey, Bz) as exact Fractions.
        """
        x, y, t = to_fraction(x, 'x'), to_fraction(y, 'y'), to_fraction(t, 't')
        ex = ey = bz = ZERO
        for area in self._areas:
            if area.contains(x, y):
                e_area = area.electric_at(x, y, t)
                ex += e_area.x
                ey += e_area.y
                bz += area.magnetic_at(x, y, t)
        return FieldSample(ex, ey, bz)
