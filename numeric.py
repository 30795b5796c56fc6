# numeric.py
"""
Exact-number helpers shared by the field model, particles and integrator.

All simulation state is held as ``fractions.Fraction`` so that thousands of
additive time steps do not accumulate floating-point drift. Floating point is
only used where a transcendental function has to be evaluated, and the result
is converted back to a Fraction straight away.
"""
import math
import numbers
from decimal import Decimal
from fractions import Fraction
from typing import Any, NamedTuple, Tuple

from constants import STATE_DENOMINATOR_LIMIT, TRIG_DENOMINATOR_LIMIT
from errors import ConfigurationError, FieldSpecError

# --- Data Contracts ---
#
# to_fraction(value: Any, name: str) -> Fraction:
#   - Inputs: int, float, numeric string, Fraction or Decimal.
#   - Outputs: the exact Fraction. Floats go through their shortest repr,
#     so 0.3 becomes 3/10 rather than its binary expansion.
#   - Errors: FieldSpecError for unsupported types (bool included),
#     ConfigurationError for NaN, infinities and non-numeric strings.
#
# exact_sin_cos(angle: Fraction) -> Tuple[Fraction, Fraction]:
#   - Outputs: (sin, cos) of the angle with bounded denominators.

ZERO = Fraction(0)
ONE = Fraction(1)
HALF = Fraction(1, 2)


class Vector2(NamedTuple):
    """A planar vector with exact components."""
    x: Fraction
    y: Fraction

    def to_float(self) -> Tuple[float, float]:
        return float(self.x), float(self.y)


def to_fraction(value: Any, name: str = "value") -> Fraction:
    """
    Coerces a user-supplied number to an exact Fraction.

    Args:
        value (Any): The number to convert.
        name (str): Option name used in error messages.

    Returns:
        Fraction: The exact value.
    """
    if isinstance(value, bool):
        raise FieldSpecError(
            f"`{name}` is expected to be a number, numeric string or Fraction, but received bool"
        )
    if isinstance(value, Fraction):
        return value
    if isinstance(value, numbers.Integral):
        return Fraction(int(value))
    if isinstance(value, Decimal):
        if not value.is_finite():
            raise ConfigurationError(f"`{name}` should be a finite number, but received {value}")
        return Fraction(value)
    if isinstance(value, numbers.Real):
        value = float(value)
        if not math.isfinite(value):
            raise ConfigurationError(f"`{name}` should be a finite number, but received {value}")
        return Fraction(repr(value))
    if isinstance(value, str):
        try:
            return Fraction(value.strip())
        except (ValueError, ZeroDivisionError):
            raise ConfigurationError(f"`{name}` is not a numeric string: {value!r}") from None
    raise FieldSpecError(
        f"`{name}` is expected to be a number, numeric string or Fraction, "
        f"but received {type(value).__name__}"
    )


def to_vector(value: Any, name: str, default: Tuple[Any, Any] = (0, 0)) -> Vector2:
    """
    Coerces a ``{x?, y?}`` mapping into a Vector2, defaulting each missing axis.
    """
    if value is None:
        value = {}
    if not isinstance(value, dict):
        raise FieldSpecError(
            f"`{name}` is expected to be an object with optional `x` and `y`, "
            f"but received {type(value).__name__}"
        )
    x = value.get('x')
    y = value.get('y')
    return Vector2(
        to_fraction(default[0] if x is None else x, f"{name}.x"),
        to_fraction(default[1] if y is None else y, f"{name}.y"),
    )


def exact_sin_cos(angle: Fraction) -> Tuple[Fraction, Fraction]:
    """Evaluates sin and cos in floating point and returns bounded Fractions."""
    theta = float(angle)
    sin_theta = Fraction(math.sin(theta)).limit_denominator(TRIG_DENOMINATOR_LIMIT)
    cos_theta = Fraction(math.cos(theta)).limit_denominator(TRIG_DENOMINATOR_LIMIT)
    return sin_theta, cos_theta


def bound_fraction(value: Fraction) -> Fraction:
    """
    Caps the denominator of a state component.

    Values whose denominator is already within STATE_DENOMINATOR_LIMIT are
    returned unchanged, so short or field-free runs stay exact; otherwise the
    closest fraction under the limit is used (error at most 1 / limit).
    """
    if value.denominator <= STATE_DENOMINATOR_LIMIT:
        return value
    return value.limit_denominator(STATE_DENOMINATOR_LIMIT)
