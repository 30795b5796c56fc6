"""
tests/test_field.py

Tests the field model in field.py.

Checks:
- Areas superpose point-wise and the result is independent of creation order
- Uncovered points see no field
- Border strings, callables and `False` select the covered region
- Malformed area options are rejected with FieldSpecError and nothing is added
"""

import dataclasses
from fractions import Fraction

import pytest

from errors import ExpressionError, FieldSpecError
from field import Field, FieldSample, SourceKind


AREAS = [
    {"border": False, "E": {"x": 1, "y": 2}, "B": {"z": 3}},
    {"border": "x > 0", "E": {"x": 0.5, "y": 0}, "B": 1},
    {"border": lambda x, y: y < 0, "E": {"x": 0, "y": "1/3"}, "B": {"z": -2}},
]


def _field(areas):
    field = Field()
    for area in areas:
        field.create_area(area)
    return field


def test_empty_field_is_zero():
    assert Field().field_at(1, 2, 0) == FieldSample(0, 0, 0)


def test_areas_superpose_where_they_overlap():
    field = _field(AREAS)

    assert field.field_at(1, 0, 0) == FieldSample(Fraction(3, 2), 2, 4)
    assert field.field_at(-1, 0, 0) == FieldSample(1, 2, 3)
    assert field.field_at(1, -1, 0) == FieldSample(Fraction(3, 2), Fraction(7, 3), 2)


def test_superposition_is_order_independent():
    forward = _field(AREAS)
    backward = _field(reversed(AREAS))

    for x, y in [(1, 0), (-1, 0), (1, -1), (-5, -5), (0, 0)]:
        assert forward.field_at(x, y, 0) == backward.field_at(x, y, 0)


def test_float_options_are_read_exactly():
    field = _field([{"border": False, "E": {"x": 0.1, "y": 0.2}, "B": {"z": 0.3}}])
    assert field.field_at(0, 0, 0) == FieldSample(Fraction(1, 10), Fraction(1, 5), Fraction(3, 10))


def test_delete_area():
    field = _field(AREAS)
    area_id = field.areas[1].id

    assert field.delete_area("no-such-area") is False
    assert len(field) == 3

    assert field.delete_area(area_id) is True
    assert len(field) == 2
    assert area_id not in [area.id for area in field.areas]
    assert field.field_at(1, 0, 0) == FieldSample(1, 2, 3)


def test_area_ids_are_unique():
    field = _field(AREAS * 3)
    ids = [area.id for area in field.areas]
    assert len(set(ids)) == len(ids)


def test_areas_are_immutable_snapshots():
    field = _field(AREAS)
    areas = field.areas

    with pytest.raises(dataclasses.FrozenInstanceError):
        areas[0].id = "changed"

    field.create_area(AREAS[0])
    assert len(areas) == 3


def test_function_options_receive_position_and_time():
    calls = []

    def electric(x, y, t):
        calls.append((x, y, t))
        return {"x": t, "y": x + y}

    field = _field([{"border": False, "E": electric, "B": lambda x, y, t: x}])
    sample = field.field_at(3, 1, 2)

    assert sample == FieldSample(2, 4, 3)
    assert calls == [(3.0, 1.0, 2.0)]


def test_function_border_receives_exact_coordinates():
    field = _field([{"border": lambda x, y: x * x + y * y < 1, "E": {"x": 1, "y": 0}, "B": 0}])

    assert field.field_at("0.6", "0.7", 0).ex == 1
    # 0.6^2 + 0.8^2 is exactly 1, so the point is on the boundary, not inside.
    assert field.field_at("0.6", "0.8", 0).ex == 0


def test_source_kinds_are_tagged():
    field = _field(AREAS)
    kinds = [area.border.kind for area in field.areas]
    assert kinds == [SourceKind.CONSTANT, SourceKind.EXPRESSION, SourceKind.FUNCTION]
    assert field.areas[0].electric.kind is SourceKind.CONSTANT


@pytest.mark.parametrize(
    "spec",
    [
        {"border": 42, "E": {"x": 0, "y": 0}, "B": {"z": 0}},
        {"border": True, "E": {"x": 0, "y": 0}, "B": {"z": 0}},
        {"border": False, "E": {"x": 1}, "B": {"z": 0}},
        {"border": False, "E": 5, "B": {"z": 0}},
        {"border": False, "E": {"x": 0, "y": 0}, "B": {"x": 1}},
        {"border": False, "E": {"x": 0, "y": 0}, "B": [1, 2]},
        {"border": False, "E": {"x": True, "y": 0}, "B": {"z": 0}},
        {"border": False, "E": {"x": 0, "y": 0}},
    ],
)
def test_malformed_area_is_rejected(spec):
    field = Field()
    with pytest.raises(FieldSpecError):
        field.create_area(spec)
    assert len(field) == 0


def test_field_spec_error_is_a_type_error():
    with pytest.raises(TypeError, match="border"):
        Field().create_area({"border": 1.5, "E": {"x": 0, "y": 0}, "B": 0})


def test_bad_border_expression_is_rejected():
    field = Field()
    with pytest.raises(ExpressionError):
        field.create_area({"border": "x >", "E": {"x": 0, "y": 0}, "B": 0})
    assert len(field) == 0


def test_keyword_options_are_accepted():
    field = Field()
    field.create_area(border=False, E=(1, 2), B=3)
    assert field.field_at(0, 0, 0) == FieldSample(1, 2, 3)


def test_bad_function_result_is_reported():
    field = _field([{"border": False, "E": lambda x, y, t: "nope", "B": 0}])
    with pytest.raises(FieldSpecError):
        field.field_at(0, 0, 0)


@pytest.mark.parametrize(
    "spec, option",
    [
        ({"border": False, "E": {"x": 0, "y": 0}, "B": "abc"}, "`B`"),
        ({"border": False, "E": {"x": 0, "y": 0}, "B": {"z": "abc"}}, "`B.z`"),
        ({"border": False, "E": {"x": "abc", "y": 0}, "B": 0}, "`E.x`"),
        ({"border": False, "E": ("1", "two"), "B": 0}, "`E.y`"),
    ],
)
def test_non_numeric_string_component_is_a_spec_error(spec, option):
    field = Field()
    with pytest.raises(FieldSpecError) as excinfo:
        field.create_area(spec)
    assert option in str(excinfo.value)
    assert "received str" in str(excinfo.value)
    assert len(field) == 0


def test_numeric_string_components_are_read_exactly():
    field = Field()
    field.create_area({"border": False, "E": {"x": "1/3", "y": " 0.1 "}, "B": {"z": "-2"}})
    assert field.field_at(0, 0, 0) == FieldSample(Fraction(1, 3), Fraction(1, 10), -2)
