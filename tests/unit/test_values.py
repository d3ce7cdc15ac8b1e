from __future__ import annotations

import pytest

from xlsxdoc.exceptions import DataTypeError
from xlsxdoc.styles import FORMAT_PERCENTAGE, FORMAT_TIME, FORMAT_TIME_SHORT
from xlsxdoc.values import ErrorCode, Value, ValueType, format_number, guess_type


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("42", ValueType.NUMERIC),
        ("4.2", ValueType.NUMERIC),
        ("-42.000", ValueType.NUMERIC),
        ("0", ValueType.NUMERIC),
        ("0.9999", ValueType.NUMERIC),
        ("99E-02", ValueType.NUMERIC),
        ("1e1", ValueType.NUMERIC),
        ("4", ValueType.NUMERIC),
        ("-1E3", ValueType.NUMERIC),
        (".0e000", ValueType.NUMERIC),
        ("-0.e-0", ValueType.NUMERIC),
        ("+5", ValueType.NUMERIC),
        ("0.800", ValueType.NUMERIC),
        ("0800", ValueType.STRING),
        ("-0800", ValueType.STRING),
        ("1E", ValueType.STRING),
        (".", ValueType.STRING),
        ("Hello", ValueType.STRING),
        ("", ValueType.STRING),
        ("1.2.3", ValueType.STRING),
    ],
)
def test_guess_type_tags(text: str, expected: ValueType) -> None:
    value, _ = guess_type(text)
    assert value.type is expected


def test_guess_percentage() -> None:
    value, number_format = guess_type("3.14%")
    assert value.as_number() == pytest.approx(0.0314)
    assert number_format == FORMAT_PERCENTAGE


def test_guess_time_with_seconds() -> None:
    value, number_format = guess_type("03:40:16")
    assert value.as_number() == pytest.approx(3 / 24 + 40 / 1440 + 16 / 86400)
    assert number_format == FORMAT_TIME


def test_guess_time_without_seconds() -> None:
    value, number_format = guess_type("03:40")
    assert value.as_number() == pytest.approx(3 / 24 + 40 / 1440)
    assert number_format == FORMAT_TIME_SHORT


def test_guess_time_rejects_sixty_minutes() -> None:
    value, number_format = guess_type("10:60")
    assert value.type is ValueType.STRING
    assert number_format is None


def test_numeric_has_no_format_override() -> None:
    assert guess_type("42") == (Value.numeric(42), None)


def test_value_accessors_check_tag() -> None:
    value = Value.string("text")
    assert value.as_string() == "text"
    with pytest.raises(DataTypeError):
        value.as_number()
    with pytest.raises(DataTypeError):
        Value.numeric(True)
    with pytest.raises(DataTypeError):
        Value.string(5)


def test_boolean_requires_a_bool() -> None:
    assert Value.boolean(False).as_bool() is False
    for flag in ("false", 0, 1, None):
        with pytest.raises(DataTypeError):
            Value.boolean(flag)


def test_values_are_unhashable() -> None:
    with pytest.raises(TypeError):
        hash(Value.numeric(1))
    with pytest.raises(TypeError):
        hash(Value.string("a"))


def test_error_codes_are_closed() -> None:
    assert Value.error("#DIV/0!").as_error() is ErrorCode.DIV0
    with pytest.raises(DataTypeError):
        Value.error("1")
    with pytest.raises(DataTypeError):
        ErrorCode.from_text("#OOPS")


def test_value_equality_against_primitives() -> None:
    assert Value.null() == None  # noqa: E711
    assert Value.boolean(True) == True  # noqa: E712
    assert Value.numeric(1) != True  # noqa: E712
    assert Value.numeric(0.1 + 0.2) == 0.3
    assert Value.string("a") == "a"
    assert Value.error(ErrorCode.NA) == ErrorCode.NA
    assert Value.numeric(1) != Value.string("1")


def test_value_text() -> None:
    assert str(Value.numeric(3)) == "3"
    assert str(Value.numeric(2.5)) == "2.5"
    assert str(Value.boolean(False)) == "FALSE"
    assert str(Value.formula("SUM(A1:A2)")) == "=SUM(A1:A2)"
    assert str(Value.error(ErrorCode.REF)) == "#REF!"


def test_format_number() -> None:
    assert format_number(1.0) == "1"
    assert format_number(0.75) == "0.75"
    assert format_number(40372.27616898148) == "40372.27616898148"
