from __future__ import annotations

from tsw_inspector.formatting import format_value, stringify


def test_scalars():
    assert format_value(None) == {"kind": "null", "display": "null"}
    assert format_value(True) == {"kind": "boolean", "display": "true"}
    assert format_value(3) == {"kind": "number", "display": "3"}
    assert format_value("Forward") == {"kind": "string", "display": "Forward"}


def test_large_numbers_get_scientific_form():
    display = format_value(2.5e16)

    assert display["kind"] == "number"
    assert display["scientific"] == "2.50e+16"
    assert display["formatted"] == "25,000,000,000,000,000"


def test_datetime_and_offset_strings():
    stamp = format_value("2024-05-01T14:05:09.000Z")
    offset = format_value("+01:30:00")

    assert stamp["kind"] == "datetime"
    assert stamp["parsed"] == "2024-05-01 14:05:09"
    assert offset == {"kind": "offset", "display": "+01:30:00"}


def test_nested_values():
    display = format_value({"Position": [1, 2], "Name": "Lever"})

    assert display["kind"] == "object"
    assert display["display"] == "Object (2 properties)"
    position = display["entries"][0]
    assert position["key"] == "Position"
    assert position["value"]["display"] == "Array (2 items)"
    assert [item["display"] for item in position["value"]["items"]] == ["1", "2"]


def test_stringify_for_input_box():
    assert stringify(None) == ""
    assert stringify(1.0) == "1"
    assert stringify(0.25) == "0.25"
    assert stringify(False) == "false"
