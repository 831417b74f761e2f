from __future__ import annotations

import pytest

from patchctl.core.errors import OptionError
from patchctl.core.model import Patch, PatchOption
from patchctl.core.options import (
    OptionAssignment,
    parse_option_assignment,
    parse_option_value,
    resolve_options,
)


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("true", True),
        ("FALSE", False),
        ("42", 42),
        ("1.5", 1.5),
        ("3f", 3.0),
        ("7L", 7),
        ('"42"', "42"),
        ("'true'", "true"),
        ("hello", "hello"),
        ("[]", []),
        ("[a,1,true]", ["a", 1, True]),
        ("[a\\,b,c]", ["a,b", "c"]),
        ("[[1,2],3]", [[1, 2], 3]),
        ("[a, b]", ["a", " b"]),
        ("1.5L", "1.5L"),
        ("abcL", "abcL"),
        ("2.5f", 2.5),
        ("xf", "xf"),
        ("nan", "nan"),
        ("inf", "inf"),
        ("1e400", "1e400"),
    ],
)
def test_parse_option_value(text: str, expected: object) -> None:
    assert parse_option_value(text) == expected


def test_parse_option_value_passes_through_non_strings() -> None:
    assert parse_option_value(None) is None
    assert parse_option_value(["1", "x"]) == [1, "x"]


def test_parse_option_assignment() -> None:
    assignment = parse_option_assignment("Custom branding:app-name=My App")
    assert assignment == OptionAssignment(patch="Custom branding", key="app-name", value="My App")

    empty = parse_option_assignment("Custom branding:icon")
    assert empty.value is None


@pytest.mark.parametrize("text", ["no-colon", ":key=value", "Patch:=value"])
def test_parse_option_assignment_rejects_malformed_input(text: str) -> None:
    with pytest.raises(OptionError):
        parse_option_assignment(text)


def _branding() -> Patch:
    return Patch(
        name="Custom branding",
        options={
            "app-name": PatchOption(key="app-name", default="Example"),
            "icon": PatchOption(key="icon"),
        },
    )


def test_resolve_options_merges_defaults_and_assignments() -> None:
    resolved, warnings = resolve_options(
        [_branding(), Patch(name="Hide ads")],
        [OptionAssignment("Custom branding", "icon", "/tmp/icon.png")],
    )
    assert resolved == {
        "Custom branding": {"app-name": "Example", "icon": "/tmp/icon.png"},
        "Hide ads": {},
    }
    assert warnings == ()


def test_resolve_options_warns_about_unselected_patch_and_unknown_key() -> None:
    _, warnings = resolve_options(
        [_branding()],
        [
            OptionAssignment("Spoof client", "mode", 1),
            OptionAssignment("Custom branding", "colour", "red"),
        ],
    )
    assert len(warnings) == 2
    assert "not selected" in warnings[0]
    assert "Available: app-name, icon" in warnings[1]


def test_resolve_options_requires_required_values() -> None:
    patch = Patch(name="Spoof", options={"signature": PatchOption(key="signature", required=True)})
    with pytest.raises(OptionError):
        resolve_options([patch], [])
