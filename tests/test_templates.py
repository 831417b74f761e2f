import pytest

from patchctl.core import templates


def test_substitute_replaces_every_placeholder() -> None:
    script = templates.substitute(templates.CONTENT_MOUNT_SCRIPT, "com.example.app")
    assert templates.PLACEHOLDER not in script
    assert 'base_path="/data/adb/patchctl/com.example.app.apk"' in script
    assert "pm path com.example.app" in script


def test_substitute_leaves_other_text_alone() -> None:
    assert templates.substitute(f"{templates.COMMAND_PID_OF} PLACEHOLDER", "x.y") == "pidof -s x.y"
    assert templates.substitute(templates.COMMAND_CREATE_DIR, "x.y") == "mkdir -p"


def test_substitute_requires_value() -> None:
    with pytest.raises(ValueError):
        templates.substitute(templates.COMMAND_RESTART, "")
