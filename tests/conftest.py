from __future__ import annotations

import io
from pathlib import Path

import pytest

from patchctl.core import templates
from patchctl.core.errors import TransportCommandError


class FakeProcess:
    def __init__(self, output: str = "") -> None:
        self.stdout = io.StringIO(output)
        self.destroyed = False

    def destroy(self) -> None:
        self.destroyed = True


class FakeTransport:
    """Records every call and answers like a rooted device would."""

    def __init__(self) -> None:
        self.devices = ["emulator-5554"]
        self.root = True
        self.alive: list[bool | Exception] = []
        self.exit_codes: dict[str, int] = {}
        self.fail_push = False
        self.log_output = "E AndroidRuntime: FATAL EXCEPTION: main\n"
        self.calls: list[tuple] = []
        self.processes: list[FakeProcess] = []

    def list_devices(self) -> list[str]:
        return list(self.devices)

    def run(self, serial: str, command: str, *, su: bool = True) -> int:
        self.calls.append(("run", serial, command))
        if command == templates.COMMAND_ROOT_PROBE:
            return 0 if self.root else 1
        if command.startswith(templates.COMMAND_PID_OF):
            answer = self.alive.pop(0)
            if isinstance(answer, Exception):
                raise answer
            return 0 if answer else 1
        for fragment, code in self.exit_codes.items():
            if fragment in command:
                return code
        return 0

    def push(self, serial: str, local_path: Path, remote_path: str) -> None:
        self.calls.append(("push", serial, str(local_path), remote_path))
        if self.fail_push:
            raise TransportCommandError("push failed: no space left on device")

    def create_file(self, serial: str, remote_path: str, content: str) -> None:
        self.calls.append(("create", serial, remote_path, content))

    def spawn(self, serial: str, command: str, *, su: bool = True) -> FakeProcess:
        self.calls.append(("spawn", serial, command))
        process = FakeProcess(self.log_output)
        self.processes.append(process)
        return process

    def install(self, serial: str, local_path: Path) -> None:
        self.calls.append(("install", serial, str(local_path)))

    def mutations(self) -> list[tuple]:
        return [c for c in self.calls if c[0] != "run" or c[2] != templates.COMMAND_ROOT_PROBE]


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def apk(tmp_path: Path) -> Path:
    path = tmp_path / "app-patched.apk"
    path.write_bytes(b"PK\x03\x04")
    return path
