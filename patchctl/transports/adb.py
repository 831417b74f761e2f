"""ADB transport implementation driving the ``adb`` binary."""

from __future__ import annotations

import shlex
import subprocess
import tempfile
from collections.abc import Sequence
from pathlib import Path
from typing import IO

from patchctl.core.errors import TransportCommandError, TransportUnavailableError

_ADB_ERROR_PREFIXES = ("error:", "adb: error", "adb: device", "adb: no devices")


class AdbProcess:
    """A running ``adb shell`` command."""

    def __init__(self, process: subprocess.Popen[str]) -> None:
        self._process = process

    @property
    def stdout(self) -> IO[str] | None:
        return self._process.stdout

    def destroy(self) -> None:
        if self._process.poll() is None:
            self._process.terminate()
            try:
                self._process.wait(timeout=5)
            except subprocess.TimeoutExpired:
                self._process.kill()
                self._process.wait()


class AdbTransport:
    def __init__(self, adb_path: str = "adb") -> None:
        self.adb_path = adb_path

    def _base(self, serial: str | None) -> list[str]:
        cmd = [self.adb_path]
        if serial:
            cmd.extend(["-s", serial])
        return cmd

    def _shell(self, serial: str, command: str, su: bool) -> list[str]:
        if su:
            command = f"su -c {shlex.quote(command)}"
        return [*self._base(serial), "shell", command]

    def _invoke(self, cmd: Sequence[str]) -> subprocess.CompletedProcess[str]:
        try:
            result = subprocess.run(
                cmd,
                check=False,
                capture_output=True,
                text=True,
            )
        except FileNotFoundError as exc:
            raise TransportUnavailableError(
                f"'{self.adb_path}' not found. Install Android platform-tools and retry."
            ) from exc
        except OSError as exc:
            raise TransportUnavailableError(f"Could not execute '{self.adb_path}': {exc}") from exc

        stderr = (result.stderr or "").strip()
        if result.returncode != 0 and stderr.lower().startswith(_ADB_ERROR_PREFIXES):
            raise TransportCommandError(f"{' '.join(cmd[1:])} -> {stderr}")
        return result

    def _checked(self, cmd: Sequence[str]) -> subprocess.CompletedProcess[str]:
        result = self._invoke(cmd)
        if result.returncode != 0:
            detail = (result.stderr or result.stdout or "").strip()
            raise TransportCommandError(f"{' '.join(cmd[1:])} exited with {result.returncode}: {detail}")
        return result

    def list_devices(self) -> list[str]:
        result = self._checked([self.adb_path, "devices"])
        serials: list[str] = []
        for line in result.stdout.splitlines()[1:]:
            parts = line.strip().split()
            if len(parts) >= 2 and parts[1] == "device":
                serials.append(parts[0])
        return serials

    def run(self, serial: str, command: str, *, su: bool = True) -> int:
        return self._invoke(self._shell(serial, command, su)).returncode

    def push(self, serial: str, local_path: Path, remote_path: str) -> None:
        self._checked([*self._base(serial), "push", str(local_path), remote_path])

    def create_file(self, serial: str, remote_path: str, content: str) -> None:
        with tempfile.TemporaryDirectory(prefix="patchctl-") as tmp:
            local = Path(tmp) / "content"
            local.write_text(content, encoding="utf-8", newline="\n")
            self.push(serial, local, remote_path)

    def spawn(self, serial: str, command: str, *, su: bool = True) -> AdbProcess:
        try:
            process = subprocess.Popen(
                self._shell(serial, command, su),
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
            )
        except OSError as exc:
            raise TransportUnavailableError(f"Could not execute '{self.adb_path}': {exc}") from exc
        return AdbProcess(process)

    def install(self, serial: str, local_path: Path) -> None:
        self._checked([*self._base(serial), "install", "-r", str(local_path)])
