"""Transport interfaces."""

from __future__ import annotations

from pathlib import Path
from typing import IO, Protocol


class RemoteProcess(Protocol):
    @property
    def stdout(self) -> IO[str] | None:
        """Combined stdout/stderr of the remote command, if captured."""

    def destroy(self) -> None:
        """Terminate the remote command and release its local resources."""


class DeviceTransport(Protocol):
    def list_devices(self) -> list[str]:
        """Return serials of attached devices that are ready for commands."""

    def run(self, serial: str, command: str, *, su: bool = True) -> int:
        """Run a shell command on the device and return its exit code."""

    def push(self, serial: str, local_path: Path, remote_path: str) -> None:
        """Copy a local file to the device."""

    def create_file(self, serial: str, remote_path: str, content: str) -> None:
        """Write ``content`` to a file on the device."""

    def spawn(self, serial: str, command: str, *, su: bool = True) -> RemoteProcess:
        """Start a long running shell command on the device."""

    def install(self, serial: str, local_path: Path) -> None:
        """Install an APK with the package manager."""
