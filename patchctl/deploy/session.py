"""Root-verified connection to a single device."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from patchctl.core import templates
from patchctl.core.errors import DeviceNotFoundError, DeviceSelectionError, RootRequiredError
from patchctl.transports.base import DeviceTransport, RemoteProcess

LOGGER = logging.getLogger(__name__)


class SessionStatus(Enum):
    CONNECTED = "connected"
    DEVICE_NOT_FOUND = "device-not-found"
    AMBIGUOUS_DEVICE = "ambiguous-device"
    ROOT_REQUIRED = "root-required"


class DeviceSession:
    """Command primitives bound to one device.

    Instances are only handed out by :func:`connect` after the root probe
    succeeded.
    """

    def __init__(self, transport: DeviceTransport, serial: str) -> None:
        self.transport = transport
        self.serial = serial

    def run(self, command: str) -> int:
        LOGGER.debug("[%s] run: %s", self.serial, command)
        return self.transport.run(self.serial, command)

    def push(self, local_path: Path, remote_path: str) -> None:
        LOGGER.debug("[%s] push: %s -> %s", self.serial, local_path, remote_path)
        self.transport.push(self.serial, local_path, remote_path)

    def create_file(self, remote_path: str, content: str) -> None:
        LOGGER.debug("[%s] create: %s", self.serial, remote_path)
        self.transport.create_file(self.serial, remote_path, content)

    def spawn(self, command: str) -> RemoteProcess:
        LOGGER.debug("[%s] spawn: %s", self.serial, command)
        return self.transport.spawn(self.serial, command)

    def install(self, local_path: Path) -> None:
        LOGGER.debug("[%s] install: %s", self.serial, local_path)
        self.transport.install(self.serial, local_path)

    def process_alive(self, package_name: str) -> bool:
        return self.run(f"{templates.COMMAND_PID_OF} {package_name}") == 0


@dataclass(frozen=True)
class SessionOutcome:
    status: SessionStatus
    session: DeviceSession | None = None
    message: str = ""

    @property
    def connected(self) -> bool:
        return self.status is SessionStatus.CONNECTED

    def unwrap(self) -> DeviceSession:
        if self.session is not None:
            return self.session
        if self.status is SessionStatus.ROOT_REQUIRED:
            raise RootRequiredError(self.message)
        if self.status is SessionStatus.DEVICE_NOT_FOUND:
            raise DeviceNotFoundError(self.message)
        raise DeviceSelectionError(self.message)


def connect(transport: DeviceTransport, serial: str | None = None) -> SessionOutcome:
    """Open a session to ``serial`` or to the only attached device."""
    serials = transport.list_devices()

    if serial:
        if serial not in serials:
            return SessionOutcome(
                SessionStatus.DEVICE_NOT_FOUND,
                message=f"No such device with serial {serial}",
            )
    elif not serials:
        return SessionOutcome(
            SessionStatus.DEVICE_NOT_FOUND,
            message="No devices attached. Ensure USB debugging is enabled.",
        )
    elif len(serials) > 1:
        return SessionOutcome(
            SessionStatus.AMBIGUOUS_DEVICE,
            message=f"Multiple devices attached: {', '.join(serials)}. Use --device-serial to choose one.",
        )
    else:
        serial = serials[0]

    if transport.run(serial, templates.COMMAND_ROOT_PROBE, su=False) != 0:
        LOGGER.error("Root probe failed on %s", serial)
        return SessionOutcome(SessionStatus.ROOT_REQUIRED, message=serial)

    LOGGER.info("Connected to %s", serial)
    return SessionOutcome(SessionStatus.CONNECTED, session=DeviceSession(transport, serial))
