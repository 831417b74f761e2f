"""Install a patched APK on a rooted device."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass

from patchctl.core import templates
from patchctl.core.errors import RemoteExecutionError, TransportError
from patchctl.core.model import DeploymentDescriptor
from patchctl.deploy.session import DeviceSession

LOGGER = logging.getLogger(__name__)

STEP_PUSH_APK = "push patched apk"
STEP_CREATE_DIR = "create working directory"
STEP_PREPARE_MOUNT = "prepare mount"
STEP_INSTALL_MOUNT_SCRIPT = "install mount script"
STEP_INSTALL_UNMOUNT_SCRIPT = "install unmount script"
STEP_UNMOUNT = "unmount stale apk"
STEP_MOUNT = "mount apk"
STEP_RESTART = "restart app"
STEP_INSTALL = "install apk"


@dataclass(frozen=True)
class InstallResult:
    serial: str
    package_name: str
    steps: tuple[str, ...]


class MountInstaller:
    """Bind-mount a patched APK over the installed one instead of reinstalling.

    The steps run strictly in order. The first failing step raises
    :class:`RemoteExecutionError` and nothing after it runs.
    """

    def __init__(self, session: DeviceSession, descriptor: DeploymentDescriptor) -> None:
        self.session = session
        self.descriptor = descriptor
        self._completed: list[str] = []

    def _fill(self, template: str) -> str:
        return templates.substitute(template, self.descriptor.package_name)

    def _step(self, name: str, action: Callable[[], object]) -> None:
        LOGGER.info("[%s] %s", self.session.serial, name)
        try:
            result = action()
        except TransportError as exc:
            raise RemoteExecutionError(name, self.session.serial, cause=str(exc)) from exc
        if isinstance(result, int) and result != 0:
            raise RemoteExecutionError(name, self.session.serial, exit_code=result)
        self._completed.append(name)

    def _install_script(self, name: str, content: str, install_command: str) -> None:
        def action() -> int:
            self.session.create_file(templates.PATH_STAGING, self._fill(content))
            return self.session.run(self._fill(install_command))

        self._step(name, action)

    def install(self) -> InstallResult:
        session = self.session
        self._completed = []

        self._step(STEP_PUSH_APK, lambda: session.push(self.descriptor.artifact, templates.PATH_STAGING))
        self._step(
            STEP_CREATE_DIR,
            lambda: session.run(f"{templates.COMMAND_CREATE_DIR} {templates.PATH_WORKING_DIR}"),
        )
        self._step(STEP_PREPARE_MOUNT, lambda: session.run(self._fill(templates.COMMAND_PREPARE_MOUNT_APK)))
        self._install_script(
            STEP_INSTALL_MOUNT_SCRIPT,
            templates.CONTENT_MOUNT_SCRIPT,
            templates.COMMAND_INSTALL_MOUNT_SCRIPT,
        )
        self._install_script(
            STEP_INSTALL_UNMOUNT_SCRIPT,
            templates.CONTENT_UNMOUNT_SCRIPT,
            templates.COMMAND_INSTALL_UNMOUNT_SCRIPT,
        )
        self._step(STEP_UNMOUNT, lambda: session.run(self._fill(templates.PATH_UNMOUNT_SCRIPT)))
        self._step(STEP_MOUNT, lambda: session.run(self._fill(templates.PATH_MOUNT_SCRIPT)))
        self._step(STEP_RESTART, lambda: session.run(self._fill(templates.COMMAND_RESTART)))

        return InstallResult(
            serial=session.serial,
            package_name=self.descriptor.package_name,
            steps=tuple(self._completed),
        )


class PackageInstaller:
    """Install through the package manager, replacing the existing app."""

    def __init__(self, session: DeviceSession, descriptor: DeploymentDescriptor) -> None:
        self.session = session
        self.descriptor = descriptor

    def install(self) -> InstallResult:
        LOGGER.info("[%s] %s", self.session.serial, STEP_INSTALL)
        try:
            self.session.install(self.descriptor.artifact)
        except TransportError as exc:
            raise RemoteExecutionError(STEP_INSTALL, self.session.serial, cause=str(exc)) from exc
        return InstallResult(
            serial=self.session.serial,
            package_name=self.descriptor.package_name,
            steps=(STEP_INSTALL,),
        )
