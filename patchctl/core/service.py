"""Service layer used by CLI and the public API."""

from __future__ import annotations

import logging
import shutil
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from pathlib import Path

from patchctl.core.bundle_loader import LoadedBundle, load_bundles
from patchctl.core.config import PatchConfig
from patchctl.core.engine import ApkSigner, EngineFactory, load_engine_factory, load_signer
from patchctl.core.errors import PatchctlError
from patchctl.core.model import (
    DeploymentDescriptor,
    PackageMetadata,
    Patch,
    PatchOutcome,
    ProcessState,
    SelectionRequest,
    SelectionResult,
)
from patchctl.core.options import resolve_options
from patchctl.core.selection import select_patches
from patchctl.deploy.installer import InstallResult, MountInstaller, PackageInstaller
from patchctl.deploy.monitor import LifecycleMonitor
from patchctl.deploy.session import connect
from patchctl.transports.adb import AdbTransport
from patchctl.transports.base import DeviceTransport

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class DeployResult:
    install: InstallResult
    state: ProcessState | None
    cancelled: bool = False


@dataclass(frozen=True)
class PatchReport:
    output: Path
    package: PackageMetadata
    selection: SelectionResult
    outcomes: tuple[PatchOutcome, ...]
    warnings: tuple[str, ...]
    deployment: DeployResult | None = None
    deployment_error: PatchctlError | None = None

    @property
    def failures(self) -> tuple[PatchOutcome, ...]:
        return tuple(o for o in self.outcomes if not o.succeeded)


class PatchService:
    def __init__(
        self,
        *,
        engine_factory: EngineFactory | None = None,
        signer: ApkSigner | None = None,
        transport: DeviceTransport | None = None,
        monitor_factory: Callable[..., LifecycleMonitor] = LifecycleMonitor,
    ) -> None:
        self._engine_factory = engine_factory
        self._signer = signer
        self.transport = transport or AdbTransport()
        self.monitor_factory = monitor_factory
        self.monitor: LifecycleMonitor | None = None

    @property
    def engine_factory(self) -> EngineFactory:
        if self._engine_factory is None:
            self._engine_factory = load_engine_factory()
        return self._engine_factory

    @property
    def signer(self) -> ApkSigner:
        if self._signer is None:
            self._signer = load_signer()
        return self._signer

    def load(self, paths: Iterable[Path]) -> LoadedBundle:
        LOGGER.info("Loading patches")
        return load_bundles(paths)

    def select(
        self,
        patches: Sequence[Patch],
        request: SelectionRequest,
        package: PackageMetadata,
    ) -> SelectionResult:
        return select_patches(patches, request, package)

    def patch(self, config: PatchConfig) -> PatchReport:
        loaded = self.load(config.bundles)
        patcher_path = config.temporary_path / "patcher"
        patcher_path.mkdir(parents=True, exist_ok=True)

        engine = self.engine_factory(config.apk, patcher_path)
        try:
            package = engine.package
            selection = self.select(loaded.patches, config.selection, package)

            LOGGER.info("Setting patch options")
            options, option_warnings = resolve_options(selection.patches, config.options)

            outcomes: list[PatchOutcome] = []
            for outcome in engine.apply(selection.patches, options):
                if outcome.succeeded:
                    LOGGER.info("'%s' succeeded", outcome.patch.name)
                else:
                    LOGGER.error("'%s' failed", outcome.patch.name, exc_info=outcome.error)
                outcomes.append(outcome)

            unsigned = engine.write(config.temporary_path / config.apk.name)
        finally:
            engine.close()

        config.output.parent.mkdir(parents=True, exist_ok=True)
        if config.mount:
            shutil.copyfile(unsigned, config.output)
        else:
            self.signer.sign(unsigned, config.output, config.signer, config.keystore)
        LOGGER.info("Saved to %s", config.output)

        deployment = None
        deployment_error = None
        try:
            if config.deploy:
                deployment = self.deploy(
                    DeploymentDescriptor(artifact=config.output, package_name=package.name),
                    config.device_serial or None,
                    mount=config.mount,
                    log_output=config.log_output,
                )
        except PatchctlError as exc:
            LOGGER.error("Failed to deploy %s: %s", package.name, exc)
            deployment_error = exc
        finally:
            if config.purge:
                self.purge(config.temporary_path)

        return PatchReport(
            output=config.output,
            package=package,
            selection=selection,
            outcomes=tuple(outcomes),
            warnings=loaded.warnings + option_warnings,
            deployment=deployment,
            deployment_error=deployment_error,
        )

    def deploy(
        self,
        descriptor: DeploymentDescriptor,
        serial: str | None = None,
        *,
        mount: bool = True,
        log_output: bool = True,
    ) -> DeployResult:
        session = connect(self.transport, serial).unwrap()

        if not mount:
            return DeployResult(install=PackageInstaller(session, descriptor).install(), state=None)

        install = MountInstaller(session, descriptor).install()
        self.monitor = self.monitor_factory(session, descriptor.package_name, log_output=log_output)
        state = self.monitor.watch()
        return DeployResult(install=install, state=state, cancelled=self.monitor.cancelled)

    def cancel(self) -> None:
        if self.monitor is not None:
            self.monitor.cancel()

    def purge(self, path: Path) -> bool:
        LOGGER.info("Purging temporary files")
        try:
            shutil.rmtree(path)
        except OSError as exc:
            LOGGER.warning("Failed to purge temporary files directory %s: %s", path, exc)
            return False
        LOGGER.info("Purged temporary files directory")
        return True
