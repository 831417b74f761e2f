"""Stable public API for building tooling on top of patchctl.

This module is the supported integration surface for third-party callers.
Avoid importing from private/internal modules unless intentionally depending on
non-stable internals.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from pathlib import Path

from patchctl.core.bundle_loader import LoadedBundle
from patchctl.core.compatibility import check_compatibility
from patchctl.core.config import PatchConfig
from patchctl.core.engine import ApkSigner, EngineFactory, KeyStoreDetails, PatchEngine
from patchctl.core.errors import (
    BundleLoadError,
    BundleValidationError,
    CompatibilityConfigError,
    ConfigurationError,
    DeviceNotFoundError,
    DeviceSelectionError,
    EngineUnavailableError,
    MonitorError,
    OptionError,
    PatchctlError,
    RemoteExecutionError,
    RootRequiredError,
    TransportCommandError,
    TransportError,
    TransportUnavailableError,
)
from patchctl.core.model import (
    Compatibility,
    CompatibilityVerdict,
    CompatiblePackage,
    Decision,
    DeploymentDescriptor,
    PackageMetadata,
    Patch,
    PatchOption,
    PatchOutcome,
    ProcessState,
    SelectionRequest,
    SelectionResult,
)
from patchctl.core.service import DeployResult, PatchReport, PatchService
from patchctl.transports.base import DeviceTransport

__all__ = [
    "PatchctlError",
    "ConfigurationError",
    "BundleLoadError",
    "BundleValidationError",
    "CompatibilityConfigError",
    "OptionError",
    "EngineUnavailableError",
    "DeviceSelectionError",
    "DeviceNotFoundError",
    "RootRequiredError",
    "TransportError",
    "TransportUnavailableError",
    "TransportCommandError",
    "RemoteExecutionError",
    "MonitorError",
    "Compatibility",
    "CompatibilityVerdict",
    "CompatiblePackage",
    "Decision",
    "DeploymentDescriptor",
    "PackageMetadata",
    "Patch",
    "PatchOption",
    "PatchOutcome",
    "ProcessState",
    "SelectionRequest",
    "SelectionResult",
    "ApkSigner",
    "EngineFactory",
    "KeyStoreDetails",
    "PatchEngine",
    "DeviceTransport",
    "PatchConfig",
    "PatchReport",
    "DeployResult",
    "check_compatibility",
    "Client",
]


class Client:
    """Public client for interacting with patchctl core capabilities.

    A `Client` wraps bundle loading, patch selection, patching and
    deployment behind a stable API intended for third-party tools.
    """

    def __init__(
        self,
        *,
        engine_factory: EngineFactory | None = None,
        signer: ApkSigner | None = None,
        transport: DeviceTransport | None = None,
    ) -> None:
        self._service = PatchService(engine_factory=engine_factory, signer=signer, transport=transport)

    def load_bundles(self, paths: Iterable[Path]) -> LoadedBundle:
        return self._service.load(paths)

    def select_patches(
        self,
        patches: Sequence[Patch],
        package: PackageMetadata,
        request: SelectionRequest | None = None,
    ) -> SelectionResult:
        return self._service.select(patches, request or SelectionRequest(), package)

    def patch(self, config: PatchConfig) -> PatchReport:
        return self._service.patch(config)

    def deploy(
        self,
        apk: Path,
        package_name: str,
        *,
        serial: str | None = None,
        mount: bool = True,
        log_output: bool = True,
    ) -> DeployResult:
        return self._service.deploy(
            DeploymentDescriptor(artifact=apk, package_name=package_name),
            serial,
            mount=mount,
            log_output=log_output,
        )

    def cancel(self) -> None:
        """Stop a running deployment monitor from another thread."""
        self._service.cancel()
