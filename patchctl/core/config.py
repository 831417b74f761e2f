"""Immutable configuration for one patch run."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path

from patchctl.core.engine import KeyStoreDetails
from patchctl.core.errors import ConfigurationError
from patchctl.core.model import SelectionRequest
from patchctl.core.options import OptionAssignment

DEFAULT_SIGNER = "patchctl"
DEFAULT_KEYSTORE_ALIAS = "patchctl key"


@dataclass(frozen=True)
class PatchConfig:
    apk: Path
    bundles: tuple[Path, ...]
    output: Path
    temporary_path: Path
    selection: SelectionRequest
    options: tuple[OptionAssignment, ...]
    keystore: KeyStoreDetails
    signer: str = DEFAULT_SIGNER
    device_serial: str | None = None
    mount: bool = False
    log_output: bool = True
    purge: bool = False

    @property
    def deploy(self) -> bool:
        return self.device_serial is not None

    @classmethod
    def from_arguments(
        cls,
        apk: Path,
        bundles: Iterable[Path],
        *,
        selection: SelectionRequest,
        options: Iterable[OptionAssignment] = (),
        output: Path | None = None,
        temporary_path: Path | None = None,
        keystore: Path | None = None,
        keystore_password: str | None = None,
        keystore_alias: str = DEFAULT_KEYSTORE_ALIAS,
        keystore_entry_password: str = "",
        signer: str = DEFAULT_SIGNER,
        device_serial: str | None = None,
        mount: bool = False,
        log_output: bool = True,
        purge: bool = False,
    ) -> PatchConfig:
        """Validate paths and fill in defaults derived from the APK and output paths.

        ``device_serial`` of ``None`` skips deployment, an empty string targets
        the only attached device.
        """
        if not apk.is_file():
            raise ConfigurationError(f"APK file {apk} does not exist")
        bundles = tuple(bundles)
        if not bundles:
            raise ConfigurationError("At least one patch bundle is required")
        for bundle in bundles:
            if not bundle.is_file():
                raise ConfigurationError(f"Patch bundle {bundle} does not exist")

        output = (output or Path.cwd() / f"{apk.stem}-patched{apk.suffix}").absolute()
        temporary_path = temporary_path or output.parent / f"{output.stem}-temporary-files"
        keystore = keystore or output.parent / f"{output.stem}.keystore"

        return cls(
            apk=apk,
            bundles=bundles,
            output=output,
            temporary_path=temporary_path,
            selection=selection,
            options=tuple(options),
            keystore=KeyStoreDetails(
                path=keystore,
                password=keystore_password,
                alias=keystore_alias,
                entry_password=keystore_entry_password,
            ),
            signer=signer,
            device_serial=device_serial,
            mount=mount,
            log_output=log_output,
            purge=purge,
        )
