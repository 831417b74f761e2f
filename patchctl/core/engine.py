"""Interfaces of the patch engine and APK signer that patchctl drives.

patchctl decides *which* patches run and deploys the result. Rewriting the
APK and signing it are delegated to implementations registered under the
``patchctl.engines`` and ``patchctl.signers`` entry point groups.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from importlib.metadata import entry_points
from pathlib import Path
from typing import Any, Protocol

from patchctl.core.errors import EngineUnavailableError
from patchctl.core.model import PackageMetadata, Patch, PatchOutcome

ENGINE_GROUP = "patchctl.engines"
SIGNER_GROUP = "patchctl.signers"


@dataclass(frozen=True)
class KeyStoreDetails:
    path: Path
    password: str | None = None
    alias: str = "patchctl key"
    entry_password: str = ""


class PatchEngine(Protocol):
    @property
    def package(self) -> PackageMetadata:
        """Package name and version of the APK being patched."""

    def apply(
        self,
        patches: Sequence[Patch],
        options: Mapping[str, Mapping[str, Any]],
    ) -> Iterable[PatchOutcome]:
        """Apply ``patches`` and yield one outcome per patch."""

    def write(self, destination: Path) -> Path:
        """Write the patched, unsigned APK to ``destination``."""

    def close(self) -> None:
        """Release engine resources."""


class EngineFactory(Protocol):
    def __call__(self, apk: Path, temporary_path: Path) -> PatchEngine:
        """Open ``apk`` for patching, using ``temporary_path`` as scratch space."""


class ApkSigner(Protocol):
    def sign(self, apk: Path, destination: Path, signer: str, keystore: KeyStoreDetails) -> Path:
        """Sign ``apk`` and write the result to ``destination``."""


def _load(group: str, name: str | None) -> Any:
    available = {ep.name: ep for ep in entry_points(group=group)}
    if not available:
        raise EngineUnavailableError(f"No implementation installed for '{group}'")
    if name is None:
        if len(available) > 1:
            raise EngineUnavailableError(
                f"Several implementations installed for '{group}': {', '.join(sorted(available))}. Choose one."
            )
        name = next(iter(available))
    entry = available.get(name)
    if entry is None:
        raise EngineUnavailableError(
            f"Unknown implementation '{name}' for '{group}'. Available: {', '.join(sorted(available))}"
        )
    return entry.load()


def load_engine_factory(name: str | None = None) -> EngineFactory:
    return _load(ENGINE_GROUP, name)


def load_signer(name: str | None = None) -> ApkSigner:
    return _load(SIGNER_GROUP, name)()
