"""Core data models used across loader, selection, service, and CLI."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any


@dataclass(frozen=True)
class CompatiblePackage:
    name: str
    versions: tuple[str, ...] | None = None


@dataclass(frozen=True)
class PatchOption:
    key: str
    default: Any = None
    description: str = ""
    required: bool = False


@dataclass(frozen=True)
class Patch:
    name: str
    description: str = ""
    use: bool = True
    compatible_packages: tuple[CompatiblePackage, ...] | None = None
    options: dict[str, PatchOption] = field(default_factory=dict)


@dataclass(frozen=True)
class PackageMetadata:
    name: str
    version: str


@dataclass(frozen=True)
class SelectionRequest:
    include: frozenset[str] = frozenset()
    include_index: frozenset[int] = frozenset()
    exclude: frozenset[str] = frozenset()
    exclude_index: frozenset[int] = frozenset()
    exclusive: bool = False
    force: bool = False


class Compatibility(Enum):
    UNCONSTRAINED = "unconstrained"
    COMPATIBLE = "compatible"
    INCOMPATIBLE_PACKAGE = "incompatible-package"
    DISABLED = "disabled"
    VERSION_MISMATCH = "version-mismatch"


@dataclass(frozen=True)
class CompatibilityVerdict:
    status: Compatibility
    message: str = ""

    @property
    def eligible(self) -> bool:
        return self.status in (Compatibility.UNCONSTRAINED, Compatibility.COMPATIBLE)


@dataclass(frozen=True)
class Decision:
    index: int
    patch: Patch
    included: bool
    reason: str
    detail: str = ""


@dataclass(frozen=True)
class SelectionResult:
    decisions: tuple[Decision, ...]

    @property
    def patches(self) -> tuple[Patch, ...]:
        return tuple(d.patch for d in self.decisions if d.included)

    @property
    def excluded(self) -> tuple[Decision, ...]:
        return tuple(d for d in self.decisions if not d.included)


@dataclass(frozen=True)
class PatchOutcome:
    patch: Patch
    error: BaseException | None = None

    @property
    def succeeded(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class DeploymentDescriptor:
    artifact: Path
    package_name: str


class ProcessState(Enum):
    NOT_STARTED = "not-started"
    RUNNING = "running"
    EXITED = "exited"
