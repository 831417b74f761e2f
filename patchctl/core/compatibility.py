"""Patch-to-package compatibility matching."""

from __future__ import annotations

from patchctl.core.errors import CompatibilityConfigError
from patchctl.core.model import (
    Compatibility,
    CompatibilityVerdict,
    CompatiblePackage,
    PackageMetadata,
    Patch,
)


def _entries_for(packages: tuple[CompatiblePackage, ...], package_name: str) -> list[CompatiblePackage]:
    return [entry for entry in packages if entry.name == package_name]


def _describe_versions(packages: tuple[CompatiblePackage, ...]) -> str:
    parts = []
    for entry in packages:
        versions = ", ".join(entry.versions) if entry.versions is not None else "any version"
        parts.append(f"{entry.name} {versions}")
    return "; ".join(parts)


def check_compatibility(
    patch: Patch,
    package: PackageMetadata,
    *,
    force: bool = False,
) -> CompatibilityVerdict:
    if patch.compatible_packages is None:
        return CompatibilityVerdict(Compatibility.UNCONSTRAINED, f"'{patch.name}' has no package constraints")

    entries = _entries_for(patch.compatible_packages, package.name)
    if not entries:
        names = ", ".join(entry.name for entry in patch.compatible_packages)
        return CompatibilityVerdict(
            Compatibility.INCOMPATIBLE_PACKAGE,
            f"'{patch.name}' incompatible with {package.name}. It is only compatible with {names}",
        )
    if len(entries) > 1:
        raise CompatibilityConfigError(
            f"Patch '{patch.name}' declares package '{package.name}' {len(entries)} times"
        )

    versions = entries[0].versions
    if versions is not None and len(versions) == 0:
        return CompatibilityVerdict(
            Compatibility.DISABLED,
            f"'{patch.name}' incompatible with '{package.name}'",
        )
    if force or versions is None or package.version in versions:
        return CompatibilityVerdict(Compatibility.COMPATIBLE)

    return CompatibilityVerdict(
        Compatibility.VERSION_MISMATCH,
        f"'{patch.name}' incompatible with {package.name} {package.version} "
        f"but compatible with {_describe_versions(patch.compatible_packages)}",
    )
