"""Loading and validation of YAML patch bundles."""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable
from dataclasses import dataclass
from importlib import resources
from pathlib import Path
from typing import Any

import yaml
from jsonschema import ValidationError, validators

from patchctl.core.errors import BundleLoadError, BundleValidationError, CompatibilityConfigError
from patchctl.core.model import CompatiblePackage, Patch, PatchOption
from patchctl.core.options import parse_option_value

LOGGER = logging.getLogger(__name__)

# Scalars stay strings so versions such as 1.10 are not read as floats.
_STRING_TAGS = {
    "tag:yaml.org,2002:bool",
    "tag:yaml.org,2002:int",
    "tag:yaml.org,2002:float",
}


class UniqueKeyLoader(yaml.SafeLoader):
    """YAML loader that rejects duplicate mapping keys."""


UniqueKeyLoader.yaml_implicit_resolvers = {
    key: list(value) for key, value in yaml.SafeLoader.yaml_implicit_resolvers.items()
}

for first_char, mappings in list(UniqueKeyLoader.yaml_implicit_resolvers.items()):
    UniqueKeyLoader.yaml_implicit_resolvers[first_char] = [
        (tag, regexp)
        for tag, regexp in mappings
        if tag not in _STRING_TAGS
    ]


def _construct_mapping(loader: UniqueKeyLoader, node: yaml.Node, deep: bool = False) -> dict[str, Any]:
    mapping: dict[str, Any] = {}
    for key_node, value_node in node.value:
        key = loader.construct_object(key_node, deep=deep)
        if key in mapping:
            raise BundleValidationError(f"Duplicate key '{key}' in YAML document")
        mapping[key] = loader.construct_object(value_node, deep=deep)
    return mapping


UniqueKeyLoader.add_constructor(
    yaml.resolver.BaseResolver.DEFAULT_MAPPING_TAG,
    _construct_mapping,
)


@dataclass(frozen=True)
class LoadedBundle:
    patches: tuple[Patch, ...]
    warnings: tuple[str, ...]


def _load_schema_validator() -> Any:
    schema_text = resources.files("patchctl.schemas").joinpath("bundle.schema.json").read_text(
        encoding="utf-8"
    )
    schema = json.loads(schema_text)
    validator_cls = validators.validator_for(schema)
    validator_cls.check_schema(schema)
    return validator_cls(schema)


def _read_yaml(path: Path) -> dict[str, Any]:
    if not path.is_file():
        raise BundleLoadError(f"Patch bundle {path} does not exist")
    try:
        content = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise BundleLoadError(f"Could not read patch bundle {path}: {exc}") from exc

    try:
        loaded = yaml.load(content, Loader=UniqueKeyLoader)
    except yaml.YAMLError as exc:
        raise BundleValidationError(f"Invalid YAML in {path}: {exc}") from exc

    if not isinstance(loaded, dict):
        raise BundleValidationError(f"Patch bundle {path} must contain a mapping at root")
    return loaded


def _normalize_bool(value: Any, *, context: str) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered == "true":
            return True
        if lowered == "false":
            return False
    raise BundleValidationError(f"{context} must be boolean true/false")


def _build_compatible_packages(
    entries: list[dict[str, Any]] | None,
    *,
    context: str,
) -> tuple[CompatiblePackage, ...] | None:
    if entries is None:
        return None

    packages: list[CompatiblePackage] = []
    seen: set[str] = set()
    for entry in entries:
        name = entry["name"].strip()
        if name in seen:
            raise CompatibilityConfigError(f"{context} lists package '{name}' more than once")
        seen.add(name)
        versions = entry.get("versions")
        packages.append(
            CompatiblePackage(
                name=name,
                versions=tuple(v.strip() for v in versions) if versions is not None else None,
            )
        )
    return tuple(packages)


def _build_patch(doc: dict[str, Any], *, context: str) -> Patch:
    options: dict[str, PatchOption] = {}
    for key, declared in (doc.get("options") or {}).items():
        declared = declared or {}
        options[key] = PatchOption(
            key=key,
            default=parse_option_value(declared.get("default")),
            description=declared.get("description", ""),
            required=_normalize_bool(
                declared.get("required", False),
                context=f"{context}.options.{key}.required",
            ),
        )

    return Patch(
        name=doc["name"],
        description=doc.get("description", ""),
        use=_normalize_bool(doc.get("use", True), context=f"{context}.use"),
        compatible_packages=_build_compatible_packages(
            doc.get("compatible_packages"),
            context=context,
        ),
        options=options,
    )


def load_bundle(path: Path) -> tuple[Patch, ...]:
    doc = _read_yaml(path)
    validator = _load_schema_validator()
    try:
        validator.validate(doc)
    except ValidationError as exc:
        where = ".".join(str(p) for p in exc.path)
        where = f" ({where})" if where else ""
        raise BundleValidationError(f"Schema validation failed for {path}{where}: {exc.message}") from exc

    return tuple(
        _build_patch(patch_doc, context=f"{path.name}:{patch_doc['name']}")
        for patch_doc in doc["patches"]
    )


def load_bundles(paths: Iterable[Path]) -> LoadedBundle:
    """Load bundles and concatenate their patches in the supplied order."""
    patches: list[Patch] = []
    warnings: list[str] = []
    seen: set[str] = set()

    for path in paths:
        for patch in load_bundle(Path(path)):
            if patch.name in seen:
                warning = f"Patch '{patch.name}' from {path} shadows an earlier patch with the same name"
                LOGGER.warning(warning)
                warnings.append(warning)
            seen.add(patch.name)
            patches.append(patch)

    LOGGER.info("Loaded %d patches", len(patches))
    return LoadedBundle(patches=tuple(patches), warnings=tuple(warnings))
