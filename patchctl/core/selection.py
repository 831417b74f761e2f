"""Patch selection for a target package."""

from __future__ import annotations

import logging
from collections.abc import Sequence

from patchctl.core.compatibility import check_compatibility
from patchctl.core.model import (
    Compatibility,
    Decision,
    PackageMetadata,
    Patch,
    SelectionRequest,
    SelectionResult,
)

LOGGER = logging.getLogger(__name__)

EXCLUDED_MANUALLY = "excluded manually"
INCOMPATIBLE = "incompatible"
NOT_SELECTED = "not selected"
INCLUDED_DEFAULT = "included by default"
INCLUDED_EXPLICITLY = "included explicitly"


def _decide(index: int, patch: Patch, request: SelectionRequest, package: PackageMetadata) -> Decision:
    if patch.name in request.exclude or index in request.exclude_index:
        LOGGER.info("'%s' excluded manually", patch.name)
        return Decision(index=index, patch=patch, included=False, reason=EXCLUDED_MANUALLY)

    verdict = check_compatibility(patch, package, force=request.force)
    if not verdict.eligible:
        if verdict.status is Compatibility.INCOMPATIBLE_PACKAGE:
            LOGGER.debug(verdict.message)
        else:
            LOGGER.warning(verdict.message)
        return Decision(
            index=index,
            patch=patch,
            included=False,
            reason=INCOMPATIBLE,
            detail=verdict.message,
        )
    if verdict.status is Compatibility.UNCONSTRAINED:
        LOGGER.debug(verdict.message)

    implicit = not request.exclusive and patch.use
    explicit = patch.name in request.include or index in request.include_index

    if not (implicit or explicit):
        LOGGER.info("'%s' excluded", patch.name)
        return Decision(index=index, patch=patch, included=False, reason=NOT_SELECTED)

    LOGGER.debug("'%s' added", patch.name)
    return Decision(
        index=index,
        patch=patch,
        included=True,
        reason=INCLUDED_EXPLICITLY if explicit else INCLUDED_DEFAULT,
    )


def select_patches(
    patches: Sequence[Patch],
    request: SelectionRequest,
    package: PackageMetadata,
) -> SelectionResult:
    """Decide which patches of a combined bundle apply to ``package``.

    Exclusion wins over inclusion. Patches incompatible with the package or
    its version are dropped. Remaining patches are kept if they are used by
    default (unless ``request.exclusive``) or requested by name or index.
    The result keeps bundle order.
    """
    decisions = tuple(_decide(index, patch, request, package) for index, patch in enumerate(patches))
    return SelectionResult(decisions=decisions)
