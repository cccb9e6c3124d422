"""Registry probes and the concurrent aggregator.

Usage::

    from nbi.registry import RegistrySelection, check_all
    results = await check_all("left-pad", RegistrySelection())
"""

from __future__ import annotations

import asyncio
import logging
from typing import Mapping

from . import brew, crates, debian, domain, flatpak, github, npm, pypi
from .base import (
    Probe,
    ProbeOutcome,
    RegistryKind,
    RegistrySelection,
    describe_error,
)

__all__ = [
    "PROBES",
    "Probe",
    "ProbeOutcome",
    "RegistryKind",
    "RegistrySelection",
    "check_all",
]

logger = logging.getLogger(__name__)

PROBES: dict[RegistryKind, Probe] = {
    RegistryKind.NPM: npm.check,
    RegistryKind.CRATES: crates.check,
    RegistryKind.PYPI: pypi.check,
    RegistryKind.BREW: brew.check,
    RegistryKind.FLATPAK: flatpak.check,
    RegistryKind.DEBIAN: debian.check,
    RegistryKind.DEV_DOMAIN: domain.check,
    RegistryKind.GITHUB: github.check,
}


async def check_all(
    name: str,
    selection: RegistrySelection,
    probes: Mapping[RegistryKind, Probe] | None = None,
) -> list[ProbeOutcome]:
    """Probe every enabled registry concurrently and return all outcomes.

    Waits for the slowest probe.  Results follow :class:`RegistryKind`
    declaration order, never completion order; disabled kinds are omitted.
    Touches no shared state, so it is safe to call from any task.

    Args:
        name:      The name to check.
        selection: Which registries to probe.
        probes:    Override the probe table (tests).
    """
    table = PROBES if probes is None else probes
    kinds = selection.enabled_kinds()
    outcomes = await asyncio.gather(*(_run_probe(table.get(kind), kind, name) for kind in kinds))
    unknown = sum(1 for o in outcomes if o.available is None)
    logger.info("checked %r on %d registries (%d unknown)", name, len(outcomes), unknown)
    return list(outcomes)


async def _run_probe(probe: Probe | None, kind: RegistryKind, name: str) -> ProbeOutcome:
    """Await one probe; a probe that raises still yields an unknown outcome."""
    if probe is None:
        return ProbeOutcome.unknown(kind, name, "No probe registered")
    try:
        return await probe(name)
    except Exception as exc:
        logger.warning("%s probe raised for %r: %s", kind.value, name, exc)
        return ProbeOutcome.unknown(kind, name, describe_error(exc))
