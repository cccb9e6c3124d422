"""Debian source package probe.

API: ``GET https://sources.debian.org/api/src/{name}/``
  - 404, or 200 with an ``error`` key: no such package (available)
  - 200 with a non-empty ``versions`` list: package exists (taken)
"""

from __future__ import annotations

import httpx

from nbi.registry.base import (
    ProbeOutcome,
    RegistryKind,
    describe_error,
    fetch,
    path_segment,
)

DEBIAN_API_URL = "https://sources.debian.org/api/src"


async def check(name: str, client: httpx.AsyncClient | None = None) -> ProbeOutcome:
    kind = RegistryKind.DEBIAN
    try:
        response = await fetch(f"{DEBIAN_API_URL}/{path_segment(name)}/", client)
        if response.status_code == 404:
            return ProbeOutcome(kind=kind, queried_name=name, available=True)
        if response.status_code != 200:
            return ProbeOutcome.unknown(kind, name, f"Unexpected status: {response.status_code}")
        payload = response.json()
    except (httpx.HTTPError, httpx.InvalidURL) as exc:
        return ProbeOutcome.unknown(kind, name, describe_error(exc))
    except ValueError as exc:
        return ProbeOutcome.unknown(kind, name, f"Parse error: {exc}")

    if not isinstance(payload, dict) or "error" in payload:
        return ProbeOutcome(kind=kind, queried_name=name, available=True)
    versions = payload.get("versions")
    has_versions = isinstance(versions, list) and len(versions) > 0
    return ProbeOutcome(kind=kind, queried_name=name, available=not has_versions)
