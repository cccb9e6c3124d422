"""npm registry probe.

API: ``GET https://registry.npmjs.org/{package}``
  - 200: package exists (taken)
  - 404: package not found (available)
"""

from __future__ import annotations

import httpx

from nbi.registry.base import ProbeOutcome, RegistryKind, path_segment, status_probe

NPM_REGISTRY_URL = "https://registry.npmjs.org"


async def check(name: str, client: httpx.AsyncClient | None = None) -> ProbeOutcome:
    # Scoped names keep their "@" but the "/" must be encoded.
    url = f"{NPM_REGISTRY_URL}/{path_segment(name)}"
    return await status_probe(RegistryKind.NPM, name, url, client=client)
