"""crates.io probe.

API: ``GET https://crates.io/api/v1/crates/{name}``
  - 200: crate exists (taken)
  - 404: crate not found (available)

crates.io rejects requests without a User-Agent; :func:`new_client` sets one.
"""

from __future__ import annotations

import httpx

from nbi.registry.base import ProbeOutcome, RegistryKind, path_segment, status_probe

CRATES_API_URL = "https://crates.io/api/v1/crates"


async def check(name: str, client: httpx.AsyncClient | None = None) -> ProbeOutcome:
    url = f"{CRATES_API_URL}/{path_segment(name)}"
    return await status_probe(RegistryKind.CRATES, name, url, client=client)
