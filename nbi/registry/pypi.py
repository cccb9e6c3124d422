"""PyPI probe.

API: ``GET https://pypi.org/simple/{name}/``
  - 200: project exists (taken)
  - 404: project not found (available)

The simple index is used instead of the JSON API because it also answers
404 for projects that were registered but never released.
"""

from __future__ import annotations

import httpx

from nbi.registry.base import ProbeOutcome, RegistryKind, path_segment, status_probe

PYPI_SIMPLE_URL = "https://pypi.org/simple"


async def check(name: str, client: httpx.AsyncClient | None = None) -> ProbeOutcome:
    url = f"{PYPI_SIMPLE_URL}/{path_segment(name)}/"
    return await status_probe(RegistryKind.PYPI, name, url, client=client)
