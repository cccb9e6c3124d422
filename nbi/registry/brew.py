"""Homebrew formula probe (``GET https://formulae.brew.sh/api/formula/{name}.json``)."""

from __future__ import annotations

import httpx

from nbi.registry.base import ProbeOutcome, RegistryKind, path_segment, status_probe

BREW_API_URL = "https://formulae.brew.sh/api/formula"


async def check(name: str, client: httpx.AsyncClient | None = None) -> ProbeOutcome:
    url = f"{BREW_API_URL}/{path_segment(name)}.json"
    return await status_probe(RegistryKind.BREW, name, url, client=client)
