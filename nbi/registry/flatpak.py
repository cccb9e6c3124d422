"""Flathub (Flatpak) probe.

Flathub has no "does this id exist" endpoint for bare names, so the probe
searches: ``GET /api/v1/apps/search/{name}``, falling back to the full app
list when the search route is unavailable.  A name counts as taken when an
app id contains it or an app display name equals it (case-insensitive).
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from nbi.registry.base import (
    ProbeOutcome,
    RegistryKind,
    describe_error,
    fetch,
    path_segment,
)

logger = logging.getLogger(__name__)

FLATHUB_API_URL = "https://flathub.org/api/v1/apps"

_JSON = {"Accept": "application/json"}


async def check(name: str, client: httpx.AsyncClient | None = None) -> ProbeOutcome:
    kind = RegistryKind.FLATPAK
    try:
        response = await fetch(f"{FLATHUB_API_URL}/search/{path_segment(name)}", client, _JSON)
        if response.status_code in (404, 405):
            logger.debug("Flathub search unavailable (%d), using app list", response.status_code)
            response = await fetch(FLATHUB_API_URL, client, _JSON)
        if response.status_code != 200:
            return ProbeOutcome.unknown(kind, name, f"Unexpected status: {response.status_code}")
        apps = response.json()
    except (httpx.HTTPError, httpx.InvalidURL) as exc:
        return ProbeOutcome.unknown(kind, name, describe_error(exc))
    except ValueError as exc:
        return ProbeOutcome.unknown(kind, name, f"Parse error: {exc}")

    return ProbeOutcome(kind=kind, queried_name=name, available=not has_match(apps, name))


def has_match(apps: Any, name: str) -> bool:
    """Return True if any entry in the Flathub *apps* payload claims *name*."""
    if not isinstance(apps, list):
        return False
    needle = name.lower()
    for app in apps:
        if not isinstance(app, dict):
            continue
        app_id = str(app.get("id") or app.get("flatpakAppId") or "").lower()
        app_name = str(app.get("name") or "").lower()
        if needle in app_id or app_name == needle:
            return True
    return False
