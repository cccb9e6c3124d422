"""Shared types and HTTP plumbing for registry probes.

A probe is an ``async`` callable ``name -> ProbeOutcome`` that never
raises: transport failures and unexpected responses resolve to an
*unknown* outcome carrying an error description.
"""

from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable
from urllib.parse import quote

import httpx

logger = logging.getLogger(__name__)

USER_AGENT = "nbi/0.1.0 (package-name-checker)"
DEFAULT_TIMEOUT = 10.0


class RegistryKind(str, Enum):
    """Every naming registry nbi can probe, in result order."""

    NPM = "npm"
    CRATES = "crates"
    PYPI = "pypi"
    BREW = "brew"
    FLATPAK = "flatpak"
    DEBIAN = "debian"
    DEV_DOMAIN = "dev_domain"
    GITHUB = "github"

    @property
    def label(self) -> str:
        """Human-facing name (``crates.io``, ``PyPI``, ...)."""
        return _LABELS[self]


_LABELS: dict[RegistryKind, str] = {
    RegistryKind.NPM: "npm",
    RegistryKind.CRATES: "crates.io",
    RegistryKind.PYPI: "PyPI",
    RegistryKind.BREW: "Homebrew",
    RegistryKind.FLATPAK: "Flatpak",
    RegistryKind.DEBIAN: "Debian",
    RegistryKind.DEV_DOMAIN: ".dev",
    RegistryKind.GITHUB: "GitHub",
}


@dataclass(frozen=True)
class ProbeOutcome:
    """Availability verdict for one name on one registry.

    ``available`` is tri-state: ``True`` (free), ``False`` (taken) or
    ``None`` (could not tell, see ``error``).
    """

    kind: RegistryKind
    queried_name: str
    available: bool | None
    error: str | None = None

    @classmethod
    def unknown(cls, kind: RegistryKind, name: str, error: str) -> "ProbeOutcome":
        return cls(kind=kind, queried_name=name, available=None, error=error)

    def to_dict(self) -> dict[str, Any]:
        return {
            "registry": self.kind.value,
            "name": self.queried_name,
            "available": self.available,
            "error": self.error,
        }


@dataclass
class RegistrySelection:
    """Which registries to probe. Every kind defaults to enabled."""

    npm: bool = True
    crates: bool = True
    pypi: bool = True
    brew: bool = True
    flatpak: bool = True
    debian: bool = True
    dev_domain: bool = True
    github: bool = True

    def is_enabled(self, kind: RegistryKind) -> bool:
        return bool(getattr(self, kind.value))

    def set_enabled(self, kind: RegistryKind, enabled: bool) -> None:
        setattr(self, kind.value, enabled)

    def toggle(self, kind: RegistryKind) -> bool:
        """Flip *kind* and return its new value."""
        enabled = not self.is_enabled(kind)
        self.set_enabled(kind, enabled)
        return enabled

    def enabled_kinds(self) -> list[RegistryKind]:
        return [kind for kind in RegistryKind if self.is_enabled(kind)]

    def copy(self) -> "RegistrySelection":
        return dataclasses.replace(self)

    def to_dict(self) -> dict[str, bool]:
        return {kind.value: self.is_enabled(kind) for kind in RegistryKind}

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "RegistrySelection":
        """Build from a stored mapping; missing keys stay enabled, unknown keys are ignored."""
        selection = cls()
        for kind in RegistryKind:
            if data and kind.value in data:
                selection.set_enabled(kind, bool(data[kind.value]))
        return selection


Probe = Callable[[str], Awaitable[ProbeOutcome]]


# ------------------------------------------------------------------ #
# HTTP helpers
# ------------------------------------------------------------------ #

def new_client(**kwargs: Any) -> httpx.AsyncClient:
    """Return an ``AsyncClient`` with the shared User-Agent and timeout."""
    kwargs.setdefault("timeout", DEFAULT_TIMEOUT)
    kwargs.setdefault("follow_redirects", True)
    headers = {"User-Agent": USER_AGENT}
    headers.update(kwargs.pop("headers", None) or {})
    return httpx.AsyncClient(headers=headers, **kwargs)


async def fetch(
    url: str,
    client: httpx.AsyncClient | None = None,
    headers: dict[str, str] | None = None,
) -> httpx.Response:
    """GET *url* with *client*, or with a short-lived client when none is given."""
    if client is not None:
        return await client.get(url, headers=headers)
    async with new_client() as own:
        return await own.get(url, headers=headers)


def path_segment(name: str) -> str:
    """Percent-encode *name* for use as a single URL path segment."""
    return quote(name, safe="@")


def describe_error(exc: BaseException) -> str:
    """Return a non-empty description (some httpx errors stringify to ``''``)."""
    text = str(exc).strip()
    return text or exc.__class__.__name__


def outcome_from_status(kind: RegistryKind, name: str, status_code: int) -> ProbeOutcome:
    """Entity lookup heuristic: 404 ⇒ free, 200 ⇒ taken, anything else ⇒ unknown."""
    if status_code == 404:
        return ProbeOutcome(kind=kind, queried_name=name, available=True)
    if status_code == 200:
        return ProbeOutcome(kind=kind, queried_name=name, available=False)
    return ProbeOutcome.unknown(kind, name, f"Unexpected status: {status_code}")


async def status_probe(
    kind: RegistryKind,
    name: str,
    url: str,
    *,
    client: httpx.AsyncClient | None = None,
    headers: dict[str, str] | None = None,
) -> ProbeOutcome:
    """Run the lookup heuristic of :func:`outcome_from_status` against *url*."""
    try:
        response = await fetch(url, client, headers)
    except (httpx.HTTPError, httpx.InvalidURL) as exc:
        logger.debug("%s probe failed for %r: %s", kind.value, name, exc)
        return ProbeOutcome.unknown(kind, name, describe_error(exc))
    return outcome_from_status(kind, name, response.status_code)
