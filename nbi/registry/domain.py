"""DNS-based domain probe.

Resolving a name is only a heuristic for registration: a domain with
records is certainly taken, but one without records may still be
registered and simply unconfigured.  Use a registrar or RDAP lookup for
an authoritative answer.

  - resolves:            taken
  - "no such name":      possibly available
  - any other failure:   unknown
"""

from __future__ import annotations

import asyncio
import logging
import socket
from dataclasses import dataclass
from typing import Any

from nbi.registry.base import ProbeOutcome, RegistryKind, describe_error

logger = logging.getLogger(__name__)

DEFAULT_TLDS: tuple[str, ...] = ("com", "net", "org", "io", "dev")

_NOT_FOUND_ERRNOS = {socket.EAI_NONAME}
if hasattr(socket, "EAI_NODATA"):
    _NOT_FOUND_ERRNOS.add(socket.EAI_NODATA)


@dataclass(frozen=True)
class DomainResult:
    domain: str
    available: bool | None
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"domain": self.domain, "available": self.available, "error": self.error}


async def _resolve(host: str) -> list[Any]:
    loop = asyncio.get_running_loop()
    return await loop.getaddrinfo(host, None)


async def check_full_domain(domain: str) -> DomainResult:
    """Check a fully-qualified *domain* such as ``banana.wiki``."""
    domain = domain.strip().lower().rstrip(".")
    try:
        await _resolve(domain)
    except socket.gaierror as exc:
        if exc.errno in _NOT_FOUND_ERRNOS:
            return DomainResult(domain=domain, available=True)
        logger.debug("DNS lookup for %s failed: %s", domain, exc)
        return DomainResult(domain=domain, available=None, error=describe_error(exc))
    except (OSError, UnicodeError) as exc:
        return DomainResult(domain=domain, available=None, error=describe_error(exc))
    return DomainResult(domain=domain, available=False)


async def check_tld(name: str, tld: str) -> DomainResult:
    return await check_full_domain(f"{name}.{tld.strip().lstrip('.')}")


async def check_multiple_tlds(name: str, tlds: list[str] | tuple[str, ...]) -> list[DomainResult]:
    """Check *name* under every TLD concurrently; results follow *tlds* order."""
    return list(await asyncio.gather(*(check_tld(name, tld) for tld in tlds)))


async def check_domains(domains: list[str]) -> list[DomainResult]:
    return list(await asyncio.gather(*(check_full_domain(d) for d in domains)))


def expand_domain_query(name: str, tlds: list[str] | tuple[str, ...]) -> list[str]:
    """Return the domains to check for a CLI-style query.

    A dotted *name* (``banana.wiki``) is checked as given first, followed by
    its base label under each of *tlds*; a bare label is paired with every TLD.
    """
    clean = [t.strip().lstrip(".") for t in tlds if t.strip()]
    if "." not in name:
        return [f"{name}.{tld}" for tld in clean]
    base = name.rsplit(".", 1)[0]
    domains = [name]
    for tld in clean:
        candidate = f"{base}.{tld}"
        if candidate not in domains:
            domains.append(candidate)
    return domains


async def check(name: str) -> ProbeOutcome:
    """Registry probe for the ``.dev`` namespace."""
    result = await check_tld(name, "dev")
    return ProbeOutcome(
        kind=RegistryKind.DEV_DOMAIN,
        queried_name=result.domain,
        available=result.available,
        error=result.error,
    )
