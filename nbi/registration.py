"""Name reservation workflows.

Each :class:`RegistryKind` maps to one handler in a dispatch table:

  - GitHub:         create a repository named after the checked name.
  - npm/crates/PyPI: create a placeholder repository, then commit the
                    index's manifest file.  When the repository already
                    exists, resolve the owner and add the manifest only if
                    it is missing, so the workflow is safe to re-run.
  - everything else: no programmatic path; return instructions.

Every path ends in exactly one :class:`RegistrationResult`.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable

from nbi.registry.base import ProbeOutcome, RegistryKind
from nbi.registry.github import (
    GITHUB_TOKEN_ENV,
    AuthRequiredError,
    GitHubAPIError,
    GitHubClient,
    GitHubError,
    GitHubNetworkError,
    InvalidNameError,
    RateLimitedError,
    RepoExistsError,
)

logger = logging.getLogger(__name__)

ClientFactory = Callable[[str], GitHubClient]


@dataclass(frozen=True)
class RegistrationResult:
    ok: bool
    message: str

    @classmethod
    def success(cls, message: str) -> "RegistrationResult":
        return cls(ok=True, message=message)

    @classmethod
    def failure(cls, message: str) -> "RegistrationResult":
        return cls(ok=False, message=message)

    def status_text(self) -> str:
        """The string shown in the session status line."""
        return self.message if self.ok else f"Error: {self.message}"


class ManifestType(Enum):
    NPM = "npm"
    CRATES = "crates"
    PYPI = "pypi"

    @property
    def filename(self) -> str:
        return {
            ManifestType.NPM: "package.json",
            ManifestType.CRATES: "Cargo.toml",
            ManifestType.PYPI: "pyproject.toml",
        }[self]

    @property
    def publish_command(self) -> str:
        return {
            ManifestType.NPM: "npm publish",
            ManifestType.CRATES: "cargo publish",
            ManifestType.PYPI: "twine upload",
        }[self]

    def render(self, name: str) -> str:
        """Minimal manifest that reserves *name* on this index."""
        description = f"Placeholder reservation for {name}"
        if self is ManifestType.NPM:
            body = {
                "name": name,
                "version": "0.0.0",
                "description": description,
                "license": "MIT",
            }
            return json.dumps(body, indent=2) + "\n"
        if self is ManifestType.CRATES:
            return (
                "[package]\n"
                f'name = "{name}"\n'
                'version = "0.0.0"\n'
                'edition = "2021"\n'
                f'description = "{description}"\n'
                'license = "MIT"\n'
            )
        return (
            "[project]\n"
            f'name = "{name}"\n'
            'version = "0.0.0"\n'
            f'description = "{description}"\n'
        )


INSTRUCTIONS: dict[RegistryKind, str] = {
    RegistryKind.BREW: "Homebrew: Create a formula and submit PR to homebrew-core",
    RegistryKind.FLATPAK: "Flatpak: Submit your app to flathub.org/apps/submit",
    RegistryKind.DEBIAN: "Debian: Follow ITP process at wiki.debian.org/ITP",
    RegistryKind.DEV_DOMAIN: (
        "Domain registration requires a registrar (e.g., Cloudflare, Namecheap)"
    ),
}

_MANIFESTS: dict[RegistryKind, ManifestType] = {
    RegistryKind.NPM: ManifestType.NPM,
    RegistryKind.CRATES: ManifestType.CRATES,
    RegistryKind.PYPI: ManifestType.PYPI,
}


def format_github_error(error: GitHubError) -> str:
    if isinstance(error, AuthRequiredError):
        return "Authentication required - check your token"
    if isinstance(error, RepoExistsError):
        return "Repository already exists"
    if isinstance(error, InvalidNameError):
        return "Invalid repository name"
    if isinstance(error, RateLimitedError):
        return "Rate limited - try again later"
    if isinstance(error, GitHubNetworkError):
        return f"Network error: {error}"
    if isinstance(error, GitHubAPIError):
        return f"API error: {error}"
    return str(error)


Handler = Callable[[str, "str | None", RegistryKind], Awaitable[RegistrationResult]]


class RegistrationOrchestrator:
    """Runs the reservation workflow for one probe outcome."""

    def __init__(self, client_factory: ClientFactory = GitHubClient) -> None:
        self._client_factory = client_factory
        self._handlers: dict[RegistryKind, Handler] = {
            RegistryKind.GITHUB: self._register_github,
        }
        for kind in _MANIFESTS:
            self._handlers[kind] = self._register_package
        for kind in INSTRUCTIONS:
            self._handlers[kind] = self._instructions

    async def register(self, outcome: ProbeOutcome, credential: str | None) -> RegistrationResult:
        """Reserve ``outcome.queried_name`` on ``outcome.kind``.

        *credential* is the GitHub bearer token for this attempt only.
        """
        handler = self._handlers[outcome.kind]
        return await handler(outcome.queried_name, credential, outcome.kind)

    # ------------------------------------------------------------------ #
    # Handlers
    # ------------------------------------------------------------------ #

    async def _instructions(
        self, name: str, credential: str | None, kind: RegistryKind
    ) -> RegistrationResult:
        return RegistrationResult.success(INSTRUCTIONS[kind])

    async def _register_github(
        self, name: str, credential: str | None, kind: RegistryKind
    ) -> RegistrationResult:
        if not credential:
            return _missing_credential()
        async with self._client_factory(credential) as client:
            try:
                repo = await client.create_repo(name)
            except GitHubError as exc:
                return RegistrationResult.failure(format_github_error(exc))
        return RegistrationResult.success(f"Created: {repo.html_url}")

    async def _register_package(
        self, name: str, credential: str | None, kind: RegistryKind
    ) -> RegistrationResult:
        if not credential:
            return _missing_credential()
        manifest = _MANIFESTS[kind]
        async with self._client_factory(credential) as client:
            try:
                repo = await client.create_repo(
                    name, description=f"Placeholder for the {name} {kind.label} package"
                )
            except RepoExistsError:
                logger.info("Repository %s exists, ensuring %s", name, manifest.filename)
                return await self.ensure_manifest(client, name, manifest)
            except GitHubError as exc:
                return RegistrationResult.failure(format_github_error(exc))

            claim = f"Run '{manifest.publish_command}' to claim the name"
            owner = repo.full_name.split("/", 1)[0]
            try:
                await client.create_file(
                    owner, repo.name or name, manifest.filename, manifest.render(name),
                    f"Add {manifest.filename} placeholder",
                )
            except GitHubError as exc:
                # The repository exists now; report it along with the failed step.
                logger.warning("Created %s but adding %s failed: %s", repo.html_url, manifest.filename, exc)
                return RegistrationResult.success(
                    f"{repo.html_url} - could not add {manifest.filename} "
                    f"({format_github_error(exc)}). {claim}"
                )
        return RegistrationResult.success(f"{repo.html_url} - {claim}")

    async def ensure_manifest(
        self, client: GitHubClient, name: str, manifest: ManifestType
    ) -> RegistrationResult:
        """Add *manifest* to the caller's existing repository *name* unless present.

        Never overwrites; running it twice reports "already present".
        """
        try:
            owner = await client.get_username()
            if await client.file_exists(owner, name, manifest.filename):
                return RegistrationResult.success(f"{manifest.filename} already present in repo")
            await client.create_file(
                owner, name, manifest.filename, manifest.render(name),
                f"Add {manifest.filename} placeholder",
            )
        except GitHubError as exc:
            return RegistrationResult.failure(format_github_error(exc))
        return RegistrationResult.success(f"Added {manifest.filename} to existing repo")


def _missing_credential() -> RegistrationResult:
    return RegistrationResult.failure(f"Set {GITHUB_TOKEN_ENV} environment variable")
