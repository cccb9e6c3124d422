"""GitHub REST API client and repository-name probe.

Uses httpx for async HTTP.  The bearer token is read from ``GITHUB_TOKEN``
at the moment it is needed (see :func:`get_github_token`) and is never
stored or logged.
"""

from __future__ import annotations

import base64
import logging
import os
from dataclasses import dataclass
from typing import Any

import httpx

from nbi.registry.base import (
    DEFAULT_TIMEOUT,
    USER_AGENT,
    ProbeOutcome,
    RegistryKind,
    describe_error,
    path_segment,
)

logger = logging.getLogger(__name__)

GITHUB_API_URL = "https://api.github.com"
GITHUB_TOKEN_ENV = "GITHUB_TOKEN"


def get_github_token() -> str | None:
    """Return the GitHub credential from the environment, or None."""
    token = os.environ.get(GITHUB_TOKEN_ENV, "").strip()
    return token or None


class GitHubError(Exception):
    """Base error for GitHub API failures."""


class AuthRequiredError(GitHubError):
    """Raised on 401: token missing, expired or lacking scope."""


class RepoExistsError(GitHubError):
    """Raised when a repository with the requested name already exists."""


class InvalidNameError(GitHubError):
    """Raised when GitHub rejects the repository name."""


class RateLimitedError(GitHubError):
    """Raised on 403/429."""


class GitHubAPIError(GitHubError):
    """Any other non-success response."""


class GitHubNetworkError(GitHubError):
    """Raised when api.github.com is network-unreachable."""


@dataclass(frozen=True)
class Repository:
    name: str
    full_name: str
    html_url: str

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> "Repository":
        return cls(
            name=data.get("name", ""),
            full_name=data.get("full_name", ""),
            html_url=data.get("html_url", ""),
        )


class GitHubClient:
    """Thin async wrapper around the handful of GitHub endpoints nbi uses.

    One :class:`httpx.AsyncClient` is reused across calls.  Call
    :meth:`aclose` (or use as an async context manager) when done.
    """

    def __init__(
        self,
        token: str,
        base_url: str = GITHUB_API_URL,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._token = token
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout,
            headers=self._headers(),
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "GitHubClient":
        return self

    async def __aexit__(self, *_: object) -> None:
        await self.aclose()

    # ------------------------------------------------------------------ #
    # Public API
    # ------------------------------------------------------------------ #

    async def get_username(self) -> str:
        """Return the login of the authenticated user (GET /user)."""
        response = await self._request("GET", "/user")
        self._raise_for_status(response)
        login = self._json(response).get("login")
        if not login:
            raise GitHubAPIError("GET /user returned no login")
        return login

    async def repo_exists(self, owner: str, name: str) -> bool:
        """GET /repos/{owner}/{name}: 200 ⇒ True, 404 ⇒ False."""
        response = await self._request("GET", f"/repos/{owner}/{path_segment(name)}")
        if response.status_code == 404:
            return False
        self._raise_for_status(response)
        return True

    async def create_repo(
        self,
        name: str,
        description: str | None = None,
        private: bool = False,
        auto_init: bool = True,
    ) -> Repository:
        """Create a repository for the authenticated user (POST /user/repos).

        ``auto_init`` commits a README so the repository has a default
        branch that files can be added to.
        """
        body = {
            "name": name,
            "description": description,
            "private": private,
            "auto_init": auto_init,
        }
        response = await self._request("POST", "/user/repos", json=body)
        self._raise_for_status(response)
        repo = Repository.from_json(self._json(response))
        logger.info("Created GitHub repository %s", repo.full_name)
        return repo

    async def file_exists(self, owner: str, repo: str, path: str) -> bool:
        """GET /repos/{owner}/{repo}/contents/{path}: 200 ⇒ True, 404 ⇒ False."""
        response = await self._request("GET", self._contents_path(owner, repo, path))
        if response.status_code == 404:
            return False
        self._raise_for_status(response)
        return True

    async def create_file(
        self,
        owner: str,
        repo: str,
        path: str,
        content: str,
        message: str,
    ) -> None:
        """Commit a new file (PUT /repos/{owner}/{repo}/contents/{path}).

        No ``sha`` is sent, so GitHub refuses to overwrite an existing file.
        """
        body = {
            "message": message,
            "content": base64.b64encode(content.encode("utf-8")).decode("ascii"),
        }
        response = await self._request("PUT", self._contents_path(owner, repo, path), json=body)
        if response.status_code == 422:
            # Contents API: the path already exists (no sha sent) or the body was rejected.
            raise GitHubAPIError(f"422: {response.text[:200]}")
        self._raise_for_status(response)
        logger.info("Committed %s to %s/%s", path, owner, repo)

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        try:
            return await self._client.request(method, path, **kwargs)
        except httpx.HTTPError as exc:
            raise GitHubNetworkError(describe_error(exc)) from exc

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self._token}",
            "Accept": "application/vnd.github+json",
            "User-Agent": USER_AGENT,
        }

    @staticmethod
    def _json(response: httpx.Response) -> dict[str, Any]:
        try:
            data = response.json()
        except ValueError as exc:
            raise GitHubAPIError(f"Malformed response: {exc}") from exc
        if not isinstance(data, dict):
            raise GitHubAPIError("Malformed response: expected a JSON object")
        return data

    @staticmethod
    def _contents_path(owner: str, repo: str, path: str) -> str:
        return f"/repos/{owner}/{path_segment(repo)}/contents/{path}"

    @staticmethod
    def _raise_for_status(response: httpx.Response) -> None:
        status = response.status_code
        if status in (200, 201):
            return
        if status == 401:
            raise AuthRequiredError("Authentication required: provide a GitHub personal access token")
        if status in (403, 429):
            raise RateLimitedError("Rate limited")
        if status == 422:
            if "name already exists" in response.text:
                raise RepoExistsError("Repository name already exists")
            raise InvalidNameError("Invalid repository name")
        raise GitHubAPIError(f"{status}: {response.text[:200]}")


async def check(name: str, client: GitHubClient | None = None) -> ProbeOutcome:
    """Probe whether the authenticated user could create repository *name*.

    Without ``GITHUB_TOKEN`` there is no owner to check against, so the
    outcome is unknown.
    """
    kind = RegistryKind.GITHUB
    owns_client = client is None
    if owns_client:
        token = get_github_token()
        if token is None:
            return ProbeOutcome.unknown(kind, name, f"Set {GITHUB_TOKEN_ENV} to check GitHub")
        client = GitHubClient(token)
    try:
        owner = await client.get_username()
        exists = await client.repo_exists(owner, name)
    except GitHubError as exc:
        return ProbeOutcome.unknown(kind, name, describe_error(exc))
    finally:
        if owns_client:
            await client.aclose()
    return ProbeOutcome(kind=kind, queried_name=name, available=not exists)
