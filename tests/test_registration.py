"""Tests for the registration orchestrator."""

from __future__ import annotations

import pytest

from nbi.registration import (
    INSTRUCTIONS,
    ManifestType,
    RegistrationOrchestrator,
    RegistrationResult,
)
from nbi.registry import ProbeOutcome, RegistryKind
from nbi.registry.github import (
    AuthRequiredError,
    GitHubNetworkError,
    RateLimitedError,
    RepoExistsError,
    Repository,
)


class FakeGitHub:
    """In-memory stand-in for GitHubClient, shared across factory calls."""

    def __init__(self, login: str = "octocat"):
        self.login = login
        self.repos: set[str] = set()
        self.files: dict[tuple[str, str], str] = {}
        self.create_repo_error: Exception | None = None
        self.create_file_error: Exception | None = None
        self.tokens: list[str] = []
        self.puts = 0
        self.closed = 0

    def factory(self, token: str) -> "FakeGitHub":
        self.tokens.append(token)
        return self

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        self.closed += 1

    async def get_username(self) -> str:
        return self.login

    async def create_repo(self, name, description=None, private=False, auto_init=True):
        if self.create_repo_error is not None:
            raise self.create_repo_error
        if name in self.repos:
            raise RepoExistsError("Repository name already exists")
        self.repos.add(name)
        return Repository(
            name=name,
            full_name=f"{self.login}/{name}",
            html_url=f"https://github.com/{self.login}/{name}",
        )

    async def file_exists(self, owner, repo, path) -> bool:
        return (repo, path) in self.files

    async def create_file(self, owner, repo, path, content, message) -> None:
        if self.create_file_error is not None:
            raise self.create_file_error
        self.puts += 1
        self.files[(repo, path)] = content


def available(kind: RegistryKind, name: str = "left-pad-9f3k") -> ProbeOutcome:
    return ProbeOutcome(kind=kind, queried_name=name, available=True)


@pytest.fixture
def gh():
    return FakeGitHub()


@pytest.fixture
def orchestrator(gh):
    return RegistrationOrchestrator(client_factory=gh.factory)


class TestRegistrationResult:
    def test_status_text(self):
        assert RegistrationResult.success("done").status_text() == "done"
        assert RegistrationResult.failure("nope").status_text() == "Error: nope"


class TestDispatch:
    def test_every_kind_has_a_handler(self, orchestrator):
        assert set(orchestrator._handlers) == set(RegistryKind)

    @pytest.mark.parametrize("kind", list(INSTRUCTIONS))
    @pytest.mark.asyncio
    async def test_instructional_kinds_need_no_credential(self, orchestrator, gh, kind):
        result = await orchestrator.register(available(kind), None)
        assert result.ok
        assert result.message == INSTRUCTIONS[kind]
        assert gh.tokens == []


class TestGitHub:
    @pytest.mark.asyncio
    async def test_missing_credential_makes_no_request(self, orchestrator, gh):
        result = await orchestrator.register(available(RegistryKind.GITHUB), None)
        assert not result.ok
        assert "GITHUB_TOKEN" in result.message
        assert gh.tokens == []

    @pytest.mark.asyncio
    async def test_creates_repo(self, orchestrator, gh):
        result = await orchestrator.register(available(RegistryKind.GITHUB, "foo"), "tok")
        assert result == RegistrationResult.success("Created: https://github.com/octocat/foo")
        assert gh.tokens == ["tok"]
        assert gh.closed == 1

    @pytest.mark.asyncio
    async def test_error_is_formatted(self, orchestrator, gh):
        gh.create_repo_error = AuthRequiredError("401")
        result = await orchestrator.register(available(RegistryKind.GITHUB), "tok")
        assert result == RegistrationResult.failure("Authentication required - check your token")


class TestPackagePlaceholders:
    @pytest.mark.parametrize(
        "kind,manifest",
        [
            (RegistryKind.NPM, ManifestType.NPM),
            (RegistryKind.CRATES, ManifestType.CRATES),
            (RegistryKind.PYPI, ManifestType.PYPI),
        ],
    )
    @pytest.mark.asyncio
    async def test_creates_repo_and_manifest(self, orchestrator, gh, kind, manifest):
        result = await orchestrator.register(available(kind, "foo"), "tok")
        assert result.ok
        assert result.message.startswith("https://github.com/octocat/foo - ")
        assert manifest.publish_command in result.message
        assert ("foo", manifest.filename) in gh.files
        assert '"foo"' in gh.files[("foo", manifest.filename)]

    @pytest.mark.asyncio
    async def test_missing_credential(self, orchestrator, gh):
        result = await orchestrator.register(available(RegistryKind.CRATES), None)
        assert result.status_text() == "Error: Set GITHUB_TOKEN environment variable"
        assert gh.tokens == []

    @pytest.mark.asyncio
    async def test_rerun_is_idempotent(self, orchestrator, gh):
        outcome = available(RegistryKind.NPM, "foo")
        first = await orchestrator.register(outcome, "tok")
        second = await orchestrator.register(outcome, "tok")
        assert first.ok and second.ok
        assert second.message == "package.json already present in repo"
        assert gh.puts == 1

    @pytest.mark.asyncio
    async def test_existing_repo_without_manifest_gets_one(self, orchestrator, gh):
        gh.repos.add("foo")
        result = await orchestrator.register(available(RegistryKind.PYPI, "foo"), "tok")
        assert result == RegistrationResult.success("Added pyproject.toml to existing repo")
        assert gh.puts == 1

    @pytest.mark.asyncio
    async def test_manifest_failure_reports_partial_completion(self, orchestrator, gh):
        gh.create_file_error = GitHubNetworkError("connection reset")
        result = await orchestrator.register(available(RegistryKind.CRATES, "foo"), "tok")
        assert result.ok
        assert "https://github.com/octocat/foo" in result.message
        assert "could not add Cargo.toml" in result.message
        assert "foo" in gh.repos

    @pytest.mark.asyncio
    async def test_repo_creation_failure(self, orchestrator, gh):
        gh.create_repo_error = RateLimitedError("403")
        result = await orchestrator.register(available(RegistryKind.NPM), "tok")
        assert result == RegistrationResult.failure("Rate limited - try again later")
        assert gh.puts == 0


class TestManifestType:
    def test_filenames(self):
        assert [m.filename for m in ManifestType] == ["package.json", "Cargo.toml", "pyproject.toml"]

    def test_npm_manifest_is_json(self):
        import json

        body = json.loads(ManifestType.NPM.render("foo"))
        assert body["name"] == "foo"
        assert body["version"] == "0.0.0"

    def test_toml_manifests_name_the_package(self):
        assert 'name = "foo"' in ManifestType.CRATES.render("foo")
        assert ManifestType.PYPI.render("foo").startswith("[project]\n")
