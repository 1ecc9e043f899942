"""Tests for README fetching, summarization and the metered summarizer endpoint."""

from unittest.mock import AsyncMock, Mock

import httpx
import pytest

from app.adapters.github import GitHubReadmeClient, parse_github_url
from app.api.routes import github_summarizer as summarizer_routes
from app.core.config import GitHubSettings
from app.core.errors import LLMAppError, ValidationAppError
from app.schemas.summarizer import RepoSummary
from app.services.summarizer_service import MAX_README_CHARS, SummarizerService
from app.utils.simple_cache import SimpleTTLCache

SUMMARY = {"summary": "A tiny HTTP library.", "cool_facts": ["Has zero dependencies", "Written in one weekend"]}


class TestParseGithubUrl:
    @pytest.mark.parametrize(
        ("url", "expected"),
        [
            ("https://github.com/psf/requests", ("psf", "requests")),
            ("https://github.com/psf/requests/", ("psf", "requests")),
            ("https://github.com/psf/requests/tree/main/docs", ("psf", "requests")),
            ("https://github.com/psf/requests.git", ("psf", "requests")),
        ],
    )
    def test_valid_urls(self, url, expected) -> None:
        assert parse_github_url(url) == expected

    @pytest.mark.parametrize(
        "url",
        ["", "https://gitlab.com/psf/requests", "http://github.com/psf/requests", "https://github.com/psf"],
    )
    def test_invalid_urls(self, url) -> None:
        assert parse_github_url(url) is None


class TestGitHubReadmeClient:
    def _client(self, handler) -> GitHubReadmeClient:
        return GitHubReadmeClient(
            GitHubSettings(raw_base_url="https://raw.example.test", branches=["main", "master"]),
            transport=httpx.MockTransport(handler),
        )

    @pytest.mark.asyncio
    async def test_reads_main_branch(self) -> None:
        requested = []

        def handler(request: httpx.Request) -> httpx.Response:
            requested.append(str(request.url))
            return httpx.Response(200, text="# Requests")

        readme = await self._client(handler).fetch_readme("https://github.com/psf/requests")

        assert readme == "# Requests"
        assert requested == ["https://raw.example.test/psf/requests/main/README.md"]

    @pytest.mark.asyncio
    async def test_falls_back_to_master(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            if "/main/" in request.url.path:
                return httpx.Response(404)
            return httpx.Response(200, text="# From master")

        assert await self._client(handler).fetch_readme("https://github.com/o/r") == "# From master"

    @pytest.mark.asyncio
    async def test_network_error_on_one_branch_tries_next(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            if "/main/" in request.url.path:
                raise httpx.ConnectError("refused", request=request)
            return httpx.Response(200, text="# ok")

        assert await self._client(handler).fetch_readme("https://github.com/o/r") == "# ok"

    @pytest.mark.asyncio
    async def test_no_readme_anywhere(self) -> None:
        client = self._client(lambda request: httpx.Response(404))

        assert await client.fetch_readme("https://github.com/o/r") is None

    @pytest.mark.asyncio
    async def test_invalid_url_makes_no_request(self) -> None:
        handler = Mock(return_value=httpx.Response(200, text="x"))

        assert await self._client(handler).fetch_readme("not a url") is None
        handler.assert_not_called()


class TestSummarizerService:
    @pytest.fixture
    def llm(self) -> AsyncMock:
        llm = AsyncMock()
        llm.model = "gpt-4o"
        llm.generate_json.return_value = SUMMARY
        return llm

    @pytest.fixture
    def service(self, llm) -> SummarizerService:
        return SummarizerService(llm=llm, cache=SimpleTTLCache(ttl_seconds=60))

    @pytest.mark.asyncio
    async def test_summarize(self, service, llm) -> None:
        summary, cached = await service.summarize("# Requests\nHTTP for humans.")

        assert summary == RepoSummary(**SUMMARY)
        assert cached is False
        prompt = llm.generate_json.await_args.args[0]
        assert prompt == "# Requests\nHTTP for humans."

    @pytest.mark.asyncio
    async def test_same_readme_is_served_from_cache(self, service, llm) -> None:
        await service.summarize("# Readme")
        summary, cached = await service.summarize("# Readme")

        assert cached is True
        assert summary.summary == SUMMARY["summary"]
        assert llm.generate_json.await_count == 1

    @pytest.mark.asyncio
    async def test_long_readme_is_truncated(self, service, llm) -> None:
        await service.summarize("x" * (MAX_README_CHARS + 500))

        assert len(llm.generate_json.await_args.args[0]) == MAX_README_CHARS

    @pytest.mark.asyncio
    async def test_empty_readme_rejected(self, service, llm) -> None:
        with pytest.raises(ValidationAppError):
            await service.summarize("   ")
        llm.generate_json.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_llm_failure(self, service, llm) -> None:
        llm.generate_json.side_effect = RuntimeError("OpenAI API error: timeout")

        with pytest.raises(LLMAppError) as exc_info:
            await service.summarize("# Readme")
        assert exc_info.value.code == "llm_request_failed"
        assert exc_info.value.message == "Failed to summarize repository"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("payload", [{"summary": "x"}, {"summary": "x", "cool_facts": []}, {"summary": "", "cool_facts": ["a"]}])
    async def test_malformed_llm_output(self, service, llm, payload) -> None:
        llm.generate_json.return_value = payload

        with pytest.raises(LLMAppError) as exc_info:
            await service.summarize("# Readme")
        assert exc_info.value.code == "llm_invalid_output"


class TestSummarizerEndpoint:
    @pytest.fixture
    def readme_client(self, monkeypatch) -> AsyncMock:
        client = AsyncMock()
        client.fetch_readme.return_value = "# Requests"
        monkeypatch.setattr(summarizer_routes, "get_readme_client", lambda: client)
        return client

    @pytest.fixture
    def summarizer(self, monkeypatch) -> AsyncMock:
        service = AsyncMock()
        service.summarize.return_value = (RepoSummary(**SUMMARY), False)
        monkeypatch.setattr(summarizer_routes, "get_summarizer_service", lambda: service)
        return service

    def test_summarize_repository(self, client, seed, store, readme_client, summarizer) -> None:
        seed("sk-abc", usage=0, limit=1000)

        response = client.post(
            "/v1/github-summarizer",
            json={"githubUrl": "https://github.com/psf/requests"},
            headers={"x-api-key": "sk-abc"},
        )

        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "summary": SUMMARY["summary"],
            "cool_facts": SUMMARY["cool_facts"],
            "cached": False,
            "usage": 1,
            "limit": 1000,
        }
        readme_client.fetch_readme.assert_awaited_once_with("https://github.com/psf/requests")
        assert store.find_by_key("sk-abc").usage == 1

    def test_rate_limited_before_any_work(self, client, seed, readme_client, summarizer) -> None:
        seed("sk-abc", usage=1000, limit=1000)

        response = client.post(
            "/v1/github-summarizer",
            json={"githubUrl": "https://github.com/psf/requests"},
            headers={"x-api-key": "sk-abc"},
        )

        assert response.status_code == 429
        readme_client.fetch_readme.assert_not_awaited()
        summarizer.summarize.assert_not_awaited()

    def test_missing_key(self, client, readme_client, summarizer) -> None:
        response = client.post("/v1/github-summarizer", json={"githubUrl": "https://github.com/psf/requests"})

        assert response.status_code == 400
        assert response.json()["error"] == "API key is required"

    def test_readme_not_found_still_charges(self, client, seed, store, readme_client, summarizer) -> None:
        seed("sk-abc", usage=0, limit=1000)
        readme_client.fetch_readme.return_value = None

        response = client.post(
            "/v1/github-summarizer",
            json={"githubUrl": "https://github.com/o/missing"},
            headers={"x-api-key": "sk-abc"},
        )

        assert response.status_code == 404
        assert response.json()["error"] == "Could not fetch README.md from repository"
        assert response.json()["usage"] == 1
        assert store.find_by_key("sk-abc").usage == 1
        summarizer.summarize.assert_not_awaited()

    @pytest.mark.parametrize("body", [{}, {"githubUrl": ""}, {"url": "https://github.com/o/r"}])
    def test_invalid_body(self, client, seed, readme_client, summarizer, body) -> None:
        seed("sk-abc", usage=0, limit=1000)

        response = client.post("/v1/github-summarizer", json=body, headers={"x-api-key": "sk-abc"})

        assert response.status_code == 400
        assert response.json()["error"] == "Invalid request"
        readme_client.fetch_readme.assert_not_awaited()

    def test_summarization_failure(self, client, seed, readme_client, summarizer) -> None:
        seed("sk-abc", usage=0, limit=1000)
        summarizer.summarize.side_effect = LLMAppError(code="llm_request_failed", message="Failed to summarize repository")

        response = client.post(
            "/v1/github-summarizer",
            json={"githubUrl": "https://github.com/psf/requests"},
            headers={"x-api-key": "sk-abc"},
        )

        assert response.status_code == 502
        assert response.json()["error"] == "Failed to summarize repository"
        assert response.json()["success"] is False


class TestSummarizerWiring:
    def test_missing_llm_credentials_surface_as_llm_error(self, monkeypatch) -> None:
        def broken_factory():
            raise ValidationAppError(code="llm_missing_api_key", message="missing")

        monkeypatch.setattr(summarizer_routes, "_summarizer_service", None)
        monkeypatch.setattr(summarizer_routes, "create_llm_client", broken_factory)

        with pytest.raises(LLMAppError) as exc_info:
            summarizer_routes.get_summarizer_service()
        assert exc_info.value.code == "llm_not_configured"

    def test_service_is_built_once(self, monkeypatch) -> None:
        factory = Mock(return_value=AsyncMock(model="gpt-4o"))
        monkeypatch.setattr(summarizer_routes, "_summarizer_service", None)
        monkeypatch.setattr(summarizer_routes, "create_llm_client", factory)

        first = summarizer_routes.get_summarizer_service()
        second = summarizer_routes.get_summarizer_service()

        assert first is second
        factory.assert_called_once()
