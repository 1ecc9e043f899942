"""Fetches README.md for public GitHub repositories."""

from __future__ import annotations

import logging
import re

import httpx

from app.core.config import GitHubSettings, settings

logger = logging.getLogger(__name__)

_GITHUB_REPO_URL = re.compile(r"^https://github\.com/([^/]+)/([^/]+)(/|$)")


def parse_github_url(github_url: str) -> tuple[str, str] | None:
    """Extract ``(owner, repo)`` from a repository URL.

    Examples:
        >>> parse_github_url("https://github.com/psf/requests")
        ('psf', 'requests')
        >>> parse_github_url("https://gitlab.com/psf/requests") is None
        True
    """
    match = _GITHUB_REPO_URL.match(github_url or "")
    if not match:
        return None
    owner, repo = match.group(1), match.group(2)
    if repo.endswith(".git"):
        repo = repo[: -len(".git")]
    return owner, repo


class GitHubReadmeClient:
    """Reads README.md from raw.githubusercontent.com, trying each configured branch."""

    def __init__(
        self,
        github_settings: GitHubSettings | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._settings = github_settings or settings.github
        self._transport = transport

    async def fetch_readme(self, github_url: str) -> str | None:
        """Return README.md content, or None if the URL is invalid or no branch has one.

        Network errors are treated like a missing README: the caller only
        needs to know whether content is available.
        """
        parsed = parse_github_url(github_url)
        if parsed is None:
            logger.info("github.invalid_url")
            return None
        owner, repo = parsed

        base_url = self._settings.raw_base_url.rstrip("/")
        async with httpx.AsyncClient(
            timeout=self._settings.timeout_seconds,
            transport=self._transport,
            follow_redirects=True,
        ) as client:
            for branch in self._settings.branches:
                url = f"{base_url}/{owner}/{repo}/{branch}/README.md"
                try:
                    response = await client.get(url)
                except httpx.HTTPError as exc:
                    logger.warning(
                        "github.readme_fetch_failed",
                        extra={"owner": owner, "repo": repo, "branch": branch, "error_type": type(exc).__name__},
                    )
                    continue
                if response.status_code == 200:
                    logger.info(
                        "github.readme_fetched",
                        extra={"owner": owner, "repo": repo, "branch": branch, "chars": len(response.text)},
                    )
                    return response.text

        logger.info("github.readme_not_found", extra={"owner": owner, "repo": repo})
        return None
