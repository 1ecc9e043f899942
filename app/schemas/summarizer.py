"""Pydantic schemas for the GitHub README summarizer."""

from pydantic import BaseModel, Field


class GitHubSummarizerRequest(BaseModel):
    """Body of ``POST /v1/github-summarizer``."""

    githubUrl: str = Field(
        ...,
        min_length=1,
        description="Repository URL, e.g. https://github.com/owner/repo",
    )


class RepoSummary(BaseModel):
    """Structured summary produced by the LLM."""

    summary: str = Field(
        ...,
        min_length=1,
        description="A concise summary of the repository.",
    )
    cool_facts: list[str] = Field(
        ...,
        min_length=1,
        description="Cool or interesting facts about the repository.",
    )


class GitHubSummarizerResponse(RepoSummary):
    """Summarizer payload before the usage/limit metadata is merged in."""

    success: bool = True
    cached: bool = Field(
        default=False,
        description="True if this README was summarized before and the stored result was reused.",
    )
