"""GitHub adapter: repository URL parsing and README retrieval."""

from app.adapters.github.readme_client import GitHubReadmeClient, parse_github_url

__all__ = ["GitHubReadmeClient", "parse_github_url"]
