"""GitHub API client used to label issues."""

from githubbot.github.client import GitHubAPIError, GitHubClient, RateLimitError

__all__ = [
    "GitHubAPIError",
    "GitHubClient",
    "RateLimitError",
]
