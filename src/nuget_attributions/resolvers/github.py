"""GitHub license text resolver.

Reads the license file at the root of a package's GitHub repository through
the GitHub contents API.
"""

import asyncio
import base64
import binascii
import logging
from datetime import UTC, datetime
from typing import Any, Optional

import aiohttp

from nuget_attributions.http import HttpClient
from nuget_attributions.models import SOURCE_GITHUB, LibraryInfo, LicenseText
from nuget_attributions.resolvers.base import BaseResolver

logger = logging.getLogger(__name__)

GITHUB_API_URL = "https://api.github.com"

# Warn when fewer API requests than this remain
RATE_LIMIT_WARNING_THRESHOLD = 20


def parse_github_url(url: Optional[str]) -> Optional[tuple[str, str]]:
    """Parse a repository URL into owner and repository name.

    The URL must start with ``http`` or ``git://`` and mention github.
    A trailing ``.git`` is removed from the repository name.

    Args:
        url: Repository URL from the nuspec.

    Returns:
        Tuple of (owner, repo), or None if the URL is not a GitHub URL.
    """
    if not url or not url.strip():
        return None
    if "github" not in url.lower():
        return None
    if not (url.startswith("http") or url.startswith("git://")):
        return None

    parts = url.split("/")
    if len(parts) < 5:
        return None

    owner, repo = parts[3], parts[4]
    if repo.endswith(".git"):
        repo = repo[:-4]
    if not owner or not repo:
        return None

    return (owner, repo)


class GitHubResolver(HttpClient, BaseResolver):
    """Resolver that reads license files from GitHub repositories.

    Only packages whose nuspec declares a git repository are tried. The
    first root entry whose name contains "license" is used.

    Attributes:
        github_token: Optional GitHub personal access token for authentication.
    """

    def __init__(
        self,
        github_token: Optional[str] = None,
        api_url: str = GITHUB_API_URL,
        ignore_ssl_errors: bool = False,
        max_retries: int = 3,
    ) -> None:
        """Initialize GitHubResolver.

        Args:
            github_token: Optional GitHub personal access token for API authentication.
                Increases rate limit from 60 to 5000 requests/hour.
            api_url: Base URL of the GitHub API.
            ignore_ssl_errors: Disable TLS certificate verification.
            max_retries: Retries of a request answered with 403.
        """
        super().__init__(ignore_ssl_errors=ignore_ssl_errors)
        self.github_token = github_token
        self.api_url = api_url.rstrip("/")
        self.max_retries = max_retries

    @property
    def name(self) -> str:
        return "GitHub"

    @property
    def priority(self) -> int:
        return 10

    def _headers(self) -> dict[str, str]:
        headers = {
            "Accept": "application/vnd.github+json",
            "User-Agent": "nuget-attributions",
        }
        if self.github_token:
            headers["Authorization"] = f"Bearer {self.github_token}"
        return headers

    def _check_rate_limit(self, headers: Any) -> None:
        remaining = headers.get("X-RateLimit-Remaining")
        if remaining is None:
            return
        try:
            remaining_count = int(remaining)
        except ValueError:
            return
        if remaining_count >= RATE_LIMIT_WARNING_THRESHOLD:
            return

        reset = headers.get("X-RateLimit-Reset")
        try:
            resets_at = datetime.fromtimestamp(int(reset), UTC).isoformat()
        except (TypeError, ValueError):
            resets_at = reset
        logger.warning(
            "GitHub api request limit is running out! Requests left: %s, Limit: %s, Resets at: %s",
            remaining,
            headers.get("X-RateLimit-Limit"),
            resets_at,
        )

    async def _get_json(self, url: str, retry_count: int = 0) -> Optional[Any]:
        """GET a GitHub API resource.

        Args:
            url: API URL.
            retry_count: Current retry attempt.

        Returns:
            Decoded JSON body, or None if the request failed.
        """
        session = await self._get_session()

        async with self._semaphore:
            async with session.get(url, headers=self._headers()) as response:
                self._check_rate_limit(response.headers)

                if response.status == 403:
                    if retry_count >= self.max_retries:
                        logger.warning("%s still forbidden after %d retries", url, retry_count)
                        return None

                    retry_after = response.headers.get("Retry-After")
                    if retry_after and retry_after.isdigit():
                        wait_time = int(retry_after)
                    else:
                        # Exponential backoff: 1s, 2s, 4s
                        wait_time = 2**retry_count
                elif response.status == 200:
                    return await response.json()
                else:
                    logger.debug("%s failed due to status %d", url, response.status)
                    return None

        await asyncio.sleep(wait_time)
        return await self._get_json(url, retry_count + 1)

    async def find_license_path(self, owner: str, repo: str) -> Optional[str]:
        """Return the path of the first root entry named like a license."""
        contents = await self._get_json(f"{self.api_url}/repos/{owner}/{repo}/contents")
        if not isinstance(contents, list):
            return None

        for item in contents:
            if isinstance(item, dict) and "license" in str(item.get("name", "")).lower():
                return item.get("path") or item.get("name")
        return None

    async def get_file_content(self, owner: str, repo: str, path: str) -> Optional[str]:
        """Return the decoded content of a repository file."""
        data = await self._get_json(f"{self.api_url}/repos/{owner}/{repo}/contents/{path}")
        if isinstance(data, list):
            data = data[0] if data else None
        if not isinstance(data, dict) or not data.get("content"):
            return None

        try:
            return base64.b64decode(data["content"]).decode("utf-8-sig", errors="replace")
        except (binascii.Error, ValueError) as e:
            logger.debug("Cannot decode %s of %s/%s: %s", path, owner, repo, e)
            return None

    async def resolve(self, info: LibraryInfo) -> Optional[LicenseText]:
        """Resolve license text from the package's GitHub repository.

        Returns:
            License file content, or None if the package has no GitHub
            repository, no license file, or any request failed.
        """
        repository = info.repository
        if repository is None or repository.type.lower() != "git" or not repository.url:
            return None

        parsed = parse_github_url(repository.url)
        if parsed is None:
            logger.debug("Cannot parse %s to a GitHub repository", repository.url)
            return None

        owner, repo = parsed
        try:
            path = await self.find_license_path(owner, repo)
            if path is None:
                return None
            text = await self.get_file_content(owner, repo, path)
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            logger.debug("GitHub lookup for %s failed: %s", info, e)
            return None

        if not text:
            return None
        return LicenseText(text, SOURCE_GITHUB)
