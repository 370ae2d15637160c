"""GitHub repository source via the REST contents API.

Directory listings and small files come straight from
``/repos/{owner}/{repo}/contents/{path}``; files too large for inline
base64 content are downloaded from their ``download_url``.
"""

from __future__ import annotations

import base64
import binascii
import logging
from typing import Any, List
from urllib.parse import quote

import httpx

from notefinder.models import SourceEntry
from notefinder.sources.base import SourceAdapter, SourceUnavailableError

LOGGER = logging.getLogger(__name__)

API_ROOT = "https://api.github.com"
USER_AGENT = "notefinder"
DEFAULT_TIMEOUT = 30.0


def encode_repo_path(path: str) -> str:
    """URL-encode each segment of a repository path."""
    return "/".join(quote(part, safe="") for part in path.split("/") if part)


def _error_message(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return response.text[:400]
    if isinstance(data, dict) and data.get("message"):
        return str(data["message"])
    return str(data)[:400]


class GitHubSource(SourceAdapter):
    """Mirror a branch of a GitHub repository."""

    name = "github"

    def __init__(
        self,
        owner: str,
        repo: str,
        *,
        branch: str = "main",
        token: str | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.owner = owner
        self.repo = repo
        self.branch = branch
        headers = {"User-Agent": USER_AGENT, "Accept": "application/vnd.github+json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self._client = client or httpx.AsyncClient(timeout=DEFAULT_TIMEOUT)
        self._headers = headers

    def describe(self) -> str:
        return f"github:{self.owner}/{self.repo}@{self.branch}"

    def contents_url(self, path: str) -> str:
        return f"{API_ROOT}/repos/{self.owner}/{self.repo}/contents/{encode_repo_path(path)}"

    async def _get_contents(self, path: str) -> Any:
        url = self.contents_url(path)
        try:
            response = await self._client.get(
                url, headers=self._headers, params={"ref": self.branch}
            )
        except httpx.HTTPError as exc:
            raise SourceUnavailableError(path, f"GitHub request failed: {exc}") from exc
        if response.is_error:
            raise SourceUnavailableError(
                path, f"GitHub API error ({response.status_code}): {_error_message(response)}"
            )
        return response.json()

    async def list_children(self, path: str = "") -> List[SourceEntry]:
        data = await self._get_contents(path)
        if not isinstance(data, list):
            raise SourceUnavailableError(path, f"Not a directory: {path}")
        return [
            SourceEntry(
                name=item["name"],
                type=item.get("type", "file"),
                path=item.get("path") or item["name"],
                size=item.get("size"),
            )
            for item in data
        ]

    async def read_bytes(self, path: str) -> bytes:
        data = await self._get_contents(path)
        if not isinstance(data, dict) or data.get("type") != "file":
            raise SourceUnavailableError(path, f"Not a file: {path}")

        if data.get("content"):
            try:
                return base64.b64decode(data["content"])
            except (binascii.Error, ValueError) as exc:
                raise SourceUnavailableError(path, f"Invalid file content: {exc}") from exc

        download_url = data.get("download_url")
        if not download_url:
            raise SourceUnavailableError(path, "File content not available")

        LOGGER.debug("Downloading large file %s from %s", path, download_url)
        try:
            response = await self._client.get(
                download_url, headers=self._headers, follow_redirects=True
            )
        except httpx.HTTPError as exc:
            raise SourceUnavailableError(path, f"GitHub download failed: {exc}") from exc
        if response.is_error:
            raise SourceUnavailableError(
                path, f"GitHub file fetch error ({response.status_code}): {_error_message(response)}"
            )
        return response.content

    async def aclose(self) -> None:
        await self._client.aclose()
