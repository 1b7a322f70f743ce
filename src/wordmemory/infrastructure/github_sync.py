"""
GitHub Sync — pushes and pulls the vocabulary file through the GitHub contents API.
"""

import base64
import json
import logging
from typing import Any

import httpx

from wordmemory.domain.constants import (
    GITHUB_API_URL,
    GITHUB_VOCABULARY_PATH,
    REQUEST_TIMEOUT,
)
from wordmemory.domain.errors import GitHubSyncError, WordValidationError
from wordmemory.domain.models import Word

from .serialization import word_from_dict, word_to_dict


class GitHubSync:
    """Adapter for storing the word collection as a JSON file in a GitHub repository."""

    def __init__(
        self,
        owner: str,
        repo: str,
        path: str = GITHUB_VOCABULARY_PATH,
        token: str | None = None,
        api_url: str = GITHUB_API_URL,
        client: httpx.AsyncClient | None = None,
    ):
        self.logger = logging.getLogger(__name__)
        self.owner = owner
        self.repo = repo
        self.path = path.lstrip("/")
        self.token = token
        self.api_url = api_url.rstrip("/")
        self._client = client

    @property
    def contents_url(self) -> str:
        return f"{self.api_url}/repos/{self.owner}/{self.repo}/contents/{self.path}"

    def _headers(self) -> dict[str, str]:
        headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=REQUEST_TIMEOUT)
        return self._client

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def _get_file(self) -> dict[str, Any] | None:
        """Fetch the contents entry, or None when the file does not exist yet."""
        try:
            resp = await self._get_client().get(self.contents_url, headers=self._headers())
        except httpx.HTTPError as e:
            raise GitHubSyncError(f"GitHub request failed: {e}") from e

        if resp.status_code == 404:
            return None
        if resp.status_code != 200:
            raise GitHubSyncError(
                f"GitHub GET {self.path} failed: {resp.status_code} {resp.text[:200]}",
                status_code=resp.status_code,
            )
        return resp.json()

    async def load(self) -> list[Word]:
        """Download and parse the vocabulary file. A missing file is an empty collection."""
        entry = await self._get_file()
        if entry is None:
            self.logger.info(f"No vocabulary at {self.owner}/{self.repo}/{self.path} yet")
            return []

        try:
            raw = base64.b64decode(entry.get("content", "")).decode("utf-8")
            data = json.loads(raw) if raw.strip() else []
        except (ValueError, UnicodeDecodeError) as e:
            raise GitHubSyncError(f"GitHub file {self.path} is not valid JSON: {e}") from e

        if isinstance(data, dict):
            data = data.get("words", [])
        if not isinstance(data, list):
            raise GitHubSyncError(
                f"GitHub file {self.path} must hold a list of words, got {type(data).__name__}"
            )
        try:
            words = [word_from_dict(item) for item in data]
        except WordValidationError as e:
            raise GitHubSyncError(f"GitHub file {self.path} has a malformed word: {e}") from e

        self.logger.info(f"Loaded {len(words)} words from GitHub")
        return words

    async def save(self, words: list[Word], message: str | None = None) -> bool:
        """Create or update the vocabulary file. Requires a token."""
        if not self.token:
            raise GitHubSyncError("A GitHub token is required to push vocabulary")

        content = json.dumps([word_to_dict(w) for w in words], indent=2, ensure_ascii=False)
        body: dict[str, Any] = {
            "message": message or f"Update vocabulary ({len(words)} words)",
            "content": base64.b64encode(content.encode("utf-8")).decode("ascii"),
        }

        existing = await self._get_file()
        if existing and existing.get("sha"):
            body["sha"] = existing["sha"]

        try:
            resp = await self._get_client().put(
                self.contents_url, headers=self._headers(), json=body
            )
        except httpx.HTTPError as e:
            raise GitHubSyncError(f"GitHub request failed: {e}") from e

        if resp.status_code not in (200, 201):
            raise GitHubSyncError(
                f"GitHub PUT {self.path} failed: {resp.status_code} {resp.text[:200]}",
                status_code=resp.status_code,
            )

        self.logger.info(f"Pushed {len(words)} words to {self.owner}/{self.repo}/{self.path}")
        return True
