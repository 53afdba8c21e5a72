"""Catalog sources: where parser and template definitions come from.

GitHubCatalogSource lists a directory of a GitHub repository through the
contents API and downloads each file. LocalCatalogSource reads the same
layout from a directory on disk, for developing definitions offline.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from pydantic import BaseModel, ConfigDict, ValidationError

from pagelens.common.exceptions import FetchError
from pagelens.common.request_manager import AsyncRequestManager

logger = logging.getLogger(__name__)

PARSERS_DIR = "MoyParsers"
TEMPLATES_DIR = "MoyTemplates"


class FileRef(BaseModel):
    """One entry of a directory listing."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    name: str
    download_url: str
    html_url: str


@dataclass(frozen=True)
class FetchedFile:
    """Decoded file content paired with its canonical link."""

    text: str
    link: str
    local: bool = False


class CatalogSource(Protocol):
    async def list_directory(self, dirname: str) -> list[FileRef]: ...

    async def fetch_file(self, ref: FileRef) -> FetchedFile: ...


class GitHubCatalogSource:
    """Reads catalog directories from a GitHub repository.

    Attributes:
        user: Owner of the catalog repository.
        repo: Name of the catalog repository.
        api_base: Base URL of the GitHub API.
    """

    def __init__(
        self,
        request_manager: AsyncRequestManager,
        user: str,
        repo: str = "MoyData",
        api_base: str = "https://api.github.com",
    ) -> None:
        self._request_manager = request_manager
        self.user = user
        self.repo = repo
        self.api_base = api_base.rstrip("/")

    def directory_url(self, dirname: str) -> str:
        return f"{self.api_base}/repos/{self.user}/{self.repo}/contents/{dirname}"

    async def list_directory(self, dirname: str) -> list[FileRef]:
        """List the files of a catalog directory.

        Raises:
            FetchError: If the listing cannot be fetched or decoded.
        """
        url = self.directory_url(dirname)
        payload = await self._request_manager.get_json(url)
        if not isinstance(payload, list):
            raise FetchError(url, "Directory listing is not a JSON array")
        try:
            # Subdirectories have no download_url
            refs = [
                FileRef.model_validate(item)
                for item in payload
                if not isinstance(item, dict) or item.get("download_url")
            ]
        except ValidationError as e:
            raise FetchError(url, f"Malformed directory listing ({e})") from e
        logger.debug(f"Listed {len(refs)} files in {dirname}")
        return refs

    async def fetch_file(self, ref: FileRef) -> FetchedFile:
        """Download one catalog file.

        Raises:
            FetchError: If the download fails.
        """
        page = await self._request_manager.fetch(ref.download_url)
        return FetchedFile(text=page.text, link=ref.html_url)


class LocalCatalogSource:
    """Reads catalog directories from the local filesystem."""

    def __init__(self, root: Path) -> None:
        self.root = root

    async def list_directory(self, dirname: str) -> list[FileRef]:
        directory = self.root / dirname
        if not directory.is_dir():
            raise FetchError(str(directory), "Not Found")
        return [
            FileRef(
                name=path.name,
                download_url=str(path),
                html_url=path.resolve().as_uri(),
            )
            for path in sorted(directory.iterdir())
            if path.is_file() and not path.name.startswith(".")
        ]

    async def fetch_file(self, ref: FileRef) -> FetchedFile:
        try:
            text = Path(ref.download_url).read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise FetchError(ref.download_url, str(e)) from e
        return FetchedFile(text=text, link=ref.html_url, local=True)
