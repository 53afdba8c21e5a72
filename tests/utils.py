"""Test utilities for registry and pipeline tests."""

import asyncio

from pagelens.catalog.source import FetchedFile, FileRef
from pagelens.common.exceptions import FetchError


class StubCatalogSource:
    """In-memory catalog source.

    Files are given per directory as (file name, text) pairs; a text of
    None makes that file's download fail. Setting ``gate`` to an unset
    asyncio.Event holds every directory listing until the event is set.

    Attributes:
        listings: Number of directory listings served.
        downloads: Number of file downloads attempted.
    """

    def __init__(
        self,
        directories: dict[str, list[tuple[str, str | None]]],
        failing_directories: set[str] | None = None,
    ) -> None:
        self.directories = directories
        self.failing_directories = failing_directories or set()
        self.gate: asyncio.Event | None = None
        self.listings = 0
        self.downloads = 0

    async def list_directory(self, dirname: str) -> list[FileRef]:
        self.listings += 1
        if self.gate is not None:
            await self.gate.wait()
        if dirname in self.failing_directories or dirname not in self.directories:
            raise FetchError(f"stub://{dirname}", "Not Found")
        return [
            FileRef(
                name=name,
                download_url=f"stub://{dirname}/{name}",
                html_url=f"https://catalog.example/{dirname}/{name}",
            )
            for name, _ in self.directories[dirname]
        ]

    async def fetch_file(self, ref: FileRef) -> FetchedFile:
        self.downloads += 1
        dirname = ref.download_url.removeprefix("stub://").split("/")[0]
        text = dict(self.directories[dirname])[ref.name]
        # Let sibling downloads interleave
        await asyncio.sleep(0)
        if text is None:
            raise FetchError(ref.download_url, "Not Found")
        return FetchedFile(text=text, link=ref.html_url)


def parser_definition(name: str, pattern: str, field_css: str = "h1") -> str:
    """A minimal parser definition matching ``pattern``."""
    return f"name: {name}\nmatch:\n  - '{pattern}'\nfields:\n  title:\n    css: {field_css}\n"


def template_definition(name: str, body: str = "{{ title }}") -> str:
    """A minimal template definition."""
    return f"---\nname: '{name}'\n---\n{body}"
