"""Registry of named parsers and templates.

The registry owns two catalogs, parsers and templates, rebuilt wholesale from
a catalog source on every refresh:

- Directory listings are fetched concurrently, then every listed file is
  fetched and built concurrently
- A file that fails to fetch or build is recorded as a failure without
  affecting its siblings
- Concurrent refresh() calls share one in-flight task and one outcome
- Catalogs are swapped in by reference, so readers see either the old or
  the new catalog pair, never a mix
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Generic, TypeVar

from pagelens.catalog.entities import EntityFactory, ParserEntry, TemplateEntry
from pagelens.catalog.source import (
    PARSERS_DIR,
    TEMPLATES_DIR,
    CatalogSource,
    FetchedFile,
    FileRef,
)
from pagelens.common.exceptions import AggregateRefreshError

logger = logging.getLogger(__name__)

ORIGINAL_LOOK_NAME = "Original look"

EntryT = TypeVar("EntryT", ParserEntry, TemplateEntry)


def _empty_catalog() -> Mapping[str, Any]:
    return MappingProxyType({})


@dataclass(frozen=True)
class EntityFailure:
    """A catalog file that could not be fetched or built."""

    ref: FileRef
    error: Exception


@dataclass
class DirectoryResult(Generic[EntryT]):
    entries: list[EntryT] = field(default_factory=list)
    failures: list[EntityFailure] = field(default_factory=list)


@dataclass(frozen=True)
class RefreshOutcome:
    """Shared result of one refresh attempt.

    Attributes:
        parsers: Number of parsers in the catalog after the attempt.
        templates: Number of templates in the catalog after the attempt.
        error: The recorded refresh error, or None on full success.
    """

    parsers: int
    templates: int
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_dict(self) -> dict[str, Any]:
        return {
            "ok": self.ok,
            "parsers": self.parsers,
            "templates": self.templates,
            "error": str(self.error) if self.error is not None else None,
        }


@dataclass(frozen=True)
class RegistryState:
    """Immutable snapshot of the registry, replaced as a whole."""

    parsers: Mapping[str, ParserEntry] = field(default_factory=_empty_catalog)
    templates: Mapping[str, TemplateEntry] = field(default_factory=_empty_catalog)
    last_refresh_at: float = 0.0
    last_refresh_error: Exception | None = None


def is_listed_template(template: TemplateEntry) -> bool:
    """False for the built-in pass-through template's reserved name."""
    return template.name.strip() != ORIGINAL_LOOK_NAME


class Registry:
    """Process-wide catalog of parsers and templates.

    Example::

        registry = Registry(GitHubCatalogSource(request_manager, "MoyDesign"))
        outcome = await registry.refresh_and_wait()
        template = registry.current_templates().get("Compact")
    """

    def __init__(
        self,
        source: CatalogSource,
        factory: EntityFactory | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize an empty registry.

        Args:
            source: Where definitions are listed and fetched from.
            factory: Builds entries from fetched files.
            clock: Wall-clock time source, in seconds.
        """
        self.source = source
        self.factory = factory or EntityFactory()
        self._clock = clock
        self._state = RegistryState()
        self._in_flight: asyncio.Task[RefreshOutcome] | None = None

    @property
    def state(self) -> RegistryState:
        return self._state

    @property
    def last_refresh_at(self) -> float:
        return self._state.last_refresh_at

    @property
    def last_refresh_error(self) -> Exception | None:
        return self._state.last_refresh_error

    def catalog_age(self) -> float:
        """Seconds since the last refresh attempt settled."""
        return self._clock() - self._state.last_refresh_at

    @property
    def refreshing(self) -> bool:
        return self._in_flight is not None

    def current_parsers(self) -> Mapping[str, ParserEntry]:
        return self._state.parsers

    def current_templates(self) -> Mapping[str, TemplateEntry]:
        return self._state.templates

    def refresh(self) -> asyncio.Task[RefreshOutcome]:
        """Start a refresh, or join the one already in flight.

        The returned task never raises (except when cancelled): every
        failure is recorded on the registry and reported through the
        outcome, so callers may ignore it. Callers that can be cancelled
        while waiting should use refresh_and_wait() instead.

        Must be called from a running event loop.
        """
        if self._in_flight is None:
            self._in_flight = asyncio.create_task(self._refresh())
        return self._in_flight

    async def refresh_and_wait(self) -> RefreshOutcome:
        """Start or join a refresh and wait for its outcome.

        Cancelling the caller does not cancel the shared refresh, so other
        callers waiting on it still get the outcome.
        """
        return await asyncio.shield(self.refresh())

    async def _refresh(self) -> RefreshOutcome:
        parsers_catalog = self._state.parsers
        templates_catalog = self._state.templates
        # Kept as is if the refresh is cancelled
        error = self._state.last_refresh_error
        try:
            parsers, templates = await asyncio.gather(
                self._load_directory(PARSERS_DIR, self.factory.make_parser),
                self._load_directory(TEMPLATES_DIR, self.factory.make_template),
            )
            parsers_catalog = _catalog(parsers.entries)
            templates_catalog = _catalog(
                [t for t in templates.entries if is_listed_template(t)]
            )
            failures = [f.error for f in parsers.failures + templates.failures]
            error = AggregateRefreshError(failures) if failures else None
        except Exception as e:
            error = e
        finally:
            self._state = RegistryState(
                parsers=parsers_catalog,
                templates=templates_catalog,
                last_refresh_at=self._clock(),
                last_refresh_error=error,
            )
            self._in_flight = None

        if error is None:
            logger.info(
                f"Updated catalog: {len(self._state.parsers)} parsers and "
                f"{len(self._state.templates)} templates"
            )
        else:
            logger.warning(f"Error while refreshing catalog: {error}")

        return RefreshOutcome(
            parsers=len(self._state.parsers),
            templates=len(self._state.templates),
            error=error,
        )

    async def _load_directory(
        self, dirname: str, build: Callable[[FetchedFile], EntryT]
    ) -> DirectoryResult[EntryT]:
        refs = await self.source.list_directory(dirname)
        results = await asyncio.gather(
            *(self._load_entity(ref, build) for ref in refs)
        )

        directory: DirectoryResult[EntryT] = DirectoryResult()
        for result in results:
            if isinstance(result, EntityFailure):
                logger.debug(f"Skipping {dirname}/{result.ref.name}: {result.error}")
                directory.failures.append(result)
            else:
                directory.entries.append(result)
        return directory

    async def _load_entity(
        self, ref: FileRef, build: Callable[[FetchedFile], EntryT]
    ) -> EntryT | EntityFailure:
        try:
            fetched = await self.source.fetch_file(ref)
            return build(fetched)
        except Exception as e:
            return EntityFailure(ref=ref, error=e)

    def status(self) -> dict[str, Any]:
        """Diagnostic snapshot of the registry."""
        state = self._state
        return {
            "parsers": [
                {"name": name, "link": entry.link}
                for name, entry in state.parsers.items()
            ],
            "templates": [
                {"name": name, "link": entry.link}
                for name, entry in state.templates.items()
            ],
            "last_refresh_at": state.last_refresh_at or None,
            "last_refresh_error": str(state.last_refresh_error)
            if state.last_refresh_error is not None
            else None,
            "refreshing": self.refreshing,
        }


def _catalog(entries: list[EntryT]) -> Mapping[str, EntryT]:
    # Later entries replace earlier ones with the same name
    return MappingProxyType({entry.name: entry for entry in entries})
