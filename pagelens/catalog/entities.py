"""Entity factory: catalog entries built from fetched definition files.

ParserEntry and TemplateEntry are the immutable values stored in the
registry's catalogs. A ParserEntry is not bound to any page; the rendering
pipeline asks it for a page-bound parser per request.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from jinja2.sandbox import SandboxedEnvironment

from pagelens.catalog.source import FetchedFile
from pagelens.common.checked_html import DocumentServices
from pagelens.plugins.parser import PageParser
from pagelens.plugins.template import PageTemplate, create_environment


@dataclass(frozen=True)
class ParserEntry:
    """A catalog parser."""

    parser: PageParser

    @property
    def name(self) -> str:
        return self.parser.name

    @property
    def link(self) -> str:
        return self.parser.link

    def matches(self, url: str) -> bool:
        return self.parser.is_match(url)

    def resolve_redirect(self, url: str) -> str | None:
        return self.parser.get_redirect_url(url)

    def extract(self, page_text: str, url: str) -> dict[str, Any]:
        """Extract the value tree from a fetched page.

        Parses the page and runs a freshly bound parser against it; the
        catalog entry itself is never bound to a page.
        """
        services = self.parser.options.services
        bound = self.parser.bind(services.parse_document(page_text, url))
        return bound.parse().content


@dataclass(frozen=True)
class TemplateEntry:
    """A catalog template."""

    template: PageTemplate

    @property
    def name(self) -> str:
        return self.template.name

    @property
    def link(self) -> str:
        return self.template.link

    def render(self, tokens: Mapping[str, Any]) -> str:
        return self.template.render(tokens)


@dataclass
class EntityFactory:
    """Builds catalog entries, sharing DOM and template services.

    Both factory methods raise DefinitionError for malformed definitions.
    """

    document_services: DocumentServices = field(default_factory=DocumentServices)
    template_environment: SandboxedEnvironment = field(
        default_factory=create_environment
    )

    def make_parser(self, fetched: FetchedFile) -> ParserEntry:
        return ParserEntry(
            PageParser.from_text(
                fetched.text,
                fetched.link,
                self.document_services,
                local=fetched.local,
            )
        )

    def make_template(self, fetched: FetchedFile) -> TemplateEntry:
        return TemplateEntry(
            PageTemplate.from_text(
                fetched.text,
                fetched.link,
                self.template_environment,
                local=fetched.local,
            )
        )
