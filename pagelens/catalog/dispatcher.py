"""Lookup of catalog entries for a render request."""

from __future__ import annotations

from pagelens.catalog.entities import ParserEntry, TemplateEntry
from pagelens.catalog.registry import Registry


class Dispatcher:
    """Selects the parser and template a request renders with.

    Reads whatever catalogs the registry holds at the moment of the call.
    """

    def __init__(self, registry: Registry) -> None:
        self.registry = registry

    def find_parser(self, url: str | None) -> ParserEntry | None:
        """Return the first parser, in catalog order, that matches ``url``.

        When several parsers match, the one inserted first wins.
        """
        if not url:
            return None
        for parser in self.registry.current_parsers().values():
            if parser.matches(url):
                return parser
        return None

    def find_template(self, name: str | None) -> TemplateEntry | None:
        if name is None:
            return None
        return self.registry.current_templates().get(name)
