"""Parser capability: YAML extraction rules applied to fetched pages.

A parser definition looks like::

    name: Example articles
    match:
      - ^https?://(www\\.)?example\\.com/articles/
    redirect:
      - from: ^https?://m\\.example\\.com/(.*)$
        to: https://example.com/\\1
    fields:
      title:
        css: h1
        required: true
      image:
        xpath: //meta[@property="og:image"]/@content
        absolute: true
      comments:
        css: .comment
        fields:
          author: {css: .author}
          body: {css: .body, html: true}

Every field extracts an ordered list of values; fields with nested
``fields`` extract one mapping per matched element. Fields marked
``html: true`` extract inner HTML as markup, which templates output
unescaped.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field, replace
from typing import Any
from urllib.parse import urljoin

import yaml
from cssselect import SelectorError
from lxml import etree
from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from pagelens.common.checked_html import CheckedHtmlElement, DocumentServices
from pagelens.common.exceptions import DefinitionError


class FieldRule(BaseModel):
    """How to extract one named field."""

    model_config = ConfigDict(extra="forbid")

    css: str | None = None
    xpath: str | None = None
    attr: str | None = None
    html: bool = False
    absolute: bool = False
    required: bool = False
    fields: dict[str, FieldRule] | None = None

    @model_validator(mode="after")
    def _exactly_one_selector(self) -> FieldRule:
        if (self.css is None) == (self.xpath is None):
            raise ValueError("exactly one of 'css' or 'xpath' is required")
        if self.fields is not None and (self.attr or self.html):
            raise ValueError("nested 'fields' cannot be combined with 'attr' or 'html'")
        return self


FieldRule.model_rebuild()


class RedirectRule(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    from_: str = Field(alias="from")
    to: str


class ParserDefinition(BaseModel):
    """Validated parser definition document."""

    model_config = ConfigDict(extra="ignore")

    name: str = Field(min_length=1)
    description: str = ""
    match: list[str] = Field(default_factory=list)
    redirect: list[RedirectRule] = Field(default_factory=list)
    fields: dict[str, FieldRule] = Field(default_factory=dict)


@dataclass(frozen=True)
class ParserOptions:
    """Everything needed to rebuild a parser bound to another page.

    Attributes:
        definition: The validated definition.
        text: Raw definition text.
        link: Link of the definition source.
        local: True when loaded from a local catalog directory.
        services: Shared DOM/selector services.
        document: Document the parser extracts from.
    """

    definition: ParserDefinition
    text: str
    link: str
    local: bool
    services: DocumentServices
    document: CheckedHtmlElement | None = None
    match_patterns: tuple[re.Pattern[str], ...] = field(default=(), repr=False)
    redirect_patterns: tuple[tuple[re.Pattern[str], str], ...] = field(
        default=(), repr=False
    )


@dataclass(frozen=True)
class ParseResult:
    content: dict[str, Any]


def _compile(pattern: str, link: str) -> re.Pattern[str]:
    try:
        return re.compile(pattern)
    except re.error as e:
        raise DefinitionError(link, f"invalid pattern {pattern!r}: {e}") from e


def _precompile_rules(
    rules: dict[str, FieldRule], services: DocumentServices, link: str
) -> None:
    for name, rule in rules.items():
        try:
            if rule.css is not None:
                services.css(rule.css)
            else:
                services.xpath(rule.xpath)
        except (SelectorError, etree.XPathError) as e:
            raise DefinitionError(link, f"invalid selector for field {name!r}: {e}") from e
        if rule.fields:
            _precompile_rules(rule.fields, services, link)


class PageParser:
    """A named extraction rule.

    Instances built from a definition are not bound to a page; ``bind()``
    returns a new parser that extracts from a specific document.
    """

    def __init__(self, options: ParserOptions) -> None:
        self.options = options

    @classmethod
    def from_text(
        cls,
        text: str,
        link: str,
        services: DocumentServices,
        local: bool = False,
    ) -> PageParser:
        """Build a parser from raw definition text.

        Raises:
            DefinitionError: If the definition is malformed.
        """
        try:
            content = yaml.safe_load(text)
        except yaml.YAMLError as e:
            raise DefinitionError(link, f"invalid YAML: {e}") from e
        if not isinstance(content, dict):
            raise DefinitionError(link, "definition must be a mapping")

        try:
            definition = ParserDefinition.model_validate(content)
        except ValidationError as e:
            raise DefinitionError(link, str(e)) from e

        _precompile_rules(definition.fields, services, link)
        return cls(
            ParserOptions(
                definition=definition,
                text=text,
                link=link,
                local=local,
                services=services,
                match_patterns=tuple(_compile(p, link) for p in definition.match),
                redirect_patterns=tuple(
                    (_compile(r.from_, link), r.to) for r in definition.redirect
                ),
            )
        )

    @property
    def name(self) -> str:
        return self.options.definition.name

    @property
    def link(self) -> str:
        return self.options.link

    @property
    def local(self) -> bool:
        return self.options.local

    def is_match(self, url: str) -> bool:
        return any(p.search(url) for p in self.options.match_patterns)

    def get_redirect_url(self, url: str) -> str | None:
        """Rewrite ``url`` with the first matching redirect rule, if any."""
        for pattern, target in self.options.redirect_patterns:
            match = pattern.search(url)
            if match is not None:
                return match.expand(target)
        return None

    def bind(self, document: CheckedHtmlElement) -> PageParser:
        """Return a parser extracting from ``document``."""
        return PageParser(replace(self.options, document=document))

    def parse(self) -> ParseResult:
        """Extract the definition's fields from the bound document.

        Raises:
            HTMLStructuralAssumptionException: If a required field is missing.
        """
        document = self.options.document
        if document is None:
            document = self.options.services.empty_document()
        return ParseResult(content=_extract_fields(self.options.definition.fields, document))


def _extract_fields(
    rules: dict[str, FieldRule], scope: CheckedHtmlElement
) -> dict[str, Any]:
    return {name: _extract_field(name, rule, scope) for name, rule in rules.items()}


def _extract_field(
    name: str, rule: FieldRule, scope: CheckedHtmlElement
) -> list[Any]:
    if rule.css is not None:
        matches: list[CheckedHtmlElement | str] = list(
            scope.checked_css(rule.css, name, rule.required)
        )
    else:
        matches = scope.checked_xpath(rule.xpath or "", name, rule.required)

    values: list[Any] = []
    for match in matches:
        if isinstance(match, str):
            value: Any = match.strip()
        elif rule.fields is not None:
            value = _extract_fields(rule.fields, match)
        elif rule.attr:
            value = match.get(rule.attr)
            if value is None:
                continue
        elif rule.html:
            value = match.inner_html()
        else:
            value = match.text_content()

        if rule.absolute and isinstance(value, str):
            value = urljoin(scope.request_url, value)
        values.append(value)
    return values
