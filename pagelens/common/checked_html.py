"""Checked HTML element wrapper and shared document services.

DocumentServices owns the lxml HTML parser and caches compiled CSS and
XPath selectors so they are shared between every parser in the catalog and
every page they are bound to. CheckedHtmlElement wraps an lxml element and
runs cached selectors against it, raising HTMLStructuralAssumptionException
when a required selector matches nothing.
"""

from __future__ import annotations

import re
from functools import lru_cache, partial

from lxml import etree, html
from lxml.cssselect import CSSSelector
from lxml.html import HtmlElement
from markupsafe import Markup, escape

from pagelens.common.exceptions import (
    HTMLStructuralAssumptionException,
)

# lxml rejects str input that declares an encoding
XML_DECLARATION_RE = re.compile(r"\A\ufeff?\s*<\?xml[^>]*\?>")


class DocumentServices:
    """Reusable DOM and selector services.

    One instance is created per process and handed to every parser built by
    the entity factory.
    """

    def __init__(self, selector_cache_size: int = 1024) -> None:
        self._parser = html.HTMLParser(remove_comments=True)
        self.css = lru_cache(maxsize=selector_cache_size)(
            partial(CSSSelector, translator="html")
        )
        self.xpath = lru_cache(maxsize=selector_cache_size)(etree.XPath)

    def parse_document(self, text: str, url: str = "") -> CheckedHtmlElement:
        """Parse page text into a checked document root.

        Args:
            text: Decoded page content.
            url: URL of the page, kept for error context and link resolution.

        Returns:
            CheckedHtmlElement wrapping the document root.
        """
        text = XML_DECLARATION_RE.sub("", text, count=1)
        if not text.strip():
            return self.empty_document(url)
        try:
            root = html.document_fromstring(text, parser=self._parser, base_url=url)
        except (etree.ParserError, etree.XMLSyntaxError):
            # Doctype-only or comment-only pages
            return self.empty_document(url)
        return CheckedHtmlElement(root, self, url)

    def empty_document(self, url: str = "") -> CheckedHtmlElement:
        """A blank document, for empty pages and parsers not bound to a page."""
        return CheckedHtmlElement(html.Element("html"), self, url)


class CheckedHtmlElement:
    """Wrapper around HtmlElement with validated selectors.

    Attributes:
        services: The DocumentServices that compiled this element's selectors.
        request_url: URL of the page this element belongs to.
    """

    def __init__(
        self,
        element: HtmlElement,
        services: DocumentServices,
        request_url: str = "",
    ) -> None:
        self._element = element
        self.services = services
        self.request_url = request_url

    def checked_xpath(
        self, xpath: str, description: str, required: bool = False
    ) -> list[CheckedHtmlElement | str]:
        """Execute an XPath query.

        Args:
            xpath: XPath expression to execute.
            description: Human-readable description of what's being selected.
            required: Raise if nothing matches.

        Returns:
            Matching elements (wrapped) and strings, in document order.

        Raises:
            HTMLStructuralAssumptionException: If required and nothing matched.
        """
        raw = self.services.xpath(xpath)(self._element)
        if not isinstance(raw, list):
            # Scalar XPath results (string(), count()) are a single value
            raw = [] if raw is None or raw == "" else [str(raw)]

        results: list[CheckedHtmlElement | str] = []
        for item in raw:
            if isinstance(item, HtmlElement):
                results.append(self._wrap(item))
            elif isinstance(item, str):
                results.append(str(item))

        self._check(xpath, "xpath", description, required, len(results))
        return results

    def checked_css(
        self, selector: str, description: str, required: bool = False
    ) -> list[CheckedHtmlElement]:
        """Execute a CSS selector query.

        Raises:
            HTMLStructuralAssumptionException: If required and nothing matched.
        """
        results = [self._wrap(e) for e in self.services.css(selector)(self._element)]
        self._check(selector, "css", description, required, len(results))
        return results

    def text_content(self) -> str:
        """Whitespace-collapsed text of the element and its descendants."""
        return " ".join(self._element.text_content().split())

    def inner_html(self) -> Markup:
        """Markup of the element's children, kept unescaped by templates."""
        children = "".join(
            html.tostring(child, encoding="unicode") for child in self._element
        )
        return escape(self._element.text or "") + Markup(children)

    def get(self, name: str) -> str | None:
        return self._element.get(name)

    def _wrap(self, element: HtmlElement) -> CheckedHtmlElement:
        return CheckedHtmlElement(element, self.services, self.request_url)

    def _check(
        self,
        selector: str,
        selector_type: str,
        description: str,
        required: bool,
        actual_count: int,
    ) -> None:
        if required and actual_count == 0:
            raise HTMLStructuralAssumptionException(
                selector=selector,
                selector_type=selector_type,
                description=description,
                actual_count=actual_count,
                request_url=self.request_url,
            )
