"""Exception types for catalog population and page rendering.

Catalog population isolates per-entry failures (FetchError, DefinitionError)
and aggregates them into AggregateRefreshError. Rendering raises NotFound
for unknown templates and unmatched URLs; everything else is reported as an
internal error for that single request.
"""

from __future__ import annotations

from typing import Any


class PagelensError(Exception):
    """Base class for all pagelens errors."""


class FetchError(PagelensError):
    """Raised when an outbound fetch fails.

    Covers both network failures and non-2xx responses, for catalog
    directory listings, catalog files and target pages alike.

    Attributes:
        url: The URL that failed.
        status_text: HTTP reason phrase or a description of the failure.
    """

    def __init__(self, url: str, status_text: str) -> None:
        """Initialize the exception.

        Args:
            url: The URL that failed.
            status_text: HTTP reason phrase or a description of the failure.
        """
        self.url = url
        self.status_text = status_text
        self.message = f"{status_text}: {url}"
        super().__init__(self.message)


class DefinitionError(PagelensError):
    """Raised when a parser or template definition is malformed.

    Attributes:
        link: Link of the definition source.
        message: Human-readable description of the problem.
    """

    def __init__(self, link: str, message: str) -> None:
        self.link = link
        self.message = message
        super().__init__(f"Invalid definition {link}: {message}")


class NotFound(PagelensError):
    """Base class for request-fatal lookups that map to HTTP 404."""


class TemplateNotFound(NotFound):
    """Raised when no template is registered under the requested name."""

    def __init__(self, name: str | None) -> None:
        self.name = name
        super().__init__(f"Template {name} not found")


class ParserNotFound(NotFound):
    """Raised when no parser in the catalog matches the requested URL."""

    def __init__(self, url: str | None) -> None:
        self.url = url
        super().__init__(f"No matching parsers for {url}")


class AggregateRefreshError(PagelensError):
    """Combines all per-entry failures from one catalog refresh.

    Stored on the registry and logged; never raised to request handlers.

    Attributes:
        failures: The individual exceptions, in directory order.
    """

    def __init__(self, failures: list[Exception]) -> None:
        self.failures = failures
        super().__init__("\n".join(str(failure) for failure in failures))


class HTMLStructuralAssumptionException(PagelensError):
    """Raised when a required field selector matches nothing.

    Attributes:
        selector: The XPath or CSS selector that was used.
        selector_type: Type of selector ("xpath" or "css").
        description: The field being extracted.
        actual_count: Number of matches found.
        request_url: URL of the page being extracted.
    """

    def __init__(
        self,
        selector: str,
        selector_type: str,
        description: str,
        actual_count: int,
        request_url: str,
    ) -> None:
        self.selector = selector
        self.selector_type = selector_type
        self.description = description
        self.actual_count = actual_count
        self.request_url = request_url
        self.context: dict[str, Any] = {
            "selector": selector,
            "selector_type": selector_type,
            "actual_count": actual_count,
        }

        parts = [
            f"HTML structure mismatch: Expected at least 1 element "
            f"for '{description}', but found {actual_count}",
            f"URL: {request_url}",
            "Context:",
        ]
        for key, value in self.context.items():
            parts.append(f"  {key}: {value}")
        super().__init__("\n".join(parts))
