"""Request-time rendering pipeline.

For a target URL and a template name the pipeline:

1. Looks up the template, then the first parser matching the URL
2. Applies the parser's redirect rule once, if it has one for the URL
3. Fetches the page with the client's User-Agent
4. Extracts the value tree with a parser bound to the fetched page
5. Normalizes the tree, adds BASE_URL and FULL_URL, and renders it

Failures only affect the request being rendered.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from pagelens.catalog.dispatcher import Dispatcher
from pagelens.common.exceptions import (
    NotFound,
    ParserNotFound,
    TemplateNotFound,
)
from pagelens.common.request_manager import AsyncRequestManager
from pagelens.render.values import build_token_context

logger = logging.getLogger(__name__)

TEXT_CONTENT_TYPE = "text/plain; charset=utf-8"


@dataclass(frozen=True)
class RenderResult:
    """What the HTTP layer sends back.

    Attributes:
        status_code: 200, 404 or 500.
        content_type: Content-Type of the body.
        body: Rendered output or an error description.
    """

    status_code: int
    content_type: str
    body: str


class RenderPipeline:
    """Renders third-party pages through catalog parsers and templates."""

    def __init__(
        self,
        dispatcher: Dispatcher,
        request_manager: AsyncRequestManager,
        content_type: str = "text/html; charset=utf-8",
    ) -> None:
        """Initialize the pipeline.

        Args:
            dispatcher: Catalog lookups.
            request_manager: Fetches target pages.
            content_type: Content-Type of successfully rendered output.
        """
        self.dispatcher = dispatcher
        self.request_manager = request_manager
        self.content_type = content_type

    async def render(
        self,
        url: str | None,
        template_name: str | None,
        user_agent: str | None = None,
    ) -> str:
        """Render ``url`` with the named template.

        Raises:
            TemplateNotFound: If no template has that name.
            ParserNotFound: If no parser matches the URL.
            FetchError: If the page cannot be fetched.
        """
        template = self.dispatcher.find_template(template_name)
        if template is None:
            raise TemplateNotFound(template_name)

        parser = self.dispatcher.find_parser(url)
        if parser is None or not url:
            raise ParserNotFound(url)

        redirect = parser.resolve_redirect(url)
        if redirect:
            logger.debug(f"{parser.name}: {url} redirects to {redirect}")
            url = redirect

        page = await self.request_manager.fetch(url, user_agent)
        tree = parser.extract(page.text, url)
        tokens = build_token_context(tree, url)
        return template.render(tokens)

    async def handle(
        self,
        url: str | None,
        template_name: str | None,
        user_agent: str | None = None,
    ) -> RenderResult:
        """Render and map the outcome to an HTTP result.

        Never raises: lookups that fail become 404, anything else 500 with
        the error's text as the body.
        """
        try:
            body = await self.render(url, template_name, user_agent)
        except NotFound as e:
            return RenderResult(404, TEXT_CONTENT_TYPE, str(e))
        except Exception as e:
            logger.exception(f"Failed to render {url} with {template_name!r}")
            return RenderResult(500, TEXT_CONTENT_TYPE, str(e))
        return RenderResult(200, self.content_type, body)
