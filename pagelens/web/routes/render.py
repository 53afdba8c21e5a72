"""Rendering endpoint."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Header, Query, Response

from pagelens.service import RenderService
from pagelens.web.app import get_service

router = APIRouter(tags=["render"])


@router.get("/render")
async def render(
    service: Annotated[RenderService, Depends(get_service)],
    url: Annotated[str | None, Query(description="Page to render")] = None,
    template: Annotated[str | None, Query(description="Template name")] = None,
    user_agent: Annotated[str | None, Header()] = None,
) -> Response:
    """Render a third-party page through the named template.

    Returns 200 with the rendered page, 404 when the template or a matching
    parser is missing, and 500 with the error text otherwise.
    """
    result = await service.pipeline.handle(url, template, user_agent)
    return Response(
        content=result.body,
        status_code=result.status_code,
        media_type=result.content_type,
    )
