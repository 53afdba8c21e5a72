"""REST API endpoints for the parser and template catalogs.

This module provides endpoints for:
- Inspecting the registry (entries, last refresh, last error)
- Triggering a refresh explicitly
"""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from pagelens.service import RenderService
from pagelens.web.app import get_service

router = APIRouter(prefix="/api", tags=["catalog"])


class CatalogEntryResponse(BaseModel):
    name: str
    link: str


class StatusResponse(BaseModel):
    """Response model for the registry status."""

    parsers: list[CatalogEntryResponse]
    templates: list[CatalogEntryResponse]
    last_refresh_at: float | None
    last_refresh_error: str | None
    refreshing: bool


class RefreshResponse(BaseModel):
    """Response model for a refresh attempt."""

    ok: bool
    parsers: int
    templates: int
    error: str | None


@router.get("/status", response_model=StatusResponse)
async def get_status(
    service: Annotated[RenderService, Depends(get_service)],
) -> StatusResponse:
    """Describe the current catalogs and the last refresh attempt."""
    return StatusResponse.model_validate(service.registry.status())


@router.post("/refresh", response_model=RefreshResponse)
async def refresh(
    service: Annotated[RenderService, Depends(get_service)],
) -> RefreshResponse:
    """Refresh the catalogs, joining a refresh already in progress."""
    outcome = await service.registry.refresh_and_wait()
    return RefreshResponse.model_validate(outcome.to_dict())
