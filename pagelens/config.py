"""Process configuration read from the environment."""

from __future__ import annotations

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_14_0) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/74.0.3729.131 Safari/537.36"
)


class Settings(BaseSettings):
    """Settings for the render service.

    Every field maps to the upper-cased environment variable of the same
    name, e.g. ``GITHUB_USER`` or ``DEFAULT_CONTENT_TYPE``.
    """

    model_config = SettingsConfigDict(extra="ignore", env_ignore_empty=True)

    github_user: str = "MoyDesign"
    catalog_repo: str = "MoyData"
    catalog_api_base: str = "https://api.github.com"
    local_catalog_dir: Path | None = None

    host: str = "127.0.0.1"
    port: int = 3000
    default_user_agent: str = DEFAULT_USER_AGENT
    default_content_type: str = "text/html; charset=utf-8"
    request_timeout: float | None = Field(default=None, gt=0)

    check_interval: float = Field(default=5 * 60, gt=0)
    refresh_interval: float = Field(default=5 * 60 * 60, ge=0)
