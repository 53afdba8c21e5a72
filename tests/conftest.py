"""Shared fixtures for pagelens tests."""

import asyncio
import socket
import threading
import time
from collections.abc import AsyncGenerator, Generator
from contextlib import closing
from pathlib import Path

import pytest
from aiohttp import web

from pagelens.common.request_manager import AsyncRequestManager
from pagelens.config import Settings
from tests.mock_server import (
    CASE_PARSER,
    CATALOG_USER,
    COMPACT_TEMPLATE,
    ORIGINAL_LOOK_TEMPLATE,
    create_app,
)


def find_free_port() -> int:
    """Find a free port on localhost.

    Returns:
        An available port number.
    """
    with closing(socket.socket(socket.AF_INET, socket.SOCK_STREAM)) as s:
        s.bind(("", 0))
        s.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        return s.getsockname()[1]


class AioHttpTestServer:
    """Wrapper to run aiohttp server in a background thread."""

    def __init__(self, app: web.Application, port: int) -> None:
        self.app = app
        self.port = port
        self.host = "127.0.0.1"
        self._loop: asyncio.AbstractEventLoop | None = None
        self._runner: web.AppRunner | None = None
        self._thread: threading.Thread | None = None
        self._started = threading.Event()

    @property
    def url(self) -> str:
        """Get the base URL of the server."""
        return f"http://{self.host}:{self.port}"

    def start(self) -> None:
        """Start the server in a background thread."""
        self._thread = threading.Thread(target=self._run_server, daemon=True)
        self._thread.start()
        self._started.wait(timeout=5.0)

    def _run_server(self) -> None:
        """Run the server in an asyncio event loop."""
        self._loop = asyncio.new_event_loop()
        asyncio.set_event_loop(self._loop)

        async def start() -> None:
            self._runner = web.AppRunner(self.app)
            await self._runner.setup()
            site = web.TCPSite(self._runner, self.host, self.port)
            await site.start()

        self._loop.run_until_complete(start())
        self._started.set()
        self._loop.run_forever()

    def stop(self) -> None:
        """Stop the server and clean up resources."""
        if self._loop and self._runner:
            runner = self._runner
            future = asyncio.run_coroutine_threadsafe(runner.cleanup(), self._loop)
            try:
                future.result(timeout=2.0)
            except Exception:
                pass  # Best effort cleanup

        if self._loop:
            self._loop.call_soon_threadsafe(self._loop.stop)

        if self._thread:
            self._thread.join(timeout=2.0)


@pytest.fixture
def bug_court_server() -> Generator[AioHttpTestServer, None, None]:
    """Start the Bug Court pages and catalog API on a random port.

    Yields:
        AioHttpTestServer instance with the mock app running.
    """
    server = AioHttpTestServer(create_app(), find_free_port())
    server.start()
    yield server
    server.stop()
    time.sleep(0.01)


@pytest.fixture
def server_url(bug_court_server: AioHttpTestServer) -> str:
    """Base URL of the test server, e.g. "http://127.0.0.1:8080"."""
    return bug_court_server.url


@pytest.fixture
async def request_manager() -> AsyncGenerator[AsyncRequestManager, None]:
    """A request manager with a recognizable default User-Agent."""
    manager = AsyncRequestManager(default_user_agent="pagelens-tests/1.0")
    yield manager
    await manager.close()


@pytest.fixture
def server_settings(server_url: str) -> Settings:
    """Settings pointing the GitHub catalog source at the test server."""
    return Settings(
        github_user=CATALOG_USER,
        catalog_api_base=server_url,
        default_user_agent="pagelens-tests/1.0",
    )


@pytest.fixture
def catalog_dir(tmp_path: Path) -> Path:
    """A local catalog directory with one parser and two templates."""
    parsers = tmp_path / "MoyParsers"
    templates = tmp_path / "MoyTemplates"
    parsers.mkdir()
    templates.mkdir()
    (parsers / "cases.yaml").write_text(CASE_PARSER, encoding="utf-8")
    (templates / "compact.html").write_text(COMPACT_TEMPLATE, encoding="utf-8")
    (templates / "original.html").write_text(ORIGINAL_LOOK_TEMPLATE, encoding="utf-8")
    return tmp_path
