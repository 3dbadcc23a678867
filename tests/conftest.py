"""
Pytest configuration and fixtures
"""
import asyncio
import io
import json
from typing import Any, List, Optional
from unittest.mock import Mock

import pytest
import requests
from PIL import Image

from mediaintake.shared.settings import IntakeSettings


def make_png(size=(8, 8), color=(200, 30, 30)) -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", size, color=color).save(buf, format="PNG")
    return buf.getvalue()


def http_response(status: int = 200, payload: Any = None, *, text: Optional[str] = None) -> Mock:
    resp = Mock()
    resp.status_code = status
    resp.text = text if text is not None else json.dumps(payload)
    if text is not None and payload is None:
        resp.json.side_effect = ValueError("No JSON object could be decoded")
    else:
        resp.json.return_value = payload
    return resp


async def settle(rounds: int = 10) -> None:
    for _ in range(rounds):
        await asyncio.sleep(0)


class FakeConnection:
    """Stand-in for a websockets client connection fed from the test."""

    def __init__(self) -> None:
        self.queue: asyncio.Queue = asyncio.Queue()
        self.entered = False
        self.closed = False

    async def __aenter__(self) -> "FakeConnection":
        self.entered = True
        return self

    async def __aexit__(self, *exc_info) -> bool:
        self.closed = True
        return False

    def push(self, frame: Any) -> None:
        self.queue.put_nowait(frame if isinstance(frame, (str, bytes)) else json.dumps(frame))

    def fail(self, exc: BaseException) -> None:
        self.queue.put_nowait(exc)

    def end(self) -> None:
        self.queue.put_nowait(None)

    def __aiter__(self) -> "FakeConnection":
        return self

    async def __anext__(self) -> Any:
        item = await self.queue.get()
        if item is None:
            raise StopAsyncIteration
        if isinstance(item, BaseException):
            raise item
        return item


class FakeConnector:
    """Callable passed as ``connect``; hands out FakeConnections in order."""

    def __init__(self) -> None:
        self.uris: List[str] = []
        self.connections: List[FakeConnection] = []

    def __call__(self, uri: str) -> FakeConnection:
        conn = FakeConnection()
        self.uris.append(uri)
        self.connections.append(conn)
        return conn

    @property
    def last(self) -> FakeConnection:
        return self.connections[-1]


@pytest.fixture
def png_bytes() -> bytes:
    return make_png()


@pytest.fixture
def settings() -> IntakeSettings:
    return IntakeSettings(
        intakeUrl="https://intake.test/webhook/media/intake",
        channelUrlTemplate="wss://intake.test/ws/{token}",
        username="media_api",
        password="s3cret",
        tickInterval=0.01,
    )


@pytest.fixture
def session() -> Mock:
    return Mock(spec=requests.Session)


@pytest.fixture
def connector() -> FakeConnector:
    return FakeConnector()
