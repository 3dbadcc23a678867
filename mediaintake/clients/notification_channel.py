"""
Notification channel for the slow artifact.

One ``ChannelHandle`` per correlation token. The handle owns a listener task
that connects, skips informational frames, and delivers at most one
``video_ready`` locator through a single-slot future (``ready()``). After the
consumer has taken the value the listener leaves the connection, so whatever
the consumer does with the locator right after ``ready()`` returns happens
before the socket is closed.
"""
from __future__ import annotations

import asyncio
import json
from typing import Any, Callable, Optional
from urllib.parse import quote

import websockets
from pydantic import ValidationError
from websockets.exceptions import WebSocketException

from mediaintake.shared.logging_utils import info as log_info, warning as log_warning, error as log_error
from mediaintake.specs.common.errors import ChannelError
from mediaintake.specs.models.channel import CONNECTED, VIDEO_READY, ChannelEvent

Connect = Callable[[str], Any]


def parse_event(raw: Any) -> Optional[ChannelEvent]:
    """Decode one inbound frame; returns None for frames that are not events."""
    if isinstance(raw, (bytes, bytearray)):
        raw = bytes(raw).decode("utf-8", errors="replace")
    try:
        data = json.loads(raw)
    except (TypeError, json.JSONDecodeError):
        return None
    if not isinstance(data, dict):
        return None
    try:
        return ChannelEvent.model_validate(data)
    except ValidationError:
        frame_type = data.get("type")
        if not isinstance(frame_type, str):
            return None
        # Keep the discriminator so a broken terminal frame still ends the wait
        return ChannelEvent.model_construct(type=frame_type, video_url=None)


class ChannelHandle:
    def __init__(self, token: str, uri: str, connect: Connect, run_trace_id: Optional[str] = None) -> None:
        loop = asyncio.get_running_loop()
        self.token = token
        self.uri = uri
        self._connect = connect
        self._run_trace_id = run_trace_id
        self._result: asyncio.Future = loop.create_future()
        self._consumed = asyncio.Event()
        self._close_requested = False
        self._task = loop.create_task(self._listen())

    @property
    def closed(self) -> bool:
        return self._close_requested or self._task.done()

    async def ready(self) -> str:
        """Wait for the artifact locator.

        Raises ``ChannelError`` if the connection fails or ends first, and
        ``asyncio.CancelledError`` if the handle is closed while waiting.
        """
        locator = await asyncio.shield(self._result)
        self._consumed.set()
        return locator

    def close(self) -> None:
        """Stop listening. Safe to call any number of times."""
        if self.closed:
            return
        self._close_requested = True
        if not self._result.done():
            self._result.cancel()
        self._task.cancel()
        log_info(self._run_trace_id, "channel:close_requested")

    async def aclose(self) -> None:
        self.close()
        await asyncio.gather(self._task, return_exceptions=True)

    def _fail(self, message: str, **details: Any) -> None:
        log_error(self._run_trace_id, "channel:error", error=message, **details)
        if not self._result.done():
            self._result.set_exception(ChannelError(message, details=details or None))

    async def _listen(self) -> None:
        log_info(self._run_trace_id, "channel:open")
        try:
            async with self._connect(self.uri) as ws:
                async for raw in ws:
                    event = parse_event(raw)
                    if event is None:
                        log_warning(self._run_trace_id, "channel:unparseable_frame")
                        continue
                    if event.type == CONNECTED:
                        log_info(self._run_trace_id, "channel:connected")
                        continue
                    if event.type != VIDEO_READY:
                        log_info(self._run_trace_id, "channel:ignored_event", type=event.type)
                        continue
                    if not isinstance(event.video_url, str) or not event.video_url:
                        self._fail("video_ready event carried no usable video_url")
                        return
                    log_info(self._run_trace_id, "channel:ready")
                    self._result.set_result(event.video_url)
                    await self._consumed.wait()
                    return
            self._fail("Notification channel closed before the artifact was ready")
        except (WebSocketException, OSError, asyncio.TimeoutError) as exc:
            self._fail(f"Notification channel failed: {exc}", error_type=type(exc).__name__)
        except Exception as exc:
            self._fail(f"Notification channel failed unexpectedly: {exc}", error_type=type(exc).__name__)
        finally:
            log_info(self._run_trace_id, "channel:closed")


class NotificationChannel:
    """Opens one ``ChannelHandle`` per correlation token.

    ``url_template`` carries a ``{token}`` placeholder. ``connect`` defaults to
    ``websockets.connect`` and must return an async context manager yielding
    an async-iterable connection.
    """

    def __init__(self, url_template: str, *, connect: Optional[Connect] = None) -> None:
        if "{token}" not in url_template:
            raise ValueError("url_template must contain '{token}'")
        self.url_template = url_template
        self._connect = connect or websockets.connect

    def open(self, token: str, *, run_trace_id: Optional[str] = None) -> ChannelHandle:
        if not token:
            raise ValueError("A correlation token is required to open the channel")
        uri = self.url_template.format(token=quote(token, safe=""))
        return ChannelHandle(token, uri, self._connect, run_trace_id=run_trace_id)


__all__ = ["NotificationChannel", "ChannelHandle", "parse_event"]
