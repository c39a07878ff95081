"""Slack RTM event stream adapter.

slack_sdk's RTM client keeps the WebSocket alive on its own threads. This
adapter hands its events to the asyncio consumption loop through a queue, so
the loop only ever sees an async iterator of core Events.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from typing import AsyncIterator, Callable, Optional

from slack_sdk.errors import SlackClientError
from slack_sdk.rtm_v2 import RTMClient

from adapters.slack_mapper import build_event
from core.errors import StreamError
from core.models import Event

LOGGER = logging.getLogger(__name__)

_STOP = object()


class _Closed:
    def __init__(self, detail: str) -> None:
        self.detail = detail


class RTMEventStream:
    """EventStreamPort backed by one RTM connection per iteration."""

    def __init__(
        self,
        token: str,
        auto_reconnect: bool = True,
        stop: Optional[asyncio.Event] = None,
        rtm_factory: Optional[Callable[[], RTMClient]] = None,
    ) -> None:
        self._token = token
        self._auto_reconnect = auto_reconnect
        self._stop = stop
        self._rtm_factory = rtm_factory or self._default_factory

    def _default_factory(self) -> RTMClient:
        # One worker keeps listener calls in arrival order.
        rtm = RTMClient(
            token=self._token,
            auto_reconnect_enabled=self._auto_reconnect,
            concurrency=1,
        )
        # User tokens have no bot_id; with None the client drops every event
        # that lacks one, which is every user message.
        rtm.bot_id = ""
        return rtm

    async def _relay_stop(self, queue: asyncio.Queue) -> None:
        await self._stop.wait()
        queue.put_nowait(_STOP)

    async def events(self) -> AsyncIterator[Event]:
        """Yield events until the stop event fires.

        Raises StreamError if the connection cannot be opened or closes for
        good (auto-reconnect disabled).
        """

        loop = asyncio.get_running_loop()
        queue: asyncio.Queue = asyncio.Queue()
        closing = threading.Event()

        def _put(item) -> None:
            if closing.is_set() or loop.is_closed():
                return
            if self._stop is not None and self._stop.is_set():
                return
            loop.call_soon_threadsafe(queue.put_nowait, item)

        def _on_message(client: RTMClient, event: dict) -> None:
            _put(build_event(event))

        def _on_error(error: Exception) -> None:
            LOGGER.warning("RTM connection error: %s", error)

        def _on_close(code: int, reason: Optional[str] = None) -> None:
            if closing.is_set():
                return
            if self._auto_reconnect:
                LOGGER.warning("RTM connection closed (%s %s), client will reconnect", code, reason or "")
                return
            _put(_Closed(f"{code} {reason or ''}".strip()))

        try:
            rtm = self._rtm_factory()
            rtm.on("message")(_on_message)
            rtm.on_error_listeners.append(_on_error)
            rtm.on_close_listeners.append(_on_close)
            await asyncio.to_thread(rtm.connect)
        except (SlackClientError, OSError) as exc:
            raise StreamError(f"could not open RTM connection: {exc}") from exc
        LOGGER.info("RTM connection established")

        stopper = asyncio.create_task(self._relay_stop(queue)) if self._stop else None
        try:
            while True:
                item = await queue.get()
                if item is _STOP:
                    return
                if isinstance(item, _Closed):
                    raise StreamError(f"RTM connection lost: {item.detail or 'closed'}")
                yield item
        finally:
            closing.set()
            if stopper is not None:
                stopper.cancel()
            await asyncio.to_thread(rtm.close)
            LOGGER.info("RTM connection closed")
