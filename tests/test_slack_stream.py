from __future__ import annotations

import asyncio
import inspect
import threading

import pytest
from slack_sdk.errors import SlackApiError, SlackClientError
from slack_sdk.rtm_v2 import RTMClient

from adapters.slack_stream import RTMEventStream
from core.errors import StreamError


class FakeRTM:
    """Stands in for slack_sdk's RTMClient; delivers payloads from a thread."""

    def __init__(self, payloads: list[dict], *, close_after: bool = False, connect_error: "Exception | None" = None) -> None:
        self._payloads = payloads
        self._close_after = close_after
        self._connect_error = connect_error
        self.message_listeners: list = []
        self.on_error_listeners: list = []
        self.on_close_listeners: list = []
        self.closed = False

    def on(self, event_type: str):
        def _register(func):
            if len(inspect.getfullargspec(func).args) != 2:
                raise SlackClientError("The listener must accept two args: client, event")
            self.message_listeners.append((event_type, func))
            return func

        return _register

    def _deliver(self) -> None:
        for payload in self._payloads:
            for event_type, listener in self.message_listeners:
                if payload.get("type") == event_type:
                    listener(self, payload)
        if self._close_after:
            for listener in self.on_close_listeners:
                listener(1006, "connection lost")

    def connect(self) -> None:
        if self._connect_error is not None:
            raise self._connect_error
        threading.Thread(target=self._deliver, daemon=True).start()

    def close(self) -> None:
        self.closed = True


MESSAGES = [
    {"type": "message", "user": "UME", "text": "one", "channel": "C1", "ts": "1.0"},
    {"type": "message", "user": "UME", "text": "two", "channel": "C1", "ts": "2.0"},
]


def test_events_are_yielded_until_stop() -> None:
    rtm = FakeRTM(MESSAGES)

    async def _run() -> list:
        stop = asyncio.Event()
        stream = RTMEventStream("xoxp-test", stop=stop, rtm_factory=lambda: rtm)
        received = []
        async for event in stream.events():
            received.append(event)
            if len(received) == len(MESSAGES):
                stop.set()
        return received

    received = asyncio.run(_run())

    assert [event.text for event in received] == ["one", "two"]
    assert received[0].kind == "message"
    assert rtm.closed


def test_connect_failure_raises_stream_error() -> None:
    error = SlackApiError("The request to the Slack API failed.", {"ok": False, "error": "not_authed"})
    rtm = FakeRTM([], connect_error=error)
    stream = RTMEventStream("xoxp-test", rtm_factory=lambda: rtm)

    async def _run() -> None:
        async for _ in stream.events():
            pass

    with pytest.raises(StreamError, match="could not open"):
        asyncio.run(_run())


def test_close_without_reconnect_raises_stream_error() -> None:
    rtm = FakeRTM(MESSAGES, close_after=True)
    stream = RTMEventStream("xoxp-test", auto_reconnect=False, rtm_factory=lambda: rtm)
    received = []

    async def _run() -> None:
        async for event in stream.events():
            received.append(event)

    with pytest.raises(StreamError, match="lost"):
        asyncio.run(_run())

    assert len(received) == 2
    assert rtm.closed


def test_default_client_delivers_user_messages(monkeypatch) -> None:
    closed = []

    def _connect(self) -> None:
        # Same entry point the WebSocket session uses for each inbound frame.
        self.run_message_listeners(MESSAGES[0])

    monkeypatch.setattr(RTMClient, "connect", _connect)
    def _close(self) -> None:
        self.closed = True
        closed.append(self)

    monkeypatch.setattr(RTMClient, "close", _close)

    async def _run() -> list:
        stop = asyncio.Event()
        stream = RTMEventStream("xoxp-test", auto_reconnect=False, stop=stop)
        received = []
        async for event in stream.events():
            received.append(event)
            stop.set()
        return received

    received = asyncio.run(_run())

    assert [event.text for event in received] == ["one"]
    assert received[0].author == "UME"
    assert len(closed) == 1


def test_default_client_connect_failure_raises_stream_error(monkeypatch) -> None:
    def _connect(self) -> None:
        raise OSError("network unreachable")

    monkeypatch.setattr(RTMClient, "connect", _connect)
    stream = RTMEventStream("xoxp-test", auto_reconnect=False)

    async def _run() -> None:
        async for _ in stream.events():
            pass

    with pytest.raises(StreamError, match="network unreachable"):
        asyncio.run(_run())


def test_close_after_stop_is_ignored() -> None:
    rtm = FakeRTM([])

    async def _run() -> None:
        stop = asyncio.Event()
        stream = RTMEventStream("xoxp-test", auto_reconnect=False, stop=stop, rtm_factory=lambda: rtm)
        stop.set()
        async for _ in stream.events():
            pass

    asyncio.run(_run())

    # The client reports its own shutdown; that must not surface as a lost stream.
    for listener in rtm.on_close_listeners:
        listener(1000, "normal closure")
    assert rtm.closed
