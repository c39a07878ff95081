"""Slack Web API action adapter.

Implements the core ActionPort on top of slack_sdk's AsyncWebClient. Library
errors are translated into RemoteError so the core never sees Slack types.
"""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable

import aiohttp
from slack_sdk.errors import SlackApiError
from slack_sdk.web.async_client import AsyncWebClient

from core.errors import RemoteError


def _describe(exc: Exception) -> str:
    if isinstance(exc, SlackApiError):
        response = exc.response
        error = response.get("error") if hasattr(response, "get") else None
        return str(error or exc)
    return str(exc) or type(exc).__name__


class SlackActions:
    """Remote reminder operations for one authenticated session."""

    def __init__(self, client: AsyncWebClient) -> None:
        self._client = client

    async def _call(self, method: str, call: Awaitable[Any]) -> Any:
        try:
            return await call
        except (SlackApiError, aiohttp.ClientError, asyncio.TimeoutError) as exc:
            raise RemoteError(f"{method}: {_describe(exc)}") from exc

    async def get_permalink(self, channel: str, ts: str) -> str:
        response = await self._call(
            "chat.getPermalink",
            self._client.chat_getPermalink(channel=channel, message_ts=ts),
        )
        permalink = response.get("permalink")
        if not permalink:
            raise RemoteError("chat.getPermalink: response has no permalink")
        return permalink

    async def add_reminder(self, text: str, trigger_at: int) -> None:
        await self._call("reminders.add", self._client.reminders_add(text=text, time=trigger_at))

    async def post_ephemeral(self, channel: str, text: str, user: str) -> None:
        await self._call(
            "chat.postEphemeral",
            self._client.chat_postEphemeral(channel=channel, text=text, user=user),
        )
