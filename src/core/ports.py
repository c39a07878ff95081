"""Ports (interfaces) used by the core pipeline.

Ports define the minimal contracts for the remote action API and the event
stream so that the core can be reused with different backends.
"""

from __future__ import annotations

from typing import AsyncIterator, Protocol

from core.models import Event


class ActionPort(Protocol):
    """Remote operations required by the scheduler and notifier.

    Every method raises RemoteError on failure.
    """

    async def get_permalink(self, channel: str, ts: str) -> str:
        ...

    async def add_reminder(self, text: str, trigger_at: int) -> None:
        ...

    async def post_ephemeral(self, channel: str, text: str, user: str) -> None:
        ...


class EventStreamPort(Protocol):
    """Live event source; raises StreamError when the connection is lost."""

    def events(self) -> AsyncIterator[Event]:
        ...
