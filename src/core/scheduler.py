"""Deferred action scheduling (core domain).

Each match goes through three ordered steps: resolve the message permalink,
derive the channel link from it, and register a reminder with the composed
text. A failure at any remote step abandons that match only; nothing is
rolled back.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Callable, Optional

from core.errors import RemoteError
from core.models import DeferredActionRequest, Match
from core.ports import ActionPort
from core.reminders import build_request
from core.rules_engine import format_duration

LOGGER = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class DeferredActionScheduler:
    """Registers one reminder per match through the action port."""

    def __init__(self, actions: ActionPort, clock: Callable[[], datetime] = utc_now) -> None:
        self._actions = actions
        self._clock = clock

    async def schedule(self, match: Match) -> Optional[DeferredActionRequest]:
        """Register a reminder for the match.

        Returns the registered request, or None when a remote step failed.
        """

        event = match.event
        delay = format_duration(match.rule.delay)

        try:
            permalink = await self._actions.get_permalink(event.channel, event.ts)
        except RemoteError as exc:
            LOGGER.error(
                "failed to get permalink (rule=%s, delay=%s, text=%r): %s",
                match.rule.name,
                delay,
                event.text,
                exc,
            )
            return None

        # Trigger time is taken after the permalink lookup.
        request = build_request(match, permalink, self._clock())
        try:
            await self._actions.add_reminder(request.display_text, request.trigger_timestamp)
        except RemoteError as exc:
            LOGGER.error(
                "failed to set reminder (rule=%s, delay=%s, text=%r): %s",
                match.rule.name,
                delay,
                event.text,
                exc,
            )
            return None

        LOGGER.info("set reminder after %s: %r", delay, event.text)
        return request
