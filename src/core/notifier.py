"""Acknowledgment notifier (core domain)."""

from __future__ import annotations

import logging

from core.errors import RemoteError
from core.models import Match
from core.ports import ActionPort
from core.reminders import build_acknowledgment

LOGGER = logging.getLogger(__name__)


class AcknowledgmentNotifier:
    """Posts an author-only confirmation in the channel of the match."""

    def __init__(self, actions: ActionPort) -> None:
        self._actions = actions

    async def acknowledge(self, match: Match) -> None:
        # Best effort: the reminder already exists, so a failed post is only
        # noted at debug level.
        event = match.event
        try:
            await self._actions.post_ephemeral(event.channel, build_acknowledgment(match), event.author)
        except RemoteError as exc:
            LOGGER.debug("acknowledgment not delivered in %s: %s", event.channel, exc)
