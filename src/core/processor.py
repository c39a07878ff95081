"""Core message processing pipeline.

This module is integration-agnostic. It only relies on the action port for
remote calls, enabling other platforms or adapters without changes here.
"""

from __future__ import annotations

import logging
from typing import Iterable, List

from core.config import ProcessorConfig
from core.models import DeferredActionRequest, Event, MonitoredIdentity
from core.notifier import AcknowledgmentNotifier
from core.rules_engine import Rule, match_rules
from core.scheduler import DeferredActionScheduler

LOGGER = logging.getLogger(__name__)


def is_self_authored(event: Event, identity: MonitoredIdentity) -> bool:
    """Only the monitored account's own messages are inspected."""

    return bool(event.author) and event.author == identity.user_id


class MessageProcessor:
    """Orchestrates filtering, matching, scheduling, and acknowledgments."""

    def __init__(
        self,
        rules: Iterable[Rule],
        identity: MonitoredIdentity,
        scheduler: DeferredActionScheduler,
        notifier: AcknowledgmentNotifier,
        config: ProcessorConfig = ProcessorConfig(),
    ) -> None:
        self._rules = list(rules)
        self._identity = identity
        self._scheduler = scheduler
        self._notifier = notifier
        self._config = config

    async def handle(self, event: Event) -> List[DeferredActionRequest]:
        """Process one message event and return the reminders registered for it."""

        if not is_self_authored(event, self._identity):
            return []

        matches = match_rules(event, self._rules)
        if not matches:
            return []

        LOGGER.debug("%s rule(s) matched message %s in %s", len(matches), event.ts, event.channel)

        # Matches are handled one after another; a failed match does not stop
        # the ones after it.
        registered: List[DeferredActionRequest] = []
        for match in matches:
            request = await self._scheduler.schedule(match)
            if request is None:
                continue
            registered.append(request)
            if self._config.acknowledge:
                await self._notifier.acknowledge(match)
        return registered
