"""Core domain models.

These dataclasses are shared across the core and adapters to avoid tight
coupling to any Slack-specific types.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from core.rules_engine import Rule

MESSAGE_KIND = "message"


@dataclass(frozen=True)
class MonitoredIdentity:
    """The authenticated account whose own messages are inspected."""

    user_id: str
    user_name: str = ""
    team: Optional[str] = None


@dataclass(frozen=True)
class Event:
    """Minimal inbound event used by the core processing pipeline."""

    kind: str
    author: str
    text: str
    channel: str
    ts: str
    subtype: Optional[str] = None


@dataclass(frozen=True)
class Match:
    """One (event, rule) pair where the rule pattern matched the event text."""

    event: Event
    rule: "Rule"


@dataclass(frozen=True)
class DeferredActionRequest:
    """Reminder payload derived from a match."""

    display_text: str
    trigger_at: datetime

    @property
    def trigger_timestamp(self) -> int:
        return int(self.trigger_at.timestamp())
