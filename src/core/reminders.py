"""Reminder text helpers.

Keeping formatting here prevents drift between the scheduler and the
acknowledgment and keeps every reminder readable in the same way.
"""

from __future__ import annotations

from datetime import datetime

from core.models import DeferredActionRequest, Match
from core.rules_engine import format_duration


def channel_link(permalink: str) -> str:
    """Return the channel-level link by dropping the last path segment."""

    head, sep, _ = permalink.rpartition("/")
    if not sep:
        return permalink
    return head


def escape_text(value: str) -> str:
    """Escape the characters Slack treats as control characters in mrkdwn."""

    return value.replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;")


def build_reminder_text(permalink: str, text: str, channel: str) -> str:
    """Compose '<permalink|text> in <channel link|channel>'."""

    return f"<{permalink}|{escape_text(text)}> in <{channel_link(permalink)}|{channel}>"


def build_request(match: Match, permalink: str, now: datetime) -> DeferredActionRequest:
    event = match.event
    return DeferredActionRequest(
        display_text=build_reminder_text(permalink, event.text, event.channel),
        trigger_at=now + match.rule.delay,
    )


def build_acknowledgment(match: Match) -> str:
    return f"set reminder after {format_duration(match.rule.delay)}"
