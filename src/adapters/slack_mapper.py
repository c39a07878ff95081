"""Slack-to-core event mapping adapter.

This keeps raw RTM payload details out of the core pipeline.
"""

from __future__ import annotations

from typing import Any, Mapping

from core.models import Event


def _as_text(value: Any) -> str:
    return value if isinstance(value, str) else ""


def build_event(payload: Mapping[str, Any]) -> Event:
    """Build a core Event from an RTM payload dict.

    Edited messages (subtype message_changed) carry no top-level user and so
    never pass the self-authorship filter.
    """

    return Event(
        kind=_as_text(payload.get("type")),
        author=_as_text(payload.get("user")),
        text=_as_text(payload.get("text")),
        channel=_as_text(payload.get("channel")),
        ts=_as_text(payload.get("ts")),
        subtype=payload.get("subtype") or None,
    )
