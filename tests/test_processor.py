from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone
from typing import Optional

from core.config import ProcessorConfig
from core.errors import RemoteError
from core.models import Event, MonitoredIdentity
from core.notifier import AcknowledgmentNotifier
from core.processor import MessageProcessor, is_self_authored
from core.rules_engine import build_rules
from core.scheduler import DeferredActionScheduler

NOW = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)
IDENTITY = MonitoredIdentity(user_id="UME", user_name="me")


class FakeActions:
    def __init__(
        self,
        *,
        permalink_errors: Optional[set[str]] = None,
        reminder_error: bool = False,
        ephemeral_error: bool = False,
    ) -> None:
        self.calls: list[tuple] = []
        self.reminders: list[tuple[str, int]] = []
        self.ephemerals: list[tuple[str, str, str]] = []
        self._permalink_errors = permalink_errors or set()
        self._reminder_error = reminder_error
        self._ephemeral_error = ephemeral_error

    async def get_permalink(self, channel: str, ts: str) -> str:
        self.calls.append(("get_permalink", channel, ts))
        if ts in self._permalink_errors:
            raise RemoteError("chat.getPermalink: message_not_found")
        return f"https://example.slack.com/archives/{channel}/p{ts.replace('.', '')}"

    async def add_reminder(self, text: str, trigger_at: int) -> None:
        self.calls.append(("add_reminder", text, trigger_at))
        if self._reminder_error:
            raise RemoteError("reminders.add: not_allowed_token_type")
        self.reminders.append((text, trigger_at))

    async def post_ephemeral(self, channel: str, text: str, user: str) -> None:
        self.calls.append(("post_ephemeral", channel, text, user))
        if self._ephemeral_error:
            raise RemoteError("chat.postEphemeral: channel_not_found")
        self.ephemerals.append((channel, text, user))


def _processor(rules_config: list[dict], actions: FakeActions, acknowledge: bool = True) -> MessageProcessor:
    return MessageProcessor(
        rules=build_rules(rules_config),
        identity=IDENTITY,
        scheduler=DeferredActionScheduler(actions, clock=lambda: NOW),
        notifier=AcknowledgmentNotifier(actions),
        config=ProcessorConfig(acknowledge=acknowledge),
    )


def _event(text: str = "printed SECRET=xyz", author: str = "UME", ts: str = "123.456") -> Event:
    return Event(kind="message", author=author, text=text, channel="C1", ts=ts)


SECRET_RULE = {"name": "secret", "pattern": "SECRET", "remind_after": "1h"}


def test_is_self_authored() -> None:
    assert is_self_authored(_event(), IDENTITY)
    assert not is_self_authored(_event(author="UOTHER"), IDENTITY)
    assert not is_self_authored(_event(author=""), MonitoredIdentity(user_id=""))


def test_self_authored_match_schedules_and_acknowledges() -> None:
    actions = FakeActions()
    processor = _processor([SECRET_RULE], actions)

    registered = asyncio.run(processor.handle(_event()))

    assert len(registered) == 1
    permalink = "https://example.slack.com/archives/C1/p123456"
    assert actions.calls[0] == ("get_permalink", "C1", "123.456")
    text, trigger_at = actions.reminders[0]
    assert text == f"<{permalink}|printed SECRET=xyz> in <https://example.slack.com/archives/C1|C1>"
    assert trigger_at == int((NOW + timedelta(hours=1)).timestamp())
    assert actions.ephemerals == [("C1", "set reminder after 1h", "UME")]


def test_other_author_makes_no_remote_calls() -> None:
    actions = FakeActions()
    processor = _processor([SECRET_RULE], actions)

    registered = asyncio.run(processor.handle(_event(author="UOTHER")))

    assert registered == []
    assert actions.calls == []


def test_no_match_makes_no_remote_calls() -> None:
    actions = FakeActions()
    processor = _processor([SECRET_RULE], actions)

    assert asyncio.run(processor.handle(_event(text="nothing to see"))) == []
    assert actions.calls == []


def test_two_matching_rules_register_two_reminders() -> None:
    actions = FakeActions()
    processor = _processor(
        [SECRET_RULE, {"name": "xyz", "pattern": "xyz", "remind_after": "30m"}],
        actions,
    )

    registered = asyncio.run(processor.handle(_event()))

    assert [request.trigger_at for request in registered] == [
        NOW + timedelta(hours=1),
        NOW + timedelta(minutes=30),
    ]
    assert len(actions.reminders) == 2
    assert [ack[1] for ack in actions.ephemerals] == ["set reminder after 1h", "set reminder after 30m"]


def test_permalink_failure_is_isolated() -> None:
    actions = FakeActions(permalink_errors={"1.000"})
    processor = _processor([SECRET_RULE], actions)

    assert asyncio.run(processor.handle(_event(ts="1.000"))) == []
    assert actions.reminders == []
    assert actions.ephemerals == []

    # The next event is still processed normally.
    registered = asyncio.run(processor.handle(_event(ts="2.000")))
    assert len(registered) == 1
    assert len(actions.reminders) == 1


def test_reminder_failure_skips_acknowledgment() -> None:
    actions = FakeActions(reminder_error=True)
    processor = _processor(
        [SECRET_RULE, {"name": "xyz", "pattern": "xyz", "remind_after": "30m"}],
        actions,
    )

    assert asyncio.run(processor.handle(_event())) == []
    # Both matches were attempted despite the first failure.
    assert [call[0] for call in actions.calls].count("add_reminder") == 2
    assert actions.ephemerals == []


def test_acknowledgment_failure_does_not_raise() -> None:
    actions = FakeActions(ephemeral_error=True)
    processor = _processor([SECRET_RULE], actions)

    registered = asyncio.run(processor.handle(_event()))

    assert len(registered) == 1
    assert len(actions.reminders) == 1


def test_acknowledgment_can_be_disabled() -> None:
    actions = FakeActions()
    processor = _processor([SECRET_RULE], actions, acknowledge=False)

    asyncio.run(processor.handle(_event()))

    assert len(actions.reminders) == 1
    assert actions.ephemerals == []
