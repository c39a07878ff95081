"""Event consumption loop.

Events are handled strictly in arrival order: one event is matched,
scheduled, and acknowledged before the next one is read.
"""

from __future__ import annotations

import asyncio
import logging
from typing import AsyncIterable, Optional

from core.errors import StreamError
from core.models import MESSAGE_KIND
from core.processor import MessageProcessor

LOGGER = logging.getLogger(__name__)


async def consume(
    events: AsyncIterable,
    processor: MessageProcessor,
    stop: Optional[asyncio.Event] = None,
) -> int:
    """Feed message events to the processor until the stream ends.

    Returns the number of message events handled. A stream that ends while
    ``stop`` is unset (or without a stop event at all) is treated as lost and
    raises StreamError so the process does not sit idle on a dead connection.
    """

    handled = 0
    async for event in events:
        if event.kind != MESSAGE_KIND:
            continue
        await processor.handle(event)
        handled += 1

    if stop is None or not stop.is_set():
        raise StreamError("event stream ended unexpectedly")
    LOGGER.info("Event stream closed after %s message(s)", handled)
    return handled
