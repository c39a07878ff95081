"""Slack client factory for autoremind.

We explicitly build the Web API client once per process and pass it to every
component that needs it, so it is obvious which session all remote calls use.
"""

from __future__ import annotations

import logging
import os

from dotenv import load_dotenv
from slack_sdk.web.async_client import AsyncWebClient

from core.errors import AuthError


def load_token() -> str:
    """Read SLACK_TOKEN via python-dotenv to keep secrets out of the repo.

    Reminders can only be created with a user token (xoxp-...).
    """

    load_dotenv()

    token = os.getenv("SLACK_TOKEN")
    # Fail fast on missing credentials to avoid an ambiguous auth error later.
    if not token:
        raise AuthError("Missing SLACK_TOKEN in environment")
    return token


def build_client(token: str) -> AsyncWebClient:
    """Create an async Slack Web API client for the given token."""

    logging.getLogger(__name__).info("Initializing Slack client")

    return AsyncWebClient(token=token)
