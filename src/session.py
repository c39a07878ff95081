"""Session check for the Slack token.

Run directly to confirm which account the configured token belongs to.
"""

from __future__ import annotations

import asyncio
import logging

import aiohttp
from slack_sdk.errors import SlackApiError
from slack_sdk.web.async_client import AsyncWebClient

from client import build_client, load_token
from core.errors import AuthError
from core.models import MonitoredIdentity


async def authenticate(client: AsyncWebClient) -> MonitoredIdentity:
    """Return the identity behind the client's token (auth.test)."""

    try:
        response = await client.auth_test()
    except SlackApiError as exc:
        raise AuthError(f"Cannot test authentication: {exc.response.get('error') or exc}") from exc
    except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
        raise AuthError(f"Cannot reach Slack: {exc}") from exc

    user_id = response.get("user_id")
    if not user_id:
        raise AuthError("auth.test returned no user_id")

    return MonitoredIdentity(
        user_id=user_id,
        user_name=response.get("user") or "",
        team=response.get("team"),
    )


async def main() -> None:
    client = build_client(load_token())
    identity = await authenticate(client)
    logging.info("Logged in as: %s (%s)", identity.user_name, identity.user_id)
    print(f"{identity.user_name} ({identity.user_id}) in {identity.team or 'unknown team'}")


if __name__ == "__main__":
    asyncio.run(main())
