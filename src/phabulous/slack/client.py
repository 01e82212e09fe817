"""Slack message posting."""

from __future__ import annotations

import logging
from typing import Any, Protocol

from slack_sdk import WebClient
from slack_sdk.errors import SlackApiError

logger = logging.getLogger(__name__)


class SlackClientError(Exception):
    """Posting to Slack failed."""

    pass


class SlackMessenger(Protocol):
    """Anything that can post a text message to a channel."""

    def post_message(self, channel: str, text: str) -> None: ...


class SlackClient:
    """Posts messages with the Slack Web API."""

    def __init__(self, token: str, web_client: WebClient | None = None) -> None:
        self.token = token
        self._web = web_client or WebClient(token=token)

    def post_message(self, channel: str, text: str) -> None:
        """Post ``text`` to ``channel``.

        Raises:
            SlackClientError: If Slack rejects the message
        """
        logger.debug("Posting to %s: %s", channel, text)
        try:
            self._web.chat_postMessage(channel=channel, text=text)
        except SlackApiError as e:
            reason: Any = e.response.get("error") if e.response is not None else None
            logger.error("Slack post to %s failed: %s", channel, reason or e)
            raise SlackClientError(f"Slack rejected message to {channel}: {reason or e}") from e
        logger.info("Posted message to %s", channel)
