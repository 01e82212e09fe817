"""Slack messaging."""

from .client import SlackClient, SlackClientError, SlackMessenger

__all__ = [
    "SlackClient",
    "SlackClientError",
    "SlackMessenger",
]
