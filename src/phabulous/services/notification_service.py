"""Commit notifications."""

from __future__ import annotations

import logging

from ..models import ChannelResolution, Commit
from ..slack.client import SlackMessenger
from .channel_resolver import CommitChannelResolver

logger = logging.getLogger(__name__)


def format_commit_message(commit: Commit) -> str:
    """Default notification text for a commit."""
    text = f"New commit {commit.name}"
    if commit.author_name:
        text += f" by {commit.author_name}"
    if commit.summary:
        text += f": {commit.summary}"
    if commit.uri:
        text += f"\n{commit.uri}"
    return text


class CommitNotifier:
    """Posts commit notifications to the resolved channel."""

    def __init__(self, resolver: CommitChannelResolver, messenger: SlackMessenger) -> None:
        self.resolver = resolver
        self._messenger = messenger

    def notify(self, commit: Commit, text: str | None = None) -> ChannelResolution:
        """Resolve the commit's channel and post to it.

        Unresolved commits are skipped without posting.

        Raises:
            ConduitClientError: If the repository lookup fails
            SlackClientError: If posting fails
        """
        resolution = self.resolver.resolve(commit)
        channel = resolution.channel
        if channel is None:
            logger.info("Skipping notification for %s: no channel", commit.name)
            return resolution

        self._messenger.post_message(channel, text or format_commit_message(commit))
        return resolution
