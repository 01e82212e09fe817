"""Slack commands."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from ..models import ChannelResolution
from .output import error, header, info, row, success

if TYPE_CHECKING:
    from ..app import Phabulous

logger = logging.getLogger(__name__)

TEST_MESSAGE = "Hello from phabulous! The bot is configured correctly."


def run_send_test_message(app: Phabulous, channel: str | None) -> int:
    """Post a test message to check the Slack setup."""
    target = channel or app.config.slack.test_channel
    if not target:
        error("No channel given and slack.test_channel is not configured")
        return 1

    app.messenger.post_message(target, TEST_MESSAGE)
    success(f"Sent test message to {target}")
    return 0


def run_resolve_commit_channel(
    app: Phabulous, commit: str | None, callsign: str | None, notify: bool = False
) -> int:
    """Show which channel a commit (or a bare callsign) would notify.

    With ``notify``, each resolved commit is also posted to its channel.
    Unresolved commits are reported but are not a failure.
    """
    if callsign:
        _print_resolution(callsign, app.resolver.resolve_callsign(callsign))
        return 0

    if not commit:
        error("Pass a commit name or --callsign")
        return 1

    found = 0
    for match in app.diffusion.query_commits_by_name(commit):
        if found == 0:
            header(f"Channels for {commit}:")
        found += 1
        if notify:
            resolution = app.notifier.notify(match)
        else:
            resolution = app.resolver.resolve(match)
        _print_resolution(match.name, resolution)

    if found == 0:
        info(f"No commits found for {commit}")
    logger.debug("Resolved %d commit(s) for %s (notify=%s)", found, commit, notify)
    return 0


def _print_resolution(label: str, resolution: ChannelResolution) -> None:
    if not resolution.resolved:
        row(label, "(unresolved)")
        return
    how = f"rule '{resolution.rule.pattern}'" if resolution.rule else resolution.source.value
    row(label, resolution.channel, how)
