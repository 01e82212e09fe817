"""Static command table and dispatcher."""

from __future__ import annotations

import argparse
import logging
from enum import Enum
from typing import TYPE_CHECKING

from ..conduit.errors import ConduitClientError
from ..slack.client import SlackClientError
from . import diffusion, maniphest, slack
from .output import error

if TYPE_CHECKING:
    from ..app import Phabulous

logger = logging.getLogger(__name__)


class CommandId(str, Enum):
    """Every runnable CLI command."""

    QUERY_COMMITS_BY_NAME = "diffusion querycommits.name"
    QUERY_REPOSITORY_BY_CALLSIGN = "repository query.callsign"
    QUERY_TASKS_BY_IDS = "maniphest query.ids"
    QUERY_TASKS_BY_PHIDS = "maniphest query.phids"
    SLACK_TEST = "slack test"
    RESOLVE_COMMIT_CHANNEL = "slack resolveCommitChannel"


COMMANDS: dict[tuple[str, str], CommandId] = {
    ("diffusion", "querycommits.name"): CommandId.QUERY_COMMITS_BY_NAME,
    ("repository", "query.callsign"): CommandId.QUERY_REPOSITORY_BY_CALLSIGN,
    ("maniphest", "query.ids"): CommandId.QUERY_TASKS_BY_IDS,
    ("maniphest", "query.phids"): CommandId.QUERY_TASKS_BY_PHIDS,
    ("slack", "test"): CommandId.SLACK_TEST,
    ("slack", "resolveCommitChannel"): CommandId.RESOLVE_COMMIT_CHANNEL,
}


def lookup(group: str | None, subcommand: str | None) -> CommandId | None:
    """Find the command for a parsed (group, subcommand) pair."""
    if group is None or subcommand is None:
        return None
    return COMMANDS.get((group, subcommand))


def dispatch(command: CommandId, args: argparse.Namespace, app: Phabulous) -> int:
    """Run a command and return its exit code.

    Conduit and Slack failures are reported on stderr with exit code 1.
    """
    logger.debug("Dispatching %s", command.value)
    try:
        match command:
            case CommandId.QUERY_COMMITS_BY_NAME:
                return diffusion.run_query_commits_by_name(app.diffusion, args.name)
            case CommandId.QUERY_REPOSITORY_BY_CALLSIGN:
                return diffusion.run_query_repository_by_callsign(app.diffusion, args.callsign)
            case CommandId.QUERY_TASKS_BY_IDS:
                return maniphest.run_query_by_ids(app.maniphest, args.ids)
            case CommandId.QUERY_TASKS_BY_PHIDS:
                return maniphest.run_query_by_phids(app.maniphest, args.phids)
            case CommandId.SLACK_TEST:
                return slack.run_send_test_message(app, args.channel)
            case CommandId.RESOLVE_COMMIT_CHANNEL:
                return slack.run_resolve_commit_channel(
                    app, args.commit, args.callsign, args.notify
                )
    except ConduitClientError as e:
        error(f"Conduit {e.kind.value.replace('_', ' ')}: {e}")
        return 1
    except SlackClientError as e:
        error(f"Slack error: {e}")
        return 1
    except ValueError as e:
        error(str(e))
        return 1
    raise AssertionError(f"Unhandled command: {command}")
