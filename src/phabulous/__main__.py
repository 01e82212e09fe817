"""CLI entry point for phabulous."""

import argparse
import sys
from pathlib import Path

from . import __version__
from .config import Settings
from .logging import setup_logging


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser with one subparser per command group."""
    parser = argparse.ArgumentParser(
        prog="phabulous",
        description="A Phabricator bot for Slack",
    )
    parser.add_argument(
        "--config-dir",
        type=Path,
        default=None,
        help="Directory containing main.yml (default: ./config)",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Increase logging verbosity (-v INFO, -vv DEBUG, -vvv adds HTTP wire logs)",
    )
    parser.add_argument(
        "--log-file",
        type=Path,
        default=None,
        help="Path to write logs to file",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    groups = parser.add_subparsers(dest="group", metavar="command")

    diffusion = groups.add_parser(
        "diffusion", help="Perform calls to diffusion conduit endpoints"
    ).add_subparsers(dest="subcommand", metavar="subcommand")
    querycommits = diffusion.add_parser("querycommits.name", help="Query commits by name")
    querycommits.add_argument("name", help="Commit name, e.g. rENGabc123")

    repository = groups.add_parser(
        "repository", help="Perform calls to repository conduit endpoints"
    ).add_subparsers(dest="subcommand", metavar="subcommand")
    by_callsign = repository.add_parser("query.callsign", help="Query repositories by callsign")
    by_callsign.add_argument("callsign", help="Repository callsign (case-sensitive)")

    maniphest = groups.add_parser(
        "maniphest", help="Perform calls to maniphest conduit endpoints"
    ).add_subparsers(dest="subcommand", metavar="subcommand")
    by_ids = maniphest.add_parser("query.ids", help="Query tasks by ids (1, 2, 3, etc)")
    by_ids.add_argument("ids", nargs="+", help="Task ids (123 or T123)")
    by_phids = maniphest.add_parser("query.phids", help="Query tasks by their phids")
    by_phids.add_argument("phids", nargs="+", help="Task PHIDs")

    slack = groups.add_parser("slack", help="Slack bot commands").add_subparsers(
        dest="subcommand", metavar="subcommand"
    )
    test = slack.add_parser("test", help="Test that the slackbot works")
    test.add_argument("--channel", default=None, help="Channel to post to")
    resolve = slack.add_parser(
        "resolveCommitChannel",
        help="Test that a commit can correctly be resolved into a channel",
    )
    resolve.add_argument("commit", nargs="?", default=None, help="Commit name, e.g. rENGabc123")
    resolve.add_argument(
        "--callsign", default=None, help="Resolve a repository callsign instead of a commit"
    )
    resolve.add_argument(
        "--notify",
        action="store_true",
        help="Also post a notification for each commit to its resolved channel",
    )

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    # Import here to keep --help and --version fast
    from .app import build_app
    from .cli.commands import dispatch, lookup
    from .cli.output import error, info
    from .conduit.errors import ConduitClientError
    from .services import ConfigService

    command = lookup(args.group, getattr(args, "subcommand", None))
    if command is None:
        parser.print_help()
        return 0 if args.group is None else 2

    # Build settings from CLI args
    settings_kwargs: dict = {}
    if args.config_dir:
        settings_kwargs["config_dir"] = args.config_dir
    if args.verbose:
        settings_kwargs["verbose"] = args.verbose
    if args.log_file:
        settings_kwargs["log_file"] = args.log_file

    settings = Settings(**settings_kwargs)
    setup_logging(settings.verbose, settings.log_file)

    config_service = ConfigService(settings.config_dir, settings)
    config = config_service.get_config()
    if config_service.has_config_error:
        error(config_service.config_error or "Invalid configuration")
        return 1

    try:
        app = build_app(config)
    except ConduitClientError as e:
        error(f"Conduit setup failed: {e.message}")
        info("Configure conduit.url and conduit.token in config/main.yml")
        return 1

    with app:
        return dispatch(command, args, app)


if __name__ == "__main__":
    sys.exit(main())
