"""A Phabricator bot bridging Conduit and Slack."""

__version__ = "1.0.0"
