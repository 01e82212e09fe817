"""Service layer for business logic."""

from .channel_resolver import CommitChannelResolver
from .config_service import ConfigService
from .notification_service import CommitNotifier, format_commit_message

__all__ = [
    "CommitChannelResolver",
    "CommitNotifier",
    "ConfigService",
    "format_commit_message",
]
