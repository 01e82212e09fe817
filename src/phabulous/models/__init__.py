"""Data models."""

from .phabricator import Commit, Repository, Task
from .phabulous_config import (
    ChannelMapping,
    ChannelRule,
    ChannelsConfig,
    ConduitConfig,
    PhabulousConfig,
    RetryConfig,
    SlackConfig,
)
from .resolution import ChannelResolution, ResolutionSource

__all__ = [
    "ChannelMapping",
    "ChannelResolution",
    "ChannelRule",
    "ChannelsConfig",
    "Commit",
    "ConduitConfig",
    "PhabulousConfig",
    "Repository",
    "ResolutionSource",
    "RetryConfig",
    "SlackConfig",
    "Task",
]
