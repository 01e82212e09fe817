"""Commit-to-channel resolution outcome."""

from dataclasses import dataclass
from enum import Enum

from .phabricator import Repository
from .phabulous_config import ChannelRule


class ResolutionSource(str, Enum):
    """Which step of the resolution chose the channel."""

    RULE = "rule"  # A configured channel rule matched
    REPOSITORY_DEFAULT = "repository_default"  # Repository's own default channel
    UNRESOLVED = "unresolved"  # Nothing applies; callers do nothing


@dataclass(frozen=True)
class ChannelResolution:
    """Result of resolving a callsign to a Slack channel.

    Unresolved is a valid outcome, not a failure.
    """

    callsign: str
    source: ResolutionSource
    channel: str | None = None
    rule: ChannelRule | None = None
    repository: Repository | None = None

    def __post_init__(self) -> None:
        if (self.channel is None) != (self.source is ResolutionSource.UNRESOLVED):
            raise ValueError("A channel is set if and only if the resolution succeeded")

    @property
    def resolved(self) -> bool:
        return self.channel is not None

    @classmethod
    def from_rule(
        cls, callsign: str, rule: ChannelRule, repository: Repository | None = None
    ) -> "ChannelResolution":
        return cls(
            callsign=callsign,
            source=ResolutionSource.RULE,
            channel=rule.channel,
            rule=rule,
            repository=repository,
        )

    @classmethod
    def from_repository(cls, repository: Repository) -> "ChannelResolution":
        return cls(
            callsign=repository.callsign,
            source=ResolutionSource.REPOSITORY_DEFAULT,
            channel=repository.default_channel,
            repository=repository,
        )

    @classmethod
    def unresolved(
        cls, callsign: str, repository: Repository | None = None
    ) -> "ChannelResolution":
        return cls(callsign=callsign, source=ResolutionSource.UNRESOLVED, repository=repository)
