"""Configuration models for phabulous."""

import re
from functools import lru_cache

from pydantic import BaseModel, Field, field_validator

from ..conduit.retry import RetryPolicy

CATCH_ALL = "*"


@lru_cache(maxsize=256)
def _pattern_regex(pattern: str) -> re.Pattern[str]:
    """Compile a channel pattern: ``*`` matches any run of characters."""
    return re.compile(".*".join(re.escape(part) for part in pattern.split("*")))


class ChannelRule(BaseModel):
    """Routes callsigns matching ``pattern`` to ``channel``.

    Matching is case-sensitive and covers the whole callsign. ``*`` matches
    any run of characters (including none); every other character is literal.
    """

    pattern: str = Field(..., min_length=1)
    channel: str = Field(..., min_length=1)

    @field_validator("pattern", "channel")
    @classmethod
    def validate_not_blank(cls, v: str) -> str:
        """Reject whitespace-only values."""
        if not v.strip():
            raise ValueError("cannot be blank")
        return v.strip()

    @property
    def is_wildcard(self) -> bool:
        return "*" in self.pattern

    @property
    def is_catch_all(self) -> bool:
        """Whether the rule matches every callsign."""
        return set(self.pattern) == {"*"}

    def matches(self, callsign: str) -> bool:
        if not self.is_wildcard:
            return callsign == self.pattern
        return _pattern_regex(self.pattern).fullmatch(callsign) is not None


def _check_rule_order(rules: list[ChannelRule]) -> list[ChannelRule]:
    """A catch-all rule may only terminate the list."""
    for index, rule in enumerate(rules[:-1]):
        if rule.is_catch_all:
            unreachable = ", ".join(r.pattern for r in rules[index + 1 :])
            raise ValueError(
                f"Rule '{rule.pattern}' matches every callsign; "
                f"later rules are unreachable: {unreachable}"
            )
    return rules


class ChannelMapping(BaseModel):
    """Ordered channel rules; the first matching rule wins."""

    rules: list[ChannelRule] = Field(default_factory=list)

    @field_validator("rules")
    @classmethod
    def validate_rules(cls, v: list[ChannelRule]) -> list[ChannelRule]:
        """Reject rules that follow a catch-all."""
        return _check_rule_order(v)

    @property
    def has_default(self) -> bool:
        return bool(self.rules) and self.rules[-1].is_catch_all

    def match(self, callsign: str) -> ChannelRule | None:
        """Return the first rule matching ``callsign``, or None."""
        for rule in self.rules:
            if rule.matches(callsign):
                return rule
        return None


class RetryConfig(BaseModel):
    """Backoff settings for transient Conduit failures."""

    max_attempts: int = Field(default=3, ge=1, le=10)
    base_delay: float = Field(default=0.5, ge=0)
    max_delay: float = Field(default=8.0, ge=0)
    multiplier: float = Field(default=2.0, ge=1)

    def to_policy(self) -> RetryPolicy:
        return RetryPolicy(
            max_attempts=self.max_attempts,
            base_delay=self.base_delay,
            max_delay=self.max_delay,
            multiplier=self.multiplier,
        )


class ConduitConfig(BaseModel):
    """Connection settings for the Phabricator Conduit API."""

    url: str | None = Field(default=None, description="Base URL of the Phabricator install")
    token: str | None = Field(default=None, description="Conduit API token (api-...)")
    user: str | None = Field(default=None, description="Username for certificate auth")
    certificate: str | None = Field(default=None, description="Conduit certificate")
    timeout: float = Field(default=30.0, gt=0, description="Per-request timeout in seconds")
    retry: RetryConfig = Field(default_factory=RetryConfig)

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str | None) -> str | None:
        """Require an http(s) URL."""
        if v is None:
            return v
        if not v.startswith(("http://", "https://")):
            raise ValueError("conduit.url must start with http:// or https://")
        return v.rstrip("/")


class ChannelsConfig(BaseModel):
    """Commit notification routing."""

    rules: list[ChannelRule] = Field(default_factory=list)
    repositories: dict[str, str] = Field(
        default_factory=dict,
        description="Per-repository default channel, keyed by callsign",
    )

    @property
    def mapping(self) -> ChannelMapping:
        return ChannelMapping(rules=self.rules)

    @field_validator("rules")
    @classmethod
    def validate_rules(cls, v: list[ChannelRule]) -> list[ChannelRule]:
        """Apply the same ordering constraint as ChannelMapping."""
        return _check_rule_order(v)


class SlackConfig(BaseModel):
    """Slack bot settings."""

    token: str | None = Field(default=None, description="Bot token (xoxb-...)")
    test_channel: str | None = Field(
        default=None, description="Channel used by 'slack test'"
    )


class PhabulousConfig(BaseModel):
    """Root configuration merged from config/main.yml and the environment."""

    conduit: ConduitConfig = Field(default_factory=ConduitConfig)
    channels: ChannelsConfig = Field(default_factory=ChannelsConfig)
    slack: SlackConfig = Field(default_factory=SlackConfig)

    @classmethod
    def default(cls) -> "PhabulousConfig":
        """Return default configuration."""
        return cls()
