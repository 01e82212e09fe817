"""Application settings."""

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Process settings read from PHABULOUS_* environment variables.

    Conduit and Slack values override the matching keys from the YAML files.
    """

    config_dir: Path = Field(
        default=Path("config"),
        description="Directory containing main.yml and main.production.yml",
    )

    conduit_url: str | None = Field(default=None, description="Overrides conduit.url")
    conduit_token: str | None = Field(default=None, description="Overrides conduit.token")
    conduit_user: str | None = Field(default=None, description="Overrides conduit.user")
    conduit_certificate: str | None = Field(
        default=None, description="Overrides conduit.certificate"
    )

    slack_token: str | None = Field(default=None, description="Overrides slack.token")
    slack_test_channel: str | None = Field(
        default=None, description="Overrides slack.test_channel"
    )

    verbose: int = Field(
        default=0,
        description="Verbosity level (0=off, 1=INFO, 2=DEBUG, 3+=DEBUG with wire logs)",
    )

    log_file: Path | None = Field(
        default=None,
        description="Optional path to write logs to file",
    )

    model_config = {
        "env_prefix": "PHABULOUS_",
    }

    def config_overrides(self) -> dict:
        """Nested config keys set through the environment."""
        overrides: dict = {}
        pairs = {
            ("conduit", "url"): self.conduit_url,
            ("conduit", "token"): self.conduit_token,
            ("conduit", "user"): self.conduit_user,
            ("conduit", "certificate"): self.conduit_certificate,
            ("slack", "token"): self.slack_token,
            ("slack", "test_channel"): self.slack_test_channel,
        }
        for (section, key), value in pairs.items():
            if value:
                overrides.setdefault(section, {})[key] = value
        return overrides
