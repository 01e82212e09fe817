"""Component wiring for phabulous."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from .conduit.client import ConduitClient
from .endpoints import DiffusionEndpoint, ManiphestEndpoint
from .models import PhabulousConfig
from .services import CommitChannelResolver, CommitNotifier
from .slack.client import SlackClient, SlackClientError, SlackMessenger

logger = logging.getLogger(__name__)


@dataclass
class Phabulous:
    """The wired application: one instance per process."""

    config: PhabulousConfig
    conduit: ConduitClient
    diffusion: DiffusionEndpoint
    maniphest: ManiphestEndpoint
    resolver: CommitChannelResolver
    _messenger: SlackMessenger | None = field(default=None, repr=False)

    def close(self) -> None:
        self.conduit.close()

    def __enter__(self) -> Phabulous:
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    @property
    def messenger(self) -> SlackMessenger:
        """Slack messenger, created on first use.

        Raises:
            SlackClientError: If no Slack token is configured
        """
        if self._messenger is None:
            if not self.config.slack.token:
                raise SlackClientError(
                    "No Slack token configured (slack.token or PHABULOUS_SLACK_TOKEN)"
                )
            self._messenger = SlackClient(self.config.slack.token)
        return self._messenger

    @property
    def notifier(self) -> CommitNotifier:
        return CommitNotifier(self.resolver, self.messenger)


def build_app(
    config: PhabulousConfig,
    *,
    conduit: ConduitClient | None = None,
    messenger: SlackMessenger | None = None,
) -> Phabulous:
    """Construct every component from a loaded configuration.

    Raises:
        ConduitClientError: If the Conduit URL or credentials are missing
    """
    client = conduit or ConduitClient.from_config(config.conduit)
    diffusion = DiffusionEndpoint(client, config.channels.repositories)
    app = Phabulous(
        config=config,
        conduit=client,
        diffusion=diffusion,
        maniphest=ManiphestEndpoint(client),
        resolver=CommitChannelResolver(diffusion, config.channels.mapping),
        _messenger=messenger,
    )
    logger.debug("Application wired for %s", client.url)
    return app
