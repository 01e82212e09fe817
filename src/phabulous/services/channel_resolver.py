"""Commit to Slack channel resolution."""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future

from ..endpoints.protocol import RepositoryLookup
from ..models import ChannelMapping, ChannelResolution, Commit, Repository

logger = logging.getLogger(__name__)


class CommitChannelResolver:
    """Maps commits to the Slack channel that should be notified.

    Resolution order:
    1. Look up the repository by callsign (cached for the process lifetime)
    2. First matching channel rule
    3. The repository's default channel
    4. Unresolved

    A failed repository lookup is raised rather than falling back, so a
    notification is never routed on incomplete information.
    """

    def __init__(self, repositories: RepositoryLookup, mapping: ChannelMapping) -> None:
        """Initialize the resolver.

        Args:
            repositories: Repository lookup (usually a DiffusionEndpoint)
            mapping: Ordered channel rules
        """
        self._repositories = repositories
        self.mapping = mapping

        # callsign -> Repository; never invalidated
        self._cache: dict[str, Repository] = {}
        # callsign -> pending lookup shared by concurrent callers
        self._in_flight: dict[str, Future[Repository | None]] = {}
        self._lock = threading.Lock()

    @property
    def cached_callsigns(self) -> list[str]:
        with self._lock:
            return sorted(self._cache)

    def resolve(self, commit: Commit) -> ChannelResolution:
        """Resolve the channel for a commit."""
        return self.resolve_callsign(commit.callsign)

    def resolve_callsign(self, callsign: str) -> ChannelResolution:
        """Resolve the channel for a repository callsign.

        Raises:
            ConduitClientError: If the repository lookup fails
        """
        if not callsign:
            logger.info("Commit has no repository callsign; nothing to notify")
            return ChannelResolution.unresolved(callsign)

        repository = self.get_repository(callsign)

        rule = self.mapping.match(callsign)
        if rule is not None:
            logger.info("Resolved %s -> %s (rule '%s')", callsign, rule.channel, rule.pattern)
            return ChannelResolution.from_rule(callsign, rule, repository)

        if repository is not None and repository.default_channel:
            logger.info(
                "Resolved %s -> %s (repository default)", callsign, repository.default_channel
            )
            return ChannelResolution.from_repository(repository)

        logger.info("No channel configured for %s", callsign)
        return ChannelResolution.unresolved(callsign, repository)

    def get_repository(self, callsign: str) -> Repository | None:
        """Return the repository for a callsign, fetching it at most once.

        Concurrent callers asking for the same unseen callsign wait on a
        single remote lookup. Lookups that fail or find nothing are not
        cached.
        """
        with self._lock:
            cached = self._cache.get(callsign)
            if cached is not None:
                return cached
            future = self._in_flight.get(callsign)
            owner = future is None
            if future is None:
                future = Future()
                self._in_flight[callsign] = future

        if not owner:
            logger.debug("Waiting on in-flight lookup for %s", callsign)
            return future.result()

        try:
            repository = self._repositories.query_repositories_by_callsign(callsign)
        except Exception as e:
            future.set_exception(e)
            raise
        else:
            future.set_result(repository)
            if repository is not None:
                with self._lock:
                    self._cache[callsign] = repository
            return repository
        finally:
            with self._lock:
                self._in_flight.pop(callsign, None)
            if not future.done():
                future.cancel()
