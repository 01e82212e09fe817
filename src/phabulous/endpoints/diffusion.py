"""Diffusion and repository Conduit endpoints."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from typing import Any

from ..conduit.client import ConduitClient
from ..conduit.methods import DIFFUSION_QUERY_COMMITS, REPOSITORY_QUERY
from ..models import Commit, Repository
from .results import convert_entry, result_entries, result_mapping

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 100


class DiffusionEndpoint:
    """Queries commits and repositories.

    Per-repository default channels from the configuration are attached to
    every Repository this endpoint returns.
    """

    def __init__(
        self, client: ConduitClient, default_channels: dict[str, str] | None = None
    ) -> None:
        """Initialize the endpoint.

        Args:
            client: Conduit client used for all calls
            default_channels: Default notification channel per callsign
        """
        self._client = client
        self._default_channels = dict(default_channels or {})

    # --- Commits ---

    def query_commits_by_name(
        self, name: str, *, page_size: int = DEFAULT_PAGE_SIZE
    ) -> Iterator[Commit]:
        """Query commits by name (e.g., ``rENGabc123`` or a bare hash).

        The returned iterator is lazy: no call is made until it is consumed,
        and it can only be consumed once. An empty iterator means no commit
        matched.

        Raises:
            ValueError: If name is empty
        """
        if not name or not name.strip():
            raise ValueError("Commit name cannot be empty")
        if page_size < 1:
            raise ValueError("page_size must be positive")
        return self._iter_commits({"names": [name.strip()]}, page_size)

    def _iter_commits(self, params: dict[str, Any], page_size: int) -> Iterator[Commit]:
        after: Any = None
        page_count = 0
        total = 0
        while True:
            page_count += 1
            request = dict(params, limit=page_size)
            if after is not None:
                request["after"] = after

            result = result_mapping(
                self._client.call(DIFFUSION_QUERY_COMMITS, request), DIFFUSION_QUERY_COMMITS
            )
            entries = result_entries(result.get("data"), DIFFUSION_QUERY_COMMITS)
            logger.debug("Page %d: fetched %d commits", page_count, len(entries))

            callsigns = self._callsigns_for(entries)
            for entry in entries:
                repository_phid = entry.get("repositoryPHID")
                callsign = callsigns.get(repository_phid, "") if repository_phid else ""
                if not callsign:
                    logger.debug("No callsign for repository %s", repository_phid)
                total += 1
                yield convert_entry(Commit.from_conduit, entry, DIFFUSION_QUERY_COMMITS, callsign)

            # Check for pagination
            cursor = result_mapping(result.get("cursor"), DIFFUSION_QUERY_COMMITS)
            after = cursor.get("after")
            if not entries or not after:
                break

        logger.info("Fetched %d commit(s) in %d page(s)", total, page_count)

    def _callsigns_for(self, entries: list[dict[str, Any]]) -> dict[str, str]:
        """Map the repository PHIDs of a page of commits to callsigns."""
        phids = sorted({e["repositoryPHID"] for e in entries if e.get("repositoryPHID")})
        if not phids:
            return {}
        return {
            phid: repository.callsign
            for phid, repository in self.query_repositories_by_phids(phids).items()
        }

    # --- Repositories ---

    def query_repositories_by_callsign(self, callsign: str) -> Repository | None:
        """Find the repository with exactly this callsign.

        Callsigns are case-sensitive; a repository whose callsign differs
        only in case is not a match.

        Returns:
            The repository if found, None otherwise.
        """
        if not callsign:
            raise ValueError("Callsign cannot be empty")

        result = self._client.call(REPOSITORY_QUERY, {"callsigns": [callsign]})
        for entry in result_entries(result, REPOSITORY_QUERY):
            if entry.get("callsign") == callsign:
                return self._to_repository(entry)

        logger.debug("Repository not found: %s", callsign)
        return None

    def query_repositories_by_phids(self, phids: Iterable[str]) -> dict[str, Repository]:
        """Fetch repositories by PHID. Unknown PHIDs are absent from the result."""
        wanted = list(dict.fromkeys(phids))
        if not wanted:
            return {}

        result = self._client.call(REPOSITORY_QUERY, {"phids": wanted})
        repositories: dict[str, Repository] = {}
        for entry in result_entries(result, REPOSITORY_QUERY):
            if entry.get("phid") in wanted:
                repository = self._to_repository(entry)
                repositories[repository.phid] = repository
        return repositories

    def _to_repository(self, entry: dict[str, Any]) -> Repository:
        callsign = entry.get("callsign") or ""
        return convert_entry(
            Repository.from_conduit, entry, REPOSITORY_QUERY, self._default_channels.get(callsign)
        )
