"""Protocols for endpoint query components."""

from typing import Protocol

from ..models import Repository


class RepositoryLookup(Protocol):
    """Looks up repositories by callsign.

    Implemented by DiffusionEndpoint; the channel resolver depends only on
    this contract.
    """

    def query_repositories_by_callsign(self, callsign: str) -> Repository | None:
        """Find the repository with exactly this callsign.

        Returns:
            The repository if found, None otherwise.

        Raises:
            ConduitClientError: If the remote lookup fails.
        """
        ...
