"""Diffusion and repository query commands."""

from ..endpoints import DiffusionEndpoint
from .output import header, info, row


def run_query_commits_by_name(diffusion: DiffusionEndpoint, name: str) -> int:
    """Print commits matching a name.

    Returns:
        Exit code (0 even when nothing matches)
    """
    count = 0
    for commit in diffusion.query_commits_by_name(name):
        if count == 0:
            header(f"Commits matching {name}:")
        count += 1
        row(commit.name, commit.callsign, commit.identifier, commit.author_name, commit.summary)

    if count == 0:
        info(f"No commits found for {name}")
    return 0


def run_query_repository_by_callsign(diffusion: DiffusionEndpoint, callsign: str) -> int:
    """Print the repository with a callsign.

    Returns:
        Exit code (0 even when the repository does not exist)
    """
    repository = diffusion.query_repositories_by_callsign(callsign)
    if repository is None:
        info(f"Repository not found: {callsign}")
        return 0

    header(f"Repository {repository.callsign}:")
    row("name", repository.name)
    row("phid", repository.phid)
    row("vcs", repository.vcs)
    row("uri", repository.uri)
    row("active", "yes" if repository.is_active else "no")
    row("default channel", repository.default_channel or "-")
    return 0
