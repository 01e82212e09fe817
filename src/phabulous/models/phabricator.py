"""Phabricator domain objects as returned by Conduit."""

from typing import Any

from pydantic import BaseModel, ConfigDict


def _as_bool(value: Any) -> bool:
    """Conduit encodes some booleans as strings or ints."""
    if isinstance(value, str):
        return value.lower() in ("1", "true", "yes")
    return bool(value)


class Repository(BaseModel):
    """Snapshot of a Diffusion repository."""

    model_config = ConfigDict(frozen=True)

    phid: str
    callsign: str
    name: str
    default_channel: str | None = None  # From per-repository channel overrides

    id: int | None = None
    monogram: str | None = None  # e.g., "rENG"
    vcs: str | None = None  # git, hg, svn
    uri: str | None = None
    is_active: bool = True

    @classmethod
    def from_conduit(cls, data: dict[str, Any], default_channel: str | None = None) -> "Repository":
        """Create from a ``repository.query`` result entry."""
        raw_id = data.get("id")
        callsign = data.get("callsign") or ""
        return cls(
            phid=data["phid"],
            callsign=callsign,
            name=data.get("name") or callsign,
            default_channel=default_channel,
            id=int(raw_id) if raw_id is not None else None,
            monogram=data.get("monogram") or (f"r{callsign}" if callsign else None),
            vcs=data.get("vcs"),
            uri=data.get("uri"),
            is_active=_as_bool(data.get("isActive", True)),
        )


class Commit(BaseModel):
    """A commit in a Diffusion repository."""

    model_config = ConfigDict(frozen=True)

    callsign: str
    identifier: str  # Hash (git/hg) or revision number (svn)
    branch: str | None = None

    phid: str | None = None
    repository_phid: str | None = None
    summary: str = ""
    author_name: str | None = None
    uri: str | None = None
    epoch: int | None = None

    @property
    def name(self) -> str:
        """Commit name as Phabricator displays it (e.g., ``rENGabc123``)."""
        return f"r{self.callsign}{self.identifier}"

    @classmethod
    def from_conduit(cls, data: dict[str, Any], callsign: str) -> "Commit":
        """Create from a ``diffusion.querycommits`` data entry."""
        epoch = data.get("epoch")
        return cls(
            callsign=callsign,
            identifier=str(data["identifier"]),
            branch=data.get("branch"),
            phid=data.get("phid"),
            repository_phid=data.get("repositoryPHID"),
            summary=data.get("summary") or "",
            author_name=data.get("authorName"),
            uri=data.get("uri"),
            epoch=int(epoch) if epoch is not None else None,
        )


class Task(BaseModel):
    """A Maniphest task."""

    model_config = ConfigDict(frozen=True)

    id: int
    phid: str
    title: str
    status: str

    status_name: str | None = None
    priority: str | None = None
    uri: str | None = None
    owner_phid: str | None = None
    author_phid: str | None = None
    is_closed: bool = False

    @property
    def monogram(self) -> str:
        return f"T{self.id}"

    @classmethod
    def from_conduit(cls, data: dict[str, Any]) -> "Task":
        """Create from a ``maniphest.query`` result entry."""
        return cls(
            id=int(data["id"]),
            phid=data["phid"],
            title=data.get("title") or "",
            status=data.get("status") or "",
            status_name=data.get("statusName"),
            priority=data.get("priority"),
            uri=data.get("uri"),
            owner_phid=data.get("ownerPHID"),
            author_phid=data.get("authorPHID"),
            is_closed=_as_bool(data.get("isClosed", False)),
        )
