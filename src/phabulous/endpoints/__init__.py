"""Typed query components layered on the Conduit client."""

from .diffusion import DiffusionEndpoint
from .maniphest import ManiphestEndpoint
from .protocol import RepositoryLookup

__all__ = [
    "DiffusionEndpoint",
    "ManiphestEndpoint",
    "RepositoryLookup",
]
