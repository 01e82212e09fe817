"""Maniphest Conduit endpoints."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any

from ..conduit.client import ConduitClient
from ..conduit.methods import MANIPHEST_QUERY
from ..models import Task
from .results import convert_entry, result_entries

logger = logging.getLogger(__name__)


class ManiphestEndpoint:
    """Queries Maniphest tasks.

    Ids or PHIDs that do not exist are simply absent from the results.
    """

    def __init__(self, client: ConduitClient) -> None:
        self._client = client

    def query_tasks_by_ids(self, ids: Iterable[int | str]) -> dict[int, Task]:
        """Fetch tasks by numeric id (``T123`` or ``123``)."""
        wanted = list(dict.fromkeys(_parse_task_id(i) for i in ids))
        if not wanted:
            return {}
        tasks = self._query({"ids": wanted, "limit": len(wanted)})
        return {task.id: task for task in tasks if task.id in wanted}

    def query_tasks_by_phids(self, phids: Iterable[str]) -> dict[str, Task]:
        """Fetch tasks by PHID."""
        wanted = list(dict.fromkeys(phids))
        if not wanted:
            return {}
        tasks = self._query({"phids": wanted, "limit": len(wanted)})
        return {task.phid: task for task in tasks if task.phid in wanted}

    def _query(self, params: dict[str, Any]) -> list[Task]:
        result = self._client.call(MANIPHEST_QUERY, params)
        tasks = [
            convert_entry(Task.from_conduit, entry, MANIPHEST_QUERY)
            for entry in result_entries(result, MANIPHEST_QUERY)
        ]
        logger.debug("Fetched %d task(s)", len(tasks))
        return tasks


def _parse_task_id(value: int | str) -> int:
    """Accept 123, "123" or "T123"."""
    if isinstance(value, int):
        return value
    text = value.strip()
    if text[:1] in ("T", "t"):
        text = text[1:]
    try:
        return int(text)
    except ValueError as err:
        raise ValueError(f"Invalid task id: {value!r}") from err
