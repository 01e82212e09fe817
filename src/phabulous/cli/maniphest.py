"""Maniphest query commands."""

from ..endpoints import ManiphestEndpoint
from ..models import Task
from .output import header, info, row


def _print_tasks(tasks: list[Task], requested: int) -> None:
    if not tasks:
        info("No tasks found")
        return
    header(f"Found {len(tasks)} of {requested} task(s):")
    for task in tasks:
        row(task.monogram, task.phid, task.status, task.title)


def run_query_by_ids(maniphest: ManiphestEndpoint, ids: list[str]) -> int:
    """Print tasks by id (``1 2 3`` or ``T1 T2``)."""
    tasks = maniphest.query_tasks_by_ids(ids)
    _print_tasks([tasks[k] for k in sorted(tasks)], len(ids))
    return 0


def run_query_by_phids(maniphest: ManiphestEndpoint, phids: list[str]) -> int:
    """Print tasks by PHID, in the order requested."""
    tasks = maniphest.query_tasks_by_phids(phids)
    _print_tasks([tasks[p] for p in dict.fromkeys(phids) if p in tasks], len(phids))
    return 0
