"""Tests for ManiphestEndpoint."""

from unittest.mock import MagicMock

import pytest

from phabulous.conduit import ConduitAuthError, ConduitMalformedResponseError
from phabulous.endpoints import ManiphestEndpoint
from phabulous.models import Task


def _task(task_id, status="open"):
    return {
        "id": str(task_id),
        "phid": f"PHID-TASK-{task_id}",
        "authorPHID": "PHID-USER-a",
        "ownerPHID": None,
        "status": status,
        "statusName": status.title(),
        "isClosed": status != "open",
        "priority": "Normal",
        "title": f"Task {task_id}",
        "uri": f"https://phab.example.com/T{task_id}",
    }


@pytest.fixture
def mock_client():
    """Create a mock Conduit client."""
    return MagicMock()


@pytest.fixture
def maniphest(mock_client):
    return ManiphestEndpoint(mock_client)


class TestQueryTasksByIds:
    """Tests for query_tasks_by_ids."""

    def test_returns_mapping_by_id(self, maniphest, mock_client):
        """Results are keyed by integer id."""
        mock_client.call.return_value = {
            "PHID-TASK-1": _task(1),
            "PHID-TASK-2": _task(2, "resolved"),
        }

        tasks = maniphest.query_tasks_by_ids([1, 2])

        assert sorted(tasks) == [1, 2]
        assert tasks[2].status == "resolved"
        assert tasks[2].is_closed is True
        mock_client.call.assert_called_once_with(
            "maniphest.query", {"ids": [1, 2], "limit": 2}
        )

    def test_missing_ids_absent(self, maniphest, mock_client):
        """Ids that do not exist are simply absent."""
        mock_client.call.return_value = {"PHID-TASK-1": _task(1)}
        tasks = maniphest.query_tasks_by_ids([1, 999])
        assert list(tasks) == [1]

    def test_php_empty_array(self, maniphest, mock_client):
        """An empty PHP array ([]) means no tasks."""
        mock_client.call.return_value = []
        assert maniphest.query_tasks_by_ids([5]) == {}

    def test_accepts_monograms(self, maniphest, mock_client):
        """T-prefixed and string ids are parsed."""
        mock_client.call.return_value = {"PHID-TASK-3": _task(3)}
        tasks = maniphest.query_tasks_by_ids(["T3", "3"])
        assert list(tasks) == [3]
        assert mock_client.call.call_args.args[1]["ids"] == [3]

    def test_invalid_id(self, maniphest):
        with pytest.raises(ValueError):
            maniphest.query_tasks_by_ids(["abc"])

    def test_empty_input_skips_call(self, maniphest, mock_client):
        assert maniphest.query_tasks_by_ids([]) == {}
        mock_client.call.assert_not_called()

    def test_failure_propagates(self, maniphest, mock_client):
        """Conduit failures are passed through unchanged."""
        mock_client.call.side_effect = ConduitAuthError("denied")
        with pytest.raises(ConduitAuthError):
            maniphest.query_tasks_by_ids([1])


class TestQueryTasksByPhids:
    """Tests for query_tasks_by_phids."""

    def test_returns_mapping_by_phid(self, maniphest, mock_client):
        """Results are keyed by PHID and returned as-is."""
        mock_client.call.return_value = {"PHID-TASK-7": _task(7)}

        tasks = maniphest.query_tasks_by_phids(["PHID-TASK-7", "PHID-TASK-missing"])

        assert tasks == {
            "PHID-TASK-7": Task(
                id=7,
                phid="PHID-TASK-7",
                title="Task 7",
                status="open",
                status_name="Open",
                priority="Normal",
                uri="https://phab.example.com/T7",
                owner_phid=None,
                author_phid="PHID-USER-a",
                is_closed=False,
            )
        }
        assert tasks["PHID-TASK-7"].monogram == "T7"

    def test_entry_without_id_is_malformed(self, maniphest, mock_client):
        """Task entries missing required fields are malformed responses."""
        entry = _task(7)
        del entry["id"]
        mock_client.call.return_value = {"PHID-TASK-7": entry}

        with pytest.raises(ConduitMalformedResponseError) as exc_info:
            maniphest.query_tasks_by_phids(["PHID-TASK-7"])
        assert exc_info.value.method == "maniphest.query"

    def test_non_numeric_id_is_malformed(self, maniphest, mock_client):
        mock_client.call.return_value = {"PHID-TASK-7": dict(_task(7), id="seven")}
        with pytest.raises(ConduitMalformedResponseError):
            maniphest.query_tasks_by_phids(["PHID-TASK-7"])
