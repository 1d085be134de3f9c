import mongomock
import pytest
from fastapi.testclient import TestClient

from todo_project.app_backend import create_app
from todo_project.client import TodoApiError
from todo_project.config import BackendSettings
from todo_project.store import TodoRepository


@pytest.fixture
def missing_id():
    return "64b7f0c2a1b2c3d4e5f60718"


@pytest.fixture
def collection():
    return mongomock.MongoClient()["todoDB"]["todos"]


@pytest.fixture
def repository(collection):
    return TodoRepository(collection)


@pytest.fixture
def backend(repository):
    app = create_app(BackendSettings(), repository=repository)
    with TestClient(app) as client:
        yield client


class FakeApi:
    """In-memory stand-in for TodoApiClient used by the view tests."""

    def __init__(self, todos=None):
        self.todos = [dict(todo) for todo in (todos or [])]
        self.fail_with = None
        self.calls = []
        self._next_id = 100

    def _maybe_fail(self):
        if self.fail_with:
            raise TodoApiError(self.fail_with)

    def _find(self, todo_id):
        for todo in self.todos:
            if todo["_id"] == todo_id:
                return todo
        raise TodoApiError("Todo not found", status_code=404)

    async def list_todos(self):
        self.calls.append(("list",))
        self._maybe_fail()
        return [dict(todo) for todo in self.todos]

    async def create_todo(self, task, status="pending"):
        self.calls.append(("create", task))
        self._maybe_fail()
        self._next_id += 1
        todo = {"_id": f"srv-{self._next_id}", "task": task, "status": status}
        self.todos.append(todo)
        return dict(todo)

    async def update_todo(self, todo_id, task=None, status=None):
        self.calls.append(("update", todo_id, task, status))
        self._maybe_fail()
        todo = self._find(todo_id)
        if task is not None:
            todo["task"] = task
        if status is not None:
            todo["status"] = status
        todo["updatedAt"] = "2026-01-01T00:00:00+00:00"
        return dict(todo)

    async def delete_todo(self, todo_id):
        self.calls.append(("delete", todo_id))
        self._maybe_fail()
        todo = self._find(todo_id)
        self.todos.remove(todo)
        return dict(todo)


@pytest.fixture
def fake_api():
    return FakeApi(
        [
            {"_id": "srv-1", "task": "Buy milk", "status": "pending"},
            {"_id": "srv-2", "task": "Write report", "status": "done"},
        ]
    )
