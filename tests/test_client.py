import json

import httpx
import pytest
import respx

from todo_project.client import TodoApiClient, TodoApiError

BASE_URL = "http://api.test"


@pytest.fixture
def api():
    return TodoApiClient(BASE_URL + "/", timeout=1.0, retries=3, retry_delay=0)


async def test_list_todos(api):
    with respx.mock(base_url=BASE_URL) as mock:
        mock.get("/todos").respond(200, json=[{"_id": "1", "task": "Buy milk", "status": "pending"}])
        todos = await api.list_todos()
    assert todos == [{"_id": "1", "task": "Buy milk", "status": "pending"}]


async def test_create_todo_sends_trimmed_task(api):
    with respx.mock(base_url=BASE_URL) as mock:
        route = mock.post("/todos").respond(201, json={"_id": "1", "task": "Buy milk", "status": "pending"})
        created = await api.create_todo("  Buy milk ")
    assert created["status"] == "pending"
    assert json.loads(route.calls.last.request.content) == {"task": "Buy milk", "status": "pending"}


async def test_create_todo_validates_before_request(api):
    with respx.mock(base_url=BASE_URL, assert_all_called=False) as mock:
        route = mock.post("/todos")
        with pytest.raises(TodoApiError):
            await api.create_todo("   ")
        with pytest.raises(TodoApiError):
            await api.create_todo("Buy milk", status="archived")
    assert not route.called


async def test_update_sends_only_given_fields(api):
    with respx.mock(base_url=BASE_URL) as mock:
        route = mock.put("/todos/1").respond(200, json={"_id": "1", "task": "Buy milk", "status": "done"})
        await api.update_todo("1", status="done")
    assert json.loads(route.calls.last.request.content) == {"status": "done"}


async def test_toggle_status(api):
    with respx.mock(base_url=BASE_URL) as mock:
        route = mock.put("/todos/1").respond(200, json={"_id": "1", "task": "Buy milk", "status": "pending"})
        await api.toggle_status("1", "done")
    assert json.loads(route.calls.last.request.content) == {"status": "pending"}


async def test_error_response_carries_server_message(api):
    with respx.mock(base_url=BASE_URL) as mock:
        mock.delete("/todos/1").respond(404, json={"error": "Todo not found"})
        with pytest.raises(TodoApiError) as exc_info:
            await api.delete_todo("1")
    assert exc_info.value.status_code == 404
    assert exc_info.value.message == "Todo not found"


async def test_error_response_without_body(api):
    with respx.mock(base_url=BASE_URL) as mock:
        mock.get("/todos").respond(503, text="unavailable")
        with pytest.raises(TodoApiError) as exc_info:
            await api.list_todos()
    assert exc_info.value.message == "HTTP error! status: 503"


async def test_transport_errors_are_retried(api):
    with respx.mock(base_url=BASE_URL) as mock:
        route = mock.get("/todos").mock(side_effect=httpx.ConnectError("connection refused"))
        with pytest.raises(TodoApiError) as exc_info:
            await api.list_todos()
    assert route.call_count == 3
    assert exc_info.value.status_code is None


async def test_transport_error_then_success(api):
    with respx.mock(base_url=BASE_URL) as mock:
        mock.get("/todos").mock(
            side_effect=[httpx.ConnectError("connection refused"), httpx.Response(200, json=[])]
        )
        assert await api.list_todos() == []


async def test_todos_by_status_and_statistics(api):
    todos = [
        {"_id": "1", "task": "Buy milk", "status": "pending"},
        {"_id": "2", "task": "Write report", "status": "done"},
    ]
    with respx.mock(base_url=BASE_URL) as mock:
        mock.get("/todos").respond(200, json=todos)
        assert await api.todos_by_status("done") == [todos[1]]
        assert (await api.statistics())["summary"] == "1/2 tasks completed (50%)"
