import time

from loguru import logger as base_logger

from todo_project.client import TodoApiClient, TodoApiError
from todo_project.listing import FILTERS, SORTS, filter_todos, sort_todos, todo_statistics
from todo_project.schemas import STATUSES, other_status

logger = base_logger.bind(module="todo_project.board")

DEMO_TODOS = [
    {"_id": "demo-1", "task": "Welcome to the Todo App! 🎉", "status": "pending"},
    {"_id": "demo-2", "task": "This is demo mode (backend not connected)", "status": "pending"},
    {"_id": "demo-3", "task": "Add, edit, and delete todos", "status": "done"},
    {"_id": "demo-4", "task": "Filter between All/Pending/Done", "status": "done"},
]

NO_BACKEND_MESSAGE = "Demo Mode: Backend API not connected. Deploy backend to see full functionality."
UNREACHABLE_MESSAGE = "Demo Mode: Cannot connect to backend API. "


class TodoBoard:
    """
    View state of the todo list.

    Mutations are applied to the local list first. In live mode the item is
    then replaced with the server's copy, or rolled back with an inline error
    message when the request fails. In demo mode the local list is the only
    copy and is dropped once the backend answers again.
    """

    def __init__(self, api: TodoApiClient | None = None):
        self.api = api
        self.todos: list[dict] = []
        self.error: str | None = None
        self.demo_mode = False
        self.loaded = False
        self.status_filter = "all"
        self.sort_by: str | None = None

    def _enter_demo(self, message: str):
        self.error = message
        if self.demo_mode:
            # still offline, keep the local edits
            return
        logger.warning(f"Switching to demo mode: {message}")
        self.demo_mode = True
        self.todos = [dict(todo) for todo in DEMO_TODOS]

    async def load(self):
        self.loaded = True
        if self.api is None:
            self._enter_demo(NO_BACKEND_MESSAGE)
            return
        try:
            todos = await self.api.list_todos()
        except TodoApiError as exc:
            self._enter_demo(UNREACHABLE_MESSAGE + exc.message)
            return
        if self.demo_mode:
            logger.info("Backend reachable again, leaving demo mode")
        self.todos = todos
        self.demo_mode = False
        self.error = None

    async def ensure_loaded(self):
        if not self.loaded:
            await self.load()

    async def sync(self):
        """Load on first use, and retry the backend while stuck in demo mode."""
        if not self.loaded or (self.demo_mode and self.api is not None):
            await self.load()

    # View

    def set_view(self, status_filter: str | None = None, sort_by: str | None = None):
        if status_filter in FILTERS:
            self.status_filter = status_filter
        if sort_by in SORTS:
            self.sort_by = sort_by
        elif sort_by == "":
            self.sort_by = None

    def visible(self) -> list[dict]:
        todos = filter_todos(self.todos, self.status_filter)
        if self.sort_by:
            todos = sort_todos(todos, self.sort_by)
        return todos

    def stats(self) -> dict:
        return todo_statistics(self.todos)

    # Mutations

    def _index(self, todo_id: str) -> int | None:
        for index, todo in enumerate(self.todos):
            if todo.get("_id") == todo_id:
                return index
        return None

    def _replace(self, todo_id: str, todo: dict):
        index = self._index(todo_id)
        if index is not None:
            self.todos[index] = todo

    def _restore(self, todo: dict, following_id: str | None):
        """Put ``todo`` back in front of the item that followed it."""
        index = self._index(following_id) if following_id is not None else None
        if index is None:
            self.todos.append(todo)
        else:
            self.todos.insert(index, todo)

    def _new_local_id(self, prefix: str) -> str:
        stamp = int(time.time() * 1000)
        while self._index(f"{prefix}-{stamp}") is not None:
            stamp += 1
        return f"{prefix}-{stamp}"

    async def add(self, task: str) -> dict | None:
        task = (task or "").strip()
        if not task:
            return None
        await self.ensure_loaded()

        local = {"_id": self._new_local_id("demo" if self.demo_mode else "local"), "task": task, "status": "pending"}
        self.todos.append(local)
        if self.demo_mode:
            return local

        try:
            created = await self.api.create_todo(task)
        except TodoApiError as exc:
            index = self._index(local["_id"])
            if index is not None:
                del self.todos[index]
            self.error = f"Failed to add task: {exc.message}"
            return None
        self._replace(local["_id"], created)
        self.error = None
        return created

    async def _update(self, todo_id: str, changes: dict, action: str) -> dict | None:
        await self.ensure_loaded()
        index = self._index(todo_id)
        if index is None:
            self.error = "Todo not found"
            return None

        previous = self.todos[index]
        self.todos[index] = {**previous, **changes}
        if self.demo_mode:
            return self.todos[index]

        try:
            updated = await self.api.update_todo(todo_id, **changes)
        except TodoApiError as exc:
            self._replace(todo_id, previous)
            self.error = f"Failed to {action}: {exc.message}"
            return None
        self._replace(todo_id, updated)
        self.error = None
        return updated

    async def rename(self, todo_id: str, task: str) -> dict | None:
        task = (task or "").strip()
        if not task:
            return None
        return await self._update(todo_id, {"task": task}, "update task")

    async def set_status(self, todo_id: str, status: str) -> dict | None:
        if status not in STATUSES:
            self.error = f"Status must be one of: {', '.join(STATUSES)}"
            return None
        return await self._update(todo_id, {"status": status}, "update status")

    async def toggle(self, todo_id: str) -> dict | None:
        await self.ensure_loaded()
        index = self._index(todo_id)
        if index is None:
            self.error = "Todo not found"
            return None
        return await self.set_status(todo_id, other_status(self.todos[index]["status"]))

    async def remove(self, todo_id: str) -> bool:
        await self.ensure_loaded()
        index = self._index(todo_id)
        if index is None:
            self.error = "Todo not found"
            return False

        removed = self.todos.pop(index)
        if self.demo_mode:
            return True
        following = self.todos[index]["_id"] if index < len(self.todos) else None

        try:
            await self.api.delete_todo(todo_id)
        except TodoApiError as exc:
            self._restore(removed, following)
            self.error = f"Failed to delete task: {exc.message}"
            return False
        self.error = None
        return True
