"""Pure helpers behind the todo list view: validation, filtering, sorting and stats."""

from datetime import datetime, timezone

from loguru import logger as base_logger

from todo_project.schemas import STATUSES

logger = base_logger.bind(module="todo_project.listing")

FILTERS = ("all",) + STATUSES
SORTS = ("date", "status", "alphabetical")


def is_valid_todo(todo) -> bool:
    if not isinstance(todo, dict):
        return False
    for field in ("_id", "task", "status"):
        if field not in todo:
            logger.debug(f"Missing required field: {field}")
            return False
    if todo["status"] not in STATUSES:
        logger.debug(f"Invalid status: {todo['status']}")
        return False
    return isinstance(todo["task"], str) and bool(todo["task"].strip())


def filter_todos(todos: list[dict], status_filter: str = "all") -> list[dict]:
    """Return the todos whose status matches ``status_filter``.

    ``all`` returns the list untouched; any other filter also drops
    malformed entries.
    """
    if status_filter == "all":
        return list(todos)
    return [todo for todo in todos if is_valid_todo(todo) and todo["status"] == status_filter]


def created_at(todo: dict) -> datetime:
    """Creation time from ``createdAt``, else the timestamp embedded in an ObjectId."""
    value = todo.get("createdAt")
    if value:
        try:
            parsed = datetime.fromisoformat(value)
        except ValueError:
            parsed = None
        if parsed is not None:
            return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)

    todo_id = str(todo.get("_id", ""))
    if len(todo_id) == 24:
        try:
            return datetime.fromtimestamp(int(todo_id[:8], 16), tz=timezone.utc)
        except ValueError:
            pass
    if todo_id.startswith("demo-"):
        millis = todo_id[len("demo-"):]
        if millis.isdigit() and len(millis) > 4:
            return datetime.fromtimestamp(int(millis) / 1000, tz=timezone.utc)
    return datetime.min.replace(tzinfo=timezone.utc)


def sort_todos(todos: list[dict], sort_by: str = "date") -> list[dict]:
    if sort_by == "status":
        # pending first, stable within each group
        return sorted(todos, key=lambda todo: todo.get("status") == "done")
    if sort_by == "alphabetical":
        return sorted(todos, key=lambda todo: str(todo.get("task", "")).lower())
    return sorted(todos, key=created_at, reverse=True)


def todo_statistics(todos: list[dict]) -> dict:
    valid = [todo for todo in todos if is_valid_todo(todo)]
    total = len(valid)
    completed = sum(1 for todo in valid if todo["status"] == "done")
    pending = total - completed
    completion_rate = int(completed * 100 / total + 0.5) if total else 0
    return {
        "total": total,
        "pending": pending,
        "completed": completed,
        "completionRate": completion_rate,
        "summary": f"{completed}/{total} tasks completed ({completion_rate}%)",
    }


def format_todo(todo: dict) -> str:
    if not is_valid_todo(todo):
        return "Invalid todo"
    icon = "✅" if todo["status"] == "done" else "⏳"
    return f"{icon} {todo['task']} [{todo['status'].upper()}]"
