import httpx
from loguru import logger as base_logger
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_fixed

from todo_project.listing import filter_todos, todo_statistics
from todo_project.schemas import STATUSES, other_status

logger = base_logger.bind(module="todo_project.client")


class TodoApiError(Exception):
    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class TodoApiClient:
    """Async HTTP client for the todo REST backend."""

    def __init__(self, base_url: str, timeout: float = 10.0, retries: int = 3, retry_delay: float = 1.0):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.retries = max(1, retries)
        self.retry_delay = retry_delay

    async def _request(self, method: str, path: str, json: dict | None = None):
        url = f"{self.base_url}{path}"
        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self.retries),
                wait=wait_fixed(self.retry_delay),
                retry=retry_if_exception_type(httpx.TransportError),
                reraise=True,
            ):
                with attempt:
                    if attempt.retry_state.attempt_number > 1:
                        logger.warning(f"Retrying {method} {url} (attempt {attempt.retry_state.attempt_number})")
                    async with httpx.AsyncClient(timeout=self.timeout, follow_redirects=True) as client:
                        response = await client.request(method, url, json=json)
        except httpx.TransportError as exc:
            logger.error(f"{method} {url} failed after {self.retries} attempts: {exc!r}")
            raise TodoApiError(f"Request failed after {self.retries} attempts: {exc}") from exc

        if response.is_error:
            raise TodoApiError(self._error_message(response), status_code=response.status_code)

        logger.debug(f"{method} {url} -> {response.status_code}")
        try:
            return response.json()
        except ValueError as exc:
            raise TodoApiError(f"Invalid JSON from {method} {url}", status_code=response.status_code) from exc

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict) and body.get("error"):
            return str(body["error"])
        return f"HTTP error! status: {response.status_code}"

    async def list_todos(self) -> list[dict]:
        todos = await self._request("GET", "/todos")
        if not isinstance(todos, list):
            raise TodoApiError("Unexpected response: expected a list of todos")
        logger.info(f"Retrieved {len(todos)} todos")
        return todos

    async def create_todo(self, task: str, status: str = "pending") -> dict:
        if not isinstance(task, str) or not task.strip():
            raise TodoApiError("Todo task must be a non-empty string")
        self._check_status(status)
        return await self._request("POST", "/todos", json={"task": task.strip(), "status": status})

    async def update_todo(self, todo_id: str, task: str | None = None, status: str | None = None) -> dict:
        payload = {}
        if task is not None:
            if not task.strip():
                raise TodoApiError("Todo task must be a non-empty string")
            payload["task"] = task.strip()
        if status is not None:
            self._check_status(status)
            payload["status"] = status
        if not payload:
            raise TodoApiError("Nothing to update")
        return await self._request("PUT", f"/todos/{todo_id}", json=payload)

    async def delete_todo(self, todo_id: str) -> dict:
        return await self._request("DELETE", f"/todos/{todo_id}")

    async def toggle_status(self, todo_id: str, current_status: str) -> dict:
        return await self.update_todo(todo_id, status=other_status(current_status))

    async def todos_by_status(self, status: str) -> list[dict]:
        return filter_todos(await self.list_todos(), status)

    async def statistics(self) -> dict:
        return todo_statistics(await self.list_todos())

    @staticmethod
    def _check_status(status: str):
        if status not in STATUSES:
            raise TodoApiError(f"Status must be one of: {', '.join(STATUSES)}")
