from pathlib import Path
from urllib.parse import urlencode

from fastapi import FastAPI, Form, Request
from fastapi.responses import HTMLResponse, RedirectResponse
from fastapi.templating import Jinja2Templates
from loguru import logger as base_logger
import uvicorn

from todo_project.board import TodoBoard
from todo_project.client import TodoApiClient
from todo_project.config import FrontendSettings
from todo_project.listing import format_todo
from todo_project.log import setup_logging

logger = base_logger.bind(module="todo_project.app")

# Set up templates
templates = Jinja2Templates(directory=str(Path(__file__).resolve().parent / "templates"))


def build_board(settings: FrontendSettings) -> TodoBoard:
    if not settings.API_URL:
        return TodoBoard()
    api = TodoApiClient(settings.API_URL, timeout=settings.API_TIMEOUT, retries=settings.API_RETRIES)
    return TodoBoard(api)


def _back_to_list(request: Request) -> RedirectResponse:
    query = request.url.query
    return RedirectResponse(f"/?{query}" if query else "/", status_code=303)


def create_app(settings: FrontendSettings | None = None, board: TodoBoard | None = None) -> FastAPI:
    settings = settings or FrontendSettings()

    app = FastAPI(title="Todo")
    app.state.board = board or build_board(settings)

    @app.get("/", response_class=HTMLResponse)
    async def root(request: Request, filter: str | None = None, sort: str | None = None, edit: str | None = None, color: str | None = None):
        board: TodoBoard = request.app.state.board
        await board.sync()
        board.set_view(filter, sort)

        view_query = {key: value for key, value in (("filter", board.status_filter), ("sort", board.sort_by), ("color", color)) if value}
        return templates.TemplateResponse(
            request,
            "index.html",
            {
                "board": board,
                "todos": board.visible(),
                "stats": board.stats(),
                "editing_id": edit,
                "purple": color == "purple",
                "query": urlencode(view_query),
            },
        )

    @app.get("/refresh")
    async def refresh(request: Request):
        await request.app.state.board.load()
        return _back_to_list(request)

    @app.get("/api/todos")
    async def visible_todos(request: Request, filter: str | None = None, sort: str | None = None):
        board: TodoBoard = request.app.state.board
        await board.sync()
        board.set_view(filter, sort)
        todos = board.visible()
        return {
            "todos": todos,
            "lines": [format_todo(todo) for todo in todos],
            "stats": board.stats(),
            "demoMode": board.demo_mode,
            "error": board.error,
            "filter": board.status_filter,
            "sort": board.sort_by,
        }

    @app.post("/todos")
    async def add_todo(request: Request, task: str = Form("")):
        await request.app.state.board.add(task)
        return _back_to_list(request)

    @app.post("/todos/{todo_id}/edit")
    async def edit_todo(request: Request, todo_id: str, task: str = Form("")):
        await request.app.state.board.rename(todo_id, task)
        return _back_to_list(request)

    @app.post("/todos/{todo_id}/status")
    async def update_status(request: Request, todo_id: str, status: str = Form(...)):
        await request.app.state.board.set_status(todo_id, status)
        return _back_to_list(request)

    @app.post("/todos/{todo_id}/delete")
    async def delete_todo(request: Request, todo_id: str):
        await request.app.state.board.remove(todo_id)
        return _back_to_list(request)

    return app


app = create_app()


def main():
    settings = FrontendSettings()
    setup_logging(settings.LOG_LEVEL)
    if settings.API_URL:
        logger.info(f"Using backend API at {settings.API_URL}")
    else:
        logger.warning("VITE_API_URL is not set, the list runs in demo mode")
    logger.info(f"Server started in port {settings.PORT}")
    uvicorn.run(create_app(settings), host=settings.HOST, port=settings.PORT, log_config=None)


if __name__ == "__main__":
    main()
