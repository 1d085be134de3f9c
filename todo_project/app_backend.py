from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger as base_logger
import uvicorn

from todo_project.config import BackendSettings
from todo_project.log import setup_logging
from todo_project.schemas import Todo, TodoCreate, TodoUpdate
from todo_project.store import TodoRepository

logger = base_logger.bind(module="todo_project.app_backend")


def get_repository(request: Request) -> TodoRepository:
    return request.app.state.repository


def _validation_message(exc: RequestValidationError) -> str:
    error = exc.errors()[0]
    field = str(error["loc"][-1]) if error.get("loc") else "body"
    message = error.get("msg", "Invalid request")
    if message.startswith("Value error, "):
        return message[len("Value error, "):]
    if field == "task" and error.get("type") == "missing":
        return "Task is required"
    return f"{field}: {message}"


def create_app(settings: BackendSettings | None = None, repository: TodoRepository | None = None) -> FastAPI:
    settings = settings or BackendSettings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if app.state.repository is None:
            client, app.state.repository = TodoRepository.from_settings(settings)
            app.state.mongo_client = client
            # Refuse to serve without a reachable database
            client.admin.command("ping")
            logger.info(f"Connected to MongoDB, database {settings.MONGO_DB}")
        yield
        if app.state.mongo_client is not None:
            app.state.mongo_client.close()
            logger.info("MongoDB connection closed")

    app = FastAPI(title="Todo API", lifespan=lifespan)
    app.state.repository = repository
    app.state.mongo_client = None

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(TodoRepository.DoesNotExist)
    async def not_found_handler(request: Request, exc: TodoRepository.DoesNotExist):
        return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"error": str(exc)})

    @app.exception_handler(TodoRepository.InvalidId)
    async def invalid_id_handler(request: Request, exc: TodoRepository.InvalidId):
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"error": str(exc)})

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        logger.warning(f"Validation error for {request.method} {request.url.path}: {exc.errors()}")
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": _validation_message(exc)},
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception(f"Unhandled error for {request.method} {request.url.path}")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "Internal server error"},
        )

    @app.get("/healthz")
    def healthz():
        return {"status": "ok"}

    @app.get("/todos", response_model=list[Todo])
    def get_todos(repository: TodoRepository = Depends(get_repository)):
        return repository.list_all()

    @app.post("/todos", response_model=Todo, status_code=status.HTTP_201_CREATED)
    def create_todo(todo: TodoCreate, repository: TodoRepository = Depends(get_repository)):
        return repository.create(todo.task, todo.status)

    @app.put("/todos/{todo_id}", response_model=Todo)
    def update_todo(todo_id: str, todo: TodoUpdate, repository: TodoRepository = Depends(get_repository)):
        return repository.update(todo_id, todo.changes())

    @app.delete("/todos/{todo_id}", response_model=Todo)
    def delete_todo(todo_id: str, repository: TodoRepository = Depends(get_repository)):
        return repository.delete(todo_id)

    return app


app = create_app()


def main():
    settings = BackendSettings()
    setup_logging(settings.LOG_LEVEL)
    logger.info(f"Server started in port {settings.PORT}")
    uvicorn.run(create_app(settings), host=settings.HOST, port=settings.PORT, log_config=None)


if __name__ == "__main__":
    main()
