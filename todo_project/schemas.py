from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

TodoStatus = Literal["pending", "done"]
STATUSES = ("pending", "done")


def other_status(status: str) -> str:
    return "pending" if status == "done" else "done"


def _clean_task(value: Optional[str]) -> Optional[str]:
    if value is None:
        return value
    value = value.strip()
    if not value:
        raise ValueError("Task is required")
    return value


class TodoCreate(BaseModel):
    task: str
    status: TodoStatus = "pending"

    @field_validator("task", mode="before")
    @classmethod
    def task_not_empty(cls, value):
        if not isinstance(value, str):
            raise ValueError("Task is required")
        return _clean_task(value)


class TodoUpdate(BaseModel):
    task: Optional[str] = None
    status: Optional[TodoStatus] = None

    @field_validator("task")
    @classmethod
    def task_not_empty(cls, value):
        return _clean_task(value)

    def changes(self) -> dict:
        return self.model_dump(exclude_none=True)


class Todo(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(alias="_id")
    task: str
    status: TodoStatus
    createdAt: Optional[str] = None
    updatedAt: Optional[str] = None
