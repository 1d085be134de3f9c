from datetime import datetime, timezone

from bson import ObjectId
from bson.errors import InvalidId as BsonInvalidId
from loguru import logger as base_logger
from pydantic import ValidationError
from pymongo import MongoClient, ReturnDocument
from pymongo.collection import Collection

from todo_project.config import BackendSettings
from todo_project.schemas import Todo

logger = base_logger.bind(module="todo_project.store")


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _serialize(document: dict) -> dict:
    document = dict(document)
    document["_id"] = str(document["_id"])
    return document


class TodoRepository:
    """Persistence for todo documents in a single Mongo collection."""

    class DoesNotExist(Exception):
        pass

    class InvalidId(Exception):
        pass

    def __init__(self, collection: Collection):
        self._collection = collection

    @classmethod
    def from_settings(cls, settings: BackendSettings) -> tuple[MongoClient, "TodoRepository"]:
        client = MongoClient(settings.MONGO_URI)
        collection = client[settings.MONGO_DB][settings.MONGO_COLLECTION]
        return client, cls(collection)

    @classmethod
    def _object_id(cls, todo_id: str) -> ObjectId:
        try:
            return ObjectId(todo_id)
        except (BsonInvalidId, TypeError):
            raise cls.InvalidId(f"Invalid ID format: {todo_id}")

    def list_all(self) -> list[dict]:
        todos = []
        for document in self._collection.find():
            document = _serialize(document)
            try:
                Todo.model_validate(document)
            except ValidationError as exc:
                logger.warning(f"Skipping malformed todo {document['_id']}: {exc.errors()}")
                continue
            todos.append(document)
        return todos

    def get_by_id(self, todo_id: str) -> dict:
        document = self._collection.find_one({"_id": self._object_id(todo_id)})
        if document is None:
            raise self.DoesNotExist("Todo not found")
        return _serialize(document)

    def create(self, task: str, status: str = "pending") -> dict:
        now = _now()
        document = {"task": task, "status": status, "createdAt": now, "updatedAt": now}
        result = self._collection.insert_one(document)
        document["_id"] = result.inserted_id
        logger.info(f"Created todo {result.inserted_id}")
        return _serialize(document)

    def update(self, todo_id: str, changes: dict) -> dict:
        object_id = self._object_id(todo_id)
        if not changes:
            return self.get_by_id(todo_id)

        document = self._collection.find_one_and_update(
            {"_id": object_id},
            {"$set": {**changes, "updatedAt": _now()}},
            return_document=ReturnDocument.AFTER,
        )
        if document is None:
            raise self.DoesNotExist("Todo not found")
        logger.info(f"Updated todo {todo_id}: {sorted(changes)}")
        return _serialize(document)

    def delete(self, todo_id: str) -> dict:
        document = self._collection.find_one_and_delete({"_id": self._object_id(todo_id)})
        if document is None:
            raise self.DoesNotExist("Todo not found")
        logger.info(f"Deleted todo {todo_id}")
        return _serialize(document)
