# utils/mongo.py
import logging
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Optional

from bson import ObjectId
from bson.errors import InvalidId

from config import PROGRESS_MAX_RETRIES
from utils.exceptions import ConflictError, InvalidIdError, NotFoundError

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    # Naive UTC, matching what pymongo hands back for stored dates
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_object_id(value: Any, label: str = "id") -> ObjectId:
    """Parse a path/body id, raising a 400 instead of letting bson blow up later"""
    if isinstance(value, ObjectId):
        return value
    try:
        return ObjectId(str(value))
    except (InvalidId, TypeError):
        raise InvalidIdError(f"Invalid {label}")


def stringify_ids(data: Any) -> Any:
    """Convert every ObjectId in a document (nested dicts/lists included) to str"""
    if isinstance(data, ObjectId):
        return str(data)
    if isinstance(data, dict):
        return {key: stringify_ids(value) for key, value in data.items()}
    if isinstance(data, list):
        return [stringify_ids(item) for item in data]
    return data


async def compare_and_set(
    collection,
    doc_id: ObjectId,
    build_update: Callable[[dict], Awaitable[dict]],
    max_retries: Optional[int] = None,
) -> dict:
    """
    Read-modify-write a document guarded by its ``version`` field.

    ``build_update`` receives the freshly read document and returns the
    update operators to apply. The write only lands if nobody else bumped
    the version in between; otherwise the document is re-read and the
    update rebuilt. Returns the document as read for the winning attempt.
    """
    attempts = max_retries or PROGRESS_MAX_RETRIES
    for attempt in range(1, attempts + 1):
        current = await collection.find_one({"_id": doc_id})
        if current is None:
            raise NotFoundError()

        update = await build_update(current)
        update.setdefault("$inc", {})["version"] = 1

        result = await collection.update_one(
            {"_id": doc_id, "version": current.get("version", 0)},
            update,
        )
        if result.matched_count:
            return current

        logger.info("Version conflict on %s %s (attempt %s/%s)",
                    collection.name, doc_id, attempt, attempts)

    raise ConflictError()
