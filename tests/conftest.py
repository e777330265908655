import copy
import os
import sys
from typing import Any, Dict, List, Optional

import pytest
from bson import ObjectId
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

# Add project root to path so flat modules (main, database, ...) import
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from database import create_indexes, get_database  # noqa: E402
from models.user import RoleEnum, User  # noqa: E402
from utils.security import create_access_token, hash_password  # noqa: E402

PASSWORD = "secret123"
PASSWORD_HASH = hash_password(PASSWORD)

_MISSING = object()


def run_sync(coro):
    """Drive a coroutine that only awaits the in-memory database (it never suspends)"""
    try:
        coro.send(None)
    except StopIteration as stop:
        return stop.value
    coro.close()
    raise RuntimeError("coroutine suspended; run_sync only works against FakeDatabase")


# ---------------------------------------------------------------------------
# In-memory stand-in for a Motor database
# ---------------------------------------------------------------------------

class _Result:
    def __init__(self, **fields):
        self.__dict__.update(fields)


def _matches(doc: dict, query: Optional[dict]) -> bool:
    for key, condition in (query or {}).items():
        value = doc.get(key, _MISSING)
        if isinstance(condition, dict) and condition and all(k.startswith("$") for k in condition):
            for op, arg in condition.items():
                if op == "$in":
                    if value is _MISSING or value not in arg:
                        return False
                elif op == "$nin":
                    if value is not _MISSING and value in arg:
                        return False
                elif op == "$gte":
                    if value is _MISSING or value is None or value < arg:
                        return False
                elif op == "$ne":
                    if value is not _MISSING and value == arg:
                        return False
                else:
                    raise NotImplementedError(f"query operator {op}")
        elif value is _MISSING or value != condition:
            return False
    return True


def _sort_key(value):
    return (value is not None, value)


def _apply_update(doc: dict, update: dict, inserting: bool = False) -> None:
    for op, fields in update.items():
        if op == "$set":
            doc.update(copy.deepcopy(fields))
        elif op == "$setOnInsert":
            if inserting:
                doc.update(copy.deepcopy(fields))
        elif op == "$inc":
            for key, amount in fields.items():
                doc[key] = doc.get(key, 0) + amount
        elif op == "$push":
            for key, item in fields.items():
                doc.setdefault(key, []).append(copy.deepcopy(item))
        elif op == "$addToSet":
            for key, item in fields.items():
                items = doc.setdefault(key, [])
                if item not in items:
                    items.append(copy.deepcopy(item))
        elif op == "$pull":
            for key, item in fields.items():
                doc[key] = [existing for existing in doc.get(key, []) if existing != item]
        else:
            raise NotImplementedError(f"update operator {op}")


class FakeCursor:
    def __init__(self, docs: List[dict]):
        self._docs = docs
        self._limit = 0

    def sort(self, key_or_list, direction=None):
        keys = key_or_list if isinstance(key_or_list, list) else [(key_or_list, direction or 1)]
        for key, key_direction in reversed(keys):
            self._docs.sort(key=lambda d: _sort_key(d.get(key)), reverse=key_direction < 0)
        return self

    def limit(self, count: int):
        self._limit = count
        return self

    def _materialize(self) -> List[dict]:
        return self._docs[:self._limit] if self._limit else list(self._docs)

    async def to_list(self, length: Optional[int] = None) -> List[dict]:
        docs = self._materialize()
        return docs[:length] if length else docs

    def __aiter__(self):
        return self._iterate()

    async def _iterate(self):
        for doc in self._materialize():
            yield doc


class FakeCollection:
    def __init__(self, name: str):
        self.name = name
        self.docs: List[dict] = []
        self.unique_indexes: List[List[str]] = []
        self.fail_next: Dict[str, Exception] = {}

    def _maybe_fail(self, operation: str) -> None:
        error = self.fail_next.pop(operation, None)
        if error is not None:
            raise error

    def _duplicates(self, candidate: dict, ignore: Optional[dict] = None) -> bool:
        for doc in self.docs:
            if doc is ignore:
                continue
            if doc["_id"] == candidate["_id"]:
                return True
            for fields in self.unique_indexes:
                if all(doc.get(f) == candidate.get(f) for f in fields):
                    return True
        return False

    def _first(self, query: Optional[dict]) -> Optional[dict]:
        return next((doc for doc in self.docs if _matches(doc, query)), None)

    async def create_index(self, keys, unique: bool = False, **kwargs):
        if unique:
            self.unique_indexes.append([key for key, _ in keys])
        return "_".join(key for key, _ in keys)

    async def insert_one(self, doc: dict):
        self._maybe_fail("insert_one")
        doc.setdefault("_id", ObjectId())
        stored = copy.deepcopy(doc)
        if self._duplicates(stored):
            raise DuplicateKeyError(f"E11000 duplicate key error collection: {self.name}")
        self.docs.append(stored)
        return _Result(inserted_id=stored["_id"])

    async def find_one(self, query: Optional[dict] = None, projection: Any = None):
        doc = self._first(query)
        return copy.deepcopy(doc) if doc is not None else None

    def find(self, query: Optional[dict] = None, projection: Any = None) -> FakeCursor:
        return FakeCursor([copy.deepcopy(doc) for doc in self.docs if _matches(doc, query)])

    async def count_documents(self, query: Optional[dict] = None) -> int:
        return sum(1 for doc in self.docs if _matches(doc, query))

    async def update_one(self, query: dict, update: dict, upsert: bool = False):
        self._maybe_fail("update_one")
        doc = self._first(query)
        if doc is None:
            if not upsert:
                return _Result(matched_count=0, modified_count=0, upserted_id=None)
            created = {k: copy.deepcopy(v) for k, v in query.items() if not isinstance(v, dict)}
            created["_id"] = ObjectId()
            _apply_update(created, update, inserting=True)
            if self._duplicates(created):
                raise DuplicateKeyError(f"E11000 duplicate key error collection: {self.name}")
            self.docs.append(created)
            return _Result(matched_count=0, modified_count=0, upserted_id=created["_id"])

        candidate = copy.deepcopy(doc)
        _apply_update(candidate, update)
        if self._duplicates(candidate, ignore=doc):
            raise DuplicateKeyError(f"E11000 duplicate key error collection: {self.name}")
        modified = int(candidate != doc)
        doc.clear()
        doc.update(candidate)
        return _Result(matched_count=1, modified_count=modified, upserted_id=None)

    async def find_one_and_update(self, query: dict, update: dict,
                                  return_document=ReturnDocument.BEFORE, **kwargs):
        doc = self._first(query)
        if doc is None:
            return None
        before = copy.deepcopy(doc)
        _apply_update(doc, update)
        return copy.deepcopy(doc) if return_document == ReturnDocument.AFTER else before

    async def delete_one(self, query: dict):
        self._maybe_fail("delete_one")
        doc = self._first(query)
        if doc is None:
            return _Result(deleted_count=0)
        self.docs.remove(doc)
        return _Result(deleted_count=1)

    async def delete_many(self, query: dict):
        keep = [doc for doc in self.docs if not _matches(doc, query)]
        deleted = len(self.docs) - len(keep)
        self.docs[:] = keep
        return _Result(deleted_count=deleted)


class FakeDatabase:
    name = "smartedu_test"

    def __init__(self):
        self._collections: Dict[str, FakeCollection] = {}

    def __getattr__(self, name: str) -> FakeCollection:
        if name.startswith("_"):
            raise AttributeError(name)
        return self[name]

    def __getitem__(self, name: str) -> FakeCollection:
        if name not in self._collections:
            self._collections[name] = FakeCollection(name)
        return self._collections[name]

    async def command(self, name: str):
        return {"ok": 1}


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def db():
    fake = FakeDatabase()
    run_sync(create_indexes(fake))
    return fake


def insert_user(db, name: str, email: str, role: RoleEnum) -> User:
    user = User(name=name, email=email, password_hash=PASSWORD_HASH, role=role)
    user.id = run_sync(db.users.insert_one(user.to_mongo())).inserted_id
    return user


def auth_headers(user: User) -> Dict[str, str]:
    token = create_access_token(data={"sub": user.email, "role": user.role})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def student(db):
    return insert_user(db, "Sam Student", "sam@example.com", RoleEnum.student)


@pytest.fixture
def other_student(db):
    return insert_user(db, "Olive Other", "olive@example.com", RoleEnum.student)


@pytest.fixture
def teacher(db):
    return insert_user(db, "Tara Teacher", "tara@example.com", RoleEnum.teacher)


@pytest.fixture
def other_teacher(db):
    return insert_user(db, "Theo Teacher", "theo@example.com", RoleEnum.teacher)


@pytest.fixture
def admin(db):
    return insert_user(db, "Ada Admin", "ada@example.com", RoleEnum.admin)


@pytest.fixture
def client(db):
    from fastapi.testclient import TestClient
    from main import app

    app.dependency_overrides[get_database] = lambda: db
    try:
        yield TestClient(app, raise_server_exceptions=False)
    finally:
        app.dependency_overrides.clear()


def sample_course_payload(**overrides) -> dict:
    payload = {
        "title": "Python Basics",
        "description": "Learn Python from scratch",
        "category": "Development",
        "price": 20,
        "sections": [
            {
                "title": "Getting started",
                "lessons": [
                    {"title": "Install", "duration": 10},
                    {"title": "Hello world", "duration": 15},
                ],
            },
            {
                "title": "Core language",
                "lessons": [
                    {"title": "Variables", "duration": 20},
                    {"title": "Functions", "duration": 25, "type": "article"},
                ],
            },
        ],
    }
    payload.update(overrides)
    return payload


def sample_quiz_payload(**overrides) -> dict:
    payload = {
        "title": "Python quiz",
        "description": "Check the basics",
        "isPublished": True,
        "questions": [
            {"text": "Q1", "options": ["A", "B"], "correctAnswer": "A", "explanation": "A is right"},
            {"text": "Q2", "options": ["A", "B"], "correctAnswer": "B"},
        ],
    }
    payload.update(overrides)
    return payload
