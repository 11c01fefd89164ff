"""
Pytest configuration and fixtures for WeighIn API tests.

Endpoint tests run against an in-memory stand-in for the Supabase query
builder, so no database, Redis or Celery broker is needed.
"""

import copy
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Generator, List, Optional
from unittest.mock import MagicMock, patch

import pytest
from fastapi.testclient import TestClient

from app.core import cache, database
from app.core.auth import get_current_user
from app.models.challenge import RosterUser, WeightLog
from main import app


def utc(*args: int) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


def make_log(
    user_id: str,
    weight: float,
    logged_at: datetime,
    challenge_id: Optional[str] = "c1",
    log_id: Optional[str] = None,
) -> WeightLog:
    return WeightLog(
        id=log_id or str(uuid.uuid4()),
        user_id=user_id,
        challenge_id=challenge_id,
        weight=weight,
        logged_at=logged_at,
    )


def make_user(user_id: str, email: Optional[str] = None) -> RosterUser:
    return RosterUser(id=user_id, email=email or f"{user_id}@example.com", name=user_id.upper())


class FakeResponse:
    def __init__(self, data: Any, count: Optional[int] = None):
        self.data = data
        self.count = count


class FakeQuery:
    """Chainable subset of the postgrest query builder."""

    def __init__(self, store: "FakeSupabase", table: str):
        self.store = store
        self.table_name = table
        self._op = "select"
        self._payload: Any = None
        self._filters: List[Callable[[Dict[str, Any]], bool]] = []
        self._order: Optional[tuple] = None
        self._limit: Optional[int] = None
        self._single = False

    def select(self, *args: Any, **kwargs: Any) -> "FakeQuery":
        self._op = "select"
        return self

    def insert(self, payload: Any) -> "FakeQuery":
        self._op = "insert"
        self._payload = payload
        return self

    def update(self, payload: Dict[str, Any]) -> "FakeQuery":
        self._op = "update"
        self._payload = payload
        return self

    def delete(self) -> "FakeQuery":
        self._op = "delete"
        return self

    def eq(self, column: str, value: Any) -> "FakeQuery":
        self._filters.append(lambda row: row.get(column) == value)
        return self

    def in_(self, column: str, values: List[Any]) -> "FakeQuery":
        self.store.in_calls.append((self.table_name, list(values)))
        self._filters.append(lambda row: row.get(column) in values)
        return self

    def contains(self, column: str, values: List[Any]) -> "FakeQuery":
        self._filters.append(
            lambda row: all(v in (row.get(column) or []) for v in values)
        )
        return self

    def order(self, column: str, desc: bool = False) -> "FakeQuery":
        self._order = (column, desc)
        return self

    def limit(self, count: int) -> "FakeQuery":
        self._limit = count
        return self

    def maybe_single(self) -> "FakeQuery":
        self._single = True
        return self

    def execute(self) -> Optional[FakeResponse]:
        rows = self.store.tables.setdefault(self.table_name, [])

        if self._op == "insert":
            payload = self._payload if isinstance(self._payload, list) else [self._payload]
            inserted = []
            for item in payload:
                row = copy.deepcopy(item)
                row.setdefault("id", str(uuid.uuid4()))
                rows.append(row)
                inserted.append(copy.deepcopy(row))
            return FakeResponse(inserted)

        matched = [row for row in rows if all(f(row) for f in self._filters)]

        if self._op == "update":
            for row in matched:
                row.update(copy.deepcopy(self._payload))
            return FakeResponse([copy.deepcopy(row) for row in matched])

        if self._op == "delete":
            self.store.tables[self.table_name] = [r for r in rows if r not in matched]
            return FakeResponse([copy.deepcopy(row) for row in matched])

        if self._order is not None:
            column, desc = self._order
            matched = sorted(matched, key=lambda row: row.get(column) or "", reverse=desc)
        if self._limit is not None:
            matched = matched[: self._limit]

        data = [copy.deepcopy(row) for row in matched]
        if self._single:
            # postgrest returns no response at all for an empty maybe_single
            return FakeResponse(data[0]) if data else None
        return FakeResponse(data, count=len(data))


class FakeSupabase:
    def __init__(self) -> None:
        self.tables: Dict[str, List[Dict[str, Any]]] = {}
        self.in_calls: List[tuple] = []

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(self, name)

    def seed(self, table: str, *rows: Dict[str, Any]) -> None:
        self.tables.setdefault(table, []).extend(copy.deepcopy(list(rows)))


class FakeRedis:
    def __init__(self) -> None:
        self.values: Dict[str, str] = {}
        self.ttls: Dict[str, int] = {}

    def get(self, key: str) -> Optional[str]:
        return self.values.get(key)

    def setex(self, key: str, ttl: int, value: str) -> None:
        self.values[key] = value
        self.ttls[key] = ttl

    def delete(self, key: str) -> None:
        self.values.pop(key, None)

    def ping(self) -> bool:
        return True


@pytest.fixture
def fake_supabase(monkeypatch) -> FakeSupabase:
    fake = FakeSupabase()
    monkeypatch.setattr(database, "_supabase", fake)
    return fake


@pytest.fixture
def fake_redis(monkeypatch) -> FakeRedis:
    fake = FakeRedis()
    monkeypatch.setattr(cache, "_redis_client", fake)
    return fake


@pytest.fixture(autouse=True)
def no_broker() -> Generator[MagicMock, None, None]:
    """Leaderboard refreshes are recorded instead of sent to a broker."""
    with patch(
        "app.services.tasks.leaderboard_tasks.refresh_challenge_leaderboard"
    ) as task:
        yield task


@pytest.fixture
def current_user() -> Dict[str, Any]:
    return {"id": "user-a", "email": "a@example.com", "name": "Alice"}


@pytest.fixture
def client(fake_supabase, fake_redis, current_user) -> Generator[TestClient, None, None]:
    """Test client with authentication resolved to current_user."""
    app.dependency_overrides[get_current_user] = lambda: current_user
    with TestClient(app, base_url="http://test") as c:
        yield c
    app.dependency_overrides.pop(get_current_user, None)


@pytest.fixture
def api_base() -> str:
    """Base path for API v1 endpoints."""
    return "/api/v1"


@pytest.fixture
def seed_challenge(fake_supabase) -> Callable[..., Dict[str, Any]]:
    """Insert a challenge row; dates default to a running challenge."""

    def _seed(**overrides: Any) -> Dict[str, Any]:
        now = datetime.now(timezone.utc)
        row = {
            "id": "c1",
            "name": "Spring Cut",
            "description": "Lose weight together before summer",
            "creator_id": "user-a",
            "start_date": (now - timedelta(days=5)).isoformat(),
            "end_date": (now + timedelta(days=25)).isoformat(),
            "join_by_date": (now + timedelta(days=2)).isoformat(),
            "participants": ["user-a"],
            "participant_limit": 10,
            "is_active": True,
            "is_archived": False,
            "created_at": (now - timedelta(days=6)).isoformat(),
            "updated_at": (now - timedelta(days=6)).isoformat(),
        }
        row.update(overrides)
        fake_supabase.seed("challenges", row)
        return row

    return _seed
