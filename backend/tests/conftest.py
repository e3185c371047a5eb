import itertools
from typing import Any, Dict, List, Optional

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport

from main import app
from haulquote.utils.auth import get_current_user, get_optional_user

TEST_USER = {"id": "user-1", "email": "ops@example.com", "access_token": "test-token"}


class FakeResponse:
    def __init__(self, data: List[Dict[str, Any]]):
        self.data = data


class FakeQuery:
    """Just enough of the postgrest query builder for the store functions."""

    def __init__(self, db: "FakeSupabase", table: str):
        self.db = db
        self.table = table
        self.operation = "select"
        self.payload: Any = None
        self.filters: List[tuple] = []
        self.order_by: Optional[tuple] = None
        self.limit_to: Optional[int] = None

    def select(self, *columns):
        self.operation = "select"
        return self

    def insert(self, payload):
        self.operation = "insert"
        self.payload = payload
        return self

    def update(self, payload):
        self.operation = "update"
        self.payload = payload
        return self

    def eq(self, column, value):
        self.filters.append((column, value))
        return self

    def order(self, column, desc=False):
        self.order_by = (column, desc)
        return self

    def limit(self, count):
        self.limit_to = count
        return self

    def _matches(self, row):
        return all(row.get(column) == value for column, value in self.filters)

    def execute(self):
        self.db.calls.append((self.table, self.operation, self.payload))

        if self.table in self.db.fail_tables and self.operation in ("insert", "update"):
            raise RuntimeError(f"insert into {self.table} failed")

        rows = self.db.tables.setdefault(self.table, [])

        if self.operation == "insert":
            payload = self.payload if isinstance(self.payload, list) else [self.payload]
            inserted = []
            for item in payload:
                row = {"id": f"{self.table}-{next(self.db.ids)}", "created_at": f"2026-01-01T00:00:{next(self.db.ticks):02d}", **item}
                rows.append(row)
                inserted.append(row)
            return FakeResponse(inserted)

        matched = [row for row in rows if self._matches(row)]

        if self.operation == "update":
            for row in matched:
                row.update(self.payload)
            return FakeResponse(matched)

        if self.order_by:
            column, desc = self.order_by
            matched = sorted(matched, key=lambda row: row.get(column) or "", reverse=desc)
        if self.limit_to is not None:
            matched = matched[:self.limit_to]
        return FakeResponse(matched)


class FakeSupabase:
    def __init__(self):
        self.tables: Dict[str, List[Dict[str, Any]]] = {}
        self.calls: List[tuple] = []
        self.fail_tables: set = set()
        self.ids = itertools.count(1)
        self.ticks = itertools.count(1)

    def table(self, name):
        return FakeQuery(self, name)


@pytest.fixture
def fake_supabase():
    return FakeSupabase()


@pytest.fixture(autouse=True)
def no_mapbox_token(monkeypatch):
    monkeypatch.delenv("MAPBOX_ACCESS_TOKEN", raising=False)


@pytest_asyncio.fixture
async def client():
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def authenticated_client(client, fake_supabase, monkeypatch):
    """Client whose requests run as TEST_USER against an in-memory Supabase."""
    async def override_user():
        return TEST_USER

    app.dependency_overrides[get_current_user] = override_user
    app.dependency_overrides[get_optional_user] = override_user

    for module in ("verification", "pricing_configurations", "quotes"):
        monkeypatch.setattr(
            f"haulquote.routers.{module}.get_supabase_client",
            lambda access_token=None: fake_supabase,
        )

    yield client
