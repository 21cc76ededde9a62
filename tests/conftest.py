import copy
import itertools
import os
from contextlib import asynccontextmanager

import pytest
from httpx import ASGITransport, AsyncClient

# Settings are read at import time; configure the test environment first.
os.environ["DEBUG"] = "true"
os.environ["RATE_LIMIT_PER_MINUTE"] = "0"
os.environ["LOG_DIR"] = ""

from storyslides.main import app  # noqa: E402
from storyslides.dependencies.supabase import get_async_db_pool, get_supabase_client  # noqa: E402


class FakeAPIError(Exception):
    """Stands in for postgrest's APIError."""


class FakeResponse:
    def __init__(self, data, count=None):
        self.data = data
        self.count = count


class FakeQuery:
    """Just enough of the PostgREST builder for the service code."""

    def __init__(self, db, table):
        self.db = db
        self.table = table
        self.op = "select"
        self.payload = None
        self.on_conflict = None
        self.filters = []
        self.orders = []
        self.bounds = None
        self.max_rows = None

    # operations
    def select(self, columns="*", count=None):
        self.op = "select"
        return self

    def insert(self, payload):
        self.op, self.payload = "insert", payload
        return self

    def update(self, payload):
        self.op, self.payload = "update", payload
        return self

    def upsert(self, payload, on_conflict=None):
        self.op, self.payload, self.on_conflict = "upsert", payload, on_conflict
        return self

    def delete(self):
        self.op = "delete"
        return self

    # filters
    def eq(self, column, value):
        self.filters.append(lambda row: row.get(column) == value)
        return self

    def neq(self, column, value):
        self.filters.append(lambda row: row.get(column) != value)
        return self

    def lte(self, column, value):
        self.filters.append(lambda row: row.get(column) is not None and row.get(column) <= value)
        return self

    def gte(self, column, value):
        self.filters.append(lambda row: row.get(column) is not None and row.get(column) >= value)
        return self

    def in_(self, column, values):
        values = list(values)
        self.filters.append(lambda row: row.get(column) in values)
        return self

    def order(self, column, desc=False):
        self.orders.append((column, desc))
        return self

    def range(self, start, end):
        self.bounds = (start, end)
        return self

    def limit(self, size):
        self.max_rows = size
        return self

    def _matches(self, row):
        return all(f(row) for f in self.filters)

    def execute(self):
        self.db.check_failure(self.table, self.op)
        rows = self.db.tables.setdefault(self.table, [])

        if self.op == "insert":
            payload = self.payload if isinstance(self.payload, list) else [self.payload]
            inserted = [self.db.add_row(self.table, item) for item in payload]
            return FakeResponse(copy.deepcopy(inserted))

        if self.op == "upsert":
            payload = self.payload if isinstance(self.payload, list) else [self.payload]
            keys = [k.strip() for k in (self.on_conflict or "id").split(",")]
            result = []
            for item in payload:
                existing = next(
                    (r for r in rows if all(r.get(k) == item.get(k) for k in keys)), None
                )
                if existing is not None:
                    existing.update(item)
                    result.append(existing)
                else:
                    result.append(self.db.add_row(self.table, item))
            return FakeResponse(copy.deepcopy(result))

        matched = [r for r in rows if self._matches(r)]

        if self.op == "update":
            for r in matched:
                r.update(self.payload)
            return FakeResponse(copy.deepcopy(matched))

        if self.op == "delete":
            self.db.tables[self.table] = [r for r in rows if not self._matches(r)]
            return FakeResponse(copy.deepcopy(matched))

        for column, desc in reversed(self.orders):
            matched.sort(key=lambda r: (r.get(column) is None, r.get(column)), reverse=desc)
        if self.bounds is not None:
            matched = matched[self.bounds[0]:self.bounds[1] + 1]
        if self.max_rows is not None:
            matched = matched[:self.max_rows]
        return FakeResponse(copy.deepcopy(matched), count=len(matched))


class FakeRPC:
    def __init__(self, db, name, params):
        self.db, self.name, self.params = db, name, params

    def execute(self):
        self.db.check_failure("rpc", self.name)
        self.db.rpc_calls.append((self.name, dict(self.params)))
        return FakeResponse(None)


class FakeSupabase:
    """In-memory replacement for the supabase client."""

    def __init__(self):
        self.tables = {}
        self.rpc_calls = []
        self.failures = set()
        self._ids = itertools.count(1)

    def table(self, name):
        return FakeQuery(self, name)

    def rpc(self, name, params=None):
        return FakeRPC(self, name, params or {})

    def fail(self, table, op):
        """Make every ``op`` on ``table`` raise; use ("rpc", name) for procedures."""
        self.failures.add((table, op))

    def check_failure(self, table, op):
        if (table, op) in self.failures:
            raise FakeAPIError(f"{op} on {table} failed")

    def add_row(self, table, item):
        row = dict(item)
        row.setdefault("id", f"{table}-{next(self._ids)}")
        self.tables.setdefault(table, []).append(row)
        return row

    def seed(self, table, rows):
        for row in rows:
            self.add_row(table, row)

    def calls(self, name):
        return [params for call, params in self.rpc_calls if call == name]


class FakeTransaction:
    def __init__(self, conn):
        self.conn = conn
        self.snapshot = None

    async def __aenter__(self):
        self.snapshot = copy.deepcopy(self.conn.db.tables.get("slides", []))
        return self

    async def __aexit__(self, exc_type, exc, tb):
        if exc_type is not None:
            self.conn.db.tables["slides"] = self.snapshot
            self.conn.pool.rollbacks += 1
        return False


class FakeConnection:
    """Interprets the handful of slide statements the segmenter issues."""

    def __init__(self, pool):
        self.pool = pool
        self.db = pool.db

    def transaction(self):
        return FakeTransaction(self)

    async def execute(self, sql, *args):
        self.pool.statements.append((" ".join(sql.split()), args))
        if "DELETE FROM slides" in sql:
            if "delete" in self.pool.fail_on:
                raise RuntimeError("delete failed")
            chapter_id = args[0]
            self.db.tables["slides"] = [
                r for r in self.db.tables.get("slides", []) if r["chapter_id"] != chapter_id
            ]
        return "OK"

    async def executemany(self, sql, records):
        self.pool.statements.append((" ".join(sql.split()), tuple(records)))
        if "insert" in self.pool.fail_on:
            raise RuntimeError("insert failed")
        for chapter_id, order_number, content in records:
            self.db.add_row(
                "slides",
                {"chapter_id": chapter_id, "order_number": order_number, "content": content},
            )


class FakePool:
    def __init__(self, db):
        self.db = db
        self.statements = []
        self.fail_on = set()
        self.rollbacks = 0

    @asynccontextmanager
    async def acquire(self):
        yield FakeConnection(self)


@pytest.fixture
def db():
    return FakeSupabase()


@pytest.fixture
def pool(db):
    return FakePool(db)


@pytest.fixture
def api(db, pool):
    """Route the app's store dependencies to the fakes for one test."""
    app.dependency_overrides[get_supabase_client] = lambda: db
    app.dependency_overrides[get_async_db_pool] = lambda: pool
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
def client(api):
    """Un-entered client; use as ``async with client as ac``."""
    return AsyncClient(transport=ASGITransport(app=api), base_url="http://test")
