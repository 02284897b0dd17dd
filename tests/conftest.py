"""
Configurazione pytest e fixture per i test del backend

FakeSupabase riproduce, su tabelle in memoria, la parte del query builder
di supabase-py usata dai servizi.
"""

import pytest
import sys
import uuid
from pathlib import Path
from types import SimpleNamespace
from typing import Any, Dict, List, Optional

from postgrest.exceptions import APIError

# Directory padre nel path per gli import
sys.path.insert(0, str(Path(__file__).parent.parent))


ADMIN_TOKEN = "admin-token"
COACH_TOKEN = "coach-token"
ATHLETE_TOKEN = "athlete-token"
ADMIN_ID = "admin-1"
COACH_ID = "coach-1"
ATHLETE_ID = "athlete-1"


# =============================================
# Supabase in memoria
# =============================================

class FakeResponse:
    def __init__(self, data: List[Dict[str, Any]], count: Optional[int] = None):
        self.data = data
        self.count = count


class FakeQuery:
    """Query concatenabile; nulla succede prima di execute()"""

    def __init__(self, db: "FakeSupabase", table: str):
        self.db = db
        self.table_name = table
        self.op = "select"
        self.payload: Any = None
        self.on_conflict: Optional[str] = None
        self.count_mode: Optional[str] = None
        self.filters = []
        self.orders = []
        self.limit_value: Optional[int] = None
        self.range_value = None

    # ---- operazioni ----

    def select(self, columns: str = "*", count: Optional[str] = None):
        self.op = "select"
        self.count_mode = count
        return self

    def insert(self, rows):
        self.op = "insert"
        self.payload = rows
        return self

    def upsert(self, rows, on_conflict: str = ""):
        self.op = "upsert"
        self.payload = rows
        self.on_conflict = on_conflict
        return self

    def update(self, data: Dict[str, Any]):
        self.op = "update"
        self.payload = data
        return self

    def delete(self):
        self.op = "delete"
        return self

    # ---- filtri ----

    def _add(self, fn):
        self.filters.append(fn)
        return self

    def eq(self, column, value):
        return self._add(lambda r: r.get(column) == value)

    def neq(self, column, value):
        return self._add(lambda r: r.get(column) is not None and r.get(column) != value)

    def gt(self, column, value):
        return self._add(lambda r: r.get(column) is not None and str(r[column]) > str(value))

    def gte(self, column, value):
        return self._add(lambda r: r.get(column) is not None and str(r[column]) >= str(value))

    def lt(self, column, value):
        return self._add(lambda r: r.get(column) is not None and str(r[column]) < str(value))

    def lte(self, column, value):
        return self._add(lambda r: r.get(column) is not None and str(r[column]) <= str(value))

    def in_(self, column, values):
        allowed = list(values)
        return self._add(lambda r: r.get(column) in allowed)

    def or_(self, expression: str):
        """Solo termini `col.eq.value`"""
        terms = []
        for term in expression.split(","):
            column, _, value = term.split(".", 2)
            terms.append((column, value))
        return self._add(lambda r: any(str(r.get(c)) == v for c, v in terms))

    def order(self, column, desc: bool = False, nullsfirst: bool = False):
        self.orders.append((column, desc, nullsfirst))
        return self

    def limit(self, n: int):
        self.limit_value = n
        return self

    def range(self, start: int, end: int):
        self.range_value = (start, end)
        return self

    # ---- esecuzione ----

    def _matches(self, row) -> bool:
        return all(f(row) for f in self.filters)

    def execute(self) -> FakeResponse:
        self.db.calls.append((self.table_name, self.op))
        failure = self.db.failures.get((self.table_name, self.op))
        if failure:
            raise APIError(failure)

        rows = self.db.tables.setdefault(self.table_name, [])

        if self.op == "select":
            result = [dict(r) for r in rows if self._matches(r)]
            for column, desc, nullsfirst in reversed(self.orders):
                result.sort(
                    key=lambda r: ((r.get(column) is None) != nullsfirst, str(r.get(column))),
                    reverse=desc
                )
            count = len(result) if self.count_mode else None
            if self.range_value:
                start, end = self.range_value
                result = result[start:end + 1]
            if self.limit_value is not None:
                result = result[:self.limit_value]
            return FakeResponse(result, count)

        if self.op == "insert":
            items = self.payload if isinstance(self.payload, list) else [self.payload]
            inserted = [self.db._new_row(self.table_name, item) for item in items]
            self.db.writes.append((self.table_name, "insert", inserted))
            return FakeResponse([dict(r) for r in inserted])

        if self.op == "upsert":
            items = self.payload if isinstance(self.payload, list) else [self.payload]
            keys = [k.strip() for k in (self.on_conflict or "id").split(",")]
            written = []
            for item in items:
                existing = next(
                    (r for r in rows if all(r.get(k) == item.get(k) for k in keys)),
                    None
                )
                if existing is not None:
                    existing.update(item)
                    written.append(existing)
                else:
                    written.append(self.db._new_row(self.table_name, item))
            self.db.writes.append((self.table_name, "upsert", written))
            return FakeResponse([dict(r) for r in written])

        if self.op == "update":
            updated = []
            for r in rows:
                if self._matches(r):
                    r.update(self.payload)
                    updated.append(dict(r))
            self.db.writes.append((self.table_name, "update", updated))
            return FakeResponse(updated)

        if self.op == "delete":
            deleted = [r for r in rows if self._matches(r)]
            self.db.tables[self.table_name] = [r for r in rows if not self._matches(r)]
            self.db.writes.append((self.table_name, "delete", deleted))
            return FakeResponse([dict(r) for r in deleted])

        raise AssertionError(f"unknown op {self.op}")


class FakeAuth:
    def __init__(self):
        self.users: Dict[str, SimpleNamespace] = {}

    def get_user(self, token: str):
        user = self.users.get(token)
        if user is None:
            raise RuntimeError("invalid JWT")
        return SimpleNamespace(user=user)


class FakeSupabase:
    """Sostituto di supabase.Client"""

    def __init__(self):
        self.tables: Dict[str, List[Dict[str, Any]]] = {}
        self.writes = []
        self.calls = []
        self.failures: Dict[tuple, Dict[str, str]] = {}
        self.auth = FakeAuth()

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(self, name)

    def _new_row(self, table: str, item: Dict[str, Any]) -> Dict[str, Any]:
        row = dict(item)
        row.setdefault("id", str(uuid.uuid4()))
        row.setdefault("created_at", f"2024-01-01T00:00:{len(self.tables.get(table, [])):02d}")
        self.tables.setdefault(table, []).append(row)
        return row

    def seed(self, table: str, rows: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        return [self._new_row(table, r) for r in rows]

    def rows(self, table: str) -> List[Dict[str, Any]]:
        return self.tables.get(table, [])

    def fail(self, table: str, op: str, message: str = "boom", code: str = "XX000"):
        self.failures[(table, op)] = {
            "message": message,
            "code": code,
            "details": "fake details",
            "hint": "fake hint",
        }

    def add_user(self, token: str, user_id: str, role: Optional[str], email: str = None):
        self.auth.users[token] = SimpleNamespace(
            id=user_id,
            email=email or f"{user_id}@example.com",
            user_metadata={"role": role} if role else {},
        )

    def writes_to(self, table: str) -> list:
        return [w for w in self.writes if w[0] == table]


# =============================================
# Fixture
# =============================================

@pytest.fixture
def fake_db():
    db = FakeSupabase()
    db.add_user(ADMIN_TOKEN, ADMIN_ID, "admin")
    db.add_user(COACH_TOKEN, COACH_ID, "coach")
    db.add_user(ATHLETE_TOKEN, ATHLETE_ID, "athlete")
    return db


@pytest.fixture
def app(fake_db):
    from database.supabase_client import get_admin_client, get_supabase_client
    from sportclub.server import app as server_app

    server_app.dependency_overrides[get_admin_client] = lambda: fake_db
    server_app.dependency_overrides[get_supabase_client] = lambda: fake_db
    yield server_app
    server_app.dependency_overrides.clear()


@pytest.fixture
def client(app):
    from fastapi.testclient import TestClient
    return TestClient(app, raise_server_exceptions=False)


@pytest.fixture
def admin_headers():
    return {"Authorization": f"Bearer {ADMIN_TOKEN}"}


@pytest.fixture
def coach_headers():
    return {"Authorization": f"Bearer {COACH_TOKEN}"}


@pytest.fixture
def athlete_headers():
    return {"Authorization": f"Bearer {ATHLETE_TOKEN}"}
