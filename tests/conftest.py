import os
import copy
import itertools
import logging
from datetime import datetime, timedelta

import pytest

# Settings are read at import time
os.environ["JWT_SECRET"] = "test-secret"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ.setdefault("ENVIRONMENT", "test")

from fastapi.testclient import TestClient  # noqa: E402

from database import supabase_client  # noqa: E402
from services.auth_service import create_jwt_token, hash_secret  # noqa: E402

logging.basicConfig(
    level=logging.DEBUG,
    format="%(asctime)s | %(levelname)-7s | %(name)s | %(message)s"
)
logger = logging.getLogger("tests")


# ---------------------------------------------------------------------------
# In-memory stand-in for the Supabase PostgREST query builder
# ---------------------------------------------------------------------------

TABLE_DEFAULTS = {
    "staff": {"is_active": True, "role": "staff", "type": "medic", "department": None, "specialization": None},
    "shifts": {"status": "open", "department": "General"},
    "shift_swaps": {"status": "pending", "to_staff_id": None},
    "notifications": {"read": False, "metadata": {}, "expires_at": None},
    "access_codes": {"is_active": True, "staff_id": None, "expires_at": None},
    "hospitals": {"department_rules": {}},
    "shift_generation_permissions": {"is_active": True},
}


class FakeResponse:
    def __init__(self, data, count=None):
        self.data = data
        self.count = count


class FakeQuery:
    def __init__(self, db, table):
        self.db = db
        self.table_name = table
        self.operation = "select"
        self.columns = "*"
        self.count_mode = None
        self.payload = None
        self.on_conflict = None
        self.filters = []
        self.ordering = []
        self.row_limit = None

    # ---- operations ----
    def select(self, columns="*", count=None):
        self.operation = "select"
        self.columns = columns
        self.count_mode = count
        return self

    def insert(self, payload):
        self.operation = "insert"
        self.payload = payload
        return self

    def upsert(self, payload, on_conflict=None):
        self.operation = "upsert"
        self.payload = payload
        self.on_conflict = on_conflict
        return self

    def update(self, payload):
        self.operation = "update"
        self.payload = payload
        return self

    def delete(self):
        self.operation = "delete"
        return self

    # ---- filters ----
    def _filter(self, column, check):
        self.filters.append((column, check))
        return self

    def eq(self, column, value):
        return self._filter(column, lambda v: v == value)

    def neq(self, column, value):
        return self._filter(column, lambda v: v != value)

    def gt(self, column, value):
        return self._filter(column, lambda v: v is not None and v > value)

    def gte(self, column, value):
        return self._filter(column, lambda v: v is not None and v >= value)

    def lt(self, column, value):
        return self._filter(column, lambda v: v is not None and v < value)

    def lte(self, column, value):
        return self._filter(column, lambda v: v is not None and v <= value)

    def in_(self, column, values):
        values = list(values)
        return self._filter(column, lambda v: v in values)

    def is_(self, column, value):
        expected = None if value in (None, "null") else value
        return self._filter(column, lambda v: v is expected or v == expected)

    def order(self, column, desc=False):
        self.ordering.append((column, desc))
        return self

    def limit(self, count):
        self.row_limit = count
        return self

    # ---- execution ----
    def _rows(self):
        return self.db.tables.setdefault(self.table_name, [])

    def _matches(self, row):
        return all(check(row.get(column)) for column, check in self.filters)

    def _project(self, row):
        if self.columns.strip() == "*":
            return copy.deepcopy(row)
        wanted = [c.strip() for c in self.columns.split(",")]
        return {c: copy.deepcopy(row.get(c)) for c in wanted}

    def execute(self):
        failure = self.db.failures.pop((self.table_name, self.operation), None)
        if failure is not None:
            raise failure

        self.db.calls.append((self.table_name, self.operation))
        handler = getattr(self, f"_execute_{self.operation}")
        return handler()

    def _execute_select(self):
        rows = [r for r in self._rows() if self._matches(r)]
        for column, desc in reversed(self.ordering):
            rows.sort(key=lambda r: (r.get(column) is None, r.get(column)), reverse=desc)
        total = len(rows)
        if self.row_limit is not None:
            rows = rows[:self.row_limit]
        return FakeResponse([self._project(r) for r in rows], total if self.count_mode else None)

    def _new_row(self, values):
        row = dict(TABLE_DEFAULTS.get(self.table_name, {}))
        row.update(copy.deepcopy(values))
        row.setdefault("id", next(self.db.ids))
        row.setdefault("created_at", self.db.now())
        self._rows().append(row)
        return row

    def _execute_insert(self):
        payload = self.payload if isinstance(self.payload, list) else [self.payload]
        return FakeResponse([copy.deepcopy(self._new_row(values)) for values in payload])

    def _execute_upsert(self):
        payload = self.payload if isinstance(self.payload, list) else [self.payload]
        keys = [k.strip() for k in (self.on_conflict or "id").split(",")]
        saved = []
        for values in payload:
            existing = next(
                (r for r in self._rows() if all(r.get(k) == values.get(k) for k in keys)),
                None
            )
            if existing is not None:
                existing.update(copy.deepcopy(values))
                saved.append(copy.deepcopy(existing))
            else:
                saved.append(copy.deepcopy(self._new_row(values)))
        return FakeResponse(saved)

    def _execute_update(self):
        updated = []
        for row in self._rows():
            if self._matches(row):
                row.update(copy.deepcopy(self.payload))
                updated.append(copy.deepcopy(row))
        return FakeResponse(updated)

    def _execute_delete(self):
        kept, deleted = [], []
        for row in self._rows():
            (deleted if self._matches(row) else kept).append(row)
        self.db.tables[self.table_name] = kept
        return FakeResponse(deleted)


class FakeSupabase:
    """Enough of supabase.Client for the services: table() and from_()"""

    def __init__(self):
        self.tables = {}
        self.ids = itertools.count(1)
        self.ticks = itertools.count()
        self.started = datetime.utcnow()
        self.failures = {}
        self.calls = []

    def now(self):
        # Strictly increasing so created_at ordering is deterministic
        return (self.started + timedelta(milliseconds=next(self.ticks))).isoformat(timespec="microseconds")

    def table(self, name):
        return FakeQuery(self, name)

    from_ = table

    def fail_next(self, table, operation, error=None):
        self.failures[(table, operation)] = error or Exception(f"{table} {operation} failed")

    def rows(self, table, **filters):
        return [r for r in self.tables.get(table, []) if all(r.get(k) == v for k, v in filters.items())]

    def add(self, table, **values):
        return FakeQuery(self, table)._new_row(values)


# ---------------------------------------------------------------------------
# Fixtures: storage, client, seeded hospital
# ---------------------------------------------------------------------------

@pytest.fixture
def db():
    fake = FakeSupabase()
    supabase_client._client = fake
    yield fake
    supabase_client._client = None


@pytest.fixture
def client(db):
    from app import app
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def hospital(db):
    return db.add("hospitals", name="Spitalul Test", city="Iași", department_rules={})


@pytest.fixture
def other_hospital(db):
    return db.add("hospitals", name="Spitalul Vecin", city="Suceava", department_rules={})


@pytest.fixture
def admin(db, hospital):
    return db.add(
        "staff", name="Admin", email="admin@test.ro", password=hash_secret("admin123"),
        role="admin", hospital_id=hospital["id"]
    )


@pytest.fixture
def manager(db, hospital):
    """Manager scoped to Urgențe"""
    return db.add(
        "staff", name="Dr. Manager", email="manager@test.ro", password=hash_secret("manager123"),
        role="manager", hospital_id=hospital["id"], department="Urgențe"
    )


@pytest.fixture
def ati_staff(db, hospital):
    return [
        db.add("staff", name=name, role="staff", hospital_id=hospital["id"], department="ATI")
        for name in ("Dr. Ana", "Dr. Bogdan", "Dr. Carmen")
    ]


@pytest.fixture
def er_staff(db, hospital):
    return [
        db.add("staff", name=name, email=f"{name.split()[-1].lower()}@test.ro", role="staff",
               hospital_id=hospital["id"], department="Urgențe")
        for name in ("Dr. Dan", "Dr. Elena")
    ]


def token_for(user, hospital_name="Spitalul Test"):
    return create_jwt_token({**user, "hospital_name": hospital_name})


def auth(user):
    """Bearer header for a staff row"""
    return {"Authorization": f"Bearer {token_for(user)}"}
