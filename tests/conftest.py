import os

os.environ.setdefault("SUPABASE_URL", "https://example.supabase.co")
os.environ.setdefault("SUPABASE_KEY", "anon-key")
os.environ.setdefault("SUPABASE_SERVICE_ROLE_KEY", "service-key")
os.environ.setdefault("RATE_LIMIT", "10000/minute")
os.environ.setdefault("ENVIRONMENT", "test")

import copy
import itertools
import re
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient
from postgrest.exceptions import APIError

from app.main import app
from app.core.realtime import get_broadcaster
from app.database.supabase_client import get_anon_supabase, get_supabase

ADMIN_ID = "00000000-0000-0000-0000-0000000000a1"
TECH_ID = "00000000-0000-0000-0000-0000000000b1"
REQUESTER_ID = "00000000-0000-0000-0000-0000000000c1"
INACTIVE_TECH_ID = "00000000-0000-0000-0000-0000000000d1"

TOKENS = {
    "admin-token": ADMIN_ID,
    "tech-token": TECH_ID,
    "requester-token": REQUESTER_ID,
    "inactive-token": INACTIVE_TECH_ID,
}

VIEWS = {
    "incidents_with_times": "incidents",
    "requirements_with_times": "requirements",
    "profiles_with_roles": "profiles",
    "activities_with_users": "activities",
}

BASE_TIME = datetime(2026, 1, 1, tzinfo=timezone.utc)


def store_error(code, message="store error"):
    return APIError({"code": code, "message": message, "details": None, "hint": None})


class FakeResponse:
    def __init__(self, data, count=None):
        self.data = data
        self.count = count


def _matches(row_value, value):
    if row_value is None or value is None:
        return row_value is value
    return str(row_value) == str(value)


class FakeQuery:
    def __init__(self, store, table):
        self.store = store
        self.table = table
        self._filters = []
        self._columns = "*"
        self._count = None
        self._head = False
        self._orders = []
        self._range = None
        self._limit = None
        self._single = False
        self._action = "select"
        self._payload = None

    # builders

    def select(self, columns="*", count=None, head=False):
        self._columns = columns
        self._count = count
        self._head = head
        return self

    def insert(self, payload):
        self._action = "insert"
        self._payload = payload
        return self

    def update(self, payload):
        self._action = "update"
        self._payload = payload
        return self

    def delete(self):
        self._action = "delete"
        return self

    def eq(self, column, value):
        self._filters.append(lambda r: _matches(r.get(column), value))
        return self

    def gte(self, column, value):
        self._filters.append(lambda r: r.get(column) is not None and str(r.get(column)) >= str(value))
        return self

    def lte(self, column, value):
        self._filters.append(lambda r: r.get(column) is not None and str(r.get(column)) <= str(value))
        return self

    def lt(self, column, value):
        self._filters.append(lambda r: r.get(column) is not None and str(r.get(column)) < str(value))
        return self

    def in_(self, column, values):
        wanted = {str(v) for v in values}
        self._filters.append(lambda r: str(r.get(column)) in wanted)
        return self

    def or_(self, expression):
        clauses = []
        for clause in expression.split(","):
            column, op, pattern = clause.split(".", 2)
            assert op == "ilike"
            term = re.sub(r"\\([%_])", r"\1", pattern[1:-1])
            clauses.append((column, term.lower()))
        self.store.or_expressions.append(expression)
        self._filters.append(
            lambda r: any(term in str(r.get(column) or "").lower() for column, term in clauses)
        )
        return self

    def order(self, column, desc=False):
        self._orders.append((column, desc))
        return self

    def range(self, start, end):
        self._range = (start, end)
        return self

    def limit(self, count):
        self._limit = count
        return self

    def maybe_single(self):
        self._single = True
        return self

    # execution

    def _project(self, rows):
        if self._columns.strip() == "*":
            return [dict(r) for r in rows]
        columns = [c.strip() for c in self._columns.split(",")]
        return [{c: r.get(c) for c in columns} for r in rows]

    def _matching(self):
        return [r for r in self.store.rows(self.table) if all(f(r) for f in self._filters)]

    def execute(self):
        self.store.check_failure(self.table, self._action)
        if self._action == "insert":
            return FakeResponse(self.store.insert(self.table, self._payload))
        if self._action == "update":
            rows = self._matching()
            for row in rows:
                row.update(copy.deepcopy(self._payload))
            return FakeResponse([dict(r) for r in rows])
        if self._action == "delete":
            rows = self._matching()
            self.store.remove(self.table, rows)
            return FakeResponse([dict(r) for r in rows])

        rows = self._matching()
        for column, desc in reversed(self._orders):
            rows = sorted(rows, key=lambda r: (r.get(column) is None, r.get(column)), reverse=desc)
        count = len(rows) if self._count else None
        if self._range is not None:
            start, end = self._range
            rows = rows[start:end + 1]
        elif self._limit is not None:
            rows = rows[:self._limit]
        data = [] if self._head else self._project(rows)
        if self._single:
            if not data:
                return None
            return FakeResponse(data[0])
        return FakeResponse(data, count)


class FakeRpc:
    def __init__(self, store, name, params):
        self.store = store
        self.name = name
        self.params = params

    def execute(self):
        self.store.check_failure("rpc", self.name)
        self.store.rpc_calls.append((self.name, self.params))
        if self.name == "log_activity":
            self.store.insert("activities", {
                "action": self.params.get("p_action"),
                "type": self.params.get("p_type"),
                "title": self.params.get("p_title"),
                "description": self.params.get("p_description"),
                "user_id": self.params.get("p_user_id"),
                "item_id": self.params.get("p_item_id"),
                "timestamp": (BASE_TIME + timedelta(seconds=next(self.store._clock))).isoformat(),
            })
        return FakeResponse(None)


class FakeBucket:
    def __init__(self, store, bucket):
        self.store = store
        self.bucket = bucket

    def upload(self, path, content, file_options=None):
        self.store.check_failure("storage", "upload")
        self.store.objects[(self.bucket, path)] = (content, file_options or {})
        return SimpleNamespace(path=path)

    def get_public_url(self, path):
        return f"https://example.supabase.co/storage/v1/object/public/{self.bucket}/{path}"

    def remove(self, paths):
        for path in paths:
            self.store.objects.pop((self.bucket, path), None)


class FakeStorage:
    def __init__(self, store):
        self.store = store

    def from_(self, bucket):
        return FakeBucket(self.store, bucket)


class FakeAdmin:
    def __init__(self, store):
        self.store = store
        self._ids = itertools.count(1)

    def create_user(self, attributes):
        self.store.check_failure("auth", "create_user")
        user_id = f"00000000-0000-0000-0000-{next(self._ids):012d}"
        self.store.auth_users[user_id] = dict(attributes)
        # Sign-up trigger creates the bare profile row
        self.store.insert("profiles", {
            "id": user_id,
            "email": attributes["email"],
            "name": attributes.get("user_metadata", {}).get("name"),
        })
        return SimpleNamespace(user=SimpleNamespace(id=user_id, email=attributes["email"]))

    def update_user_by_id(self, user_id, attributes):
        self.store.check_failure("auth", "update_user_by_id")
        self.store.auth_users.setdefault(user_id, {}).update(attributes)
        return SimpleNamespace(user=SimpleNamespace(id=user_id))

    def delete_user(self, user_id):
        self.store.check_failure("auth", "delete_user")
        self.store.deleted_auth_users.append(user_id)
        self.store.auth_users.pop(user_id, None)


class FakeAuth:
    def __init__(self, store):
        self.store = store
        self.admin = FakeAdmin(store)

    def get_user(self, token):
        user_id = TOKENS.get(token)
        if user_id is None:
            raise Exception("invalid JWT")
        profile = next((p for p in self.store.rows("profiles") if p["id"] == user_id), {})
        return SimpleNamespace(user=SimpleNamespace(id=user_id, email=profile.get("email")))

    def sign_in_with_password(self, credentials):
        if credentials.get("password") != "correct-password":
            raise Exception("Invalid login credentials")
        profile = next(p for p in self.store.rows("profiles") if p["email"] == credentials["email"])
        return SimpleNamespace(
            user=SimpleNamespace(id=profile["id"], email=profile["email"]),
            session=SimpleNamespace(access_token="session-token"),
        )


class FakeSupabase:
    """In-memory stand-in for the supabase Client: tables, views, rpc, storage and auth."""

    def __init__(self):
        self.tables = {}
        self.failures = {}
        self.rpc_calls = []
        self.or_expressions = []
        self.objects = {}
        self.auth_users = {}
        self.deleted_auth_users = []
        self._ids = itertools.count(1)
        self._clock = itertools.count(1)
        self.storage = FakeStorage(self)
        self.auth = FakeAuth(self)

    def table(self, name):
        return FakeQuery(self, VIEWS.get(name, name))

    def rpc(self, name, params):
        return FakeRpc(self, name, params)

    def rows(self, table):
        return self.tables.setdefault(table, [])

    def seed(self, table, *rows):
        for row in rows:
            self.rows(table).append(dict(row))

    def insert(self, table, payload):
        inserted = []
        for values in payload if isinstance(payload, list) else [payload]:
            row = copy.deepcopy(values)
            row.setdefault("id", f"{table}-{next(self._ids)}")
            row.setdefault("created_at", (BASE_TIME + timedelta(seconds=next(self._clock))).isoformat())
            self.rows(table).append(row)
            inserted.append(dict(row))
        return inserted

    def remove(self, table, rows):
        ids = {id(r) for r in rows}
        self.tables[table] = [r for r in self.rows(table) if id(r) not in ids]

    def fail(self, table, action, error):
        """Make the next `action` on `table` raise `error`."""
        self.failures[(table, action)] = error

    def check_failure(self, table, action):
        error = self.failures.pop((table, action), None)
        if error is not None:
            raise error

    def find(self, table, row_id):
        return next((r for r in self.rows(table) if str(r.get("id")) == str(row_id)), None)


class RecordingBroadcaster:
    def __init__(self):
        self.sent = []
        self.fail = False

    def send(self, channel, event, payload):
        if self.fail:
            raise RuntimeError("realtime unavailable")
        self.sent.append((channel, event, payload))

    def events(self):
        return [event for _, event, _ in self.sent]


def seed_reference_data(store):
    store.seed(
        "departments",
        {"id": 3, "name": "Operations", "short_name": "OPS", "is_active": True},
        {"id": 5, "name": "Finance", "short_name": "FIN", "is_active": True},
        {"id": 9, "name": "Archive", "short_name": "ARC", "is_active": False},
    )
    store.seed(
        "roles",
        {"id": 1, "name": "admin", "description": "Administrator", "is_active": True},
        {"id": 2, "name": "technician", "description": "Technician", "is_active": True},
        {"id": 3, "name": "requester", "description": "Requester", "is_active": True},
    )
    store.seed(
        "profiles",
        {"id": ADMIN_ID, "email": "ada@example.com", "name": "Ada Admin", "is_active": True,
         "role_id": 1, "role_name": "admin", "department_id": 3,
         "department_name": "Operations", "department_short_name": "OPS",
         "created_at": "2025-01-01T00:00:00+00:00"},
        {"id": TECH_ID, "email": "tom@example.com", "name": "Tom Tech", "is_active": True,
         "role_id": 2, "role_name": "technician", "department_id": 3,
         "department_name": "Operations", "department_short_name": "OPS",
         "created_at": "2025-01-02T00:00:00+00:00"},
        {"id": REQUESTER_ID, "email": "rita@example.com", "name": "Rita Requester", "is_active": True,
         "role_id": 3, "role_name": "requester", "department_id": 5,
         "department_name": "Finance", "department_short_name": "FIN",
         "created_at": "2025-01-03T00:00:00+00:00"},
        {"id": INACTIVE_TECH_ID, "email": "ivan@example.com", "name": "Ivan Idle", "is_active": False,
         "role_id": 2, "role_name": "technician", "department_id": 5,
         "department_name": "Finance", "department_short_name": "FIN",
         "created_at": "2025-01-04T00:00:00+00:00"},
    )


@pytest.fixture
def store():
    fake = FakeSupabase()
    seed_reference_data(fake)
    return fake


@pytest.fixture
def broadcaster():
    return RecordingBroadcaster()


@pytest.fixture
def client(store, broadcaster):
    app.dependency_overrides[get_supabase] = lambda: store
    app.dependency_overrides[get_anon_supabase] = lambda: store
    app.dependency_overrides[get_broadcaster] = lambda: broadcaster
    yield TestClient(app)
    app.dependency_overrides.clear()


def auth(token):
    return {"Authorization": f"Bearer {token}"}


ADMIN = auth("admin-token")
TECH = auth("tech-token")
REQUESTER = auth("requester-token")
INACTIVE = auth("inactive-token")
