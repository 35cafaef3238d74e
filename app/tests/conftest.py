# tests/conftest.py
import json
import uuid
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest

import app.config.settings as settings_mod


@pytest.fixture(autouse=True)
def patch_settings(monkeypatch):
    """
    Keep tests independent of the developer's .env.
    Tests can override individual attributes as needed.
    """
    s = settings_mod.settings
    monkeypatch.setattr(s, "openai_api_key", None, raising=False)
    monkeypatch.setattr(s, "openai_model", "gpt-test", raising=False)
    monkeypatch.setattr(s, "openai_vision_model", "gpt-test-vision", raising=False)
    monkeypatch.setattr(s, "google_application_credentials", None, raising=False)
    monkeypatch.setattr(s, "realtime_enabled", False, raising=False)
    monkeypatch.setattr(s, "default_expiry_days", 7, raising=False)
    return monkeypatch


# --- Fake Supabase client (PostgREST-style builder over in-memory tables) ---
_TIMESTAMP_DEFAULTS = {
    "inventory_items": "added_at",
    "consumption_logs": "created_at",
    "cooking_sessions": "created_at",
    "cooking_session_items": "created_at",
    "meal_plan": "created_at",
}


class FakeQuery:

    def __init__(self, store, table):
        self._store = store
        self._table = table
        self._op = None
        self._payload = None
        self._filters = []
        self._ranges = []
        self._order = None
        self._limit = None

    # builders
    def select(self, *columns):
        self._op = "select"
        return self

    def insert(self, rows):
        self._op = "insert"
        self._payload = rows
        return self

    def update(self, data):
        self._op = "update"
        self._payload = data
        return self

    def delete(self):
        self._op = "delete"
        return self

    def eq(self, column, value):
        self._filters.append((column, value))
        return self

    def gte(self, column, value):
        self._ranges.append((column, ">=", value))
        return self

    def lte(self, column, value):
        self._ranges.append((column, "<=", value))
        return self

    def order(self, column, desc=False):
        self._order = (column, desc)
        return self

    def limit(self, n):
        self._limit = n
        return self

    def _in_range(self, row, column, op, value):
        current = row.get(column)
        if current is None:
            return False
        return str(current) >= str(value) if op == ">=" else str(current) <= str(value)

    def _matches(self, row):
        return all(str(row.get(col)) == str(val) for col, val in self._filters) and all(
            self._in_range(row, col, op, val) for col, op, val in self._ranges
        )

    def execute(self):
        self._store.journal.append(
            {
                "table": self._table,
                "op": self._op,
                "payload": self._payload,
                "filters": list(self._filters),
            }
        )
        failure = self._store.failures.get((self._table, self._op))
        if failure is not None:
            message, remaining_ok = failure
            if remaining_ok > 0:
                self._store.failures[(self._table, self._op)] = (message, remaining_ok - 1)
            else:
                raise Exception(message)

        rows = self._store.tables.setdefault(self._table, [])
        if self._op == "insert":
            new_rows = self._payload if isinstance(self._payload, list) else [self._payload]
            created = []
            for raw in new_rows:
                row = dict(raw)
                row.setdefault("id", str(uuid.uuid4()))
                ts_column = _TIMESTAMP_DEFAULTS.get(self._table)
                if ts_column:
                    row.setdefault(ts_column, self._store.next_timestamp())
                rows.append(row)
                created.append(dict(row))
            return SimpleNamespace(data=created, error=None, status_code=201)

        if self._op == "update":
            updated = []
            for row in rows:
                if self._matches(row):
                    row.update(self._payload)
                    updated.append(dict(row))
            return SimpleNamespace(data=updated, error=None, status_code=200)

        if self._op == "delete":
            removed = [dict(r) for r in rows if self._matches(r)]
            self._store.tables[self._table] = [r for r in rows if not self._matches(r)]
            return SimpleNamespace(data=removed, error=None, status_code=200)

        selected = [dict(r) for r in rows if self._matches(r)]
        if self._order:
            column, desc = self._order
            selected.sort(key=lambda r: str(r.get(column) or ""), reverse=desc)
        if self._limit is not None:
            selected = selected[: self._limit]
        return SimpleNamespace(data=selected, error=None, status_code=200)


class FakeAuth:

    def __init__(self):
        self.tokens = {}

    def get_user(self, token):
        if token not in self.tokens:
            raise Exception("invalid JWT")
        return SimpleNamespace(user=SimpleNamespace(id=self.tokens[token]))


class FakeSupabase:

    def __init__(self):
        self.tables = {}
        self.failures = {}
        self.journal = []
        self.auth = FakeAuth()
        self._clock = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)

    def next_timestamp(self):
        # strictly increasing so "newest first" ordering is deterministic
        self._clock += timedelta(seconds=1)
        return self._clock.isoformat()

    def table(self, name):
        return FakeQuery(self, name)

    def seed(self, table, **row):
        row.setdefault("id", str(uuid.uuid4()))
        ts_column = _TIMESTAMP_DEFAULTS.get(table)
        if ts_column:
            row.setdefault(ts_column, self.next_timestamp())
        self.tables.setdefault(table, []).append(row)
        return row["id"]

    def fail(self, table, op, message="boom", after=0):
        # the first `after` calls still succeed
        self.failures[(table, op)] = (message, after)

    def recover(self, table, op):
        self.failures.pop((table, op), None)

    def ops(self, table=None):
        return [(e["table"], e["op"]) for e in self.journal if table is None or e["table"] == table]

    def writes(self):
        return [(e["table"], e["op"]) for e in self.journal if e["op"] != "select"]

    def rows(self, table):
        return list(self.tables.get(table, []))


@pytest.fixture
def fake_supabase():
    return FakeSupabase()


@pytest.fixture
def fake_supabase_client(monkeypatch, fake_supabase):
    fake = SimpleNamespace(client=fake_supabase, health_check=lambda: True)
    monkeypatch.setattr("app.config.supabase.supabase_client", fake)
    return fake


# --- Fake change feed ---
class FakeChangeFeed:

    def __init__(self):
        self.watchers = {}
        self.closed = False

    async def watch(self, table, owner_id, on_change):
        handle = (table, owner_id)
        self.watchers[handle] = on_change
        return handle

    async def unwatch(self, handle):
        self.watchers.pop(handle, None)

    async def close(self):
        self.closed = True

    async def emit(self, table, owner_id):
        await self.watchers[(table, owner_id)]()


@pytest.fixture
def change_feed():
    return FakeChangeFeed()


# --- Fake OpenAI client (SDK shape: .chat.completions.create -> .choices[0].message.content) ---
class FakeOpenAI:

    def __init__(self, content=None, error=None):
        self.content = content
        self.error = error
        self.calls = []
        self.chat = SimpleNamespace(completions=SimpleNamespace(create=self._create))

    def reply_json(self, payload):
        self.content = json.dumps(payload)

    def _create(self, **kwargs):
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        return SimpleNamespace(
            choices=[SimpleNamespace(message=SimpleNamespace(content=self.content))]
        )


@pytest.fixture
def fake_openai():
    return FakeOpenAI()


# --- Fake Google Vision client ---
class FakeLabel:

    def __init__(self, desc, score):
        self.description = desc
        self.score = score


class FakeVisionClient:

    def __init__(self, text="ICA MAXI\nMJOLK 1L 15,00", labels=None, error=None):
        self.text = text
        self.labels = labels if labels is not None else [("Receipt", 0.95), ("Font", 0.4)]
        self.error = error

    def document_text_detection(self, image=None):
        if self.error is not None:
            raise self.error
        return SimpleNamespace(full_text_annotation=SimpleNamespace(text=self.text))

    def label_detection(self, image=None):
        return SimpleNamespace(
            label_annotations=[FakeLabel(desc, score) for desc, score in self.labels]
        )


@pytest.fixture
def fake_vision():
    return FakeVisionClient()
