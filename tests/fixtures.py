"""
In-memory stand-ins for the Supabase query builder and for requests
responses. Only the builder calls the app actually makes are modelled.
"""
from __future__ import annotations

import itertools
from types import SimpleNamespace

import httpx
from postgrest.exceptions import APIError
from requests.structures import CaseInsensitiveDict


def _cols(columns: str):
    cols = [c.strip() for c in columns.split(",") if c.strip()]
    return None if cols in ([], ["*"]) else cols


def _match_or(row, expr: str) -> bool:
    for part in expr.split(","):
        col, op, val = part.split(".", 2)
        if op == "eq" and str(row.get(col)) == val:
            return True
        if op == "ilike" and str(row.get(col) or "").lower() == val.lower():
            return True
    return False


class FakeQuery:
    def __init__(self, store: "FakeSupabase", table: str):
        self.store = store
        self.table = table
        self.op = "select"
        self.columns = None
        self.payload = None
        self.filters = []
        self.order_by = None
        self.desc = False
        self.max_rows = None

    # --- builder ---
    def select(self, columns="*"):
        self.columns = _cols(columns)
        return self

    def insert(self, row):
        self.op, self.payload = "insert", dict(row)
        return self

    def update(self, values):
        self.op, self.payload = "update", dict(values)
        return self

    def delete(self):
        self.op = "delete"
        return self

    def eq(self, col, val):
        self.filters.append(lambda r: r.get(col) == val)
        return self

    def ilike(self, col, val):
        self.filters.append(lambda r: str(r.get(col) or "").lower() == str(val).lower())
        return self

    def is_(self, col, val):
        assert val == "null"
        self.filters.append(lambda r: r.get(col) is None)
        return self

    def or_(self, expr):
        self.filters.append(lambda r: _match_or(r, expr))
        return self

    def order(self, col, desc=False):
        self.order_by, self.desc = col, desc
        return self

    def limit(self, n):
        self.max_rows = n
        return self

    # --- execution ---
    def _matching(self):
        rows = self.store.tables.setdefault(self.table, [])
        return [r for r in rows if all(f(r) for f in self.filters)]

    def _project(self, row):
        if self.columns is None:
            return dict(row)
        return {c: row.get(c) for c in self.columns}

    def execute(self):
        self.store.calls.append((self.table, self.op))
        if self.table in self.store.failing:
            raise APIError({"message": f"{self.table} unavailable", "code": "500"})
        if self.table in self.store.unreachable:
            raise httpx.ConnectError(f"{self.table} unreachable")

        if self.op == "insert":
            row = {"id": self.store.next_id(self.table), "created_at": "2026-01-01T00:00:00Z", **self.payload}
            self.store.tables.setdefault(self.table, []).append(row)
            return SimpleNamespace(data=[dict(row)])

        if self.op == "update":
            hit = self._matching()
            for r in hit:
                r.update(self.payload)
            return SimpleNamespace(data=[dict(r) for r in hit])

        if self.op == "delete":
            hit = self._matching()
            self.store.tables[self.table] = [r for r in self.store.tables[self.table] if r not in hit]
            return SimpleNamespace(data=hit)

        rows = self._matching()
        if self.order_by:
            present = [r for r in rows if r.get(self.order_by) is not None]
            missing = [r for r in rows if r.get(self.order_by) is None]
            present.sort(key=lambda r: r[self.order_by], reverse=self.desc)
            # Postgres default: NULLS FIRST on DESC, NULLS LAST on ASC
            rows = missing + present if self.desc else present + missing
        if self.max_rows is not None:
            rows = rows[: self.max_rows]
        return SimpleNamespace(data=[self._project(r) for r in rows])


class FakeSupabase:
    def __init__(self):
        self.tables = {}
        self.calls = []
        self.failing = set()
        self.unreachable = set()
        self._ids = itertools.count(1)

    def next_id(self, table):
        return f"{table}-{next(self._ids)}"

    def table(self, name):
        return FakeQuery(self, name)

    def seed(self, table, *rows):
        self.tables.setdefault(table, []).extend(dict(r) for r in rows)


class DummyResp:
    def __init__(self, status_code=200, payload=None, content=None, headers=None):
        self.status_code = status_code
        self._payload = payload if payload is not None else {}
        if content is None:
            import json
            content = json.dumps(self._payload).encode("utf-8")
        self.content = content
        self.text = content.decode("utf-8", errors="replace")
        self.headers = CaseInsensitiveDict(headers or {"Content-Type": "application/json"})

    def json(self):
        return self._payload
