"""Pytest configuration: project root on sys.path plus in-memory fakes.

Nothing here talks to the network. ``FakeGateway`` stands in for the
Supabase PostgREST calls and ``FakeFeed`` for the realtime channels.
"""

import os
import sys

import pytest

# Project root = parent directory of this tests/ folder
PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))

if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from eprosys.activity import ActivityLog  # noqa: E402
from eprosys.changefeed import ChangeEvent, ChangeType, ChannelStatus  # noqa: E402
from eprosys.errors import DataStoreError  # noqa: E402
from eprosys.notifications import Notifier  # noqa: E402
from eprosys.tables import TABLES  # noqa: E402


class FakeGateway:
    """Same surface as SupabaseGateway, backed by dicts.

    ``fail`` holds operation names ("select", "insert", ...) that should raise
    DataStoreError. ``after_insert`` runs with the created row before insert
    returns, to simulate a realtime event racing the confirmation.
    ``before`` runs with (op, table) ahead of every call, failing or not, to
    simulate another session writing while a request is in flight.
    """

    def __init__(self, data=None):
        self.data = {name: [dict(r) for r in rows] for name, rows in (data or {}).items()}
        self.fail = set()
        self.calls = []
        self.after_insert = None
        self.before = None
        self._next_id = 1000

    def _check(self, op, table):
        self.calls.append((op, table))
        if self.before is not None:
            self.before(op, table)
        if op in self.fail:
            raise DataStoreError(f"falha simulada em {op} {table}")

    def _rows(self, table):
        return self.data.setdefault(table, [])

    def select(self, table, order_by, ascending=False):
        self._check("select", table)
        rows = [dict(r) for r in self._rows(table)]
        present = [r for r in rows if r.get(order_by) is not None]
        missing = [r for r in rows if r.get(order_by) is None]
        present.sort(key=lambda r: str(r[order_by]), reverse=not ascending)
        return present + missing

    def insert(self, table, record):
        self._check("insert", table)
        self._next_id += 1
        row = {"id": self._next_id, **record}
        row.setdefault("created_at", "2024-06-01T12:00:00+00:00")
        self._rows(table).append(row)
        if self.after_insert is not None:
            self.after_insert(dict(row))
        return dict(row)

    def update(self, table, row_id, changes):
        self._check("update", table)
        for row in self._rows(table):
            if row["id"] == row_id:
                row.update(changes)
                return dict(row)
        raise DataStoreError(f"{table} #{row_id} não encontrado no servidor.")

    def delete(self, table, row_id):
        self._check("delete", table)
        self.data[table] = [r for r in self._rows(table) if r["id"] != row_id]

    def delete_all(self, table):
        self._check("delete_all", table)
        self.data[table] = []

    def count(self, table):
        self._check("count", table)
        return len(self._rows(table))


class FakeFeed:
    """Scripted change feed: tests push events and channel states by hand."""

    def __init__(self, *, fail=False, initial_status=ChannelStatus.SUBSCRIBED):
        self.fail = fail
        self.initial_status = initial_status
        self.handlers = {}
        self.unsubscribed = []
        self.closed = False

    def subscribe(self, table, on_change, on_status):
        if self.fail:
            raise ConnectionError("realtime indisponível")
        self.handlers[table] = (on_change, on_status)
        on_status(self.initial_status)

        def unsubscribe():
            self.unsubscribed.append(table)
            self.handlers.pop(table, None)

        return unsubscribe

    def emit(self, table, change_type, new=None, old=None):
        on_change, _ = self.handlers[table]
        on_change(ChangeEvent(table=table, type=ChangeType(change_type), new=new or {}, old=old or {}))

    def set_status(self, table, status):
        _, on_status = self.handlers[table]
        on_status(ChannelStatus(status))

    def close(self):
        self.closed = True


PENDENCIAS = [
    {"id": 1, "titulo": "Trocar bobina", "descricao": "PDV 2", "status": "nao-concluido",
     "urgente": False, "data": "2024-01-01T10:00:00+00:00", "author": "Ana"},
    {"id": 2, "titulo": "Atualizar TEF", "descricao": "Loja centro", "status": "em-andamento",
     "urgente": True, "data": "2024-01-03T10:00:00+00:00", "author": "Bia"},
]

FAQS = [
    {"id": 10, "title": "Como emitir NFC-e", "category": "Fiscal", "description": "Passo a passo",
     "author": "Ana", "images": None, "created_at": "2024-02-01T09:00:00+00:00"},
]

AUTHORS = [
    {"id": 20, "name": "bia", "created_at": "2024-01-01T00:00:00+00:00"},
    {"id": 21, "name": "Ana", "created_at": "2024-01-02T00:00:00+00:00"},
]

SPEDS = [
    {"id": 30, "date": "2024-03-01", "author": "Ana", "count": 2, "created_at": "2024-03-01T18:00:00+00:00"},
    {"id": 31, "date": "2024-03-02", "author": "Bia", "count": 1, "created_at": "2024-03-02T18:00:00+00:00"},
]


@pytest.fixture
def gateway():
    return FakeGateway({
        "pendencias": PENDENCIAS,
        "faqs": FAQS,
        "acessos": [],
        "authors": AUTHORS,
        "speds": SPEDS,
    })


@pytest.fixture
def activity():
    return ActivityLog()


@pytest.fixture
def notifier():
    return Notifier()


@pytest.fixture
def make_store(gateway, activity, notifier):
    def _make(name, *, load=True):
        spec = TABLES[name]
        store = spec.store_class(spec, gateway, activity=activity, notifier=notifier)
        if load:
            store.load()
        return store

    return _make
