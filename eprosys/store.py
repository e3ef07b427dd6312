"""Estado local sincronizado de uma tabela.

Um ``TableStore`` guarda o snapshot (lista de dicts, na ordem da tabela) e o
mantém em dia por três caminhos que podem se intercalar:

- eventos do feed realtime (``apply_change``);
- refetch completo, manual ou pelo polling (``refresh``);
- escritas otimistas do próprio usuário (``insert``/``update``/``delete``).

Não há detecção de conflito: vale a última escrita. Se o servidor recusar uma
escrita otimista, o snapshot volta à cópia tirada antes dela.
"""

from __future__ import annotations

import hashlib
import itertools
import json
import logging
import threading
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Optional

from eprosys.changefeed import ChangeEvent, ChangeType, ChannelStatus
from eprosys.errors import DataStoreError, SyncError
from eprosys.helpers import parse_datetime
from eprosys.models import Record, now_iso

if TYPE_CHECKING:
    from eprosys.activity import ActivityLog
    from eprosys.db import SupabaseGateway
    from eprosys.notifications import Notifier
    from eprosys.tables import TableSpec

logger = logging.getLogger(__name__)

# ids provisórios das inserções otimistas (negativos nunca colidem com o banco)
_temp_ids = itertools.count(-1, -1)


def snapshot_hash(rows: list[dict]) -> str:
    payload = json.dumps(rows, sort_keys=True, ensure_ascii=False, default=str)
    return hashlib.sha1(payload.encode("utf-8")).hexdigest()


def _same_value(a: Any, b: Any) -> bool:
    if a == b:
        return True
    # o banco devolve timestamps reformatados ("+00:00" vs "Z", microssegundos)
    da, db = parse_datetime(a), parse_datetime(b)
    return da is not None and da == db


class TableStore:
    def __init__(
        self,
        spec: TableSpec,
        gateway: SupabaseGateway,
        *,
        activity: Optional[ActivityLog] = None,
        notifier: Optional[Notifier] = None,
    ):
        self.spec = spec
        self._gateway = gateway
        self._activity = activity
        self._notifier = notifier
        self._lock = threading.RLock()

        self._rows: list[dict] = []
        self._hash = snapshot_hash([])
        # id provisório -> payload enviado (para reconhecer o eco do realtime)
        self._pending: dict[int, dict] = {}
        self._status = ChannelStatus.CLOSED
        self._stale = True

        self.version = 0
        self.loaded = False
        self.last_update: Optional[datetime] = None
        self.error: Optional[Exception] = None

    # ------------------------------------------------------------------
    # leitura
    # ------------------------------------------------------------------
    @property
    def name(self) -> str:
        return self.spec.name

    @property
    def rows(self) -> list[dict]:
        with self._lock:
            return [dict(r) for r in self._rows]

    def get(self, row_id: Any) -> Optional[dict]:
        with self._lock:
            idx = self._index(row_id)
            return dict(self._rows[idx]) if idx is not None else None

    def is_pending(self, row_id: Any) -> bool:
        with self._lock:
            return row_id in self._pending

    @property
    def status(self) -> ChannelStatus:
        return self._status

    @property
    def is_connected(self) -> bool:
        return self._status is ChannelStatus.SUBSCRIBED

    @property
    def is_stale(self) -> bool:
        return self._stale

    def __len__(self) -> int:
        return len(self._rows)

    # ------------------------------------------------------------------
    # internos (chamar com o lock)
    # ------------------------------------------------------------------
    def _index(self, row_id: Any) -> Optional[int]:
        for i, row in enumerate(self._rows):
            if row.get("id") == row_id:
                return i
        return None

    def _sort_key(self, row: dict):
        value = row.get(self.spec.order_by)
        if self.spec.order_kind == "datetime":
            value = parse_datetime(value)
        elif isinstance(value, str):
            value = value.casefold()
        # nulos sempre no fim, nas duas direções
        if value is None:
            return (1, 0) if self.spec.ascending else (0, 0)
        return (0, value) if self.spec.ascending else (1, value)

    def _sorted(self, rows: list[dict]) -> list[dict]:
        return sorted(rows, key=self._sort_key, reverse=not self.spec.ascending)

    def _set_rows(self, rows: list[dict]) -> None:
        self._rows = rows
        self._hash = snapshot_hash(rows)
        self.version += 1
        self.last_update = datetime.now(timezone.utc)

    def _echo_of(self, row: dict) -> Optional[int]:
        """Id provisório cuja linha enviada coincide com `row`, se houver."""
        for temp_id, payload in self._pending.items():
            if all(_same_value(row.get(k), v) for k, v in payload.items()):
                return temp_id
        return None

    def _notify(self, level: str, title: str, description: str = "") -> None:
        if self._notifier is not None:
            self._notifier.push(title, description, level)

    def _title_of(self, row: Optional[dict]) -> str:
        if not row:
            return ""
        return str(row.get(self.spec.title_field) or "")

    def _record_activity(self, action: str, row: Optional[dict], title: Optional[str] = None,
                         activity_type: Optional[str] = None) -> None:
        if self._activity is None:
            return
        self._activity.record(
            title=title or self.spec.titles[action],
            type=activity_type or self.spec.activity_type,
            action=action,
            description=self._title_of(row) or None,
            author=(row or {}).get("author"),
        )

    # ------------------------------------------------------------------
    # snapshot
    # ------------------------------------------------------------------
    def load(self) -> bool:
        return self.refresh()

    def refresh(self, *, from_poll: bool = False) -> bool:
        """
        Busca o snapshot completo. No polling só substitui se o conteúdo mudou;
        no refresh manual substitui sempre. Devolve True se o snapshot mudou.
        """
        try:
            rows = self._gateway.select(self.spec.name, self.spec.order_by, ascending=self.spec.ascending)
        except DataStoreError as exc:
            logger.warning("falha ao buscar %s (polling=%s): %s", self.name, from_poll, exc)
            with self._lock:
                self.error = exc
            if not from_poll:
                self._notify("error", "Erro ao carregar dados", f"Não foi possível carregar {self.spec.plural}.")
            return False

        new_hash = snapshot_hash(rows)
        with self._lock:
            self.error = None
            self.loaded = True
            self._stale = False
            changed = new_hash != self._hash
            if changed or not from_poll:
                self._set_rows(rows)
        if from_poll and changed:
            logger.info("polling: %s mudou no servidor (%d linhas)", self.name, len(rows))
        return changed

    # ------------------------------------------------------------------
    # feed realtime
    # ------------------------------------------------------------------
    def apply_change(self, event: ChangeEvent) -> bool:
        row_id = event.record_id
        with self._lock:
            idx = self._index(row_id)
            if event.type is ChangeType.INSERT:
                if idx is not None:
                    return False
                temp_id = self._echo_of(event.new)
                if temp_id is not None:
                    # eco da nossa própria inserção chegando antes da confirmação:
                    # troca a linha provisória e não avisa (a página já mostra o sucesso)
                    self._pending.pop(temp_id, None)
                    rows = [r for r in self._rows if r.get("id") != temp_id]
                    self._set_rows(self._sorted([dict(event.new), *rows]))
                    return True
                self._set_rows(self._sorted([dict(event.new), *self._rows]))
            elif event.type is ChangeType.UPDATE:
                if idx is None:
                    self._set_rows(self._sorted([dict(event.new), *self._rows]))
                elif self._rows[idx] == event.new:
                    return False
                else:
                    rows = list(self._rows)
                    rows[idx] = dict(event.new)
                    self._set_rows(rows)
            elif event.type is ChangeType.DELETE:
                if idx is None:
                    return False
                removed = self._rows[idx]
                self._set_rows(self._rows[:idx] + self._rows[idx + 1:])

        action = {
            ChangeType.INSERT: "created",
            ChangeType.UPDATE: "updated",
            ChangeType.DELETE: "deleted",
        }[event.type]
        row = removed if event.type is ChangeType.DELETE else event.new
        title = self._title_of(row)
        self._notify("info", self.spec.titles[action], f'"{title}"' if title else "")
        return True

    def set_status(self, status: ChannelStatus) -> None:
        with self._lock:
            previous = self._status
            self._status = status
            # fora do ar eventos podem se perder; ao (re)conectar, o que foi gravado
            # entre o último fetch e a inscrição também. Nos dois casos o polling
            # refaz o snapshot uma vez.
            if status is not ChannelStatus.SUBSCRIBED or previous is not ChannelStatus.SUBSCRIBED:
                self._stale = True
        if status is previous:
            return
        if status in (ChannelStatus.CHANNEL_ERROR, ChannelStatus.TIMED_OUT):
            logger.error("realtime de %s indisponível (%s); usando polling", self.name, status.value)
            self._notify("error", "Conexão instável", "Algumas atualizações podem não aparecer automaticamente.")
        elif status is ChannelStatus.SUBSCRIBED:
            logger.info("realtime conectado para %s", self.name)

    def needs_poll(self, always: bool = False) -> bool:
        return always or not self.is_connected or self._stale

    # ------------------------------------------------------------------
    # escritas otimistas
    # ------------------------------------------------------------------
    def _rollback(self, previous: list[dict]) -> None:
        with self._lock:
            self._set_rows(previous)
            # a cópia antiga não tem o que outras sessões gravaram durante a escrita
            self._stale = True

    def insert(self, record: Record | dict) -> dict:
        payload = record.to_record() if isinstance(record, Record) else dict(record)
        temp_id = next(_temp_ids)

        optimistic = {**payload, "id": temp_id}
        if self.spec.order_kind == "datetime" and not optimistic.get(self.spec.order_by):
            optimistic[self.spec.order_by] = now_iso()

        with self._lock:
            previous = list(self._rows)
            self._pending[temp_id] = payload
            self._set_rows(self._sorted([optimistic, *self._rows]))

        try:
            row = self._gateway.insert(self.name, payload)
        except DataStoreError as exc:
            with self._lock:
                self._pending.pop(temp_id, None)
                self._rollback(previous)
            logger.error("inserção em %s revertida: %s", self.name, exc)
            raise SyncError(f"Não foi possível adicionar {self.spec.label.lower()}.") from exc

        with self._lock:
            self._pending.pop(temp_id, None)
            rows = [r for r in self._rows if r.get("id") != temp_id]
            # o evento INSERT do realtime pode ter chegado antes da confirmação
            if not any(r.get("id") == row.get("id") for r in rows):
                rows.append(dict(row))
            self._set_rows(self._sorted(rows))

        self._record_activity("created", row)
        return row

    def update(self, row_id: Any, changes: dict, *, activity_title: Optional[str] = None) -> dict:
        changes = self.spec.model.validate_changes(changes)
        with self._lock:
            previous = list(self._rows)
            idx = self._index(row_id)
            if idx is not None:
                rows = list(self._rows)
                rows[idx] = {**rows[idx], **changes}
                self._set_rows(rows)

        try:
            row = self._gateway.update(self.name, row_id, changes)
        except DataStoreError as exc:
            self._rollback(previous)
            logger.error("atualização de %s #%s revertida: %s", self.name, row_id, exc)
            raise SyncError(f"Não foi possível atualizar {self.spec.label.lower()}.") from exc

        with self._lock:
            idx = self._index(row_id)
            if idx is None:
                # linha fora do snapshot local (removida por evento, ou nunca carregada)
                self._set_rows(self._sorted([dict(row), *self._rows]))
            else:
                rows = list(self._rows)
                rows[idx] = dict(row)
                self._set_rows(rows)

        self._record_activity("updated", row, title=activity_title)
        return row

    def delete(self, row_id: Any) -> None:
        with self._lock:
            previous = list(self._rows)
            idx = self._index(row_id)
            removed = self._rows[idx] if idx is not None else None
            if idx is not None:
                self._set_rows(self._rows[:idx] + self._rows[idx + 1:])

        try:
            self._gateway.delete(self.name, row_id)
        except DataStoreError as exc:
            self._rollback(previous)
            logger.error("remoção de %s #%s revertida: %s", self.name, row_id, exc)
            raise SyncError(f"Não foi possível remover {self.spec.label.lower()}.") from exc

        self._record_activity("deleted", removed)
