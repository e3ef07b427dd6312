"""Feed de mudanças em tempo real (postgres_changes do Supabase Realtime).

O cliente realtime do Supabase é assíncrono, mas o painel (Streamlit) é
síncrono. ``SupabaseChangeFeed`` mantém um event loop próprio numa thread
daemon e expõe uma API síncrona: ``subscribe`` bloqueia até o canal ser
criado e devolve uma função para cancelar a inscrição.

Os callbacks (``on_change``/``on_status``) rodam na thread do loop; quem
recebe os eventos precisa ser thread-safe (o ``TableStore`` usa um lock).
"""

from __future__ import annotations

import asyncio
import logging
import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Optional, Protocol

from supabase import acreate_client

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 15.0


class ChangeType(str, Enum):
    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


class ChannelStatus(str, Enum):
    SUBSCRIBED = "SUBSCRIBED"
    TIMED_OUT = "TIMED_OUT"
    CLOSED = "CLOSED"
    CHANNEL_ERROR = "CHANNEL_ERROR"

    @classmethod
    def from_state(cls, state: Any) -> ChannelStatus:
        """Converte o estado do cliente realtime (enum ou string)."""
        value = str(getattr(state, "value", state) or "").upper()
        try:
            return cls(value)
        except ValueError:
            logger.warning("estado de canal desconhecido: %r", state)
            return cls.CHANNEL_ERROR


@dataclass(frozen=True)
class ChangeEvent:
    table: str
    type: ChangeType
    new: dict = field(default_factory=dict)
    old: dict = field(default_factory=dict)
    commit_timestamp: Optional[str] = None

    @property
    def record_id(self) -> Any:
        if self.type is ChangeType.DELETE:
            return self.old.get("id")
        return self.new.get("id", self.old.get("id"))


def parse_change(payload: Any) -> Optional[ChangeEvent]:
    """
    Aceita o formato do cliente Python ({"data": {"type", "record", "old_record"}})
    e o formato JS ({"eventType", "new", "old"}). Payload desconhecido -> None.
    """
    if not isinstance(payload, dict):
        return None
    data = payload.get("data") if isinstance(payload.get("data"), dict) else payload

    raw_type = data.get("type") or data.get("eventType")
    try:
        change_type = ChangeType(str(raw_type).upper())
    except ValueError:
        return None

    new = data.get("record", data.get("new")) or {}
    old = data.get("old_record", data.get("old")) or {}
    return ChangeEvent(
        table=data.get("table", ""),
        type=change_type,
        new=dict(new),
        old=dict(old),
        commit_timestamp=data.get("commit_timestamp"),
    )


class ChangeFeed(Protocol):
    def subscribe(
        self,
        table: str,
        on_change: Callable[[ChangeEvent], Any],
        on_status: Callable[[ChannelStatus], Any],
    ) -> Callable[[], None]: ...

    def close(self) -> None: ...


class SupabaseChangeFeed:
    def __init__(
        self,
        url: str,
        key: str,
        *,
        schema: str = "public",
        timeout: float = DEFAULT_TIMEOUT,
        client_factory: Optional[Callable[[str, str], Awaitable[Any]]] = None,
    ):
        self.url = url
        self.key = key
        self.schema = schema
        self.timeout = timeout
        self._client_factory = client_factory or acreate_client
        self._client: Any = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._thread: Optional[threading.Thread] = None
        self._channels: dict[str, Any] = {}

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.is_running:
            return
        loop = asyncio.new_event_loop()
        self._loop = loop
        self._thread = threading.Thread(target=loop.run_forever, name="eprosys-realtime", daemon=True)
        self._thread.start()
        try:
            self._client = self._run(self._client_factory(self.url, self.key))
        except Exception:
            self._shutdown_loop()
            raise
        logger.info("cliente realtime conectado em %s", self.url)

    def _run(self, coro):
        if self._loop is None:
            raise RuntimeError("feed de mudanças não iniciado")
        return asyncio.run_coroutine_threadsafe(coro, self._loop).result(self.timeout)

    def subscribe(self, table, on_change, on_status):
        if not self.is_running:
            self.start()
        topic = f"{table}-changes"
        channel = self._run(self._subscribe(topic, table, on_change, on_status))
        self._channels[topic] = channel

        def unsubscribe() -> None:
            ch = self._channels.pop(topic, None)
            if ch is None or not self.is_running:
                return
            logger.info("removendo inscrição de %s", table)
            self._run(self._client.remove_channel(ch))

        return unsubscribe

    async def _subscribe(self, topic, table, on_change, on_status):
        def handle_change(payload) -> None:
            event = parse_change(payload)
            if event is None:
                logger.warning("payload realtime ignorado em %s: %r", table, payload)
                return
            if not event.table:
                event = ChangeEvent(table, event.type, event.new, event.old, event.commit_timestamp)
            logger.debug("evento realtime em %s: %s #%s", table, event.type.value, event.record_id)
            try:
                on_change(event)
            except Exception:
                logger.exception("falha ao aplicar evento realtime em %s", table)

        def handle_status(state, err=None) -> None:
            status = ChannelStatus.from_state(state)
            if err is not None:
                logger.error("canal %s: %s (%s)", topic, status.value, err)
            else:
                logger.info("canal %s: %s", topic, status.value)
            try:
                on_status(status)
            except Exception:
                logger.exception("falha ao tratar status do canal %s", topic)

        channel = self._client.channel(topic)
        channel.on_postgres_changes("*", callback=handle_change, table=table, schema=self.schema)
        await channel.subscribe(handle_status)
        return channel

    def close(self) -> None:
        if not self.is_running:
            return
        for topic in list(self._channels):
            ch = self._channels.pop(topic)
            try:
                self._run(self._client.remove_channel(ch))
            except Exception:
                logger.exception("falha ao remover canal %s", topic)
        self._shutdown_loop()

    def _shutdown_loop(self) -> None:
        loop, thread = self._loop, self._thread
        if loop is None:
            return
        loop.call_soon_threadsafe(loop.stop)
        if thread is not None:
            thread.join(timeout=self.timeout)
        loop.close()
        self._loop = None
        self._thread = None
