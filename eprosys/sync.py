"""Hub de sincronização: uma store por tabela, feed realtime e polling de fallback."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import TYPE_CHECKING, Callable, Optional

from eprosys.activity import ActivityLog
from eprosys.changefeed import ChannelStatus
from eprosys.notifications import Notifier
from eprosys.polling import Poller
from eprosys.tables import TABLES, TableSpec

if TYPE_CHECKING:
    from eprosys.changefeed import ChangeFeed
    from eprosys.config import Settings
    from eprosys.db import SupabaseGateway
    from eprosys.store import TableStore
    from eprosys.tables import FaqStore, PendenciaStore, SpedStore

logger = logging.getLogger(__name__)


class SyncHub:
    def __init__(
        self,
        gateway: SupabaseGateway,
        feed: Optional[ChangeFeed] = None,
        *,
        enable_polling: bool = True,
        polling_interval: float = 30.0,
        always_poll: bool = False,
        activity_limit: int = 50,
        tables: Optional[dict[str, TableSpec]] = None,
    ):
        self.gateway = gateway
        self.feed = feed
        self.enable_polling = enable_polling
        self.polling_interval = polling_interval
        self.always_poll = always_poll

        self.activity = ActivityLog(limit=activity_limit)
        self.notifier = Notifier()
        self.stores: dict[str, TableStore] = {
            name: spec.store_class(spec, gateway, activity=self.activity, notifier=self.notifier)
            for name, spec in (tables or TABLES).items()
        }

        self.poller: Optional[Poller] = None
        self._unsubscribers: list[Callable[[], None]] = []
        self.started = False

    @classmethod
    def from_settings(cls, settings: Settings, gateway: SupabaseGateway,
                      feed: Optional[ChangeFeed] = None) -> SyncHub:
        return cls(
            gateway,
            feed if settings.enable_realtime else None,
            enable_polling=settings.enable_polling,
            polling_interval=settings.polling_interval,
            always_poll=settings.always_poll,
            activity_limit=settings.activity_limit,
        )

    # atalhos tipados
    def __getitem__(self, name: str) -> TableStore:
        return self.stores[name]

    @property
    def faqs(self) -> FaqStore:
        return self.stores["faqs"]  # type: ignore[return-value]

    @property
    def pendencias(self) -> PendenciaStore:
        return self.stores["pendencias"]  # type: ignore[return-value]

    @property
    def acessos(self) -> TableStore:
        return self.stores["acessos"]

    @property
    def authors(self) -> TableStore:
        return self.stores["authors"]

    @property
    def speds(self) -> SpedStore:
        return self.stores["speds"]  # type: ignore[return-value]

    # ------------------------------------------------------------------
    def start(self) -> None:
        if self.started:
            return
        for store in self.stores.values():
            store.load()

        if self.feed is not None:
            self._subscribe_all()
            # o que foi gravado entre o fetch inicial e a inscrição
            self.poll_once()
        else:
            logger.info("realtime desativado; dados atualizados só por polling")

        if self.enable_polling:
            self.poller = Poller(self.polling_interval, self.poll_once)
            self.poller.start()
        self.started = True

    def _status_handler(self, store: TableStore) -> Callable[[ChannelStatus], None]:
        def on_status(status: ChannelStatus) -> None:
            store.set_status(status)
            # queda ou reconexão: não espera o intervalo para refazer o snapshot
            if self.poller is not None and store.needs_poll(self.always_poll):
                self.poller.trigger()

        return on_status

    def _subscribe_all(self) -> None:
        try:
            for store in self.stores.values():
                self._unsubscribers.append(
                    self.feed.subscribe(store.name, store.apply_change, self._status_handler(store))
                )
        except Exception as exc:
            logger.exception("não foi possível assinar o feed realtime")
            for store in self.stores.values():
                store.set_status(ChannelStatus.CHANNEL_ERROR)
            if self.enable_polling:
                self.notifier.error(
                    "Tempo real indisponível",
                    f"Atualizando a cada {self.polling_interval:.0f}s por polling.",
                )
            else:
                self.notifier.error("Tempo real indisponível", str(exc))

    def poll_once(self) -> list[str]:
        """Refaz o snapshot das tabelas sem realtime (ou stale). Devolve as que mudaram."""
        changed = []
        for store in self.stores.values():
            if store.needs_poll(self.always_poll) and store.refresh(from_poll=True):
                changed.append(store.name)
        return changed

    def refresh_all(self) -> None:
        for store in self.stores.values():
            store.refresh()

    def stop(self) -> None:
        for unsubscribe in self._unsubscribers:
            try:
                unsubscribe()
            except Exception:
                logger.exception("falha ao cancelar inscrição realtime")
        self._unsubscribers.clear()
        if self.poller is not None:
            self.poller.stop()
            self.poller = None
        if self.feed is not None:
            self.feed.close()
        for store in self.stores.values():
            store.set_status(ChannelStatus.CLOSED)
        self.started = False

    # ------------------------------------------------------------------
    @property
    def is_connected(self) -> bool:
        return all(store.is_connected for store in self.stores.values())

    @property
    def is_polling(self) -> bool:
        return self.poller is not None and self.poller.is_running

    @property
    def last_update(self) -> Optional[datetime]:
        stamps = [s.last_update for s in self.stores.values() if s.last_update is not None]
        return max(stamps) if stamps else None

    def status(self) -> dict[str, dict]:
        return {
            name: {
                "rows": len(store),
                "connected": store.is_connected,
                "stale": store.is_stale,
                "last_update": store.last_update,
                "error": str(store.error) if store.error else None,
            }
            for name, store in self.stores.items()
        }
