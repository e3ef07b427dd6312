from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from eprosys.errors import DataStoreError, SyncError
from eprosys.helpers import canonical_status, status_activity_text
from eprosys.models import FAQ, Acesso, Author, ImageWithMetadata, Pendencia, Record, Sped
from eprosys.store import TableStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TableSpec:
    name: str
    label: str          # singular, para mensagens ("Pendência")
    plural: str         # "as pendências"
    order_by: str
    ascending: bool
    order_kind: str     # "datetime" | "text"
    title_field: str
    activity_type: str
    model: type[Record]
    titles: dict        # action -> título da atividade/aviso
    store_class: type[TableStore] = TableStore


class PendenciaStore(TableStore):
    def update_status(self, row_id: Any, status: str) -> dict:
        status = canonical_status(status)
        return self.update(
            row_id,
            {"status": status},
            activity_title=f"Pendência {status_activity_text(status)}",
        )


class FaqStore(TableStore):
    def add_image(self, faq_id: Any, image: ImageWithMetadata) -> dict | None:
        faq = self.get(faq_id)
        if faq is None:
            logger.warning("FAQ #%s não encontrado para anexar imagem", faq_id)
            return None
        images = list(faq.get("images") or [])
        images.append(image.to_dict())
        return self.update(faq_id, {"images": images})


class SpedStore(TableStore):
    def reset_all(self) -> None:
        """Remove todos os SPEDs (otimista: limpa o snapshot antes de confirmar)."""
        with self._lock:
            previous = list(self._rows)
            self._set_rows([])
        try:
            self._gateway.delete_all(self.name)
        except DataStoreError as exc:
            self._rollback(previous)
            logger.error("reset de %s revertido: %s", self.name, exc)
            raise SyncError("Não foi possível resetar os SPEDs.") from exc

        if self._activity is not None:
            self._activity.record(
                title="SPEDs resetados",
                type="system",
                action="deleted",
                description="Todos os registros de SPED foram removidos",
            )


TABLES: dict[str, TableSpec] = {
    "faqs": TableSpec(
        name="faqs",
        label="FAQ",
        plural="os FAQs",
        order_by="created_at",
        ascending=False,
        order_kind="datetime",
        title_field="title",
        activity_type="faq",
        model=FAQ,
        titles={"created": "Novo FAQ adicionado", "updated": "FAQ atualizado", "deleted": "FAQ removido"},
        store_class=FaqStore,
    ),
    "pendencias": TableSpec(
        name="pendencias",
        label="Pendência",
        plural="as pendências",
        order_by="data",
        ascending=False,
        order_kind="datetime",
        title_field="titulo",
        activity_type="pendencia",
        model=Pendencia,
        titles={
            "created": "Nova pendência criada",
            "updated": "Pendência atualizada",
            "deleted": "Pendência removida",
        },
        store_class=PendenciaStore,
    ),
    "acessos": TableSpec(
        name="acessos",
        label="Acesso",
        plural="os acessos",
        order_by="created_at",
        ascending=False,
        order_kind="datetime",
        title_field="posto",
        activity_type="acesso",
        model=Acesso,
        titles={
            "created": "Novo acesso cadastrado",
            "updated": "Acesso atualizado",
            "deleted": "Acesso removido",
        },
    ),
    "authors": TableSpec(
        name="authors",
        label="Autor",
        plural="os autores",
        order_by="name",
        ascending=True,
        order_kind="text",
        title_field="name",
        activity_type="author",
        model=Author,
        titles={"created": "Novo autor adicionado", "updated": "Autor atualizado", "deleted": "Autor removido"},
    ),
    "speds": TableSpec(
        name="speds",
        label="SPED",
        plural="os SPEDs",
        order_by="date",
        ascending=False,
        order_kind="text",
        title_field="author",
        activity_type="sped",
        model=Sped,
        titles={"created": "SPED gerado", "updated": "SPED atualizado", "deleted": "SPED removido"},
        store_class=SpedStore,
    ),
}
