"""
Modelos de formulário das tabelas do E-PROSYS.

As linhas sincronizadas continuam sendo dicts (como o Supabase devolve);
estes dataclasses só existem para validar e montar o payload de escrita.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, ClassVar, Optional

from eprosys.errors import ValidationError
from eprosys.helpers import canonical_status, PENDENCIA_STATUSES


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _clean(value: Any) -> Any:
    if isinstance(value, str):
        return value.strip()
    return value


def _optional(value: Optional[str]) -> Optional[str]:
    value = _clean(value)
    return value or None


def _require(value: Optional[str], field_name: str, message: str) -> str:
    value = _clean(value) or ""
    if not value:
        raise ValidationError(field_name, message)
    return value


class Record:
    # campo -> mensagem exibida quando vier vazio
    REQUIRED: ClassVar[dict[str, str]] = {}

    def to_record(self) -> dict:
        raise NotImplementedError

    @classmethod
    def validate_changes(cls, changes: dict) -> dict:
        """Valida uma atualização parcial: campos obrigatórios presentes não podem ficar vazios."""
        out = {}
        for key, value in changes.items():
            if key == "id":
                continue
            value = _clean(value)
            if key in cls.REQUIRED:
                value = _require(value, key, cls.REQUIRED[key])
            out[key] = value
        return out


@dataclass
class ImageWithMetadata:
    src: str
    title: str = ""
    description: str = ""

    def to_dict(self) -> dict:
        return {
            "src": _require(self.src, "src", "A imagem precisa de um endereço."),
            "title": _clean(self.title) or "",
            "description": _clean(self.description) or "",
        }


@dataclass
class FAQ(Record):
    REQUIRED: ClassVar[dict[str, str]] = {
        "title": "O título do FAQ é obrigatório.",
        "category": "A categoria do FAQ é obrigatória.",
    }

    title: str
    category: str
    description: str = ""
    author: Optional[str] = None
    images: list[ImageWithMetadata] = field(default_factory=list)

    def to_record(self) -> dict:
        return {
            "title": _require(self.title, "title", self.REQUIRED["title"]),
            "category": _require(self.category, "category", self.REQUIRED["category"]),
            "description": _clean(self.description) or "",
            "author": _optional(self.author),
            "images": [img.to_dict() for img in self.images] or None,
        }


@dataclass
class Pendencia(Record):
    REQUIRED: ClassVar[dict[str, str]] = {
        "titulo": "Por favor, insira um título para a pendência.",
    }

    titulo: str
    descricao: str = ""
    status: str = "nao-concluido"
    urgente: bool = False
    data: Optional[str] = None
    author: Optional[str] = None

    def to_record(self) -> dict:
        return {
            "titulo": _require(self.titulo, "titulo", self.REQUIRED["titulo"]),
            "descricao": _clean(self.descricao) or "Sem descrição",
            "status": _status(self.status),
            "urgente": bool(self.urgente),
            "data": self.data or now_iso(),
            "author": _optional(self.author),
        }

    @classmethod
    def validate_changes(cls, changes: dict) -> dict:
        out = super().validate_changes(changes)
        if "status" in out:
            out["status"] = _status(out["status"])
        if "urgente" in out:
            out["urgente"] = bool(out["urgente"])
        return out


def _status(value: Optional[str]) -> str:
    status = canonical_status(value)
    if status not in PENDENCIA_STATUSES:
        raise ValidationError("status", f"Status inválido: {value!r}")
    return status


@dataclass
class Acesso(Record):
    REQUIRED: ClassVar[dict[str, str]] = {
        "posto": "O nome do posto é obrigatório.",
        "maquina": "O nome da máquina é obrigatório.",
        "usuario": "O usuário é obrigatório.",
        "senha": "A senha é obrigatória.",
    }

    posto: str
    maquina: str
    usuario: str
    senha: str
    adquirente: Optional[str] = None
    trabalho_andamento: Optional[str] = None
    status_maquininha: Optional[str] = None

    def to_record(self) -> dict:
        record = {key: _require(getattr(self, key), key, msg) for key, msg in self.REQUIRED.items()}
        record.update(
            adquirente=_optional(self.adquirente),
            trabalho_andamento=_optional(self.trabalho_andamento),
            status_maquininha=_optional(self.status_maquininha),
        )
        return record


@dataclass
class Author(Record):
    REQUIRED: ClassVar[dict[str, str]] = {"name": "Por favor, digite um nome para o autor."}

    name: str

    def to_record(self) -> dict:
        return {"name": _require(self.name, "name", self.REQUIRED["name"])}


@dataclass
class Sped(Record):
    REQUIRED: ClassVar[dict[str, str]] = {
        "date": "A data do SPED é obrigatória.",
        "author": "O autor do SPED é obrigatório.",
    }

    date: str
    author: str
    count: int = 1

    def to_record(self) -> dict:
        return {
            "date": _require(self.date, "date", self.REQUIRED["date"]),
            "author": _require(self.author, "author", self.REQUIRED["author"]),
            "count": _count(self.count),
        }

    @classmethod
    def validate_changes(cls, changes: dict) -> dict:
        out = super().validate_changes(changes)
        if "count" in out:
            out["count"] = _count(out["count"])
        return out


def _count(value: Any) -> int:
    try:
        count = int(value)
    except (TypeError, ValueError) as exc:
        raise ValidationError("count", f"Quantidade inválida: {value!r}") from exc
    if count < 0:
        raise ValidationError("count", "A quantidade não pode ser negativa.")
    return count
