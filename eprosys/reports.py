from __future__ import annotations

from datetime import date, datetime
from typing import Iterable, Optional

import pandas as pd

from eprosys.helpers import canonical_status, parse_datetime, status_label

# ============================================================
# Pendências
# ============================================================

PENDENCIA_CSV_HEADERS = ["ID", "Título", "Descrição", "Status", "Urgência", "Data", "Autor"]


def _matches(row: dict, term: str, fields: Iterable[str]) -> bool:
    if not term:
        return True
    term = term.lower()
    return any(term in str(row.get(f) or "").lower() for f in fields)


def _date_key(row: dict, field: str) -> float:
    dt = parse_datetime(row.get(field))
    return dt.timestamp() if dt else float("-inf")


def filter_pendencias(rows: list[dict], search: str = "") -> list[dict]:
    """Filtra por título/descrição; urgentes primeiro, depois mais recentes primeiro."""
    filtered = [r for r in rows if _matches(r, search.strip(), ("titulo", "descricao"))]
    filtered.sort(key=lambda r: _date_key(r, "data"), reverse=True)
    filtered.sort(key=lambda r: not r.get("urgente"))
    return filtered


def pendencia_stats(rows: list[dict]) -> dict[str, int]:
    statuses = [canonical_status(r.get("status")) for r in rows]
    return {
        "total": len(rows),
        "urgentes": sum(1 for r in rows if r.get("urgente")),
        "concluidas": statuses.count("concluido"),
        "em_andamento": statuses.count("em-andamento"),
        "nao_concluidas": statuses.count("nao-concluido"),
    }


def format_datetime_br(value) -> str:
    dt = parse_datetime(value)
    if dt is None:
        return str(value or "")
    return dt.strftime("%d/%m/%Y %H:%M:%S")


def pendencias_dataframe(rows: list[dict]) -> pd.DataFrame:
    return pd.DataFrame(
        [
            [
                r.get("id"),
                r.get("titulo") or "",
                r.get("descricao") or "",
                status_label(r.get("status")),
                "Urgente" if r.get("urgente") else "Normal",
                format_datetime_br(r.get("data")),
                r.get("author") or "",
            ]
            for r in rows
        ],
        columns=PENDENCIA_CSV_HEADERS,
    )


def pendencias_to_csv(rows: list[dict]) -> bytes:
    """CSV com BOM (o Excel em pt-BR abre acentuado sem reclamar)."""
    return pendencias_dataframe(rows).to_csv(index=False).encode("utf-8-sig")


def export_filename(prefix: str, day: Optional[date] = None) -> str:
    day = day or date.today()
    return f"{prefix}_{day.isoformat()}.csv"


# ============================================================
# FAQs / Acessos
# ============================================================

def faq_categories(rows: list[dict]) -> list[str]:
    return sorted({r["category"] for r in rows if r.get("category")}, key=str.casefold)


def filter_faqs(rows: list[dict], search: str = "", category: str = "all") -> list[dict]:
    term = search.strip()
    return [
        r for r in rows
        if _matches(r, term, ("title", "description"))
        and (category == "all" or r.get("category") == category)
    ]


def filter_acessos(rows: list[dict], search: str = "") -> list[dict]:
    return [r for r in rows if _matches(r, search.strip(), ("posto", "maquina", "usuario"))]


# ============================================================
# SPEDs
# ============================================================

def _as_date(value) -> Optional[date]:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str) and value:
        try:
            return date.fromisoformat(value[:10])
        except ValueError:
            return None
    return None


def daily_sped_summary(rows: list[dict], day: date | str) -> dict:
    day = _as_date(day)
    by_author: dict[str, int] = {}
    total = 0
    for r in rows:
        if _as_date(r.get("date")) != day:
            continue
        count = int(r.get("count") or 0)
        total += count
        author = r.get("author") or "Sem autor"
        by_author[author] = by_author.get(author, 0) + count
    return {"date": day.isoformat() if day else None, "total_count": total, "by_author": by_author}


def speds_by_date_range(rows: list[dict], start: date | str, end: date | str) -> list[dict]:
    start, end = _as_date(start), _as_date(end)
    out = []
    for r in rows:
        d = _as_date(r.get("date"))
        if d is not None and start <= d <= end:
            out.append(r)
    return out


def speds_per_day(rows: list[dict]) -> pd.DataFrame:
    """Total de SPEDs por dia/autor, para o gráfico."""
    df = pd.DataFrame(rows, columns=["date", "author", "count"])
    if df.empty:
        return df
    df["date"] = pd.to_datetime(df["date"], errors="coerce").dt.date
    df = df.dropna(subset=["date"]).copy()
    df["author"] = df["author"].fillna("Sem autor")
    df["count"] = pd.to_numeric(df["count"], errors="coerce").fillna(0).astype(int)
    return df.groupby(["date", "author"], as_index=False)["count"].sum().sort_values(["date", "author"])
