from __future__ import annotations

import html
import unicodedata
from datetime import date, datetime, timezone
from typing import Any, Dict, Optional

import plotly.graph_objects as go


def parse_datetime(value: Any) -> Optional[datetime]:
    """ISO 8601 (com ou sem 'Z') -> datetime com fuso; sem fuso assume UTC."""
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, str) and value:
        try:
            dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
    else:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


# ============================================================
# Status das pendências
# ============================================================

PENDENCIA_STATUSES = ("nao-concluido", "em-andamento", "concluido")

STATUS_LABELS = {
    "nao-concluido": "Não Concluído",
    "em-andamento": "Em Andamento",
    "concluido": "Concluído",
}

# === Fonte única de cores (canônicas) ===
STATUS_COLORS = {
    "nao-concluido": "#E53935",
    "em-andamento": "#FF9800",
    "concluido": "#2ECC71",
}

# Aliases -> canônico (o banco antigo usava "pendente"/"concluida")
_STATUS_ALIASES = {
    "pendente": "nao-concluido",
    "nao concluido": "nao-concluido",
    "nao-concluida": "nao-concluido",
    "em andamento": "em-andamento",
    "andamento": "em-andamento",
    "concluida": "concluido",
    "": "nao-concluido",
    "null": "nao-concluido",
    "none": "nao-concluido",
}


def _norm_key(s: Optional[str]) -> str:
    """Normaliza string para chave: trim + lower + sem acento."""
    s = (s or "").strip().lower()
    s = unicodedata.normalize("NFKD", s)
    s = "".join(ch for ch in s if not unicodedata.combining(ch))
    return s


def canonical_status(status: Optional[str]) -> str:
    """Converte qualquer variação no status canônico usado no sistema."""
    key = _norm_key(status)
    if key in _STATUS_ALIASES:
        return _STATUS_ALIASES[key]
    for canonical in PENDENCIA_STATUSES:
        if canonical == key:
            return canonical
    # fallback: devolve como veio (a validação decide se aceita)
    return (status or "").strip()


def status_label(status: Optional[str]) -> str:
    canon = canonical_status(status)
    return STATUS_LABELS.get(canon, canon)


def status_activity_text(status: Optional[str]) -> str:
    canon = canonical_status(status)
    if canon == "concluido":
        return "concluída"
    if canon == "em-andamento":
        return "em andamento"
    return "pendente"


def get_status_color(status: Optional[str], default: str = "#B0BEC5") -> str:
    return STATUS_COLORS.get(canonical_status(status), default)


def status_badge(status: Optional[str]) -> str:
    """Badge (cápsula) com cor por status."""
    bg = get_status_color(status, "#607d8b")
    return (
        f"<span style='background:{bg};color:#fff;padding:4px 10px;border-radius:999px;"
        f"font-size:12px;font-weight:600;'>{html.escape(status_label(status))}</span>"
    )


# ============================================================
# Senha diária
# ============================================================

def daily_password(day: Optional[date] = None) -> str:
    """
    Senha do dia: ddmm / 8369, pega os 4 primeiros dígitos da parte decimal
    e remove zeros à esquerda.
    """
    day = day or date.today()
    date_number = int(f"{day.day:02d}{day.month:02d}")
    division = date_number / 8369
    text = repr(division)
    decimal_part = text.split(".")[1] if "." in text else "0000"
    return decimal_part[:4].lstrip("0") or "0"


# ============================================================
# Gráficos
# ============================================================

def apply_plot_theme(
    fig: go.Figure,
    *,
    height: Optional[int] = None,
    margin: Optional[Dict[str, int]] = None,
    legend: Optional[Dict[str, Any]] = None,
    x_title: Optional[str] = None,
    y_title: Optional[str] = None,
) -> go.Figure:
    """Tema padrão (clean) dos gráficos Plotly do painel."""
    if margin is None:
        margin = dict(l=30, r=30, t=30, b=30)

    base_legend = dict(
        bgcolor="rgba(255,255,255,0.75)",
        bordercolor="rgba(0,0,0,0.08)",
        borderwidth=1,
        font=dict(size=11),
        title_text=None,
    )
    if legend:
        base_legend.update(legend)

    fig.update_layout(
        template="simple_white",
        margin=margin,
        font=dict(family="Inter, system-ui, -apple-system, Segoe UI, Roboto, Arial", size=12, color="#223"),
        legend=base_legend,
    )
    if height is not None:
        fig.update_layout(height=height)

    fig.update_xaxes(
        title_text=x_title if x_title is not None else fig.layout.xaxis.title.text,
        showgrid=True,
        gridcolor="rgba(0,0,0,0.06)",
        zeroline=False,
        ticks="outside",
    )
    fig.update_yaxes(
        title_text=y_title if y_title is not None else fig.layout.yaxis.title.text,
        showgrid=True,
        gridcolor="rgba(0,0,0,0.06)",
        zeroline=False,
        ticks="outside",
    )
    return fig
