"""Ligação entre as páginas Streamlit e o hub de sincronização."""

from __future__ import annotations

from typing import Callable, Optional

import streamlit as st

from eprosys.changefeed import SupabaseChangeFeed
from eprosys.config import configure_logging, get_settings
from eprosys.db import SupabaseGateway, get_client
from eprosys.errors import SyncError, ValidationError
from eprosys.sync import SyncHub
from ui.sidebar import render_sidebar_menu

_ICONS = {"info": "🔄", "success": "✅", "error": "⚠️"}


@st.cache_resource
def get_hub() -> SyncHub:
    """Um hub por processo: todas as sessões compartilham snapshot, feed e polling."""
    settings = get_settings()
    configure_logging(settings.log_level)

    gateway = SupabaseGateway(get_client())
    feed = None
    if settings.enable_realtime:
        url, key = settings.require_supabase()
        feed = SupabaseChangeFeed(url, key)

    hub = SyncHub.from_settings(settings, gateway, feed)
    hub.start()
    return hub


def init_page(title: str, page_key: str) -> SyncHub:
    st.set_page_config(page_title=f"{title} • E-PROSYS", layout="wide")

    hub = get_hub()
    st.session_state["current_page"] = page_key
    render_sidebar_menu(hub)
    show_notices(hub)
    st.session_state["seen_version"] = data_version(hub)
    watch_changes(hub)
    return hub


def show_notices(hub: SyncHub) -> None:
    """Mostra (toast) os avisos publicados desde a última vez que esta sessão olhou."""
    cursor = st.session_state.get("notice_cursor")
    notices, last = hub.notifier.since(cursor)
    st.session_state["notice_cursor"] = last
    for notice in notices:
        body = f"**{notice.title}**"
        if notice.description:
            body += f"  \n{notice.description}"
        st.toast(body, icon=_ICONS.get(notice.level))


def run_action(action: Callable[[], object], success: str, description: Optional[str] = None) -> bool:
    """
    Executa uma escrita do usuário. Erros de validação e escritas revertidas
    viram toast; devolve True se deu certo.
    """
    try:
        action()
    except ValidationError as exc:
        st.toast(exc.message, icon="⚠️")
        return False
    except SyncError as exc:
        st.toast(f"**Erro**  \n{exc}", icon="⚠️")
        return False
    body = f"**{success}**"
    if description:
        body += f"  \n{description}"
    st.toast(body, icon="✅")
    return True


def data_version(hub: SyncHub) -> int:
    return sum(store.version for store in hub.stores.values())


@st.fragment(run_every=2)
def watch_changes(hub: SyncHub) -> None:
    """Recarrega a página quando o feed ou o polling mudarem algum snapshot."""
    version = data_version(hub)
    seen = st.session_state.setdefault("seen_version", version)
    if version != seen:
        st.session_state["seen_version"] = version
        st.rerun()
