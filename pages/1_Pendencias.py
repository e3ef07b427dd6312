import streamlit as st

from eprosys.helpers import PENDENCIA_STATUSES, STATUS_LABELS, canonical_status, status_badge
from eprosys.models import Pendencia
from eprosys.reports import (
    export_filename,
    filter_pendencias,
    format_datetime_br,
    pendencia_stats,
    pendencias_to_csv,
)
from ui.runtime import init_page, run_action

hub = init_page("Pendências", "Pendências")
store = hub.pendencias

st.title("Pendências")

authors = [a["name"] for a in hub.authors.rows]


def _change_status(pid, previous):
    novo = st.session_state[f"status_{pid}"]
    ok = run_action(lambda: store.update_status(pid, novo), "Status atualizado", STATUS_LABELS[novo])
    if not ok:
        st.session_state[f"status_{pid}"] = previous


# ============================================================
# Nova pendência
# ============================================================
with st.expander("➕ Nova pendência", expanded=False):
    with st.form("nova_pendencia", clear_on_submit=True):
        titulo = st.text_input("Título")
        descricao = st.text_area("Descrição")
        c1, c2, c3 = st.columns(3)
        with c1:
            status = st.selectbox("Status", PENDENCIA_STATUSES, format_func=STATUS_LABELS.get)
        with c2:
            author = st.selectbox("Autor", [""] + authors)
        with c3:
            urgente = st.checkbox("Urgente")
        if st.form_submit_button("Adicionar", type="primary"):
            run_action(
                lambda: store.insert(
                    Pendencia(titulo=titulo, descricao=descricao, status=status, urgente=urgente, author=author)
                ),
                "Pendência adicionada",
                titulo.strip() or None,
            )

# ============================================================
# Resumo + filtros
# ============================================================
rows = store.rows
stats = pendencia_stats(rows)

m1, m2, m3, m4, m5 = st.columns(5)
m1.metric("Total", stats["total"])
m2.metric("Urgentes", stats["urgentes"])
m3.metric("Não concluídas", stats["nao_concluidas"])
m4.metric("Em andamento", stats["em_andamento"])
m5.metric("Concluídas", stats["concluidas"])

f1, f2 = st.columns([3, 1], vertical_alignment="bottom")
with f1:
    search = st.text_input("Buscar", placeholder="Título ou descrição", key="pend_search")
with f2:
    st.download_button(
        "⬇️ Exportar CSV",
        data=pendencias_to_csv(rows),
        file_name=export_filename("pendencias"),
        mime="text/csv",
        use_container_width=True,
    )

filtered = filter_pendencias(rows, search)

if store.error is not None and not rows:
    st.error("Não foi possível carregar as pendências.")
elif not filtered:
    st.info("Nenhuma pendência encontrada.")

# ============================================================
# Lista
# ============================================================
for p in filtered:
    pid = p["id"]
    with st.container(border=True):
        head, actions = st.columns([4, 2])
        with head:
            urgente = " 🔥 **URGENTE**" if p.get("urgente") else ""
            pendente = " ⏳" if store.is_pending(pid) else ""
            st.markdown(f"#### {p.get('titulo') or ''}{urgente}{pendente}")
            st.markdown(status_badge(p.get("status")), unsafe_allow_html=True)
            st.write(p.get("descricao") or "")
            st.caption(f"{format_datetime_br(p.get('data'))} · {p.get('author') or 'Sem autor'}")

        with actions:
            if pid < 0:
                # inserção otimista ainda sem id do servidor
                continue
            current = canonical_status(p.get("status"))
            if current not in PENDENCIA_STATUSES:
                current = "nao-concluido"
            # o widget sempre mostra o status do snapshot (pode ter mudado em outra sessão)
            st.session_state[f"status_{pid}"] = current
            st.selectbox(
                "Status",
                PENDENCIA_STATUSES,
                format_func=STATUS_LABELS.get,
                key=f"status_{pid}",
                on_change=_change_status,
                args=(pid, current),
            )

            b1, b2 = st.columns(2)
            with b1:
                label = "Normal" if p.get("urgente") else "Urgente"
                if st.button(label, key=f"urg_{pid}", use_container_width=True):
                    run_action(
                        lambda: store.update(pid, {"urgente": not p.get("urgente")}),
                        "Urgência atualizada",
                    )
            with b2:
                if st.button("🗑️", key=f"del_{pid}", use_container_width=True):
                    run_action(lambda: store.delete(pid), "Pendência removida", p.get("titulo"))
