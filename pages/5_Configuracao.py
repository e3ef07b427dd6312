import streamlit as st
import pandas as pd

from eprosys.db import check_tables
from eprosys.models import Author
from ui.runtime import init_page, run_action

hub = init_page("Configuração", "Configuração")
store = hub.authors

st.title("Configuração")

# ============================================================
# Autores
# ============================================================
st.header("Autores")

with st.form("novo_autor", clear_on_submit=True):
    c1, c2 = st.columns([4, 1], vertical_alignment="bottom")
    with c1:
        name = st.text_input("Nome do autor")
    with c2:
        submitted = st.form_submit_button("Adicionar", type="primary", use_container_width=True)
    if submitted:
        run_action(lambda: store.insert(Author(name=name)), "Autor adicionado", name.strip() or None)

authors = store.rows
if not authors:
    st.info("Nenhum autor cadastrado.")
for a in authors:
    c1, c2 = st.columns([5, 1])
    c1.write(a.get("name"))
    if a["id"] > 0 and c2.button("🗑️", key=f"del_author_{a['id']}"):
        run_action(lambda: store.delete(a["id"]), "Autor removido", a.get("name"))

st.divider()

# ============================================================
# Sincronização
# ============================================================
st.header("Sincronização")

status = hub.status()
df_status = pd.DataFrame([
    {
        "Tabela": name,
        "Linhas": s["rows"],
        "Tempo real": "🟢" if s["connected"] else "🔴",
        "Desatualizada": "sim" if s["stale"] else "",
        "Última atualização": s["last_update"].astimezone().strftime("%d/%m %H:%M:%S") if s["last_update"] else "",
        "Erro": s["error"] or "",
    }
    for name, s in status.items()
])
st.dataframe(df_status, use_container_width=True, hide_index=True)

if st.button("🔄 Recarregar tudo"):
    with st.spinner("Buscando dados no servidor…"):
        hub.refresh_all()
    st.toast("Dados recarregados", icon="✅")

# ============================================================
# Saúde do banco
# ============================================================
st.header("Saúde do banco")

if st.button("Verificar tabelas"):
    with st.spinner("Consultando tabelas…"):
        results = check_tables(hub.gateway, hub.stores.keys())
    for r in results:
        if r.status == "ok":
            st.success(f"**{r.name}**: {r.count:,} registros")
        else:
            st.error(f"**{r.name}**: {r.error}")
