import streamlit as st
import pandas as pd

from eprosys.models import Acesso
from eprosys.reports import filter_acessos
from ui.runtime import init_page, run_action

hub = init_page("Acessos", "Acessos")
store = hub.acessos

st.title("Acessos")

with st.expander("➕ Novo acesso", expanded=False):
    with st.form("novo_acesso", clear_on_submit=True):
        c1, c2 = st.columns(2)
        with c1:
            posto = st.text_input("Posto")
            usuario = st.text_input("Usuário")
            adquirente = st.text_input("Adquirente")
        with c2:
            maquina = st.text_input("Máquina")
            senha = st.text_input("Senha", type="password")
            status_maquininha = st.text_input("Status da maquininha")
        trabalho_andamento = st.text_area("Trabalho em andamento")
        if st.form_submit_button("Adicionar", type="primary"):
            run_action(
                lambda: store.insert(
                    Acesso(
                        posto=posto,
                        maquina=maquina,
                        usuario=usuario,
                        senha=senha,
                        adquirente=adquirente,
                        trabalho_andamento=trabalho_andamento,
                        status_maquininha=status_maquininha,
                    )
                ),
                "Acesso cadastrado",
                posto.strip() or None,
            )

rows = store.rows
search = st.text_input("Buscar", placeholder="Posto, máquina ou usuário", key="acesso_search")
filtered = filter_acessos(rows, search)

if not filtered:
    st.info("Nenhum acesso encontrado.")
else:
    mostrar_senhas = st.toggle("Mostrar senhas", value=False)
    df_view = pd.DataFrame([
        {
            "Posto": r.get("posto"),
            "Máquina": r.get("maquina"),
            "Usuário": r.get("usuario"),
            "Senha": r.get("senha") if mostrar_senhas else "••••••",
            "Adquirente": r.get("adquirente") or "",
            "Trabalho em andamento": r.get("trabalho_andamento") or "",
            "Maquininha": r.get("status_maquininha") or "",
        }
        for r in filtered
    ])
    st.dataframe(df_view, use_container_width=True, hide_index=True)
    st.caption(f"{len(filtered):,} acessos exibidos")

    st.subheader("Remover acesso")
    options = {r["id"]: f"{r.get('posto')} · {r.get('maquina')} · {r.get('usuario')}" for r in filtered if r["id"] > 0}
    if options:
        c1, c2 = st.columns([4, 1], vertical_alignment="bottom")
        with c1:
            alvo = st.selectbox("Acesso", list(options), format_func=options.get, key="acesso_del")
        with c2:
            if st.button("🗑️ Remover", use_container_width=True):
                run_action(lambda: store.delete(alvo), "Acesso removido", options[alvo])
