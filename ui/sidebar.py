import streamlit as st

PAGES = {
    "Painel": "app.py",
    "Pendências": "pages/1_Pendencias.py",
    "Base de Conhecimento": "pages/2_Base_de_Conhecimento.py",
    "Acessos": "pages/3_Acessos.py",
    "SPEDs": "pages/4_SPEDs.py",
    "Configuração": "pages/5_Configuracao.py",
}


def render_connection_status(hub):
    if hub.is_connected:
        st.success("🟢 Tempo real")
    elif hub.is_polling:
        st.warning(f"🟡 Polling a cada {hub.polling_interval:.0f}s")
    else:
        st.error("🔴 Sem atualização automática")

    last = hub.last_update
    if last is not None:
        st.caption(f"Última atualização: {last.astimezone().strftime('%d/%m/%Y %H:%M:%S')}")


def render_sidebar_menu(hub=None):
    with st.sidebar:
        options = list(PAGES.keys())

        current = st.session_state.get("current_page", "Painel")
        if current not in options:
            current = "Painel"

        st.sidebar.title("📌 E-PROSYS")

        selected = st.radio(
            "Ir para:",
            options,
            index=options.index(current),
            key="nav_selected",
        )

        if hub is not None:
            st.divider()
            render_connection_status(hub)

    if selected != current:
        st.session_state["current_page"] = selected
        st.switch_page(PAGES[selected])
