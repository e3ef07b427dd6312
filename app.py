from datetime import date

import streamlit as st
import pandas as pd
import plotly.express as px

from eprosys.helpers import apply_plot_theme, daily_password, STATUS_COLORS, STATUS_LABELS
from eprosys.reports import faq_categories, pendencia_stats, daily_sped_summary
from ui.runtime import init_page

hub = init_page("Painel", "Painel")

st.title("E-PROSYS • Painel")

pendencias = hub.pendencias.rows
stats = pendencia_stats(pendencias)
faqs = hub.faqs.rows
speds_hoje = daily_sped_summary(hub.speds.rows, date.today())

# ============================================================
# KPIs
# ============================================================
c1, c2, c3, c4, c5 = st.columns(5)
c1.metric("Pendências abertas", stats["total"] - stats["concluidas"])
c2.metric("Urgentes", stats["urgentes"])
c3.metric("FAQs", len(faqs), help=f"{len(faq_categories(faqs))} categorias")
c4.metric("Acessos", len(hub.acessos))
c5.metric("SPEDs hoje", speds_hoje["total_count"])

st.divider()

left, right = st.columns([1.4, 1.0])

# ============================================================
# Pendências por status
# ============================================================
with left:
    st.subheader("Pendências por status")
    if not pendencias:
        st.info("Nenhuma pendência cadastrada.")
    else:
        df = pd.DataFrame({
            "Status": [STATUS_LABELS[k] for k in ("nao-concluido", "em-andamento", "concluido")],
            "Quantidade": [stats["nao_concluidas"], stats["em_andamento"], stats["concluidas"]],
        })
        fig = px.bar(
            df,
            x="Status",
            y="Quantidade",
            color="Status",
            color_discrete_map={STATUS_LABELS[k]: v for k, v in STATUS_COLORS.items()},
            text="Quantidade",
        )
        fig.update_traces(textposition="outside", cliponaxis=False)
        apply_plot_theme(fig, height=320, x_title="", y_title="Pendências", legend=dict(orientation="h", y=-0.2))
        st.plotly_chart(fig, use_container_width=True)

# ============================================================
# Senha do dia + atividade recente
# ============================================================
with right:
    with st.container(border=True):
        st.markdown("**🔑 Senha do dia**")
        st.code(daily_password(), language=None)

    st.subheader("Atividade recente")
    activities = hub.activity.items()
    if not activities:
        st.caption("Nenhuma atividade nesta sessão do servidor.")
    for a in activities[:15]:
        badge = " 🆕" if a.is_new() else ""
        quando = a.timestamp.astimezone().strftime("%d/%m %H:%M")
        linha = f"**{a.title}**{badge}  \n"
        if a.description:
            linha += f"{a.description} · "
        if a.author:
            linha += f"{a.author} · "
        linha += quando
        st.markdown(linha)
