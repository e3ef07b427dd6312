from datetime import date, timedelta

import streamlit as st
import plotly.express as px

from eprosys.helpers import apply_plot_theme
from eprosys.models import Sped
from eprosys.reports import daily_sped_summary, speds_by_date_range, speds_per_day
from ui.runtime import init_page, run_action

hub = init_page("SPEDs", "SPEDs")
store = hub.speds

st.title("SPEDs")

authors = [a["name"] for a in hub.authors.rows]

# ============================================================
# Registro do dia
# ============================================================
with st.container(border=True):
    st.markdown("**Registrar SPEDs gerados**")
    if not authors:
        st.info("Cadastre autores em **Configuração** antes de registrar SPEDs.")
    else:
        with st.form("novo_sped", clear_on_submit=True):
            c1, c2, c3 = st.columns([1.2, 1.6, 0.8])
            with c1:
                dia = st.date_input("Data", value=date.today(), format="DD/MM/YYYY")
            with c2:
                author = st.selectbox("Autor", authors)
            with c3:
                count = st.number_input("Quantidade", min_value=0, value=1, step=1)
            if st.form_submit_button("Registrar", type="primary"):
                run_action(
                    lambda: store.insert(Sped(date=dia.isoformat(), author=author, count=int(count))),
                    "SPED registrado",
                    f"{author}: {int(count)}",
                )

rows = store.rows

# ============================================================
# Resumo do dia
# ============================================================
st.subheader("Resumo do dia")
dia_resumo = st.date_input("Dia", value=date.today(), format="DD/MM/YYYY", key="sped_dia")
resumo = daily_sped_summary(rows, dia_resumo)

c1, c2 = st.columns([1, 3])
c1.metric("Total no dia", resumo["total_count"])
with c2:
    if resumo["by_author"]:
        st.dataframe(
            [{"Autor": k, "SPEDs": v} for k, v in sorted(resumo["by_author"].items())],
            use_container_width=True,
            hide_index=True,
        )
    else:
        st.caption("Nenhum SPED registrado neste dia.")

# ============================================================
# Período
# ============================================================
st.subheader("Período")
p1, p2 = st.columns(2)
with p1:
    inicio = st.date_input("De", value=date.today() - timedelta(days=30), format="DD/MM/YYYY")
with p2:
    fim = st.date_input("Até", value=date.today(), format="DD/MM/YYYY")

no_periodo = speds_by_date_range(rows, inicio, fim)
df = speds_per_day(no_periodo)
if df.empty:
    st.info("Nenhum SPED no período.")
else:
    fig = px.bar(df, x="date", y="count", color="author", barmode="stack")
    apply_plot_theme(fig, height=360, x_title="Data", y_title="SPEDs", legend=dict(orientation="h", y=-0.25))
    st.plotly_chart(fig, use_container_width=True)
    st.caption(f"{int(df['count'].sum()):,} SPEDs em {df['date'].nunique()} dias")

# ============================================================
# Reset
# ============================================================
with st.expander("⚠️ Resetar SPEDs"):
    st.warning("Remove **todos** os registros de SPED. Não há como desfazer.")
    confirm = st.checkbox("Entendi, quero apagar tudo")
    if st.button("Resetar", type="primary", disabled=not confirm):
        run_action(store.reset_all, "SPEDs resetados")
