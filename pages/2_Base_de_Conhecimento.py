import streamlit as st

from eprosys.models import FAQ, ImageWithMetadata
from eprosys.reports import faq_categories, filter_faqs, format_datetime_br
from ui.runtime import init_page, run_action

hub = init_page("Base de Conhecimento", "Base de Conhecimento")
store = hub.faqs

st.title("Base de Conhecimento")

rows = store.rows
categories = faq_categories(rows)
authors = [a["name"] for a in hub.authors.rows]

# ============================================================
# Novo FAQ
# ============================================================
with st.expander("➕ Novo FAQ", expanded=False):
    with st.form("novo_faq", clear_on_submit=True):
        title = st.text_input("Título")
        c1, c2 = st.columns(2)
        with c1:
            category = st.text_input("Categoria", placeholder=", ".join(categories[:3]))
        with c2:
            author = st.selectbox("Autor", [""] + authors)
        description = st.text_area("Descrição", height=160)
        image_src = st.text_input("Imagem (URL, opcional)")
        if st.form_submit_button("Adicionar", type="primary"):
            images = [ImageWithMetadata(src=image_src)] if image_src.strip() else []
            run_action(
                lambda: store.insert(
                    FAQ(title=title, category=category, description=description, author=author, images=images)
                ),
                "FAQ adicionado",
                title.strip() or None,
            )

# ============================================================
# Filtros
# ============================================================
f1, f2 = st.columns([3, 1])
with f1:
    search = st.text_input("Buscar", placeholder="Título ou descrição", key="faq_search")
with f2:
    category_filter = st.selectbox(
        "Categoria",
        ["all"] + categories,
        format_func=lambda c: "Todas" if c == "all" else c,
        key="faq_category",
    )

filtered = filter_faqs(rows, search, category_filter)
st.caption(f"{len(filtered)} de {len(rows)} FAQs")

if store.error is not None and not rows:
    st.error("Não foi possível carregar os FAQs.")

# ============================================================
# Lista
# ============================================================
for faq in filtered:
    fid = faq["id"]
    pending = " ⏳" if store.is_pending(fid) else ""
    with st.expander(f"**{faq.get('title') or ''}** · {faq.get('category') or ''}{pending}"):
        st.write(faq.get("description") or "")
        for img in faq.get("images") or []:
            st.image(img.get("src"), caption=img.get("title") or img.get("description") or None)
        st.caption(f"{faq.get('author') or 'Sem autor'} · {format_datetime_br(faq.get('created_at'))}")

        if fid < 0:
            continue

        with st.form(f"img_{fid}", clear_on_submit=True):
            i1, i2 = st.columns([2, 1])
            with i1:
                src = st.text_input("Adicionar imagem (URL)")
            with i2:
                img_title = st.text_input("Legenda")
            if st.form_submit_button("Anexar imagem"):
                run_action(
                    lambda: store.add_image(fid, ImageWithMetadata(src=src, title=img_title)),
                    "Imagem anexada",
                )

        if st.button("🗑️ Remover FAQ", key=f"del_faq_{fid}"):
            run_action(lambda: store.delete(fid), "FAQ removido", faq.get("title"))
