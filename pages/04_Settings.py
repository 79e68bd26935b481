import streamlit as st
from datetime import date

from engmat.data import export_workbook, import_workbook
from engmat.models import FACTORY_PRODUCTS, Settings
from engmat.session import require_service, show_result

st.set_page_config(page_title="Configurações", page_icon="⚙️", layout="wide")
service = require_service()
st.title("Configurações")

current = service.settings

with st.form("settings_form"):
    lead_times = {}
    targets = {}
    for factory, products in FACTORY_PRODUCTS.items():
        st.markdown(f"**{factory.value}**")
        cols = st.columns(len(products) + 1)
        with cols[0]:
            targets[factory.value] = st.number_input(
                "Meta mensal (R$)", min_value=0.0, step=1000.0,
                value=current.monthly_target(factory.value), key=f"target_{factory.value}",
            )
        for col, product in zip(cols[1:], products):
            with col:
                lead_times[product] = st.number_input(
                    f"Prazo: {product} (dias)", min_value=0, step=1,
                    value=current.lead_time(product), key=f"lead_{product}",
                )
    save = st.form_submit_button("Salvar alterações")

if save:
    merged = Settings(
        lead_times={**current.lead_times, **{p: int(d) for p, d in lead_times.items()}},
        targets={**current.targets, **{f: float(v) for f, v in targets.items()}},
    )
    show_result(service.update_settings(merged), "Configurações salvas com sucesso!")

# ---- Backup / restore ------------------------------------------------------------
st.markdown("### Backup")
st.download_button(
    "📥 Exportar orçamentos e pedidos (.xlsx)",
    data=export_workbook(service.quotes, service.orders),
    file_name=f"engmat_backup_{date.today().isoformat()}.xlsx",
    mime="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
)

up = st.file_uploader("Importar planilha (.xlsx) — abas 'quotes' e 'orders'", type=["xlsx"])
if up is not None and st.button("Importar"):
    try:
        quotes, orders = import_workbook(up.read())
    except (ValueError, KeyError) as e:
        st.error(f"Erro ao ler a planilha: {e}")
        st.stop()
    results = service.restore(quotes, orders)
    failed = [r for r in results if not r.ok]
    st.success(f"{len(results) - len(failed)} de {len(results)} registros importados.")
    for r in failed:
        st.error(r.error)
