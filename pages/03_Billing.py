import streamlit as st

from engmat.commission import FORECAST_INDEX_COLS, commission_forecast, forecast_total
from engmat.report import build_billing_pdf, format_currency
from engmat.reporting import invoiced_orders, revenue_by_factory, totals
from engmat.session import period_filter, require_service

st.set_page_config(page_title="Faturamento", page_icon="💰", layout="wide")
service = require_service()
st.title("Faturamento e comissões")

flt = period_filter("billing")

invoiced = invoiced_orders(service.orders, flt)
revenue = revenue_by_factory(invoiced)
forecast = commission_forecast(service.orders, flt.start, flt.end, factory=flt.factory)

c1, c2 = st.columns(2)
c1.metric("Faturamento no período", format_currency(totals(invoiced)["value"]))
c2.metric("Comissões previstas no período", format_currency(forecast_total(forecast)))

left, right = st.columns(2)
with left:
    st.subheader("Faturamento por fábrica")
    if revenue.empty:
        st.info("Nenhum pedido faturado no período.")
    else:
        st.bar_chart(revenue.set_index("name")[["value"]])

with right:
    st.subheader("Previsão de comissões por mês")
    if forecast.empty:
        st.info("Nenhuma comissão prevista no período.")
    else:
        chart = forecast.drop(columns=["month"]).set_index("label")
        st.bar_chart(chart, stack=True)
        st.dataframe(forecast.drop(columns=FORECAST_INDEX_COLS[:1]), use_container_width=True, hide_index=True)

pdf_bytes = build_billing_pdf(revenue, forecast, flt.start, flt.end, factory=flt.factory or "")
st.download_button(
    label="📄 Exportar relatório em PDF",
    data=pdf_bytes,
    file_name=f"faturamento_{flt.start}_{flt.end}.pdf",
    mime="application/pdf",
)
