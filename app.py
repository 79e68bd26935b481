import streamlit as st

from engmat.reporting import (
    conversion_rate,
    factory_performance,
    filter_orders,
    filter_quotes,
    forecast_by_product,
    quotes_by_factory,
    sales_by_product,
    total_performance,
    totals,
)
from engmat.report import format_currency
from engmat.session import period_filter, require_service

# ----------------- UI CONFIG -----------------
st.set_page_config(page_title="Central de Controle", page_icon="📊", layout="wide")

service = require_service()

st.title("📊 Dashboard")

# ----------------- FILTERS -----------------
flt = period_filter("dash")

orders = filter_orders(service.orders, flt)
quotes = filter_quotes(service.quotes, flt)

# ----------------- KPIs -----------------
perf = factory_performance(service.orders, service.settings, flt)
overall = total_performance(perf)

c1, c2, c3, c4 = st.columns(4)
c1.metric("Vendas (pedidos)", format_currency(totals(orders)["value"]))
c2.metric("Orçamentos", format_currency(totals(quotes)["value"]))
c3.metric("Conversão", f"{conversion_rate(quotes):.1f}%")
c4.metric("Atingimento da meta", f"{overall['real_percentage']:.1f}%")
st.progress(overall["percentage"] / 100)

# ----------------- TARGETS -----------------
st.subheader("🎯 Meta x Realizado por fábrica")
view = st.radio("Exibir", ["%", "Valor"], horizontal=True, key="target_view")
if perf.empty:
    st.info("Nenhuma fábrica no filtro.")
elif view == "%":
    st.bar_chart(perf.set_index("name")[["percentage"]])
else:
    st.bar_chart(perf.set_index("name")[["sales", "target"]])

# ----------------- FORECAST -----------------
left, right = st.columns(2)
with left:
    st.subheader("🚚 Previsão de entrega (qtd)")
    fc = forecast_by_product(service.orders, flt)
    if fc.empty:
        st.info("Sem previsões no período.")
    else:
        st.dataframe(fc, use_container_width=True, hide_index=True)

with right:
    st.subheader("📦 Mix de vendas por produto")
    metric = st.radio("Métrica", ["value", "quantity"], horizontal=True, key="mix_view",
                      format_func=lambda m: "Valor" if m == "value" else "Quantidade")
    mix = sales_by_product(orders, metric=metric)
    if mix.empty:
        st.info("Sem pedidos no período.")
    else:
        st.bar_chart(mix.set_index("name")[[metric]])

# ----------------- QUOTES -----------------
st.subheader("📝 Orçamentos por fábrica")
qview = st.radio("Exibir", ["count", "value"], horizontal=True, key="quote_view",
                 format_func=lambda m: "Quantidade" if m == "count" else "Valor")
qbf = quotes_by_factory(quotes)
if qbf.empty:
    st.info("Sem orçamentos no período.")
else:
    st.bar_chart(qbf.set_index("name")[[qview]])
