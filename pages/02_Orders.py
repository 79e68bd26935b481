import streamlit as st
import pandas as pd
from datetime import date

from engmat.dates import format_date
from engmat.derivation import compute_delivery_date
from engmat.models import (
    FACTORY_OPTIONS,
    FACTORY_PRODUCTS,
    ORDER_STATUS_OPTIONS,
    PAYMENT_TERMS_OPTIONS,
    Factory,
    Order,
    OrderStatus,
    ValidationError,
    validate_order,
)
from engmat.report import format_currency
from engmat.reporting import ReportFilter, filter_orders, is_delivery_late, status_alert, totals
from engmat.session import get_config, period_filter, require_service, show_result

st.set_page_config(page_title="Pedidos", page_icon="🧾", layout="wide")
service = require_service()
st.title("Pedidos")

# Filters
period = period_filter("orders")
with st.form("order_filter_form"):
    c1, c2 = st.columns(2)
    with c1:
        search = st.text_input("Busca (construtora, obra, OC, produto)")
    with c2:
        status = st.selectbox("Status", ["(todos)"] + ORDER_STATUS_OPTIONS)
    st.form_submit_button("Aplicar")

flt = ReportFilter(start=period.start, end=period.end, factory=period.factory,
                   status=None if status == "(todos)" else status, search=search)
orders = filter_orders(service.orders, flt)
summary = totals(orders)
st.caption(f"Registros: **{summary['count']}** · Total: **{format_currency(summary['value'])}**"
           f" · Qtd: **{summary.get('quantity', 0)}**")

today = date.today()
if orders:
    df = pd.DataFrame([{
        "OC": o.po_number,
        "Construtora": o.constructor_name,
        "Obra": o.work_name,
        "Envio": format_date(o.send_date, "dd/MM/yyyy"),
        "Entrega": (format_date(o.delivery_date, "dd/MM/yyyy") if o.delivery_date else "")
        + (" (manual)" if o.is_manual_delivery_date else ""),
        "Previsão": format_date(o.system_forecast, "dd/MM/yyyy") if o.system_forecast else "",
        "Atrasado": "⚠️" if is_delivery_late(o) else "",
        "Fábrica": o.factory.value,
        "Produto": o.product,
        "Qtd": o.quantity,
        "Valor": o.value,
        "Status": o.status.value,
        "Alerta": status_alert(o, today) or "",
    } for o in orders])
    st.dataframe(df, use_container_width=True, hide_index=True)
else:
    st.info("Nenhum pedido encontrado.")

# ---- New / edit ------------------------------------------------------------------
st.markdown("### Novo / editar pedido")
labels = {o.id: f"{o.po_number} • {o.constructor_name} • {o.work_name}" for o in orders}
editing_id = st.selectbox("Pedido", [None] + list(labels), format_func=lambda i: "(novo)" if i is None else labels[i])
editing = service.get_order(editing_id) if editing_id else None

factory = st.selectbox("Fábrica", FACTORY_OPTIONS,
                       index=FACTORY_OPTIONS.index(editing.factory.value) if editing else 0)
products = FACTORY_PRODUCTS[Factory(factory)]

with st.form("order_form"):
    c1, c2, c3 = st.columns(3)
    with c1:
        constructor = st.text_input("Construtora", value=editing.constructor_name if editing else "")
        work = st.text_input("Obra", value=editing.work_name if editing else "")
        po_number = st.text_input("Nº OC (vazio = automático)", value=editing.po_number if editing else "")
        product = st.selectbox("Produto", products,
                               index=products.index(editing.product) if editing and editing.product in products else 0)
    with c2:
        send_date = st.date_input("Data de envio", value=date.fromisoformat(editing.send_date) if editing else today)
        manual = st.checkbox("Data de entrega manual", value=editing.is_manual_delivery_date if editing else False)
        auto = compute_delivery_date(product, send_date, service.settings)
        delivery = st.date_input(
            "Data de entrega",
            value=date.fromisoformat(editing.delivery_date if editing and editing.delivery_date else auto),
        )
        st.caption(f"Prazo de {service.lead_time(product)} dias → {format_date(auto, 'dd/MM/yyyy')}")
        forecast = st.date_input(
            "Previsão do sistema",
            value=date.fromisoformat(editing.system_forecast) if editing and editing.system_forecast else None,
        )
    with c3:
        quantity = st.number_input("Quantidade", min_value=0, value=int(editing.quantity) if editing else 0, step=1)
        value = st.number_input("Valor (R$)", min_value=0.0, value=float(editing.value) if editing else 0.0, step=100.0)
        ostatus = st.selectbox("Status", ORDER_STATUS_OPTIONS,
                               index=ORDER_STATUS_OPTIONS.index(editing.status.value) if editing else 0)
    save = st.form_submit_button("Salvar")

if save:
    order = Order(
        constructor_name=constructor,
        work_name=work,
        send_date=send_date.isoformat(),
        factory=Factory(factory),
        product=product,
        quantity=int(quantity),
        value=float(value),
        status=OrderStatus(ostatus),
        po_number=po_number.strip(),
        delivery_date=delivery.isoformat() if manual else "",
        is_manual_delivery_date=manual,
        system_forecast=forecast.isoformat() if forecast else None,
    )
    if editing:
        order.id = editing.id
        order.status_date = editing.status_date
        order.invoice_date = editing.invoice_date
        order.payment_terms = editing.payment_terms
        order.commission_rate = editing.commission_rate
        if not manual:
            order.delivery_date = editing.delivery_date
    try:
        validate_order(order)
    except ValidationError as e:
        st.error(str(e))
    else:
        result = service.update_order(order) if editing else service.add_order(order)
        show_result(result, "Pedido salvo.")

if editing:
    # ---- Invoicing -----------------------------------------------------------
    st.markdown("### Faturar pedido")
    with st.form("billing_form"):
        c1, c2, c3 = st.columns(3)
        with c1:
            invoice_date = st.date_input("Data da NF", value=today)
        with c2:
            terms = st.selectbox("Prazo de pagamento", PAYMENT_TERMS_OPTIONS)
        with c3:
            rate = st.number_input("Comissão (%)", min_value=0.0, step=0.5,
                                   value=float(editing.commission_rate or get_config().default_commission_rate))
        bill = st.form_submit_button("Faturar")
    if bill:
        show_result(service.invoice_order(editing.id, invoice_date, terms, rate), "Pedido faturado.")

    if st.button("🗑️ Excluir pedido"):
        if show_result(service.delete_order(editing.id), "Pedido excluído."):
            st.rerun()
