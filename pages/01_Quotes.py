import streamlit as st
import pandas as pd
from datetime import date

from engmat.dates import format_date
from engmat.models import (
    FACTORY_OPTIONS,
    FACTORY_PRODUCTS,
    QUOTE_STATUS_OPTIONS,
    Factory,
    Quote,
    QuoteStatus,
    ValidationError,
    validate_quote,
)
from engmat.report import format_currency
from engmat.reporting import ReportFilter, filter_quotes, totals
from engmat.session import period_filter, require_service, show_result

st.set_page_config(page_title="Orçamentos", page_icon="📝", layout="wide")
service = require_service()
st.title("Orçamentos")

# Filters
period = period_filter("quotes")
with st.form("quote_filter_form"):
    c1, c2, c3 = st.columns(3)
    with c1:
        search = st.text_input("Busca (construtora, obra, produto)")
    with c2:
        status = st.selectbox("Status", ["(todos)"] + QUOTE_STATUS_OPTIONS)
    with c3:
        newest_first = st.selectbox("Ordem", ["Mais recentes", "Mais antigos"]) == "Mais recentes"
    st.form_submit_button("Aplicar")

flt = ReportFilter(start=period.start, end=period.end, factory=period.factory,
                   status=None if status == "(todos)" else status, search=search)
quotes = filter_quotes(service.quotes, flt, newest_first=newest_first)
summary = totals(quotes)
st.caption(f"Registros: **{summary['count']}** · Total: **{format_currency(summary['value'])}**")

if quotes:
    df = pd.DataFrame([{
        "Data": format_date(q.date, "dd/MM/yyyy"),
        "Construtora": q.constructor_name,
        "Obra": q.work_name,
        "Fábrica": q.factory.value,
        "Produto": q.product,
        "Status": q.status.value,
        "Valor": q.value,
        "Contato": q.contact_name,
        "Follow-ups": len(q.follow_ups),
    } for q in quotes])
    st.dataframe(df, use_container_width=True, hide_index=True)
else:
    st.info("Nenhum orçamento encontrado.")

# ---- New / edit ------------------------------------------------------------------
st.markdown("### Novo / editar orçamento")
labels = {q.id: f"{q.constructor_name} • {q.work_name} ({format_date(q.date, 'dd/MM/yyyy')})" for q in quotes}
editing_id = st.selectbox("Orçamento", [None] + list(labels), format_func=lambda i: "(novo)" if i is None else labels[i])
editing = service.get_quote(editing_id) if editing_id else None

factory = st.selectbox("Fábrica", FACTORY_OPTIONS,
                       index=FACTORY_OPTIONS.index(editing.factory.value) if editing else 0)
products = FACTORY_PRODUCTS[Factory(factory)]

with st.form("quote_form"):
    c1, c2 = st.columns(2)
    with c1:
        constructor = st.text_input("Construtora", value=editing.constructor_name if editing else "")
        work = st.text_input("Obra", value=editing.work_name if editing else "")
        qdate = st.date_input("Data", value=date.fromisoformat(editing.date) if editing else date.today())
        product = st.selectbox("Produto", products,
                               index=products.index(editing.product) if editing and editing.product in products else 0)
        qstatus = st.selectbox("Status", QUOTE_STATUS_OPTIONS,
                               index=QUOTE_STATUS_OPTIONS.index(editing.status.value) if editing else 0)
    with c2:
        value = st.number_input("Valor (R$)", min_value=0.0, value=float(editing.value) if editing else 0.0, step=100.0)
        contact = st.text_input("Contato", value=editing.contact_name if editing else "")
        phone = st.text_input("Telefone", value=editing.phone if editing else "")
        email = st.text_input("E-mail", value=editing.email if editing else "")
    save = st.form_submit_button("Salvar")

if save:
    quote = Quote(
        constructor_name=constructor,
        work_name=work,
        date=qdate.isoformat(),
        factory=Factory(factory),
        product=product,
        status=QuoteStatus(qstatus),
        value=float(value),
        contact_name=contact,
        phone=phone,
        email=email,
    )
    if editing:
        quote.id = editing.id
        quote.follow_ups = editing.follow_ups
    try:
        validate_quote(quote)
    except ValidationError as e:
        st.error(str(e))
    else:
        result = service.update_quote(quote) if editing else service.add_quote(quote)
        show_result(result, "Orçamento salvo.")

if editing:
    # ---- Follow-ups ----------------------------------------------------------
    st.markdown("### Follow-ups")
    for fu in editing.follow_ups:
        st.write(f"**{format_date(fu.date, 'dd/MM/yyyy HH:mm')}** · {fu.note}")
    with st.form("follow_up_form", clear_on_submit=True):
        note = st.text_area("Nova anotação")
        add = st.form_submit_button("Adicionar follow-up")
    if add and note.strip():
        show_result(service.add_follow_up(editing.id, note.strip()), "Follow-up registrado.")

    if st.button("🗑️ Excluir orçamento"):
        if show_result(service.delete_quote(editing.id), "Orçamento excluído."):
            st.rerun()
