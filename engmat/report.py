from __future__ import annotations

from io import BytesIO

import pandas as pd
from reportlab.lib import colors
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from .commission import FORECAST_INDEX_COLS
from .dates import format_date

TABLE_STYLE = TableStyle([
    ("BACKGROUND", (0, 0), (-1, 0), colors.grey),
    ("TEXTCOLOR", (0, 0), (-1, 0), colors.whitesmoke),
    ("ALIGN", (1, 0), (-1, -1), "RIGHT"),
    ("GRID", (0, 0), (-1, -1), 0.5, colors.black),
    ("BOTTOMPADDING", (0, 0), (-1, 0), 6),
])


def format_currency(value: float) -> str:
    """R$ 1.234,56"""
    s = f"{value:,.2f}".replace(",", "X").replace(".", ",").replace("X", ".")
    return f"R$ {s}"


def _table(data) -> Table:
    t = Table(data, hAlign="LEFT")
    t.setStyle(TABLE_STYLE)
    return t


def build_billing_pdf(
    revenue: pd.DataFrame,
    forecast: pd.DataFrame,
    start: str,
    end: str,
    factory: str = "",
) -> bytes:
    """Revenue by factory and monthly commission forecast for the period, as PDF bytes."""
    buf = BytesIO()
    doc = SimpleDocTemplate(buf)
    styles = getSampleStyleSheet()
    elems = []

    header = "Faturamento e comissões"
    if factory:
        header += f" | {factory}"
    elems.append(Paragraph(header, styles["Title"]))
    elems.append(Paragraph(f"Período: {format_date(start, 'dd/MM/yyyy')} – {format_date(end, 'dd/MM/yyyy')}",
                           styles["Normal"]))
    elems.append(Spacer(1, 8))

    elems.append(Paragraph("Faturamento por fábrica", styles["Heading2"]))
    if revenue.empty:
        elems.append(Paragraph("Nenhum pedido faturado no período.", styles["Normal"]))
    else:
        data = [["Fábrica", "Faturamento"]]
        data += [[str(r["name"]), format_currency(float(r["value"]))] for _, r in revenue.iterrows()]
        data.append(["Total", format_currency(float(revenue["value"].sum()))])
        elems.append(_table(data))
    elems.append(Spacer(1, 12))

    elems.append(Paragraph("Previsão de comissões", styles["Heading2"]))
    factory_cols = [c for c in forecast.columns if c not in FORECAST_INDEX_COLS]
    if forecast.empty or not factory_cols:
        elems.append(Paragraph("Nenhuma comissão prevista no período.", styles["Normal"]))
    else:
        data = [["Mês"] + factory_cols]
        for _, r in forecast.iterrows():
            data.append([str(r["label"])] + [format_currency(float(r[c])) for c in factory_cols])
        elems.append(_table(data))

    doc.build(elems)
    pdf = buf.getvalue()
    buf.close()
    return pdf
