from __future__ import annotations

import io
import json
from typing import List, Sequence, Tuple

import pandas as pd

from .dates import iso_day
from .models import Order, Quote

SHEET_QUOTES = "quotes"
SHEET_ORDERS = "orders"

DATE_COLS = {
    SHEET_QUOTES: ["date"],
    SHEET_ORDERS: ["send_date", "delivery_date", "system_forecast", "invoice_date"],
}


# ---- Header normalization helper ------------------------------------------------
def _normalize_cols(df: pd.DataFrame) -> pd.DataFrame:
    df = df.copy()
    df.columns = (
        df.columns.astype(str)
        .str.strip().str.lower()
        .str.replace(r"[^\w]+", "_", regex=True)  # spaces/punct -> underscore
        .str.strip("_")
    )
    return df


# ---- Records <-> frames ----------------------------------------------------------
def records_frame(records: Sequence) -> pd.DataFrame:
    """Flat frame of quotes or orders, one row per record."""
    return pd.DataFrame([r.to_dict() for r in records])


def _cell(value):
    if value is None:
        return None
    if isinstance(value, float) and pd.isna(value):
        return None
    return value


# ---- Canonicalize dtypes before building records --------------------------------
def _postprocess(df: pd.DataFrame, sheet: str) -> pd.DataFrame:
    out = _normalize_cols(df)
    if "value" in out.columns:
        out["value"] = pd.to_numeric(out["value"], errors="coerce").fillna(0.0)
    if "quantity" in out.columns:
        out["quantity"] = pd.to_numeric(out["quantity"], errors="coerce").fillna(0).astype(int)
    for col in DATE_COLS[sheet]:
        if col in out.columns:
            parsed = pd.to_datetime(out[col], errors="coerce")
            out[col] = [iso_day(d) if not pd.isna(d) else None for d in parsed]
    for col in ("id", "po_number", "phone"):
        if col in out.columns:
            out[col] = out[col].map(lambda v: None if _cell(v) is None else str(v))
    return out


def _rows(df: pd.DataFrame) -> List[dict]:
    return [{k: _cell(v) for k, v in row.items()} for row in df.to_dict(orient="records")]


# ---- Workbook export / import ----------------------------------------------------
def export_workbook(quotes: Sequence[Quote], orders: Sequence[Order]) -> bytes:
    """Write quotes and orders to an .xlsx, one sheet each (follow-ups as JSON text)."""
    qdf = records_frame(quotes)
    if not qdf.empty:
        qdf["follow_ups"] = qdf["follow_ups"].map(lambda fus: json.dumps(fus, ensure_ascii=False))
    odf = records_frame(orders)
    buf = io.BytesIO()
    with pd.ExcelWriter(buf, engine="openpyxl") as writer:
        qdf.to_excel(writer, sheet_name=SHEET_QUOTES, index=False)
        odf.to_excel(writer, sheet_name=SHEET_ORDERS, index=False)
    return buf.getvalue()


def import_workbook(buf: bytes) -> Tuple[List[Quote], List[Order]]:
    """
    Read a workbook produced by `export_workbook` (or edited by hand).

    Missing sheets are treated as empty. Records without an id get a new one.
    """
    sheets = pd.read_excel(io.BytesIO(buf), sheet_name=None)
    quotes: List[Quote] = []
    orders: List[Order] = []

    qdf = sheets.get(SHEET_QUOTES)
    if qdf is not None and not qdf.empty:
        for row in _rows(_postprocess(qdf, SHEET_QUOTES)):
            raw = row.get("follow_ups")
            row["follow_ups"] = json.loads(raw) if isinstance(raw, str) and raw.strip() else []
            if not row.get("id"):
                row.pop("id", None)
            quotes.append(Quote.from_dict(row))

    odf = sheets.get(SHEET_ORDERS)
    if odf is not None and not odf.empty:
        for row in _rows(_postprocess(odf, SHEET_ORDERS)):
            if not row.get("id"):
                row.pop("id", None)
            orders.append(Order.from_dict(row))

    return quotes, orders
