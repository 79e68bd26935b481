"""
Dashboard and table queries.

Every function here is a pure function of (records, filter) -> derived view.
Records are turned into pandas frames and filtered/grouped there; results are
chart-ready frames or plain numbers.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Dict, List, Optional, Sequence

import pandas as pd

from .dates import DateLike, difference_in_days, end_of_month, iso_day, start_of_month, to_date
from .models import FACTORY_OPTIONS, Factory, Order, OrderStatus, Quote, QuoteStatus, Settings

QUOTE_SEARCH_FIELDS = ["constructor_name", "work_name", "product"]
ORDER_SEARCH_FIELDS = ["constructor_name", "work_name", "po_number", "product"]

# status -> days after which the order needs attention
STATUS_ALERT_DAYS = {
    OrderStatus.AWAITING_ENTRY: 5,
    OrderStatus.CREDIT: 2,
}


@dataclass(frozen=True)
class ReportFilter:
    start: str
    end: str
    factory: Optional[str] = None
    status: Optional[str] = None
    search: str = ""

    @classmethod
    def current_month(cls, today: date, **kwargs) -> "ReportFilter":
        return cls(start=iso_day(start_of_month(today)), end=iso_day(end_of_month(today)), **kwargs)


# ---- Frames ----------------------------------------------------------------------
def _frame(records: Sequence, columns: List[str]) -> pd.DataFrame:
    if not records:
        return pd.DataFrame(columns=columns)
    df = pd.DataFrame([r.to_dict() for r in records])
    df["value"] = pd.to_numeric(df["value"], errors="coerce").fillna(0.0)
    if "quantity" in df.columns:
        df["quantity"] = pd.to_numeric(df["quantity"], errors="coerce").fillna(0).astype(int)
    return df


def quotes_frame(quotes: Sequence[Quote]) -> pd.DataFrame:
    return _frame(quotes, ["id", "constructor_name", "work_name", "date", "factory", "product", "status", "value"])


def orders_frame(orders: Sequence[Order]) -> pd.DataFrame:
    return _frame(orders, ["id", "constructor_name", "work_name", "po_number", "send_date", "delivery_date",
                           "factory", "product", "quantity", "value", "status", "status_date",
                           "system_forecast", "invoice_date", "payment_terms", "commission_rate"])


def _mask(df: pd.DataFrame, date_col: str, flt: ReportFilter, search_fields: List[str]) -> pd.Series:
    # ISO day strings compare correctly as text
    dates = df[date_col].fillna("").astype(str).str[:10]
    mask = (dates >= flt.start) & (dates <= flt.end)
    if flt.factory:
        mask &= df["factory"] == flt.factory
    if flt.status:
        mask &= df["status"] == flt.status
    if flt.search:
        hit = pd.Series(False, index=df.index)
        for col in search_fields:
            hit |= df[col].astype(str).str.contains(flt.search, case=False, na=False, regex=False)
        mask &= hit
    return mask


# ---- Filters ---------------------------------------------------------------------
def filter_quotes(quotes: Sequence[Quote], flt: ReportFilter, newest_first: bool = True) -> List[Quote]:
    df = quotes_frame(quotes)
    if df.empty:
        return []
    keep = set(df.loc[_mask(df, "date", flt, QUOTE_SEARCH_FIELDS), "id"])
    out = [q for q in quotes if q.id in keep]
    return sorted(out, key=lambda q: q.date, reverse=newest_first)


def filter_orders(orders: Sequence[Order], flt: ReportFilter) -> List[Order]:
    df = orders_frame(orders)
    if df.empty:
        return []
    keep = set(df.loc[_mask(df, "send_date", flt, ORDER_SEARCH_FIELDS), "id"])
    return [o for o in orders if o.id in keep]


def totals(records: Sequence) -> Dict[str, float]:
    out = {"value": float(sum(r.value for r in records)), "count": len(records)}
    if records and isinstance(records[0], Order):
        out["quantity"] = int(sum(o.quantity for o in records))
    return out


# ---- Quotes ----------------------------------------------------------------------
def conversion_rate(quotes: Sequence[Quote]) -> float:
    if not quotes:
        return 0.0
    closed = sum(1 for q in quotes if QuoteStatus(q.status) == QuoteStatus.CLOSED)
    return closed / len(quotes) * 100


def quotes_by_factory(quotes: Sequence[Quote]) -> pd.DataFrame:
    df = quotes_frame(quotes)
    if df.empty:
        return pd.DataFrame(columns=["name", "count", "value"])
    out = df.groupby("factory", sort=False).agg(count=("id", "size"), value=("value", "sum")).reset_index()
    return out.rename(columns={"factory": "name"})


# ---- Orders ----------------------------------------------------------------------
def sales_by_product(orders: Sequence[Order], metric: str = "value") -> pd.DataFrame:
    """Value and quantity per product, ranked by `metric` ('value' or 'quantity')."""
    df = orders_frame(orders)
    if df.empty:
        return pd.DataFrame(columns=["name", "value", "quantity"])
    out = df.groupby("product").agg(value=("value", "sum"), quantity=("quantity", "sum")).reset_index()
    out = out.rename(columns={"product": "name"})
    return out.sort_values(metric, ascending=False, kind="stable").reset_index(drop=True)


def forecast_by_product(orders: Sequence[Order], flt: ReportFilter) -> pd.DataFrame:
    """Quantity per product for orders whose system forecast falls in the range."""
    rows = [
        {"name": o.product, "value": o.quantity}
        for o in orders
        if o.system_forecast
        and flt.start <= o.system_forecast[:10] <= flt.end
        and not (flt.factory and Factory(o.factory).value != flt.factory)
    ]
    if not rows:
        return pd.DataFrame(columns=["name", "value"])
    out = pd.DataFrame(rows).groupby("name", as_index=False)["value"].sum()
    return out.sort_values("value", ascending=False, kind="stable").reset_index(drop=True)


def invoiced_orders(orders: Sequence[Order], flt: ReportFilter) -> List[Order]:
    return [
        o for o in orders
        if o.is_invoiced and o.invoice_date
        and flt.start <= o.invoice_date <= flt.end
        and not (flt.factory and Factory(o.factory).value != flt.factory)
    ]


def revenue_by_factory(orders: Sequence[Order]) -> pd.DataFrame:
    df = orders_frame(orders)
    if df.empty:
        return pd.DataFrame(columns=["name", "value"])
    out = df.groupby("factory", as_index=False)["value"].sum().rename(columns={"factory": "name"})
    return out.sort_values("value", ascending=False, kind="stable").reset_index(drop=True)


def status_alert(order: Order, today: DateLike) -> Optional[str]:
    limit = STATUS_ALERT_DAYS.get(OrderStatus(order.status))
    if limit is None or not order.status_date:
        return None
    waited = difference_in_days(today, order.status_date)
    if waited > limit:
        return f"{OrderStatus(order.status).value} > {limit} dias"
    return None


def is_delivery_late(order: Order) -> bool:
    if not order.system_forecast or not order.delivery_date:
        return False
    return to_date(order.system_forecast) > to_date(order.delivery_date)


# ---- Targets ---------------------------------------------------------------------
def days_in_range(start: DateLike, end: DateLike) -> int:
    diff = difference_in_days(end, start) + 1
    return diff if diff > 0 else 1


def prorated_target(monthly_target: float, days: int) -> float:
    return monthly_target / 30 * days


def factory_performance(orders: Sequence[Order], settings: Settings, flt: ReportFilter) -> pd.DataFrame:
    """
    Sales vs prorated monthly target per factory over the filter range.

    Sales are orders whose send date is in range. A factory filter restricts
    the rows to that factory; search/status in `flt` are ignored here.
    """
    days = days_in_range(flt.start, flt.end)
    in_range = filter_orders(orders, ReportFilter(start=flt.start, end=flt.end))
    rows = []
    for factory in FACTORY_OPTIONS:
        if flt.factory and flt.factory != factory:
            continue
        sales = float(sum(o.value for o in in_range if Factory(o.factory).value == factory))
        target = prorated_target(settings.monthly_target(factory), days)
        percentage = sales / target * 100 if target > 0 else 0.0
        rows.append({"name": factory, "sales": sales, "target": target, "percentage": round(percentage, 1)})
    return pd.DataFrame(rows, columns=["name", "sales", "target", "percentage"])


def total_performance(performance: pd.DataFrame) -> Dict[str, float]:
    sales = float(performance["sales"].sum()) if not performance.empty else 0.0
    target = float(performance["target"].sum()) if not performance.empty else 0.0
    real = sales / target * 100 if target > 0 else 0.0
    return {
        "sales": sales,
        "target": target,
        "percentage": min(real, 100.0),  # gauge scale
        "real_percentage": real,
    }
