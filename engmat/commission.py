from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date
from typing import Iterable, List, Optional

import pandas as pd

from .dates import DateLike, add_days, format_date, in_range, month_key, to_date
from .models import Factory, Order, UPFRONT_TERMS

FALLBACK_TERM_DAYS = 30

FORECAST_INDEX_COLS = ["month", "label"]


@dataclass(frozen=True)
class Installment:
    due: date
    amount: float
    factory: str
    order_id: str

    @property
    def month(self) -> str:
        return month_key(self.due)


def parse_installment_days(terms: Optional[str]) -> List[int]:
    """'30/60/90 dias' -> [30, 60, 90]."""
    return [int(n) for n in re.findall(r"\d+", terms or "")]


def total_commission(order: Order) -> float:
    return order.value * (order.commission_rate or 0) / 100


def installment_dates(order: Order) -> List[date]:
    if order.payment_terms == UPFRONT_TERMS:
        return [to_date(order.send_date)]
    days = parse_installment_days(order.payment_terms)
    if not days:
        days = [FALLBACK_TERM_DAYS]
    return [add_days(order.invoice_date, d) for d in days]


def commission_installments(order: Order) -> List[Installment]:
    """
    Split the commission of an invoiced order over its payment terms.

    Amounts are an even, unrounded split of value * rate / 100; no remainder
    is pushed onto any single installment.
    """
    dates = installment_dates(order)
    per_installment = total_commission(order) / len(dates)
    factory = Factory(order.factory).value
    return [Installment(due=d, amount=per_installment, factory=factory, order_id=order.id) for d in dates]


def _billable(order: Order) -> bool:
    return order.is_invoiced and bool(order.invoice_date) and bool(order.payment_terms)


def installments_in_range(
    orders: Iterable[Order],
    start: DateLike,
    end: DateLike,
    factory: Optional[str] = None,
) -> List[Installment]:
    out = []
    for o in orders:
        if not _billable(o):
            continue
        if factory and Factory(o.factory).value != factory:
            continue
        out.extend(i for i in commission_installments(o) if in_range(i.due, start, end))
    return out


def commission_forecast(
    orders: Iterable[Order],
    start: DateLike,
    end: DateLike,
    factory: Optional[str] = None,
) -> pd.DataFrame:
    """
    Monthly commission per factory for installments due within [start, end].

    One row per year-month (sorted), a 'label' column like 'mar/2024' and one
    column per factory present.
    """
    rows = [{"month": i.month, "factory": i.factory, "amount": i.amount}
            for i in installments_in_range(orders, start, end, factory)]
    if not rows:
        return pd.DataFrame(columns=FORECAST_INDEX_COLS)
    df = pd.DataFrame(rows)
    out = (
        df.pivot_table(index="month", columns="factory", values="amount", aggfunc="sum", fill_value=0.0)
        .sort_index()
        .reset_index()
    )
    out.columns.name = None
    out.insert(1, "label", out["month"].map(lambda m: format_date(f"{m}-01", "MMM/yyyy")))
    return out


def forecast_total(forecast: pd.DataFrame) -> float:
    factory_cols = [c for c in forecast.columns if c not in FORECAST_INDEX_COLS]
    if forecast.empty or not factory_cols:
        return 0.0
    return float(forecast[factory_cols].to_numpy().sum())
