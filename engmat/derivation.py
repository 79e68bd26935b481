from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime
from typing import Optional

from .dates import DateLike, add_days, iso_day, iso_instant
from .models import Order, OrderStatus, Settings

logger = logging.getLogger(__name__)


# ---- Delivery dates -------------------------------------------------------------
def compute_delivery_date(product: str, send_date: DateLike, settings: Settings) -> str:
    """send_date + lead time of the product, as YYYY-MM-DD (calendar days)."""
    return iso_day(add_days(send_date, settings.lead_time(product)))


def needs_delivery_recalc(order: Order, previous: Optional[Order]) -> bool:
    if order.is_manual_delivery_date:
        return False
    if previous is None:
        return False
    return (
        order.send_date != previous.send_date
        or order.product != previous.product
        or previous.is_manual_delivery_date
    )


# ---- PO numbers -----------------------------------------------------------------
def next_po_number(existing_count: int, year: int) -> str:
    # Count of orders loaded in this session; not collision safe.
    return f"OC-{year}-{existing_count + 1:04d}"


# ---- Order lifecycle ------------------------------------------------------------
def prepare_new_order(order: Order, settings: Settings, existing_count: int, now: datetime) -> Order:
    """Fill the derived fields of an order about to be created."""
    out = replace(order, status_date=iso_instant(now))
    if not (out.po_number or "").strip():
        out.po_number = next_po_number(existing_count, now.year)
    if not out.is_manual_delivery_date:
        out.delivery_date = compute_delivery_date(out.product, out.send_date, settings)
    return out


def prepare_order_update(order: Order, previous: Optional[Order], settings: Settings, now: datetime) -> Order:
    """
    Recompute what an edit invalidates.

    The delivery date is only recomputed when it is automatic and the send date
    or product changed, or the manual override was just switched off. A manual
    delivery date is never touched. The status date follows status changes.
    """
    out = replace(order)
    if needs_delivery_recalc(out, previous):
        out.delivery_date = compute_delivery_date(out.product, out.send_date, settings)
        logger.debug("Delivery date of %s recomputed: %s", out.id, out.delivery_date)
    status_changed = previous is not None and OrderStatus(previous.status) != OrderStatus(out.status)
    if status_changed or not out.status_date:
        out.status_date = iso_instant(now)
    return out


def invoice_order(
    order: Order,
    invoice_date: DateLike,
    payment_terms: str,
    commission_rate: float,
    now: datetime,
) -> Order:
    return replace(
        order,
        status=OrderStatus.INVOICED,
        status_date=iso_instant(now),
        invoice_date=iso_day(invoice_date),
        payment_terms=payment_terms,
        commission_rate=float(commission_rate),
    )
