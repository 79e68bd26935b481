"""
Session-side view of the dataset.

`DataService` subscribes to a `Store`, keeps the latest quotes, orders and
settings, runs the derivations before each write, and reports every write as a
`SaveResult` so callers can tell "saved" from "failed".
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Callable, List, Optional

from .dates import DateLike, iso_instant, now_instant
from .derivation import invoice_order, prepare_new_order, prepare_order_update
from .models import FollowUp, Order, Quote, Settings
from .store import ORDERS, QUOTES, PersistenceError, RecordNotFound, Store

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SaveResult:
    ok: bool
    record_id: Optional[str] = None
    error: Optional[str] = None

    def __bool__(self) -> bool:
        return self.ok


def _needs_derivation(order: Order) -> bool:
    if not (order.po_number or "").strip():
        return True
    return not order.is_manual_delivery_date and not order.delivery_date


class DataService:
    def __init__(self, store: Store, clock: Callable[[], datetime] = now_instant) -> None:
        self.store = store
        self.clock = clock
        self.quotes: List[Quote] = []
        self.orders: List[Order] = []
        self.settings = Settings()
        self._unsubscribers: List[Callable[[], None]] = []

    # ---- lifecycle ----------------------------------------------------------
    @property
    def connected(self) -> bool:
        return bool(self._unsubscribers)

    def connect(self) -> None:
        """Start receiving the dataset (call once the user is logged in)."""
        if self.connected:
            return
        self._unsubscribers = [
            self.store.subscribe(QUOTES, self._set_quotes),
            self.store.subscribe(ORDERS, self._set_orders),
            self.store.subscribe_settings(self._set_settings),
        ]

    def disconnect(self) -> None:
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers = []
        self.quotes = []
        self.orders = []

    def _set_quotes(self, quotes: List[Quote]) -> None:
        self.quotes = quotes

    def _set_orders(self, orders: List[Order]) -> None:
        self.orders = orders

    def _set_settings(self, settings: Settings) -> None:
        self.settings = settings

    # ---- helpers ------------------------------------------------------------
    def _save(self, action: str, record_id: Optional[str], write: Callable[[], None]) -> SaveResult:
        try:
            write()
        except PersistenceError as exc:
            logger.exception("Could not %s %s", action, record_id or "")
            return SaveResult(ok=False, record_id=record_id, error=str(exc))
        return SaveResult(ok=True, record_id=record_id)

    def lead_time(self, product: str) -> int:
        return self.settings.lead_time(product)

    def get_quote(self, quote_id: str) -> Optional[Quote]:
        return next((q for q in self.quotes if q.id == quote_id), None)

    def get_order(self, order_id: str) -> Optional[Order]:
        return next((o for o in self.orders if o.id == order_id), None)

    # ---- quotes -------------------------------------------------------------
    def add_quote(self, quote: Quote) -> SaveResult:
        return self._save("add quote", quote.id, lambda: self.store.add(QUOTES, quote))

    def update_quote(self, quote: Quote) -> SaveResult:
        return self._save("update quote", quote.id, lambda: self.store.update(QUOTES, quote))

    def delete_quote(self, quote_id: str) -> SaveResult:
        return self._save("delete quote", quote_id, lambda: self.store.delete(QUOTES, quote_id))

    def add_follow_up(self, quote_id: str, note: str) -> SaveResult:
        quote = self.get_quote(quote_id)
        if quote is None:
            return SaveResult(ok=False, record_id=quote_id, error=str(RecordNotFound(f"quotes {quote_id} not found")))
        entry = FollowUp(date=iso_instant(self.clock()), note=note)
        return self.update_quote(replace(quote, follow_ups=[*quote.follow_ups, entry]))

    # ---- orders -------------------------------------------------------------
    def add_order(self, order: Order) -> SaveResult:
        final = prepare_new_order(order, self.settings, len(self.orders), self.clock())
        return self._save("add order", final.id, lambda: self.store.add(ORDERS, final))

    def update_order(self, order: Order) -> SaveResult:
        final = prepare_order_update(order, self.get_order(order.id), self.settings, self.clock())
        return self._save("update order", final.id, lambda: self.store.update(ORDERS, final))

    def invoice_order(
        self,
        order_id: str,
        invoice_date: DateLike,
        payment_terms: str,
        commission_rate: float,
    ) -> SaveResult:
        order = self.get_order(order_id)
        if order is None:
            return SaveResult(ok=False, record_id=order_id, error=str(RecordNotFound(f"orders {order_id} not found")))
        final = invoice_order(order, invoice_date, payment_terms, commission_rate, self.clock())
        return self._save("invoice order", order_id, lambda: self.store.update(ORDERS, final))

    def delete_order(self, order_id: str) -> SaveResult:
        return self._save("delete order", order_id, lambda: self.store.delete(ORDERS, order_id))

    # ---- backup restore -----------------------------------------------------
    def restore(self, quotes: List[Quote], orders: List[Order]) -> List[SaveResult]:
        """
        Write records back, replacing same ids.

        Backup rows are written as given. Orders that are new to the store and
        were never derived (no PO number, or an automatic delivery date that is
        empty) are created the way `add_order` creates them.
        """
        now = self.clock()
        created = len(self.orders)
        prepared_orders = []
        known_orders = {o.id for o in self.orders}
        for order in orders:
            if order.id not in known_orders and _needs_derivation(order):
                order = prepare_new_order(order, self.settings, created, now)
                created += 1
            elif not order.status_date:
                order = replace(order, status_date=iso_instant(now))
            prepared_orders.append(order)

        results = []
        for kind, records, known in (
            (QUOTES, quotes, {q.id for q in self.quotes}),
            (ORDERS, prepared_orders, known_orders),
        ):
            for record in records:
                write = self.store.update if record.id in known else self.store.add
                results.append(self._save(f"restore {kind}", record.id,
                                          lambda w=write, r=record, k=kind: w(k, r)))
        return results

    # ---- settings -----------------------------------------------------------
    def update_settings(self, settings: Settings) -> SaveResult:
        return self._save("save settings", None, lambda: self.store.update_settings(settings))
