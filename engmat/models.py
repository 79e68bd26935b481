from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields
from enum import Enum
from typing import Any, Dict, List, Optional
from uuid import uuid4


# ---------------------------
# Vocabularies
# ---------------------------

class Factory(str, Enum):
    ALUMBRA = "Alumbra"
    MGM = "MGM"
    DM2 = "DM2"
    DACAPO = "DACAPO"
    ROCA = "Roca"
    CONDEX = "Condex"
    CONSTRUCOM = "Construcom"


class QuoteStatus(str, Enum):
    SENT = "Enviado"
    NEGOTIATING = "Em negociação"
    CLOSED = "Fechado"
    LOST = "Perdido"


class OrderStatus(str, Enum):
    AWAITING_ENTRY = "Aguardando digitação"
    RELEASED = "Liberado"
    CREDIT = "Crédito"
    CANCELLED = "Cancelado"
    INVOICED = "Faturado"


FACTORY_PRODUCTS: Dict[Factory, List[str]] = {
    Factory.ALUMBRA: ["Acabamentos Elétricos", "Disjuntores"],
    Factory.MGM: ["Kit porta pronta", "Esquadrias de alumínio", "Fechadura", "Alizar"],
    Factory.DM2: ["Porta Corta-fogo"],
    Factory.DACAPO: ["Revestimentos"],
    Factory.ROCA: ["Sanitários", "Porcelanato"],
    Factory.CONDEX: ["Cabos"],
    Factory.CONSTRUCOM: ["Blocos de concreto", "Piso intertravado", "Argamassas"],
}

FACTORY_OPTIONS = [f.value for f in Factory]
QUOTE_STATUS_OPTIONS = [s.value for s in QuoteStatus]
ORDER_STATUS_OPTIONS = [s.value for s in OrderStatus]

UPFRONT_TERMS = "Antecipado"
PAYMENT_TERMS_OPTIONS = [
    UPFRONT_TERMS,
    "28 dias",
    "30 dias",
    "45 dias",
    "60 dias",
    "28/56 dias",
    "30/60 dias",
    "30/60/90 dias",
    "30/60/90/120 dias",
]

DEFAULT_LEAD_TIME_DAYS = 15


class ValidationError(ValueError):
    """Raised at the form boundary when a record is not well formed."""


def new_id() -> str:
    return str(uuid4())


def _known(cls, data: Dict[str, Any]) -> Dict[str, Any]:
    names = {f.name for f in fields(cls)}
    return {k: v for k, v in data.items() if k in names}


# ---------------------------
# Quotes
# ---------------------------

@dataclass
class FollowUp:
    date: str  # ISO instant
    note: str
    id: str = field(default_factory=new_id)


@dataclass
class Quote:
    constructor_name: str
    work_name: str
    date: str  # YYYY-MM-DD
    factory: Factory
    product: str
    status: QuoteStatus = QuoteStatus.SENT
    value: float = 0.0
    contact_name: str = ""
    phone: str = ""
    email: str = ""
    follow_ups: List[FollowUp] = field(default_factory=list)
    id: str = field(default_factory=new_id)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["factory"] = Factory(self.factory).value
        data["status"] = QuoteStatus(self.status).value
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Quote":
        data = _known(cls, data)
        data["factory"] = Factory(data["factory"])
        data["status"] = QuoteStatus(data.get("status") or QuoteStatus.SENT)
        data["value"] = float(data.get("value") or 0)
        for key in ("contact_name", "phone", "email"):
            data[key] = data.get(key) or ""
        data["follow_ups"] = [
            fu if isinstance(fu, FollowUp) else FollowUp(**_known(FollowUp, fu))
            for fu in (data.get("follow_ups") or [])
        ]
        return cls(**data)


# ---------------------------
# Orders
# ---------------------------

@dataclass
class Order:
    constructor_name: str
    work_name: str
    send_date: str  # YYYY-MM-DD
    factory: Factory
    product: str
    quantity: int = 0
    value: float = 0.0
    status: OrderStatus = OrderStatus.AWAITING_ENTRY
    po_number: str = ""
    delivery_date: str = ""
    is_manual_delivery_date: bool = False
    status_date: str = ""  # ISO instant
    system_forecast: Optional[str] = None

    # billing, meaningful once status is INVOICED
    invoice_date: Optional[str] = None
    payment_terms: Optional[str] = None
    commission_rate: Optional[float] = None

    id: str = field(default_factory=new_id)

    @property
    def is_invoiced(self) -> bool:
        return self.status == OrderStatus.INVOICED

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["factory"] = Factory(self.factory).value
        data["status"] = OrderStatus(self.status).value
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Order":
        data = _known(cls, data)
        data["factory"] = Factory(data["factory"])
        data["status"] = OrderStatus(data.get("status") or OrderStatus.AWAITING_ENTRY)
        data["value"] = float(data.get("value") or 0)
        data["quantity"] = int(data.get("quantity") or 0)
        data["is_manual_delivery_date"] = bool(data.get("is_manual_delivery_date", False))
        for key in ("po_number", "delivery_date", "status_date"):
            data[key] = data.get(key) or ""
        if data.get("commission_rate") is not None:
            data["commission_rate"] = float(data["commission_rate"])
        for key in ("system_forecast", "invoice_date", "payment_terms"):
            if data.get(key) == "":
                data[key] = None
        return cls(**data)


# ---------------------------
# Settings
# ---------------------------

@dataclass
class Settings:
    """Global lead times (product -> days) and monthly targets (factory -> amount)."""

    lead_times: Dict[str, int] = field(default_factory=dict)
    targets: Dict[str, float] = field(default_factory=dict)

    def lead_time(self, product: str) -> int:
        days = self.lead_times.get(product)
        return DEFAULT_LEAD_TIME_DAYS if days is None else int(days)

    def monthly_target(self, factory: str) -> float:
        key = factory.value if isinstance(factory, Factory) else factory
        return float(self.targets.get(key) or 0)

    def to_dict(self) -> Dict[str, Any]:
        return {"lead_times": dict(self.lead_times), "targets": dict(self.targets)}

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "Settings":
        if not data:
            return cls()
        return cls(
            lead_times={k: int(v) for k, v in (data.get("lead_times") or {}).items()},
            targets={k: float(v) for k, v in (data.get("targets") or {}).items()},
        )


# ---------------------------
# Form-boundary validation
# ---------------------------

def _require(value, label: str) -> None:
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ValidationError(f"{label} is required.")


def validate_quote(quote: Quote) -> None:
    _require(quote.constructor_name, "Constructor")
    _require(quote.work_name, "Project")
    _require(quote.date, "Date")
    if quote.product not in FACTORY_PRODUCTS[Factory(quote.factory)]:
        raise ValidationError(f"{quote.product!r} is not sold by {Factory(quote.factory).value}.")
    if quote.value < 0:
        raise ValidationError("Value must not be negative.")


def validate_order(order: Order) -> None:
    _require(order.constructor_name, "Constructor")
    _require(order.work_name, "Project")
    _require(order.send_date, "Send date")
    _require(order.product, "Product")
    if order.is_manual_delivery_date:
        _require(order.delivery_date, "Delivery date")
    if order.quantity < 0 or order.value < 0:
        raise ValidationError("Quantity and value must not be negative.")
