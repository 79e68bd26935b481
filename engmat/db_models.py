# engmat/db_models.py
from __future__ import annotations

from datetime import datetime, timezone
from typing import Dict, List, Optional

from sqlalchemy import JSON, Column
from sqlmodel import Field, SQLModel


# ---------------------------
# Quotes
# ---------------------------

class QuoteRow(SQLModel, table=True):
    __tablename__ = "quote"

    id: str = Field(primary_key=True)
    constructor_name: str = Field(nullable=False, index=True)
    work_name: str = Field(nullable=False)
    date: str = Field(nullable=False, index=True)  # YYYY-MM-DD
    factory: str = Field(nullable=False, index=True)
    product: str = Field(nullable=False)
    status: str = Field(nullable=False, index=True)
    value: float = Field(default=0.0, ge=0, nullable=False)

    contact_name: str = ""
    phone: str = ""
    email: str = ""

    # [{id, date, note}, ...] in insertion order
    follow_ups: List[Dict] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))


# ---------------------------
# Orders
# ---------------------------

class OrderRow(SQLModel, table=True):
    __tablename__ = "purchase_order"

    id: str = Field(primary_key=True)
    constructor_name: str = Field(nullable=False, index=True)
    work_name: str = Field(nullable=False)
    po_number: str = Field(nullable=False, index=True)

    send_date: str = Field(nullable=False, index=True)
    delivery_date: str = Field(default="", nullable=False)
    is_manual_delivery_date: bool = Field(default=False, nullable=False)

    factory: str = Field(nullable=False, index=True)
    product: str = Field(nullable=False)
    quantity: int = Field(default=0, ge=0, nullable=False)
    value: float = Field(default=0.0, ge=0, nullable=False)

    status: str = Field(nullable=False, index=True)
    status_date: str = Field(default="", nullable=False)
    system_forecast: Optional[str] = None

    invoice_date: Optional[str] = Field(default=None, index=True)
    payment_terms: Optional[str] = None
    commission_rate: Optional[float] = None


# ---------------------------
# Settings (single row)
# ---------------------------

class SettingsRow(SQLModel, table=True):
    __tablename__ = "app_settings"

    id: str = Field(default="general_settings", primary_key=True)
    lead_times: Dict[str, int] = Field(default_factory=dict, sa_column=Column(JSON, nullable=False))
    targets: Dict[str, float] = Field(default_factory=dict, sa_column=Column(JSON, nullable=False))


# ---------------------------
# Accounts
# ---------------------------

class UserAccount(SQLModel, table=True):
    __tablename__ = "user_account"

    id: Optional[int] = Field(default=None, primary_key=True)
    email: str = Field(nullable=False, index=True, unique=True)
    pass_hash: str = Field(nullable=False)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
