from dataclasses import replace
from datetime import datetime, timezone

from engmat.derivation import (
    compute_delivery_date,
    invoice_order,
    next_po_number,
    prepare_new_order,
    prepare_order_update,
)
from engmat.models import OrderStatus, Settings

NOW = datetime(2024, 3, 15, 12, 0, tzinfo=timezone.utc)
LATER = datetime(2024, 3, 20, 9, 30, tzinfo=timezone.utc)


def test_delivery_date_uses_product_lead_time(settings):
    assert compute_delivery_date("Disjuntores", "2024-01-10", settings) == "2024-01-30"


def test_delivery_date_defaults_to_fifteen_days():
    assert compute_delivery_date("Cabos", "2024-01-10", Settings()) == "2024-01-25"


def test_explicit_zero_lead_time_is_kept(settings):
    assert compute_delivery_date("Revestimentos", "2024-01-10", settings) == "2024-01-10"


def test_po_number_is_count_plus_one_padded():
    assert next_po_number(4, 2024) == "OC-2024-0005"
    assert next_po_number(0, 2025) == "OC-2025-0001"
    assert next_po_number(12345, 2024) == "OC-2024-12346"


def test_new_order_gets_derived_fields(settings, make_order):
    order = prepare_new_order(make_order(), settings, existing_count=4, now=NOW)
    assert order.po_number == "OC-2024-0005"
    assert order.delivery_date == "2024-01-30"
    assert order.status_date == "2024-03-15T12:00:00+00:00"


def test_new_order_keeps_explicit_po_and_manual_delivery(settings, make_order):
    order = prepare_new_order(
        make_order(po_number="PO-77", is_manual_delivery_date=True, delivery_date="2024-05-01"),
        settings, existing_count=4, now=NOW,
    )
    assert order.po_number == "PO-77"
    assert order.delivery_date == "2024-05-01"


def test_update_recomputes_when_send_date_changes(settings, make_order):
    stored = prepare_new_order(make_order(), settings, 0, NOW)
    edited = replace(stored, send_date="2024-02-01")
    out = prepare_order_update(edited, stored, settings, LATER)
    assert out.delivery_date == "2024-02-21"


def test_update_recomputes_when_product_changes(settings, make_order):
    stored = prepare_new_order(make_order(), settings, 0, NOW)
    edited = replace(stored, product="Acabamentos Elétricos")
    out = prepare_order_update(edited, stored, settings, LATER)
    assert out.delivery_date == "2024-01-25"


def test_update_leaves_delivery_date_when_nothing_relevant_changed(settings, make_order):
    stored = replace(prepare_new_order(make_order(), settings, 0, NOW), delivery_date="2024-02-02")
    edited = replace(stored, value=999.0)
    out = prepare_order_update(edited, stored, settings, LATER)
    assert out.delivery_date == "2024-02-02"


def test_manual_delivery_date_is_frozen_on_later_edits(settings, make_order):
    stored = prepare_new_order(make_order(), settings, 0, NOW)
    manual = prepare_order_update(
        replace(stored, is_manual_delivery_date=True, delivery_date="2024-06-30"), stored, settings, LATER
    )
    assert manual.delivery_date == "2024-06-30"

    edited = replace(manual, send_date="2024-02-01", product="Acabamentos Elétricos")
    out = prepare_order_update(edited, manual, settings, LATER)
    assert out.delivery_date == "2024-06-30"


def test_switching_manual_off_recomputes_once(settings, make_order):
    stored = replace(
        prepare_new_order(make_order(), settings, 0, NOW),
        is_manual_delivery_date=True,
        delivery_date="2024-06-30",
    )
    toggled = prepare_order_update(replace(stored, is_manual_delivery_date=False), stored, settings, LATER)
    assert toggled.delivery_date == "2024-01-30"

    # a following unrelated edit keeps the recomputed value
    again = prepare_order_update(replace(toggled, delivery_date="2024-01-31"), toggled, settings, LATER)
    assert again.delivery_date == "2024-01-31"


def test_status_date_follows_status_changes(settings, make_order):
    stored = prepare_new_order(make_order(), settings, 0, NOW)

    same = prepare_order_update(replace(stored, value=5.0), stored, settings, LATER)
    assert same.status_date == stored.status_date

    changed = prepare_order_update(replace(stored, status=OrderStatus.CREDIT), stored, settings, LATER)
    assert changed.status_date == "2024-03-20T09:30:00+00:00"


def test_invoice_order_sets_billing_fields(settings, make_order):
    stored = prepare_new_order(make_order(), settings, 0, NOW)
    out = invoice_order(stored, "2024-02-01", "30/60 dias", 5, LATER)
    assert out.status == OrderStatus.INVOICED
    assert out.invoice_date == "2024-02-01"
    assert out.payment_terms == "30/60 dias"
    assert out.commission_rate == 5.0
    assert out.status_date == "2024-03-20T09:30:00+00:00"
    # the input is not mutated
    assert stored.status == OrderStatus.RELEASED
