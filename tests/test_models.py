import pytest

from engmat.models import (
    FACTORY_PRODUCTS,
    PAYMENT_TERMS_OPTIONS,
    Factory,
    Order,
    OrderStatus,
    Quote,
    Settings,
    ValidationError,
    validate_order,
    validate_quote,
)


def test_vocabularies():
    assert len(Factory) == 7
    assert len(PAYMENT_TERMS_OPTIONS) == 9
    assert FACTORY_PRODUCTS[Factory.CONDEX] == ["Cabos"]
    assert OrderStatus.INVOICED.value == "Faturado"


def test_quote_product_must_belong_to_factory(make_quote):
    validate_quote(make_quote())
    with pytest.raises(ValidationError):
        validate_quote(make_quote(product="Cabos"))


def test_quote_requires_names(make_quote):
    with pytest.raises(ValidationError):
        validate_quote(make_quote(constructor_name=" "))


def test_manual_order_requires_delivery_date(make_order):
    validate_order(make_order())
    with pytest.raises(ValidationError):
        validate_order(make_order(is_manual_delivery_date=True, delivery_date=""))
    with pytest.raises(ValidationError):
        validate_order(make_order(quantity=-1))


def test_from_dict_ignores_unknown_keys_and_fills_defaults():
    order = Order.from_dict({
        "constructor_name": "A", "work_name": "B", "send_date": "2024-01-01",
        "factory": "MGM", "product": "Alizar", "legacy": 1, "invoice_date": "",
    })
    assert order.factory == Factory.MGM
    assert order.status == OrderStatus.AWAITING_ENTRY
    assert order.invoice_date is None
    assert order.po_number == ""

    quote = Quote.from_dict({
        "constructor_name": "A", "work_name": "B", "date": "2024-01-01",
        "factory": "Roca", "product": "Sanitários", "follow_ups": [{"date": "2024-01-02T00:00:00Z", "note": "x"}],
    })
    assert quote.follow_ups[0].note == "x"
    assert quote.follow_ups[0].id


def test_settings_lead_time_and_target():
    s = Settings(lead_times={"Cabos": 7}, targets={"Condex": 1000})
    assert s.lead_time("Cabos") == 7
    assert s.lead_time("Alizar") == 15
    assert s.monthly_target(Factory.CONDEX) == 1000.0
    assert s.monthly_target("Roca") == 0.0
    assert Settings.from_dict(s.to_dict()) == Settings(lead_times={"Cabos": 7}, targets={"Condex": 1000.0})
