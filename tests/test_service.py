import gc
from dataclasses import replace

from engmat.models import Factory, OrderStatus
from engmat.service import DataService
from engmat.store import ORDERS, QUOTES, LocalStore, PersistenceError


def test_connect_loads_dataset_and_disconnect_clears(local_store, settings, make_quote):
    local_store.update_settings(settings)
    local_store.add("quotes", make_quote())
    svc = DataService(local_store)
    assert svc.quotes == []

    svc.connect()
    assert len(svc.quotes) == 1
    assert svc.lead_time("Disjuntores") == 20

    svc.disconnect()
    assert svc.quotes == [] and svc.orders == []
    assert not svc.connected


def test_add_order_numbers_and_schedules(service, make_order):
    for _ in range(4):
        assert service.add_order(make_order(po_number="X"))
    result = service.add_order(make_order())
    assert result.ok
    created = service.get_order(result.record_id)
    assert created.po_number == "OC-2024-0005"
    assert created.delivery_date == "2024-01-30"
    assert created.status_date == "2024-03-15T12:00:00+00:00"


def test_update_order_uses_stored_version(service, make_order):
    result = service.add_order(make_order())
    stored = service.get_order(result.record_id)

    assert service.update_order(replace(stored, send_date="2024-02-10"))
    assert service.get_order(stored.id).delivery_date == "2024-03-01"

    manual = replace(service.get_order(stored.id), is_manual_delivery_date=True, delivery_date="2024-12-24")
    assert service.update_order(manual)
    assert service.update_order(replace(manual, send_date="2024-02-20"))
    assert service.get_order(stored.id).delivery_date == "2024-12-24"


def test_invoice_order(service, make_order):
    order_id = service.add_order(make_order()).record_id
    assert service.invoice_order(order_id, "2024-02-01", "30/60 dias", 5)
    billed = service.get_order(order_id)
    assert billed.status == OrderStatus.INVOICED
    assert billed.payment_terms == "30/60 dias"


def test_follow_ups_are_appended_in_order(service, make_quote):
    quote_id = service.add_quote(make_quote()).record_id
    assert service.add_follow_up(quote_id, "primeiro contato")
    assert service.add_follow_up(quote_id, "retorno do cliente")
    notes = [fu.note for fu in service.get_quote(quote_id).follow_ups]
    assert notes == ["primeiro contato", "retorno do cliente"]
    assert service.get_quote(quote_id).follow_ups[0].date == "2024-03-15T12:00:00+00:00"


def test_missing_records_are_reported_not_raised(service):
    assert not service.add_follow_up("nope", "x")
    result = service.delete_order("nope")
    assert not result.ok
    assert "not found" in result.error


class BrokenStore(LocalStore):
    def _insert(self, kind, data):
        raise PersistenceError("disk full")


def test_write_failures_come_back_as_results(tmp_path, make_order):
    svc = DataService(BrokenStore(tmp_path))
    svc.connect()
    result = svc.add_order(make_order())
    assert not result.ok
    assert result.error == "disk full"
    assert svc.orders == []


def test_restore_writes_records_as_given(service, make_order):
    original = make_order(po_number="OC-2023-0042", delivery_date="2023-12-01")
    existing_id = service.add_order(make_order()).record_id
    updated = replace(service.get_order(existing_id), value=1.0)

    results = service.restore([], [original, updated])
    assert all(r.ok for r in results)
    restored = {o.id: o for o in service.store.records(ORDERS)}
    assert restored[original.id].po_number == "OC-2023-0042"
    assert restored[original.id].delivery_date == "2023-12-01"
    assert restored[existing_id].value == 1.0


def test_restore_derives_hand_made_orders(service, make_order):
    typed_in = make_order(factory=Factory.CONDEX, product="Cabos", send_date="2024-05-02")
    assert typed_in.po_number == "" and typed_in.delivery_date == ""

    assert all(r.ok for r in service.restore([], [typed_in]))
    stored = service.store.records(ORDERS)[0]
    assert stored.delivery_date == "2024-05-12"
    assert stored.po_number == "OC-2024-0001"
    assert stored.status_date == "2024-03-15T12:00:00+00:00"


def test_restore_numbers_several_new_orders(service, make_order):
    service.add_order(make_order())
    rows = [make_order(), make_order(is_manual_delivery_date=True, delivery_date="2024-06-01")]
    assert all(r.ok for r in service.restore([], rows))
    numbers = sorted(o.po_number for o in service.store.records(ORDERS))
    assert numbers == ["OC-2024-0001", "OC-2024-0002", "OC-2024-0003"]
    manual = next(o for o in service.store.records(ORDERS) if o.is_manual_delivery_date)
    assert manual.delivery_date == "2024-06-01"


def test_abandoned_services_do_not_stay_subscribed(local_store, make_quote):
    for _ in range(5):
        DataService(local_store).connect()
    gc.collect()

    live = DataService(local_store)
    live.connect()
    assert local_store.subscriber_count(QUOTES) == 1
    assert local_store.subscriber_count(ORDERS) == 1
    assert local_store.subscriber_count("settings") == 1

    local_store.add(QUOTES, make_quote())
    assert len(live.quotes) == 1

    live.disconnect()
    assert local_store.subscriber_count(QUOTES) == 0


class FlakyReadStore(LocalStore):
    fail_reads = False

    def records(self, kind):
        if self.fail_reads:
            raise PersistenceError("read timeout")
        return super().records(kind)


def test_saved_write_is_reported_ok_when_refresh_fails(tmp_path, make_quote):
    store = FlakyReadStore(tmp_path)
    svc = DataService(store)
    svc.connect()
    store.fail_reads = True

    quote = make_quote()
    result = svc.add_quote(quote)
    assert result.ok

    store.fail_reads = False
    assert store.records(QUOTES) == [quote]
