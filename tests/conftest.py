from datetime import datetime, timezone

import pytest

from engmat.db import build_engine
from engmat.models import Factory, Order, OrderStatus, Quote, QuoteStatus, Settings
from engmat.service import DataService
from engmat.store import LocalStore, SqlStore

FIXED_NOW = datetime(2024, 3, 15, 12, 0, tzinfo=timezone.utc)


@pytest.fixture()
def settings():
    return Settings(
        lead_times={"Disjuntores": 20, "Cabos": 10, "Revestimentos": 0},
        targets={"Alumbra": 30000.0, "Condex": 15000.0},
    )


@pytest.fixture()
def local_store(tmp_path):
    return LocalStore(tmp_path / "store")


@pytest.fixture()
def sql_store(tmp_path):
    engine = build_engine(f"sqlite:///{(tmp_path / 'engmat.db').as_posix()}")
    try:
        yield SqlStore(engine)
    finally:
        engine.dispose()


@pytest.fixture(params=["local", "sql"])
def store(request):
    return request.getfixturevalue(f"{request.param}_store")


@pytest.fixture()
def service(local_store, settings):
    local_store.update_settings(settings)
    svc = DataService(local_store, clock=lambda: FIXED_NOW)
    svc.connect()
    return svc


@pytest.fixture()
def make_order():
    def _make(**overrides):
        fields = dict(
            constructor_name="Construtora Alfa",
            work_name="Residencial Sol",
            send_date="2024-01-10",
            factory=Factory.ALUMBRA,
            product="Disjuntores",
            quantity=10,
            value=10000.0,
            status=OrderStatus.RELEASED,
        )
        fields.update(overrides)
        return Order(**fields)
    return _make


@pytest.fixture()
def make_quote():
    def _make(**overrides):
        fields = dict(
            constructor_name="Construtora Alfa",
            work_name="Residencial Sol",
            date="2024-03-05",
            factory=Factory.ALUMBRA,
            product="Disjuntores",
            status=QuoteStatus.SENT,
            value=1000.0,
        )
        fields.update(overrides)
        return Quote(**fields)
    return _make
