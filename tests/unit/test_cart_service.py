import pytest
from decimal import Decimal

from salonbook.cart import service as cart_service
from salonbook.cart.models import CartAggregate
from salonbook.catalog.service import CatalogService
from salonbook.errors import CartClearError, CartSyncError, VendorMismatchError


@pytest.fixture
def store(monkeypatch):
    """Faux dépôt user_carts en mémoire."""
    rows = {}
    state = {"fail_delete": False, "fail_upsert": False}

    def _fetch(cid, strict=False):
        return rows.get(cid)

    def _upsert(cid, row):
        if state["fail_upsert"]:
            return False
        rows[cid] = row
        return True

    def _delete(cid):
        if state["fail_delete"]:
            return False
        rows.pop(cid, None)
        return True

    monkeypatch.setattr(cart_service.repository, "fetch_cart_row", _fetch)
    monkeypatch.setattr(cart_service.repository, "upsert_cart_row", _upsert)
    monkeypatch.setattr(cart_service.repository, "delete_cart_row", _delete)
    return rows, state


@pytest.fixture
def catalog(monkeypatch):
    services = {
        "svc-1": CatalogService(id="svc-1", vendor_id="salon-1", vendor_name="Salon Lumière", name="Coupe", price=Decimal("500"), duration_minutes=30),
        "svc-2": CatalogService(id="svc-2", vendor_id="salon-1", vendor_name="Salon Lumière", name="Brushing", price=Decimal("300")),
        "svc-9": CatalogService(id="svc-9", vendor_id="salon-9", vendor_name="Autre", name="Soin", price=Decimal("800")),
    }
    monkeypatch.setattr(cart_service.catalog_service, "get_service", lambda sid: services[sid])
    return services


def test_add_service_persists_each_mutation(store, catalog):
    rows, _ = store
    cart = cart_service.add_service("u1", "svc-1")
    assert rows["u1"]["salon_id"] == "salon-1"
    item_id = cart.items[0].id
    cart_service.increment("u1", item_id)
    assert rows["u1"]["item_count"] == 2
    assert cart_service.read_cart("u1").total_amount() == Decimal("1000")


def test_cross_vendor_add_leaves_persisted_cart_untouched(store, catalog):
    rows, _ = store
    cart_service.add_service("u1", "svc-1")
    before = dict(rows["u1"])
    with pytest.raises(VendorMismatchError):
        cart_service.add_service("u1", "svc-9")
    assert rows["u1"] == before


def test_removing_last_item_deletes_row(store, catalog):
    rows, _ = store
    cart = cart_service.add_service("u1", "svc-1")
    cart_service.decrement("u1", cart.items[0].id)
    assert "u1" not in rows


def test_sync_failure_raises(store, catalog):
    _, state = store
    state["fail_upsert"] = True
    with pytest.raises(CartSyncError):
        cart_service.add_service("u1", "svc-1")


def test_clear_cart_failure_raises(store):
    _, state = store
    state["fail_delete"] = True
    with pytest.raises(CartClearError):
        cart_service.clear_cart("u1")


def test_stale_cart_is_cleaned_on_next_read(store, catalog):
    rows, state = store
    cart_service.add_service("u1", "svc-1")
    cart_service.mark_stale("u1", "pi_123")
    assert cart_service.is_stale("u1")
    cart = cart_service.read_cart("u1")
    assert cart.is_empty()
    assert "u1" not in rows
    assert not cart_service.is_stale("u1")


def test_stale_cleanup_failure_keeps_flag(store, catalog):
    _, state = store
    cart_service.add_service("u1", "svc-1")
    cart_service.mark_stale("u1", "pi_123")
    state["fail_delete"] = True
    cart = cart_service.read_cart("u1")
    assert not cart.is_empty()
    assert cart_service.is_stale("u1")


def test_empty_clears_everything(store, catalog):
    rows, _ = store
    cart_service.add_service("u1", "svc-1")
    cart_service.add_service("u1", "svc-2")
    assert isinstance(cart_service.empty("u1"), CartAggregate)
    assert "u1" not in rows


def test_failed_read_does_not_overwrite_stored_cart(store, catalog, monkeypatch):
    rows, _ = store
    cart_service.add_service("u1", "svc-1")
    stored = dict(rows["u1"])

    def _fetch_down(cid, strict=False):
        raise ConnectionError("supabase unreachable")
    monkeypatch.setattr(cart_service.repository, "fetch_cart_row", _fetch_down)

    with pytest.raises(CartSyncError):
        cart_service.add_service("u1", "svc-9")
    with pytest.raises(CartSyncError):
        cart_service.read_cart("u1")
    assert rows["u1"] == stored


def test_repository_cart_read_distinguishes_missing_row_from_failure(monkeypatch):
    from unittest.mock import MagicMock
    from salonbook.cart import repository

    query = MagicMock()
    query.table.return_value.select.return_value.eq.return_value.limit.return_value.execute.return_value = MagicMock(data=[])
    monkeypatch.setattr(repository.supabase_client, "get_service_supabase", lambda: query)
    assert repository.fetch_cart_row("u1", strict=True) is None

    failing = MagicMock()
    failing.table.return_value.select.return_value.eq.return_value.limit.return_value.execute.side_effect = ConnectionError("down")
    monkeypatch.setattr(repository.supabase_client, "get_service_supabase", lambda: failing)
    assert repository.fetch_cart_row("u1") is None
    with pytest.raises(ConnectionError):
        repository.fetch_cart_row("u1", strict=True)
