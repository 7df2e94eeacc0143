import pytest
from decimal import Decimal

from salonbook.catalog import service as catalog_service
from salonbook.errors import CatalogError


def test_service_from_row_flattens_nested_names():
    row = {
        "id": "svc-1",
        "salon_id": "salon-1",
        "name": "Coupe",
        "price": "450",
        "duration_minutes": 45,
        "salons": {"name": "Salon Lumière"},
        "service_categories": {"name": "Cheveux"},
    }
    svc = catalog_service.service_from_row(row)
    assert svc.vendor_name == "Salon Lumière"
    assert svc.category_name == "Cheveux"
    assert svc.price == Decimal("450")


def test_get_service_missing_raises(monkeypatch):
    monkeypatch.setattr(catalog_service.repository, "fetch_service", lambda sid: None)
    with pytest.raises(CatalogError) as exc:
        catalog_service.get_service("nope")
    assert exc.value.status_code == 404


def test_get_service_wrapped_payload(monkeypatch):
    monkeypatch.setattr(
        catalog_service.repository,
        "fetch_service",
        lambda sid: {"service": {"id": sid, "salon_id": "s1", "name": "Soin", "price": 800}},
    )
    assert catalog_service.get_service("svc-3").vendor_id == "s1"
