import os

os.environ.setdefault("DISABLE_FASTAPI_LIMITER_INIT_FOR_TESTS", "1")
os.environ.setdefault("PRELOAD_PLATFORM_CONFIG", "0")

import pytest
from decimal import Decimal
from typing import Generator, Dict, Any
from fastapi.testclient import TestClient
from unittest.mock import MagicMock

from salonbook.app import app as fastapi_app
from salonbook.utils.security import require_user
from salonbook.cart.models import CartItem

# Marquage automatique selon le dossier
def pytest_collection_modifyitems(config, items):
    for item in items:
        nodeid = item.nodeid.replace("\\", "/")
        if "tests/unit/" in nodeid:
            item.add_marker(pytest.mark.unit)
        elif "tests/integration/" in nodeid:
            item.add_marker(pytest.mark.integration)

@pytest.fixture(scope="session")
def app():
    return fastapi_app

@pytest.fixture()
def client(app) -> Generator[TestClient, None, None]:
    with TestClient(app) as c:
        yield c

@pytest.fixture
def fake_user() -> Dict[str, Any]:
    return {
        "id": "test-user",
        "email": "test@example.com",
        "metadata": {"full_name": "Test User"},
        "token": "fake-token",
    }

# Simuler un utilisateur authentifié pour les endpoints protégés
@pytest.fixture(autouse=True)
def _override_require_user(app, fake_user):
    app.dependency_overrides[require_user] = lambda: fake_user
    try:
        yield
    finally:
        app.dependency_overrides.pop(require_user, None)

# Aucun accès réel à Supabase pendant les tests
@pytest.fixture(autouse=True)
def mock_db_dependency(monkeypatch):
    monkeypatch.setattr("salonbook.infra.supabase_client.get_supabase", lambda: MagicMock())
    monkeypatch.setattr("salonbook.infra.supabase_client.get_service_supabase", lambda: MagicMock())

# État en mémoire remis à zéro entre les tests
@pytest.fixture(autouse=True)
def _reset_process_state():
    from salonbook.platform_config import service as platform_config
    from salonbook.cart import service as cart_service
    from salonbook.checkout import views as checkout_views
    platform_config.invalidate()
    cart_service._stale_carts.clear()
    checkout_views.sessions.clear()
    yield
    platform_config.invalidate()
    cart_service._stale_carts.clear()
    checkout_views.sessions.clear()

@pytest.fixture
def make_item():
    def _make(service_id="svc-1", price="500", vendor_id="salon-1", quantity=1, **kwargs):
        return CartItem(
            vendor_id=vendor_id,
            vendor_name=kwargs.pop("vendor_name", "Salon Lumière"),
            service_id=service_id,
            service_name=kwargs.pop("service_name", f"Service {service_id}"),
            price=Decimal(price),
            quantity=quantity,
            **kwargs,
        )
    return _make
