import pytest

from apps.cart.store import InMemoryCartActivityStore

from .factories import FakeClock


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store():
    return InMemoryCartActivityStore(batch_size=2)


@pytest.fixture
def api_key(settings):
    settings.ABANDONED_CART_API_KEY = "test-cron-key"
    return "test-cron-key"


@pytest.fixture
def site(settings):
    settings.SITE_NAME = "Barbería"
    settings.SITE_BASE_URL = "https://shop.example.com"
    settings.SUPPORT_EMAIL = "soporte@example.com"
    settings.DEFAULT_FROM_EMAIL = "tienda@example.com"
    return settings


@pytest.fixture
def wired_store(store, monkeypatch):
    """Vistas y comando usan el store en memoria del test."""
    monkeypatch.setattr("apps.cart.views.get_store", lambda: store)
    monkeypatch.setattr(
        "apps.core.management.commands.send_abandoned_cart_reminders.get_store",
        lambda: store,
    )
    return store
