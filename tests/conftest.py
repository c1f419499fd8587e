import os

# Avant tout import de voteapp: pas de Redis ni de vraie clé pendant les tests
os.environ.setdefault("DISABLE_FASTAPI_LIMITER_INIT_FOR_TESTS", "1")

from decimal import Decimal

import pytest
from typing import Any, Dict, Generator
from fastapi.testclient import TestClient

from voteapp import config
from voteapp.app_setup.factory import create_app
from voteapp.utils.security import get_current_user

from fakes import ADMIN, ORGANIZER, PAYSTACK_SECRET_KEY, STRIPE_WEBHOOK_SECRET, VOTER, FakeProviders, FakeStore


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
    return create_app()

@pytest.fixture()
def client(app) -> Generator[TestClient, None, None]:
    with TestClient(app) as c:
        yield c

# Stockage en mémoire pour tous les tests: aucun accès Supabase
@pytest.fixture(autouse=True)
def store(monkeypatch) -> FakeStore:
    return FakeStore().install(monkeypatch)

@pytest.fixture(autouse=True)
def _test_config(monkeypatch):
    monkeypatch.setattr(config, "STRIPE_WEBHOOK_SECRET", STRIPE_WEBHOOK_SECRET)
    monkeypatch.setattr(config, "PAYSTACK_SECRET_KEY", PAYSTACK_SECRET_KEY)
    monkeypatch.setattr(config, "PAYSTACK_CURRENCY", "GHS")
    monkeypatch.setattr(config, "DEFAULT_CURRENCY", "usd")
    monkeypatch.setattr(config, "MIN_WITHDRAWAL_AMOUNT", Decimal("1.00"))

# Simuler un utilisateur authentifié (votant par défaut) pour les endpoints protégés
@pytest.fixture(autouse=True)
def login(app):
    def _login(user: Dict[str, Any]) -> Dict[str, Any]:
        app.dependency_overrides[get_current_user] = lambda: user
        return user
    _login(VOTER)
    try:
        yield _login
    finally:
        app.dependency_overrides.pop(get_current_user, None)

@pytest.fixture
def organizer_client(client, login):
    login(ORGANIZER)
    return client

@pytest.fixture
def authenticated_admin_client(client, login):
    login(ADMIN)
    return client


@pytest.fixture
def providers(monkeypatch) -> FakeProviders:
    fake = FakeProviders()
    for name in ("create_payment_intent", "retrieve_payment_intent", "cancel_payment_intent"):
        monkeypatch.setattr(f"voteapp.payments.stripe_client.{name}", getattr(fake, name))
    for name in ("initialize_transaction", "verify_transaction"):
        monkeypatch.setattr(f"voteapp.payments.paystack_client.{name}", getattr(fake, name))
    return fake
