"""
Tests para configuración del negocio y tasa de cambio
"""

import pytest
import requests
from datetime import datetime, timedelta, timezone
from decimal import Decimal

from app.core.config import settings
from app.modules.configuration import tasks
from app.modules.configuration.service import ConfigurationService


class FakeResponse:
    def __init__(self, payload, status_code=200):
        self.payload = payload
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"HTTP {self.status_code}")

    def json(self):
        return self.payload


@pytest.fixture
def task_session(db_session, monkeypatch):
    """La tarea usa SessionLocal; se apunta a la sesión de la prueba sin cerrarla"""
    monkeypatch.setattr(tasks, "SessionLocal", lambda: db_session)
    monkeypatch.setattr(db_session, "close", lambda: None)
    return db_session


class TestConfigurationService:

    def test_config_created_with_defaults(self, db_session):
        config = ConfigurationService(db_session).get_config()

        assert config.business_name == settings.BUSINESS_NAME
        assert config.timezone == settings.BUSINESS_TIMEZONE
        assert config.exchange_rate == Decimal(settings.DEFAULT_EXCHANGE_RATE)

    def test_publish_rate(self, db_session):
        service = ConfigurationService(db_session)
        service.publish_exchange_rate(Decimal("36.5"), source="manual")

        rate = service.get_exchange_rate()
        assert rate.rate == Decimal("36.500000")
        assert rate.source == "manual"
        assert rate.updated_at is not None

    def test_publish_rejects_non_positive(self, db_session):
        with pytest.raises(ValueError):
            ConfigurationService(db_session).publish_exchange_rate(Decimal("0"))

    def test_rate_staleness(self, db_session):
        service = ConfigurationService(db_session)
        assert service.is_rate_stale(4)

        service.publish_exchange_rate(Decimal("36.5"))
        now = datetime.now(timezone.utc)
        assert not service.is_rate_stale(4, now=now)
        assert service.is_rate_stale(4, now=now + timedelta(hours=5))


class TestRefreshExchangeRate:

    def test_publishes_fetched_rate(self, task_session, monkeypatch):
        monkeypatch.setattr(tasks.requests, "get", lambda url, timeout: FakeResponse({"price": 38.25}))

        result = tasks.refresh_exchange_rate()

        assert result == {"status": "updated", "rate": "38.25"}
        rate = ConfigurationService(task_session).get_exchange_rate()
        assert rate.rate == Decimal("38.25")
        assert rate.source == "bcv"

    def test_fresh_rate_is_not_fetched(self, task_session, monkeypatch):
        ConfigurationService(task_session).publish_exchange_rate(Decimal("36.5"))

        def fail(*args, **kwargs):
            raise AssertionError("no debería consultar la fuente")

        monkeypatch.setattr(tasks.requests, "get", fail)
        assert tasks.refresh_exchange_rate() == {"status": "fresh"}

    def test_network_failure_keeps_last_rate(self, task_session, monkeypatch):
        def unreachable(url, timeout):
            raise requests.ConnectionError("sin red")

        monkeypatch.setattr(tasks.requests, "get", unreachable)
        before = ConfigurationService(task_session).get_exchange_rate().rate

        result = tasks.refresh_exchange_rate(force=True)

        assert result["status"] == "failed"
        assert ConfigurationService(task_session).get_exchange_rate().rate == before

    @pytest.mark.parametrize("payload", [{}, {"price": "abc"}, {"price": -1}, {"price": True}])
    def test_invalid_payload(self, payload, monkeypatch):
        monkeypatch.setattr(tasks.requests, "get", lambda url, timeout: FakeResponse(payload))
        with pytest.raises(ValueError):
            tasks.fetch_bcv_rate()


class TestConfigurationAPI:

    def test_get_exchange_rate(self, client, exchange_rate, cashier_headers):
        response = client.get("/api/v1/config/exchange-rate", headers=cashier_headers)
        assert response.status_code == 200
        assert Decimal(response.json()["rate"]) == Decimal("40")

    def test_only_admin_publishes_rate(self, client, supervisor_headers, admin_headers):
        response = client.put("/api/v1/config/exchange-rate", headers=supervisor_headers, json={"rate": "41"})
        assert response.status_code == 403

        response = client.put("/api/v1/config/exchange-rate", headers=admin_headers, json={"rate": "41"})
        assert response.status_code == 200
        assert Decimal(response.json()["rate"]) == Decimal("41")
        assert response.json()["source"] == "manual:admin-1"

    def test_rate_must_be_positive(self, client, admin_headers):
        response = client.put("/api/v1/config/exchange-rate", headers=admin_headers, json={"rate": "0"})
        assert response.status_code == 422

    def test_get_config(self, client, cashier_headers):
        response = client.get("/api/v1/config/", headers=cashier_headers)
        assert response.status_code == 200
        assert response.json()["primary_currency"] == "Bs"
