"""
Tests para primitivas de dinero, fechas del negocio y errores de dominio
"""

import pytest
from datetime import date, datetime, timezone
from decimal import Decimal

from app.common.dates import as_utc, business_date, day_bounds_utc, range_bounds_utc
from app.common.exceptions import InsufficientStock, EmptyCart
from app.common.money import (
    quantize_money, line_subtotal, convert_to_usd, sum_money, split_evenly, is_whole, to_decimal
)


class TestMoney:
    """Aritmética en punto fijo"""

    def test_float_input_goes_through_str(self):
        assert to_decimal(0.1) + to_decimal(0.2) == Decimal("0.3")

    def test_line_subtotal_rounds_once(self):
        # 1.235 kg x 10.99 = 13.57265
        assert line_subtotal(Decimal("10.99"), Decimal("1.235")) == Decimal("13.57")

    def test_half_up_rounding(self):
        assert quantize_money("2.675") == Decimal("2.68")
        assert quantize_money("2.665") == Decimal("2.67")

    def test_repeated_addition_has_no_drift(self):
        assert sum_money(["0.10"] * 1000) == Decimal("100.00")

    def test_convert_to_usd(self):
        assert convert_to_usd(Decimal("100.00"), Decimal("36.5")) == Decimal("2.74")

    def test_convert_to_usd_rejects_non_positive_rate(self):
        with pytest.raises(ValueError):
            convert_to_usd(Decimal("10"), Decimal("0"))

    def test_split_evenly_puts_remainder_on_last(self):
        shares = split_evenly(Decimal("10.00"), 3)
        assert shares == [Decimal("3.33"), Decimal("3.33"), Decimal("3.34")]
        assert sum(shares) == Decimal("10.00")

    @pytest.mark.parametrize("amount,parts", [
        ("0.03", 5), ("0.02", 4), ("0.05", 2), ("0.00", 3), ("0.99", 7),
    ])
    def test_split_evenly_never_negative(self, amount, parts):
        shares = split_evenly(Decimal(amount), parts)
        assert len(shares) == parts
        assert all(share >= 0 for share in shares)
        assert sum(shares) == Decimal(amount)

    def test_split_evenly_small_total(self):
        assert split_evenly(Decimal("0.03"), 5) == [
            Decimal("0.00"), Decimal("0.00"), Decimal("0.00"), Decimal("0.00"), Decimal("0.03")
        ]

    def test_split_evenly_single_part(self):
        assert split_evenly(Decimal("7.5"), 1) == [Decimal("7.50")]

    def test_is_whole(self):
        assert is_whole(Decimal("3.000"))
        assert not is_whole(Decimal("0.250"))


class TestBusinessDates:
    """Cortes por día en la zona horaria del negocio (America/Caracas, UTC-4)"""

    def test_late_evening_belongs_to_same_local_day(self):
        # 2024-03-10 02:30 UTC es 2024-03-09 22:30 en Caracas
        moment = datetime(2024, 3, 10, 2, 30, tzinfo=timezone.utc)
        assert business_date(moment) == date(2024, 3, 9)

    def test_naive_values_are_treated_as_utc(self):
        assert as_utc(datetime(2024, 1, 1, 12, 0)).tzinfo == timezone.utc

    def test_day_bounds(self):
        start, end = day_bounds_utc(date(2024, 3, 9))
        assert start == datetime(2024, 3, 9, 4, 0, tzinfo=timezone.utc)
        assert end == datetime(2024, 3, 10, 4, 0, tzinfo=timezone.utc)

    def test_range_bounds_include_both_days(self):
        start, end = range_bounds_utc(date(2024, 3, 1), date(2024, 3, 7))
        assert start == datetime(2024, 3, 1, 4, 0, tzinfo=timezone.utc)
        assert end == datetime(2024, 3, 8, 4, 0, tzinfo=timezone.utc)


class TestDomainErrors:

    def test_insufficient_stock_message_and_payload(self):
        error = InsufficientStock("p-1", "Arroz", Decimal("3.000"), Decimal("5"))
        assert error.detail == 'Stock insuficiente para "Arroz". Disponible: 3, Solicitado: 5.'
        payload = error.to_dict()
        assert payload["code"] == "insufficient_stock"
        assert payload["available"] == "3.000"
        assert error.status_code == 409

    def test_validation_errors_are_422(self):
        assert EmptyCart().status_code == 422


class TestMiddleware:

    def test_request_id_is_echoed(self, client):
        response = client.get("/health", headers={"X-Request-ID": "abc123"})
        assert response.status_code == 200
        assert response.headers["X-Request-ID"] == "abc123"

    def test_request_id_generated_and_security_headers(self, client):
        response = client.get("/")
        assert response.json()["message"] == "Turnos POS API is running"
        assert response.headers["X-Request-ID"]
        assert response.headers["X-Content-Type-Options"] == "nosniff"
        assert response.headers["X-Frame-Options"] == "DENY"
