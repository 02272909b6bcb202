"""
Tests para el módulo de Reportes

Los reportes son de solo lectura y cortan los días con el calendario de
la zona horaria del negocio (America/Caracas, UTC-4).
"""

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from uuid import uuid4

import pytest

from app.core.config import settings
from app.modules.configuration.models import SystemConfig
from app.modules.configuration.service import ConfigurationService
from app.modules.products.models import Product
from app.modules.reports.services import SalesReportService, InventoryReportService
from app.modules.sales.models import Sale, SalePayment, PaymentMethod
from app.modules.sales.schemas import SaleCreate, CartItem
from app.modules.sales.service import SaleService
from app.modules.turnos.models import Turno


RATE = Decimal("40")

# 2024-03-09 12:00 en Caracas
NOW = datetime(2024, 3, 9, 16, 0, tzinfo=timezone.utc)


def _add_sale(db_session, turno, sold_at, total_bs, cashier_id="cajero-1", cashier_name="Ana Cajera",
              method=PaymentMethod.EFECTIVO_BS):
    """Venta histórica insertada directamente con una fecha fija"""
    total_bs = Decimal(total_bs)
    total_usd = (total_bs / RATE).quantize(Decimal("0.01"))
    sale = Sale(
        invoice_number=uuid4().hex[:20],
        turno_id=turno.id,
        cashier_id=cashier_id,
        cashier_name=cashier_name,
        subtotal_bs=total_bs,
        discount_bs=Decimal("0"),
        total_bs=total_bs,
        subtotal_usd=total_usd,
        discount_usd=Decimal("0"),
        total_usd=total_usd,
        exchange_rate=RATE,
        sold_at=sold_at,
        payments=[SalePayment(position=0, method=method, amount_bs=total_bs, amount_usd=total_usd)],
    )
    db_session.add(sale)
    db_session.commit()
    return sale


class TestDailySales:

    def test_buckets_by_business_day(self, db_session, open_turno):
        # 02:00 UTC del 9 = 22:00 del 8 en Caracas
        _add_sale(db_session, open_turno, datetime(2024, 3, 9, 2, 0, tzinfo=timezone.utc), "10.00")
        # 05:00 UTC del 9 = 01:00 del 9 en Caracas
        _add_sale(db_session, open_turno, datetime(2024, 3, 9, 5, 0, tzinfo=timezone.utc), "20.00")
        _add_sale(db_session, open_turno, datetime(2024, 3, 9, 15, 0, tzinfo=timezone.utc), "5.50")

        report = SalesReportService(db_session).get_daily_sales(days=7, now=NOW)

        days = {point["day"]: point for point in report["days"]}
        assert len(report["days"]) == 7
        assert report["period_start"] == date(2024, 3, 3)
        assert report["period_end"] == date(2024, 3, 9)
        assert days[date(2024, 3, 8)]["total_bs"] == Decimal("10.00")
        assert days[date(2024, 3, 9)]["total_bs"] == Decimal("25.50")
        assert days[date(2024, 3, 9)]["transactions"] == 2
        assert days[date(2024, 3, 5)]["transactions"] == 0

    def test_sales_outside_window_are_ignored(self, db_session, open_turno):
        _add_sale(db_session, open_turno, NOW - timedelta(days=10), "99.00")

        report = SalesReportService(db_session).get_daily_sales(days=7, now=NOW)

        assert sum(point["total_bs"] for point in report["days"]) == Decimal("0")


class TestKPIs:

    def test_kpis(self, db_session, make_product, open_turno):
        make_product(stock="2")
        make_product(stock="5")
        make_product(stock="30")
        _add_sale(db_session, open_turno, NOW - timedelta(hours=1), "40.00")
        _add_sale(db_session, open_turno, NOW - timedelta(days=3), "60.00")
        _add_sale(db_session, open_turno, NOW - timedelta(days=8), "1000.00")

        kpis = SalesReportService(db_session).get_kpis(now=NOW)

        assert kpis["day"] == date(2024, 3, 9)
        assert kpis["sales_today_bs"] == Decimal("40.00")
        assert kpis["sales_today_usd"] == Decimal("1.00")
        assert kpis["transactions_today"] == 1
        assert kpis["sales_last_7_days_bs"] == Decimal("100.00")
        assert kpis["transactions_last_7_days"] == 2
        assert kpis["active_products"] == 3
        assert kpis["low_stock_products"] == 2


class TestCashierReports:

    def test_cashier_report_scoped_to_open_turno(self, db_session, make_product, cashier, open_turno):
        product = make_product(unit_price="10.00", stock="10")
        service = SaleService(db_session)
        for methods in ([PaymentMethod.EFECTIVO_BS], [PaymentMethod.PAGO_MOVIL]):
            service.commit_sale(
                SaleCreate(items=[CartItem(product_id=product.id, quantity=Decimal("2"))], payment_methods=methods),
                cashier, RATE
            )

        report = SalesReportService(db_session).get_cashier_report(cashier.user_id)

        assert report["turno_id"] == open_turno.id
        assert report["sales_count"] == 2
        assert report["total_bs"] == Decimal("40.00")
        assert report["average_ticket_bs"] == Decimal("20.00")
        totals = {item["method"]: item["amount_bs"] for item in report["payment_totals"]}
        assert totals[PaymentMethod.EFECTIVO_BS] == Decimal("20.00")
        assert totals[PaymentMethod.PAGO_MOVIL] == Decimal("20.00")
        assert totals[PaymentMethod.ZELLE] == Decimal("0.00")

    def test_cashier_report_without_turno_is_empty(self, db_session):
        report = SalesReportService(db_session).get_cashier_report("nadie")

        assert report["sales_count"] == 0
        assert report["turno_id"] is None
        assert report["average_ticket_bs"] == Decimal("0.00")

    def test_by_cashier(self, db_session, open_turno):
        day = date(2024, 3, 9)
        _add_sale(db_session, open_turno, NOW, "30.00")
        _add_sale(db_session, open_turno, NOW, "10.00")
        _add_sale(db_session, open_turno, NOW, "100.00", cashier_id="cajero-2", cashier_name="Luis Cajero")

        report = SalesReportService(db_session).get_sales_by_cashier(day, day)

        assert [entry["cashier_id"] for entry in report["cashiers"]] == ["cajero-2", "cajero-1"]
        first_cashier = report["cashiers"][1]
        assert first_cashier["sales_count"] == 2
        assert first_cashier["average_ticket_bs"] == Decimal("20.00")
        assert report["total_bs"] == Decimal("140.00")


class TestConfiguredTimezone:
    """Reportes y números de factura usan la zona guardada en la configuración"""

    @pytest.fixture
    def utc_business(self, db_session):
        config = ConfigurationService(db_session).get_config()
        config.timezone = "UTC"
        db_session.commit()
        return config

    def test_daily_sales_use_configured_timezone(self, db_session, open_turno, utc_business):
        # 02:00 UTC del 9: día 9 en UTC, día 8 en Caracas
        _add_sale(db_session, open_turno, datetime(2024, 3, 9, 2, 0, tzinfo=timezone.utc), "10.00")

        service = SalesReportService(db_session)
        report = service.get_daily_sales(days=2, now=NOW)

        assert service.tz_name == "UTC"
        days = {point["day"]: point for point in report["days"]}
        assert days[date(2024, 3, 9)]["transactions"] == 1
        assert days[date(2024, 3, 8)]["transactions"] == 0

    def test_invoice_number_and_report_agree_on_day(self, db_session, make_product, cashier, open_turno,
                                                     utc_business):
        product = make_product(stock="5")
        sale = SaleService(db_session).commit_sale(
            SaleCreate(items=[CartItem(product_id=product.id, quantity=Decimal("1"))],
                       payment_methods=[PaymentMethod.EFECTIVO_BS]),
            cashier, RATE
        )

        service = SalesReportService(db_session)
        sold_day = service._today(sale.sold_at)

        assert sale.invoice_number.startswith(sold_day.strftime("%Y%m%d"))
        assert service.get_daily_sales(days=1, now=sale.sold_at)["days"][0]["transactions"] == 1

    def test_falls_back_to_settings_without_config(self, db_session):
        service = SalesReportService(db_session)

        assert service.tz_name == settings.BUSINESS_TIMEZONE
        assert db_session.query(SystemConfig).count() == 0


class TestLowStock:

    def test_low_stock_threshold(self, db_session, make_product):
        make_product(name="Sal", stock="0")
        make_product(name="Arroz", stock="5")
        make_product(name="Pasta", stock="5.001")

        report = InventoryReportService(db_session).get_low_stock()

        assert report["threshold"] == Decimal("5")
        assert [item["name"] for item in report["products"]] == ["Sal", "Arroz"]

    def test_reports_do_not_mutate(self, db_session, make_product, open_turno):
        product = make_product(stock="2")
        _add_sale(db_session, open_turno, NOW, "10.00")

        SalesReportService(db_session).get_kpis(now=NOW)
        SalesReportService(db_session).get_daily_sales(days=30, now=NOW)
        InventoryReportService(db_session).get_low_stock()

        assert not db_session.new and not db_session.dirty
        db_session.expire_all()
        assert db_session.get(Product, product.id).stock == Decimal("2")
        assert db_session.get(Turno, open_turno.id).status == open_turno.status


class TestReportsAPI:

    def test_cashier_report_endpoint(self, client, cashier_headers, open_turno):
        response = client.get("/api/v1/reports/cashier", headers=cashier_headers)
        assert response.status_code == 200
        assert response.json()["turno_id"] == str(open_turno.id)

    def test_cashier_cannot_see_other_report(self, client, cashier_headers):
        response = client.get("/api/v1/reports/cashier?cashier_id=cajero-2", headers=cashier_headers)
        assert response.status_code == 403

    def test_kpis_require_supervisor(self, client, cashier_headers, supervisor_headers):
        assert client.get("/api/v1/reports/kpis", headers=cashier_headers).status_code == 403
        response = client.get("/api/v1/reports/kpis", headers=supervisor_headers)
        assert response.status_code == 200
        assert "day" in response.json()

    def test_daily_sales_endpoint(self, client, supervisor_headers):
        response = client.get("/api/v1/reports/daily-sales?days=3", headers=supervisor_headers)
        assert response.status_code == 200
        assert len(response.json()["days"]) == 3

    def test_by_cashier_rejects_inverted_range(self, client, supervisor_headers):
        response = client.get(
            "/api/v1/reports/by-cashier?start_date=2024-03-09&end_date=2024-03-01",
            headers=supervisor_headers
        )
        assert response.status_code == 422

    def test_low_stock_endpoint(self, client, make_product, cashier_headers):
        make_product(name="Sal", stock="1")
        response = client.get("/api/v1/reports/low-stock?threshold=2", headers=cashier_headers)
        assert response.status_code == 200
        assert response.json()["total_products"] == 1
