"""
Tests para el módulo de Ventas

Cubren:
- Venta simple y cálculo de totales en Bs y USD con el precio vivo
- Stock insuficiente y atomicidad (ningún stock cambia si la venta falla)
- Sin sobreventa en ventas sucesivas y reintentos ante conflictos concurrentes
- Validaciones del carrito antes de abrir la transacción
- Número de factura, idempotencia y endpoints HTTP
"""

import pytest
from datetime import datetime, timezone
from decimal import Decimal
from uuid import uuid4

from sqlalchemy.orm.attributes import set_committed_value

from app.common.exceptions import (
    EmptyCart, InsufficientStock, InvalidDiscount, InvalidQuantity, NoActiveTurno,
    NoPaymentMethod, ProductNotFound, ExchangeRateUnavailable, TransactionConflict
)
from app.core.config import settings
from app.modules.inventory.service import InventoryLedger
from app.modules.inventory.models import InventoryMovement
from app.modules.products.models import Product, UnitOfMeasure
from app.modules.sales.models import Sale, PaymentMethod
from app.modules.sales.schemas import SaleCreate, CartItem
from app.modules.sales.service import SaleService, build_invoice_number


RATE = Decimal("40")


def _cart(*lines, methods=(PaymentMethod.EFECTIVO_BS,), discount="0", key=None):
    return SaleCreate(
        items=[CartItem(product_id=product.id, quantity=Decimal(str(quantity))) for product, quantity in lines],
        payment_methods=list(methods),
        discount_bs=Decimal(discount),
        idempotency_key=key,
    )


def _stock(db_session, product):
    db_session.expire_all()
    return db_session.get(Product, product.id).stock


# ===== CONFIRMACIÓN =====

class TestCommitSale:

    def test_simple_sale(self, db_session, make_product, cashier, open_turno):
        product = make_product(name="Arroz", unit_price="10.00", stock="5")

        sale = SaleService(db_session).commit_sale(_cart((product, 2)), cashier, RATE)

        assert sale.total_bs == Decimal("20.00")
        assert sale.subtotal_bs == Decimal("20.00")
        assert sale.total_usd == Decimal("0.50")
        assert sale.turno_id == open_turno.id
        assert sale.cashier_id == cashier.user_id
        assert sale.cashier_name == cashier.user_name
        assert sale.exchange_rate == RATE
        assert _stock(db_session, product) == Decimal("3")

    def test_uses_live_price_and_snapshots_line(self, db_session, make_product, cashier, open_turno):
        product = make_product(name="Café", unit_price="12.50", stock="10")

        sale = SaleService(db_session).commit_sale(_cart((product, 3)), cashier, RATE)

        line = sale.line_items[0]
        assert line.code == product.code
        assert line.name == "Café"
        assert line.unit_price == Decimal("12.50")
        assert line.quantity == Decimal("3")
        assert line.line_subtotal_bs == Decimal("37.50")
        assert line.line_subtotal_usd == Decimal("0.94")

    def test_weighed_product(self, db_session, make_product, cashier, open_turno):
        product = make_product(name="Queso", unit_price="200.00", stock="3", unit=UnitOfMeasure.KG)

        sale = SaleService(db_session).commit_sale(_cart((product, "0.375")), cashier, RATE)

        assert sale.total_bs == Decimal("75.00")
        assert _stock(db_session, product) == Decimal("2.625")

    def test_insufficient_stock_leaves_stock_untouched(self, db_session, make_product, cashier, open_turno):
        product = make_product(name="Harina", stock="1")

        with pytest.raises(InsufficientStock) as exc_info:
            SaleService(db_session).commit_sale(_cart((product, 2)), cashier, RATE)

        assert exc_info.value.available == Decimal("1")
        assert _stock(db_session, product) == Decimal("1")
        assert db_session.query(Sale).count() == 0

    def test_failure_on_later_line_rolls_back_earlier_lines(self, db_session, make_product, cashier, open_turno):
        first = make_product(name="Arroz", stock="5")
        second = make_product(name="Azúcar", stock="1")

        with pytest.raises(InsufficientStock):
            SaleService(db_session).commit_sale(_cart((first, 2), (second, 2)), cashier, RATE)

        assert _stock(db_session, first) == Decimal("5")
        assert _stock(db_session, second) == Decimal("1")
        assert db_session.query(Sale).count() == 0
        assert db_session.query(InventoryMovement).count() == 0

    def test_deleted_product_fails_whole_sale(self, db_session, make_product, cashier, open_turno):
        product = make_product(stock="5")
        cart = SaleCreate(
            items=[
                CartItem(product_id=product.id, quantity=Decimal("1")),
                CartItem(product_id=uuid4(), quantity=Decimal("1")),
            ],
            payment_methods=[PaymentMethod.EFECTIVO_BS],
        )

        with pytest.raises(ProductNotFound):
            SaleService(db_session).commit_sale(cart, cashier, RATE)

        assert _stock(db_session, product) == Decimal("5")

    def test_no_oversell_on_successive_sales(self, db_session, make_product, cashier, open_turno):
        product = make_product(stock="5")
        service = SaleService(db_session)

        results = []
        for _ in range(4):
            try:
                service.commit_sale(_cart((product, 2)), cashier, RATE)
                results.append("ok")
            except InsufficientStock:
                results.append("rejected")

        assert results == ["ok", "ok", "rejected", "rejected"]
        assert _stock(db_session, product) == Decimal("1")

    def test_same_product_twice_in_cart(self, db_session, make_product, cashier, open_turno):
        product = make_product(stock="3")

        with pytest.raises(InsufficientStock):
            SaleService(db_session).commit_sale(_cart((product, 2), (product, 2)), cashier, RATE)

        assert _stock(db_session, product) == Decimal("3")

    def test_writes_out_movement_per_line(self, db_session, make_product, cashier, open_turno):
        first = make_product(stock="5")
        second = make_product(stock="5")

        sale = SaleService(db_session).commit_sale(_cart((first, 1), (second, 2)), cashier, RATE)

        movements = db_session.query(InventoryMovement).all()
        assert len(movements) == 2
        assert {m.reference for m in movements} == {f"POS-{sale.invoice_number}"}


class TestTotals:

    def test_round_trip_with_discount(self, db_session, make_product, cashier, open_turno):
        first = make_product(unit_price="33.33", stock="10")
        second = make_product(unit_price="7.77", stock="10")

        sale = SaleService(db_session).commit_sale(
            _cart((first, 3), (second, 1), discount="5.00"), cashier, Decimal("36.5")
        )

        assert sum(line.line_subtotal_bs for line in sale.line_items) == sale.subtotal_bs
        assert sale.subtotal_bs - sale.discount_bs == sale.total_bs
        assert sum(line.line_subtotal_usd for line in sale.line_items) == sale.subtotal_usd
        assert sale.subtotal_usd - sale.discount_usd == sale.total_usd
        assert sale.total_bs == Decimal("102.76")

    def test_payment_split_sums_to_total(self, db_session, make_product, cashier, open_turno):
        product = make_product(unit_price="10.00", stock="5")
        methods = (PaymentMethod.EFECTIVO_BS, PaymentMethod.PAGO_MOVIL, PaymentMethod.ZELLE)

        sale = SaleService(db_session).commit_sale(_cart((product, 1), methods=methods), cashier, RATE)

        amounts = [payment.amount_bs for payment in sale.payments]
        assert amounts == [Decimal("3.33"), Decimal("3.33"), Decimal("3.34")]
        assert sum(amounts) == sale.total_bs
        assert sale.payment_methods == list(methods)

    def test_payments_sum_to_total_in_both_currencies(self, db_session, make_product, cashier, open_turno):
        # 1.00 / 3 = 0.33 por línea: subtotal USD 0.66, no 0.67
        first = make_product(unit_price="1.00", stock="5")
        second = make_product(unit_price="1.00", stock="5")
        methods = (PaymentMethod.ZELLE, PaymentMethod.EFECTIVO_USD)

        sale = SaleService(db_session).commit_sale(
            _cart((first, 1), (second, 1), methods=methods), cashier, Decimal("3")
        )

        assert sale.total_usd == Decimal("0.66")
        assert sum(payment.amount_usd for payment in sale.payments) == sale.total_usd
        assert sum(payment.amount_bs for payment in sale.payments) == sale.total_bs
        assert all(payment.amount_usd >= 0 for payment in sale.payments)

    def test_tiny_total_split_has_no_negative_payment(self, db_session, make_product, cashier, open_turno):
        product = make_product(unit_price="0.03", stock="5")
        methods = list(PaymentMethod)

        sale = SaleService(db_session).commit_sale(_cart((product, 1), methods=methods), cashier, RATE)

        assert [payment.amount_bs for payment in sale.payments] == [
            Decimal("0.00"), Decimal("0.00"), Decimal("0.00"), Decimal("0.00"), Decimal("0.03")
        ]

    def test_duplicate_payment_methods_are_merged(self, db_session, make_product, cashier, open_turno):
        product = make_product(stock="5")
        methods = (PaymentMethod.EFECTIVO_BS, PaymentMethod.EFECTIVO_BS)

        sale = SaleService(db_session).commit_sale(_cart((product, 1), methods=methods), cashier, RATE)

        assert len(sale.payments) == 1

    def test_discount_above_subtotal_rolls_back(self, db_session, make_product, cashier, open_turno):
        product = make_product(unit_price="10.00", stock="5")

        with pytest.raises(InvalidDiscount):
            SaleService(db_session).commit_sale(_cart((product, 1), discount="10.01"), cashier, RATE)

        assert _stock(db_session, product) == Decimal("5")

    def test_full_discount_is_allowed(self, db_session, make_product, cashier, open_turno):
        product = make_product(unit_price="10.00", stock="5")

        sale = SaleService(db_session).commit_sale(_cart((product, 1), discount="10.00"), cashier, RATE)

        assert sale.total_bs == Decimal("0.00")
        assert sale.total_usd == Decimal("0.00")


class TestValidation:
    """Errores de validación: no abren transacción ni tocan stock"""

    def test_empty_cart(self, db_session, cashier, open_turno):
        with pytest.raises(EmptyCart):
            SaleService(db_session).commit_sale(SaleCreate(items=[], payment_methods=[PaymentMethod.ZELLE]), cashier, RATE)

    def test_no_payment_method(self, db_session, make_product, cashier, open_turno):
        product = make_product()
        with pytest.raises(NoPaymentMethod):
            SaleService(db_session).commit_sale(_cart((product, 1), methods=()), cashier, RATE)

    def test_negative_discount(self, db_session, make_product, cashier, open_turno):
        product = make_product()
        with pytest.raises(InvalidDiscount):
            SaleService(db_session).commit_sale(_cart((product, 1), discount="-1"), cashier, RATE)

    def test_zero_quantity(self, db_session, make_product, cashier, open_turno):
        product = make_product()
        with pytest.raises(InvalidQuantity):
            SaleService(db_session).commit_sale(_cart((product, 0)), cashier, RATE)

    def test_missing_rate(self, db_session, make_product, cashier, open_turno):
        product = make_product()
        with pytest.raises(ExchangeRateUnavailable):
            SaleService(db_session).commit_sale(_cart((product, 1)), cashier, Decimal("0"))

    def test_sale_without_open_turno_is_rejected(self, db_session, make_product, cashier):
        product = make_product(stock="5")

        with pytest.raises(NoActiveTurno):
            SaleService(db_session).commit_sale(_cart((product, 1)), cashier, RATE)

        assert _stock(db_session, product) == Decimal("5")


class TestInvoiceNumber:

    def test_uses_business_local_time(self):
        # 02:30 UTC = 22:30 del día anterior en Caracas
        moment = datetime(2024, 3, 10, 2, 30, 15, tzinfo=timezone.utc)
        assert build_invoice_number(moment, "F-") == "F-20240309223015"

    def test_collision_gets_suffix(self, db_session, make_product, cashier, open_turno):
        product = make_product(stock="10")
        service = SaleService(db_session)
        sale = service.commit_sale(_cart((product, 1)), cashier, RATE)

        moment = sale.sold_at.replace(tzinfo=timezone.utc) if sale.sold_at.tzinfo is None else sale.sold_at
        base = build_invoice_number(moment)
        assert sale.invoice_number == base
        assert service._next_invoice_number(moment, "", "America/Caracas") == f"{base}-01"


class TestConcurrentConflicts:
    """Otra caja cambia el stock entre la lectura y la escritura"""

    @pytest.fixture
    def stale_reads(self, monkeypatch):
        """La lectura del producto ve 10 unidades aunque la fila real tenga menos"""
        calls = []
        real_lock = InventoryLedger.lock_product

        def stale_lock(self, product_id):
            product = real_lock(self, product_id)
            calls.append(product_id)
            set_committed_value(product, "stock", Decimal("10"))
            return product

        monkeypatch.setattr(InventoryLedger, "lock_product", stale_lock)
        return calls

    def test_lost_race_is_retried_then_fails_without_side_effects(
            self, db_session, make_product, cashier, open_turno, stale_reads):
        product = make_product(stock="1")

        with pytest.raises(TransactionConflict):
            SaleService(db_session).commit_sale(_cart((product, 2)), cashier, RATE)

        assert len(stale_reads) == settings.SALE_COMMIT_MAX_RETRIES
        assert _stock(db_session, product) == Decimal("1")
        assert db_session.query(Sale).count() == 0
        assert db_session.query(InventoryMovement).count() == 0

    def test_conflict_then_retry_succeeds(self, db_session, make_product, cashier, open_turno, monkeypatch):
        product = make_product(stock="5")
        calls = []
        real_reserve = InventoryLedger.reserve_and_decrement

        def flaky_reserve(self, product_id, quantity):
            calls.append(product_id)
            if len(calls) == 1:
                raise TransactionConflict()
            return real_reserve(self, product_id, quantity)

        monkeypatch.setattr(InventoryLedger, "reserve_and_decrement", flaky_reserve)

        sale = SaleService(db_session).commit_sale(_cart((product, 2)), cashier, RATE)

        assert len(calls) == 2
        assert sale.total_bs == Decimal("20.00")
        assert _stock(db_session, product) == Decimal("3")
        assert db_session.query(Sale).count() == 1

    def test_invoice_number_collision_is_retried(self, db_session, make_product, cashier, open_turno, monkeypatch):
        product = make_product(stock="5")
        service = SaleService(db_session)
        first = service.commit_sale(_cart((product, 1)), cashier, RATE)
        taken = first.invoice_number

        calls = []
        real_next = SaleService._next_invoice_number

        def colliding_next(self, sold_at, prefix, tz_name):
            calls.append(sold_at)
            if len(calls) == 1:
                # Otra venta tomó el mismo número entre la consulta y el insert
                return taken
            return real_next(self, sold_at, prefix, tz_name)

        monkeypatch.setattr(SaleService, "_next_invoice_number", colliding_next)

        second = service.commit_sale(_cart((product, 1)), cashier, RATE)

        assert len(calls) == 2
        assert second.invoice_number != taken
        assert _stock(db_session, product) == Decimal("3")
        assert db_session.query(Sale).count() == 2


class TestIdempotency:

    def test_same_key_returns_same_sale(self, db_session, make_product, cashier, open_turno):
        product = make_product(stock="5")
        service = SaleService(db_session)

        first = service.commit_sale(_cart((product, 1), key="caja1-0001"), cashier, RATE)
        second = service.commit_sale(_cart((product, 1), key="caja1-0001"), cashier, RATE)

        assert first.id == second.id
        assert _stock(db_session, product) == Decimal("4")
        assert db_session.query(Sale).count() == 1


# ===== API =====

class TestSalesAPI:

    def test_commit_sale_endpoint(self, client, db_session, make_product, exchange_rate,
                                  open_turno, cashier_headers):
        product = make_product(unit_price="10.00", stock="5")

        response = client.post("/api/v1/sales", headers=cashier_headers, json={
            "items": [{"product_id": str(product.id), "quantity": "2"}],
            "payment_methods": ["efectivo_bs"],
        })

        assert response.status_code == 201
        data = response.json()
        assert Decimal(data["total_bs"]) == Decimal("20.00")
        assert Decimal(data["total_usd"]) == Decimal("0.50")
        assert Decimal(data["exchange_rate"]) == Decimal("40")
        assert data["payment_methods"] == ["efectivo_bs"]
        assert _stock(db_session, product) == Decimal("3")

    def test_insufficient_stock_maps_to_409(self, client, db_session, make_product, exchange_rate,
                                            open_turno, cashier_headers):
        product = make_product(name="Harina", stock="1")

        response = client.post("/api/v1/sales", headers=cashier_headers, json={
            "items": [{"product_id": str(product.id), "quantity": "2"}],
            "payment_methods": ["efectivo_bs"],
        })

        assert response.status_code == 409
        data = response.json()
        assert data["code"] == "insufficient_stock"
        assert data["available"] == "1.000"
        assert "Harina" in data["detail"]

    def test_empty_cart_maps_to_422(self, client, exchange_rate, open_turno, cashier_headers):
        response = client.post("/api/v1/sales", headers=cashier_headers, json={
            "items": [],
            "payment_methods": ["efectivo_bs"],
        })

        assert response.status_code == 422
        assert response.json()["code"] == "empty_cart"

    def test_unknown_payment_method_rejected(self, client, make_product, exchange_rate, open_turno, cashier_headers):
        product = make_product()

        response = client.post("/api/v1/sales", headers=cashier_headers, json={
            "items": [{"product_id": str(product.id), "quantity": "1"}],
            "payment_methods": ["bitcoin"],
        })

        assert response.status_code == 422

    def test_no_turno_maps_to_409(self, client, make_product, exchange_rate, cashier_headers):
        product = make_product()

        response = client.post("/api/v1/sales", headers=cashier_headers, json={
            "items": [{"product_id": str(product.id), "quantity": "1"}],
            "payment_methods": ["efectivo_bs"],
        })

        assert response.status_code == 409
        assert response.json()["code"] == "no_active_turno"

    def test_requires_identity(self, client):
        response = client.post("/api/v1/sales", json={"items": [], "payment_methods": []})
        assert response.status_code == 401

    def test_supervisor_cannot_sell(self, client, supervisor_headers):
        response = client.post("/api/v1/sales", headers=supervisor_headers, json={
            "items": [], "payment_methods": []
        })
        assert response.status_code == 403

    def test_cashier_only_lists_own_sales(self, client, db_session, make_product, cashier, other_cashier,
                                          open_turno, cashier_headers, other_cashier_headers):
        from app.modules.turnos.schemas import TurnoOpen
        from app.modules.turnos.service import TurnoService

        product = make_product(stock="10")
        TurnoService(db_session).open_turno(TurnoOpen(), cashier=other_cashier)
        service = SaleService(db_session)
        own = service.commit_sale(_cart((product, 1)), cashier, RATE)
        other = service.commit_sale(_cart((product, 1)), other_cashier, RATE)

        response = client.get("/api/v1/sales", headers=cashier_headers)
        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 1
        assert data["sales"][0]["id"] == str(own.id)

        response = client.get(f"/api/v1/sales/{other.id}", headers=cashier_headers)
        assert response.status_code == 404
