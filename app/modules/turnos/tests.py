"""
Tests para el módulo de Turnos

Cubren apertura (un solo turno abierto por cajero), arqueo recalculado
desde las ventas registradas, cierre con descuadre y endpoints HTTP.
"""

import pytest
from decimal import Decimal
from uuid import uuid4

from app.common.exceptions import (
    InvalidOpeningFloat, TurnoAlreadyOpen, TurnoNotFound, TurnoNotOpen
)
from app.modules.sales.models import PaymentMethod
from app.modules.sales.schemas import SaleCreate, CartItem
from app.modules.sales.service import SaleService
from app.modules.turnos.models import Turno, TurnoStatus, VarianceStatus
from app.modules.turnos.schemas import TurnoOpen, TurnoClose
from app.modules.turnos.service import TurnoService, classify_variance, compute_expected_cash


RATE = Decimal("40")


def _sell(db_session, cashier, product, quantity, methods):
    return SaleService(db_session).commit_sale(
        SaleCreate(
            items=[CartItem(product_id=product.id, quantity=Decimal(str(quantity)))],
            payment_methods=list(methods),
        ),
        cashier,
        RATE,
    )


@pytest.fixture
def turno_100(db_session, cashier):
    """Turno con fondo de 100 Bs y sin fondo en USD"""
    return TurnoService(db_session).open_turno(
        TurnoOpen(opening_float_bs=Decimal("100")), cashier=cashier
    )


# ===== APERTURA =====

class TestOpenTurno:

    def test_open_turno(self, db_session, cashier):
        turno = TurnoService(db_session).open_turno(
            TurnoOpen(opening_float_bs=Decimal("150.50"), opening_float_usd=Decimal("20")),
            cashier=cashier
        )

        assert turno.status == TurnoStatus.OPEN
        assert turno.cashier_id == cashier.user_id
        assert turno.opening_float_bs == Decimal("150.50")
        assert turno.opening_float_usd == Decimal("20.00")
        assert turno.closed_at is None

    def test_double_open_rejected(self, db_session, cashier, turno_100):
        with pytest.raises(TurnoAlreadyOpen):
            TurnoService(db_session).open_turno(TurnoOpen(), cashier=cashier)

        open_count = db_session.query(Turno).filter(
            Turno.cashier_id == cashier.user_id,
            Turno.status == TurnoStatus.OPEN
        ).count()
        assert open_count == 1

    def test_unique_index_blocks_second_open_row(self, db_session, cashier, turno_100):
        """Aunque se salte la verificación previa, la base de datos rechaza el segundo turno"""
        from sqlalchemy.exc import IntegrityError
        from app.common.dates import utcnow

        db_session.add(Turno(
            cashier_id=cashier.user_id,
            cashier_name=cashier.user_name,
            status=TurnoStatus.OPEN,
            opened_at=utcnow(),
        ))
        with pytest.raises(IntegrityError):
            db_session.commit()
        db_session.rollback()

    def test_other_cashier_can_open(self, db_session, other_cashier, turno_100):
        turno = TurnoService(db_session).open_turno(TurnoOpen(), cashier=other_cashier)
        assert turno.status == TurnoStatus.OPEN

    def test_negative_float_rejected(self, db_session, cashier):
        with pytest.raises(InvalidOpeningFloat):
            TurnoService(db_session).open_turno(
                TurnoOpen(opening_float_bs=Decimal("-1")), cashier=cashier
            )

    def test_reopen_after_close(self, db_session, cashier, supervisor, turno_100):
        service = TurnoService(db_session)
        service.close_turno(turno_100.id, TurnoClose(counted_cash_bs=Decimal("100")), supervisor)

        turno = service.open_turno(TurnoOpen(), cashier=cashier)

        assert turno.id != turno_100.id
        assert service.get_active_turno(cashier.user_id).id == turno.id


# ===== ARQUEO Y CIERRE =====

class TestCloseTurno:

    def test_close_balanced(self, db_session, make_product, cashier, supervisor, turno_100):
        product = make_product(unit_price="25.00", stock="10")
        _sell(db_session, cashier, product, 2, [PaymentMethod.EFECTIVO_BS])

        turno = TurnoService(db_session).close_turno(
            turno_100.id, TurnoClose(counted_cash_bs=Decimal("150")), supervisor
        )

        assert turno.status == TurnoStatus.CLOSED
        assert turno.expected_cash_bs == Decimal("150.00")
        assert turno.variance_bs == Decimal("0.00")
        assert turno.variance_status_bs == VarianceStatus.BALANCED
        assert turno.closed_by_id == supervisor.user_id
        assert turno.closed_by_name == supervisor.user_name
        assert turno.closed_at is not None

    def test_close_shortage(self, db_session, make_product, cashier, supervisor, turno_100):
        product = make_product(unit_price="25.00", stock="10")
        _sell(db_session, cashier, product, 2, [PaymentMethod.EFECTIVO_BS])

        turno = TurnoService(db_session).close_turno(
            turno_100.id, TurnoClose(counted_cash_bs=Decimal("120")), supervisor
        )

        assert turno.variance_bs == Decimal("-30.00")
        assert turno.variance_status_bs == VarianceStatus.SHORTAGE

    def test_close_overage(self, db_session, make_product, cashier, supervisor, turno_100):
        product = make_product(unit_price="25.00", stock="10")
        _sell(db_session, cashier, product, 2, [PaymentMethod.EFECTIVO_BS])

        turno = TurnoService(db_session).close_turno(
            turno_100.id, TurnoClose(counted_cash_bs=Decimal("155")), supervisor
        )

        assert turno.variance_bs == Decimal("5.00")
        assert turno.variance_status_bs == VarianceStatus.OVERAGE

    def test_non_cash_sales_do_not_count_as_cash(self, db_session, make_product, cashier, supervisor, turno_100):
        product = make_product(unit_price="40.00", stock="10")
        _sell(db_session, cashier, product, 1, [PaymentMethod.EFECTIVO_BS])
        _sell(db_session, cashier, product, 1, [PaymentMethod.PAGO_MOVIL])
        _sell(db_session, cashier, product, 1, [PaymentMethod.TRANSFERENCIA])
        _sell(db_session, cashier, product, 1, [PaymentMethod.ZELLE])

        turno = TurnoService(db_session).close_turno(
            turno_100.id, TurnoClose(counted_cash_bs=Decimal("140")), supervisor
        )

        assert turno.expected_cash_bs == Decimal("140.00")
        assert turno.total_sales_bs == Decimal("160.00")
        assert turno.sales_count == 4
        totals = {total.method: total for total in turno.payment_totals}
        assert set(totals) == set(PaymentMethod)
        assert sum(total.amount_bs for total in totals.values()) == turno.total_sales_bs
        assert totals[PaymentMethod.ZELLE].amount_usd == Decimal("1.00")

    def test_usd_total_equals_sum_of_method_totals(self, db_session, make_product, cashier, supervisor, turno_100):
        first = make_product(unit_price="1.00", stock="5")
        second = make_product(unit_price="1.00", stock="5")
        SaleService(db_session).commit_sale(
            SaleCreate(
                items=[
                    CartItem(product_id=first.id, quantity=Decimal("1")),
                    CartItem(product_id=second.id, quantity=Decimal("1")),
                ],
                payment_methods=[PaymentMethod.ZELLE],
            ),
            cashier,
            Decimal("3"),
        )

        turno = TurnoService(db_session).close_turno(
            turno_100.id, TurnoClose(counted_cash_bs=Decimal("100")), supervisor
        )

        assert turno.total_sales_usd == Decimal("0.66")
        assert sum(total.amount_usd for total in turno.payment_totals) == turno.total_sales_usd
        assert sum(total.amount_bs for total in turno.payment_totals) == turno.total_sales_bs

    def test_usd_cash_is_reconciled_separately(self, db_session, make_product, cashier, supervisor):
        service = TurnoService(db_session)
        turno = service.open_turno(
            TurnoOpen(opening_float_bs=Decimal("0"), opening_float_usd=Decimal("10")), cashier=cashier
        )
        product = make_product(unit_price="80.00", stock="10")
        _sell(db_session, cashier, product, 1, [PaymentMethod.EFECTIVO_USD])

        closed = service.close_turno(
            turno.id, TurnoClose(counted_cash_bs=Decimal("0"), counted_cash_usd=Decimal("11")), supervisor
        )

        assert closed.expected_cash_usd == Decimal("12.00")
        assert closed.variance_usd == Decimal("-1.00")
        assert closed.variance_status_usd == VarianceStatus.SHORTAGE
        assert closed.variance_status_bs == VarianceStatus.BALANCED

    def test_only_sales_of_this_turno_are_counted(self, db_session, make_product, cashier, supervisor, turno_100):
        service = TurnoService(db_session)
        product = make_product(unit_price="10.00", stock="20")
        _sell(db_session, cashier, product, 3, [PaymentMethod.EFECTIVO_BS])
        service.close_turno(turno_100.id, TurnoClose(counted_cash_bs=Decimal("130")), supervisor)

        # Segundo turno del mismo día
        second = service.open_turno(TurnoOpen(opening_float_bs=Decimal("50")), cashier=cashier)
        _sell(db_session, cashier, product, 1, [PaymentMethod.EFECTIVO_BS])

        closed = service.close_turno(second.id, TurnoClose(counted_cash_bs=Decimal("60")), supervisor)

        assert closed.sales_count == 1
        assert closed.expected_cash_bs == Decimal("60.00")
        assert closed.variance_bs == Decimal("0.00")

    def test_close_twice_rejected(self, db_session, supervisor, turno_100):
        service = TurnoService(db_session)
        service.close_turno(turno_100.id, TurnoClose(counted_cash_bs=Decimal("100")), supervisor)

        with pytest.raises(TurnoNotOpen):
            service.close_turno(turno_100.id, TurnoClose(counted_cash_bs=Decimal("0")), supervisor)

        db_session.expire_all()
        assert db_session.get(Turno, turno_100.id).counted_cash_bs == Decimal("100.00")

    def test_close_unknown_turno(self, db_session, supervisor):
        with pytest.raises(TurnoNotFound):
            TurnoService(db_session).close_turno(uuid4(), TurnoClose(counted_cash_bs=Decimal("0")), supervisor)

    def test_preview_does_not_close(self, db_session, make_product, cashier, turno_100):
        product = make_product(unit_price="25.00", stock="10")
        _sell(db_session, cashier, product, 2, [PaymentMethod.EFECTIVO_BS, PaymentMethod.PAGO_MOVIL])

        arqueo = TurnoService(db_session).preview_arqueo(turno_100.id)

        assert arqueo.status == TurnoStatus.OPEN
        assert arqueo.total_sales_bs == Decimal("50.00")
        assert arqueo.expected_cash_bs == Decimal("125.00")
        db_session.expire_all()
        assert db_session.get(Turno, turno_100.id).status == TurnoStatus.OPEN


class TestArqueoHelpers:

    def test_classify_variance(self):
        assert classify_variance(Decimal("0")) == VarianceStatus.BALANCED
        assert classify_variance(Decimal("-0.01")) == VarianceStatus.SHORTAGE
        assert classify_variance(Decimal("0.01")) == VarianceStatus.OVERAGE

    def test_expected_cash_without_sales_is_the_float(self):
        turno = Turno(opening_float_bs=Decimal("100"), opening_float_usd=Decimal("5"))
        assert compute_expected_cash(turno, []) == {
            "expected_bs": Decimal("100.00"),
            "expected_usd": Decimal("5.00"),
        }


# ===== API =====

class TestTurnosAPI:

    def test_open_and_get_active(self, client, cashier_headers):
        response = client.post("/api/v1/turnos/open", headers=cashier_headers, json={
            "opening_float_bs": "100", "opening_float_usd": "10"
        })
        assert response.status_code == 201
        turno_id = response.json()["id"]

        response = client.get("/api/v1/turnos/active", headers=cashier_headers)
        assert response.status_code == 200
        assert response.json()["id"] == turno_id

    def test_active_is_null_without_turno(self, client, cashier_headers):
        response = client.get("/api/v1/turnos/active", headers=cashier_headers)
        assert response.status_code == 200
        assert response.json() is None

    def test_double_open_maps_to_409(self, client, cashier_headers, turno_100):
        response = client.post("/api/v1/turnos/open", headers=cashier_headers, json={})
        assert response.status_code == 409
        assert response.json()["code"] == "turno_already_open"

    def test_negative_float_maps_to_422(self, client, cashier_headers):
        response = client.post("/api/v1/turnos/open", headers=cashier_headers, json={
            "opening_float_bs": "-5"
        })
        assert response.status_code == 422
        assert response.json()["code"] == "invalid_opening_float"

    def test_close_requires_supervisor(self, client, cashier_headers, turno_100):
        response = client.post(f"/api/v1/turnos/{turno_100.id}/close", headers=cashier_headers, json={
            "counted_cash_bs": "100"
        })
        assert response.status_code == 403

    def test_close_ignores_client_totals(self, client, db_session, make_product, cashier,
                                         supervisor_headers, turno_100):
        product = make_product(unit_price="25.00", stock="10")
        _sell(db_session, cashier, product, 2, [PaymentMethod.EFECTIVO_BS])

        response = client.post(f"/api/v1/turnos/{turno_100.id}/close", headers=supervisor_headers, json={
            "counted_cash_bs": "120",
            "total_sales_bs": "999999",
            "expected_cash_bs": "120",
        })

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "closed"
        assert Decimal(data["expected_cash_bs"]) == Decimal("150.00")
        assert Decimal(data["variance_bs"]) == Decimal("-30.00")
        assert data["variance_status_bs"] == "shortage"
        assert Decimal(data["total_sales_bs"]) == Decimal("50.00")

    def test_close_twice_maps_to_409(self, client, supervisor_headers, turno_100):
        url = f"/api/v1/turnos/{turno_100.id}/close"
        assert client.post(url, headers=supervisor_headers, json={"counted_cash_bs": "100"}).status_code == 200

        response = client.post(url, headers=supervisor_headers, json={"counted_cash_bs": "100"})
        assert response.status_code == 409
        assert response.json()["code"] == "turno_not_open"

    def test_cashier_cannot_read_other_active_turno(self, client, cashier_headers, turno_100):
        response = client.get("/api/v1/turnos/active?cashier_id=cajero-2", headers=cashier_headers)
        assert response.status_code == 403

    def test_supervisor_reads_cashier_active_turno(self, client, supervisor_headers, cashier, turno_100):
        response = client.get(f"/api/v1/turnos/active?cashier_id={cashier.user_id}", headers=supervisor_headers)
        assert response.status_code == 200
        assert response.json()["id"] == str(turno_100.id)

    def test_open_cashiers_and_history(self, client, db_session, supervisor, supervisor_headers, turno_100):
        response = client.get("/api/v1/turnos/open-cashiers", headers=supervisor_headers)
        assert response.status_code == 200
        assert [item["turno_id"] for item in response.json()] == [str(turno_100.id)]

        TurnoService(db_session).close_turno(turno_100.id, TurnoClose(counted_cash_bs=Decimal("100")), supervisor)

        response = client.get("/api/v1/turnos?status=closed", headers=supervisor_headers)
        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 1
        assert len(data["turnos"][0]["payment_totals"]) == len(PaymentMethod)

        response = client.get("/api/v1/turnos/open-cashiers", headers=supervisor_headers)
        assert response.json() == []

    def test_arqueo_preview_endpoint(self, client, supervisor_headers, turno_100):
        response = client.get(f"/api/v1/turnos/{turno_100.id}/arqueo", headers=supervisor_headers)
        assert response.status_code == 200
        assert Decimal(response.json()["expected_cash_bs"]) == Decimal("100.00")

    def test_unknown_turno_maps_to_404(self, client, supervisor_headers):
        response = client.get(f"/api/v1/turnos/{uuid4()}", headers=supervisor_headers)
        assert response.status_code == 404
        assert response.json()["code"] == "turno_not_found"
