"""
Tests para el libro de inventario (descuento atómico de stock)
"""

import pytest
from decimal import Decimal
from uuid import uuid4

from app.common.exceptions import InsufficientStock, InvalidQuantity, ProductNotFound
from app.modules.inventory.models import InventoryMovement, MovementType
from app.modules.inventory.service import InventoryLedger
from app.modules.products.models import Product, UnitOfMeasure


class TestReserveAndDecrement:

    def test_decrements_exact_quantity(self, db_session, make_product):
        product = make_product(stock="5")
        updated = InventoryLedger(db_session).reserve_and_decrement(product.id, Decimal("2"))
        db_session.commit()

        assert updated.stock == Decimal("3")

    def test_weighed_product_accepts_grams(self, db_session, make_product):
        product = make_product(name="Queso", stock="2.500", unit=UnitOfMeasure.KG)
        updated = InventoryLedger(db_session).reserve_and_decrement(product.id, Decimal("0.350"))
        db_session.commit()

        assert updated.stock == Decimal("2.150")

    def test_insufficient_stock_reports_available(self, db_session, make_product):
        product = make_product(name="Harina", stock="1")
        with pytest.raises(InsufficientStock) as exc_info:
            InventoryLedger(db_session).reserve_and_decrement(product.id, Decimal("2"))
        db_session.rollback()

        assert exc_info.value.available == Decimal("1")
        assert exc_info.value.requested == Decimal("2")
        assert "Disponible: 1" in exc_info.value.detail
        assert db_session.get(Product, product.id).stock == Decimal("1")

    def test_exact_stock_can_be_sold_to_zero(self, db_session, make_product):
        product = make_product(stock="2")
        updated = InventoryLedger(db_session).reserve_and_decrement(product.id, Decimal("2"))
        db_session.commit()

        assert updated.stock == Decimal("0")

    def test_unknown_product(self, db_session):
        with pytest.raises(ProductNotFound):
            InventoryLedger(db_session).reserve_and_decrement(uuid4(), Decimal("1"))

    @pytest.mark.parametrize("quantity", [Decimal("0"), Decimal("-1")])
    def test_non_positive_quantity(self, db_session, make_product, quantity):
        product = make_product()
        with pytest.raises(InvalidQuantity):
            InventoryLedger(db_session).reserve_and_decrement(product.id, quantity)

    def test_countable_product_rejects_fraction(self, db_session, make_product):
        product = make_product(unit=UnitOfMeasure.UNIDAD)
        with pytest.raises(InvalidQuantity):
            InventoryLedger(db_session).reserve_and_decrement(product.id, Decimal("1.5"))
        db_session.rollback()

        assert db_session.get(Product, product.id).stock == Decimal("5")

    def test_more_than_three_decimals_rejected(self, db_session, make_product):
        product = make_product(unit=UnitOfMeasure.KG)
        with pytest.raises(InvalidQuantity):
            InventoryLedger(db_session).reserve_and_decrement(product.id, Decimal("0.0005"))


class TestRecordMovement:

    def test_out_movement_is_negative(self, db_session, make_product):
        product = make_product(stock="5")
        ledger = InventoryLedger(db_session)
        product = ledger.reserve_and_decrement(product.id, Decimal("2"))
        ledger.record_movement(product, Decimal("2"), "POS-0001", "cajero-1")
        db_session.commit()

        movement = db_session.query(InventoryMovement).one()
        assert movement.movement_type == MovementType.OUT
        assert movement.quantity == Decimal("-2")
        assert movement.stock_after == Decimal("3")
        assert movement.created_by == "cajero-1"
