"""
Tests para consultas de productos del punto de venta
"""

import uuid

import pytest
from decimal import Decimal
from fastapi import HTTPException

from app.modules.products.models import UnitOfMeasure
from app.modules.products.service import ProductService
from scripts.seed_demo_data import seed_products


class TestProductLookup:

    def test_get_product_not_found(self, db_session):
        with pytest.raises(HTTPException) as exc_info:
            ProductService(db_session).get_product(uuid.uuid4())
        assert exc_info.value.status_code == 404

    def test_get_by_barcode_strips_spaces(self, db_session, make_product):
        product = make_product(name="Arroz", barcode="7591234567890")

        found = ProductService(db_session).get_by_barcode(" 7591234567890 ")

        assert found.id == product.id

    def test_name_prefix_is_case_insensitive(self, db_session, make_product):
        make_product(name="Harina de maíz")
        make_product(name="Harina de trigo")
        make_product(name="Arroz")

        results = ProductService(db_session).search_by_name_prefix("HAR")

        assert [p.name for p in results] == ["Harina de maíz", "Harina de trigo"]

    def test_name_prefix_requires_two_chars(self, db_session, make_product):
        make_product(name="Harina")
        assert ProductService(db_session).search_by_name_prefix("h") == []

    def test_numeric_term_tries_barcode_first(self, db_session, make_product):
        make_product(name="123 Galletas")
        by_barcode = make_product(name="Café", barcode="123")

        results = ProductService(db_session).search("123")

        assert [p.id for p in results] == [by_barcode.id]

    def test_numeric_term_falls_back_to_name(self, db_session, make_product):
        product = make_product(name="100 Servilletas")

        results = ProductService(db_session).search("100")

        assert [p.id for p in results] == [product.id]


class TestProductCodes:

    def test_first_code(self, db_session):
        assert ProductService(db_session).next_code() == "100"

    def test_next_code_follows_max(self, db_session, make_product):
        make_product()
        make_product()
        assert ProductService(db_session).next_code() == "102"

    def test_seed_continues_sequence(self, db_session, make_product):
        make_product()

        products = seed_products(db_session, 12)

        assert [p.code for p in products[:2]] == ["101", "102"]
        assert ProductService(db_session).next_code() == "113"
        for product in products:
            assert product.stock >= 0
            if not product.unit.allows_fraction:
                assert product.stock == product.stock.to_integral_value()


class TestProductAPI:

    def test_search(self, client, make_product, cashier_headers):
        make_product(name="Queso blanco", unit=UnitOfMeasure.KG, unit_price="200.00")

        response = client.get("/api/v1/products/search", params={"q": "que"}, headers=cashier_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 1
        assert data["products"][0]["unit"] == "kg"
        assert Decimal(data["products"][0]["unit_price"]) == Decimal("200.00")

    def test_get_by_barcode(self, client, make_product, cashier_headers):
        make_product(name="Leche", barcode="7590000000001")

        response = client.get("/api/v1/products/by-barcode/7590000000001", headers=cashier_headers)
        assert response.status_code == 200
        assert response.json()["name"] == "Leche"

        response = client.get("/api/v1/products/by-barcode/0000", headers=cashier_headers)
        assert response.status_code == 404

    def test_get_product(self, client, make_product, cashier_headers):
        product = make_product(name="Azúcar", stock="7")

        response = client.get(f"/api/v1/products/{product.id}", headers=cashier_headers)

        assert response.status_code == 200
        assert Decimal(response.json()["stock"]) == Decimal("7")

    def test_next_code_admin_only(self, client, cashier_headers, admin_headers):
        response = client.get("/api/v1/products/next-code", headers=cashier_headers)
        assert response.status_code == 403

        response = client.get("/api/v1/products/next-code", headers=admin_headers)
        assert response.status_code == 200
        assert response.json() == {"code": "100"}
