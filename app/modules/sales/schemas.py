"""
Esquemas Pydantic para ventas

Las reglas de negocio del carrito (vacío, cantidades, descuento, métodos de
pago) se validan en SaleService para responder con errores tipados; aquí
solo se valida la forma de los datos.
"""

from pydantic import BaseModel, Field
from decimal import Decimal
from typing import Optional, List
from uuid import UUID
from datetime import datetime

from app.modules.products.models import UnitOfMeasure
from app.modules.sales.models import PaymentMethod


# ===== ENTRADA =====

class CartItem(BaseModel):
    """Renglón del carrito: solo producto y cantidad, el precio se lee en el servidor"""
    product_id: UUID = Field(description="ID del producto")
    quantity: Decimal = Field(description="Cantidad (kg/litros admiten hasta 3 decimales)")


class SaleCreate(BaseModel):
    """Esquema para confirmar una venta"""
    items: List[CartItem] = Field(default=[], description="Renglones del carrito")
    payment_methods: List[PaymentMethod] = Field(default=[], description="Métodos de pago seleccionados")
    discount_bs: Decimal = Field(default=Decimal("0"), description="Descuento en Bs")
    idempotency_key: Optional[str] = Field(
        None, min_length=1, max_length=64,
        description="Clave para reintentos seguros: la misma clave devuelve la misma venta"
    )


# ===== SALIDA =====

class SaleLineItemOut(BaseModel):
    product_id: UUID
    code: str
    name: str
    unit_price: Decimal
    unit: UnitOfMeasure
    quantity: Decimal
    line_subtotal_bs: Decimal
    line_subtotal_usd: Decimal

    model_config = {"from_attributes": True}


class SalePaymentOut(BaseModel):
    method: PaymentMethod
    amount_bs: Decimal
    amount_usd: Decimal

    model_config = {"from_attributes": True}


class SaleOut(BaseModel):
    """Venta confirmada"""
    id: UUID = Field(description="ID de la venta")
    invoice_number: str = Field(description="Número de factura")
    turno_id: UUID = Field(description="Turno al que pertenece la venta")
    cashier_id: str
    cashier_name: str
    sold_at: datetime = Field(description="Fecha y hora de la venta (UTC)")
    subtotal_bs: Decimal
    discount_bs: Decimal
    total_bs: Decimal
    subtotal_usd: Decimal
    discount_usd: Decimal
    total_usd: Decimal
    exchange_rate: Decimal = Field(description="Tasa Bs/USD usada en la venta")
    payment_methods: List[PaymentMethod]
    line_items: List[SaleLineItemOut]
    payments: List[SalePaymentOut]

    model_config = {"from_attributes": True}


class SaleList(BaseModel):
    sales: List[SaleOut]
    total: int
    limit: int
    offset: int
