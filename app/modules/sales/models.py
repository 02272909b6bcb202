"""
Modelos SQLAlchemy para ventas del punto de venta

- Sale: venta confirmada (inmutable, es un hecho)
- SaleLineItem: renglón con el precio vivo leído dentro de la transacción
- SalePayment: asignación del total a cada método de pago

Una venta solo se crea dentro de SaleService.commit_sale, en la misma
transacción que descuenta el stock de sus productos.
"""

from app.database.database import Base
from sqlalchemy import Column, String, DateTime, ForeignKey, Numeric, Enum, Integer, UniqueConstraint, Index
from sqlalchemy.orm import relationship
from sqlalchemy.dialects.postgresql import UUID
from uuid import uuid4
from app.common.mixins import CreatedAtMixin
from app.modules.products.models import UnitOfMeasure
import enum


class PaymentMethod(str, enum.Enum):
    """Métodos de pago aceptados (conjunto cerrado)"""
    EFECTIVO_BS = "efectivo_bs"
    EFECTIVO_USD = "efectivo_usd"
    TRANSFERENCIA = "transferencia"
    PAGO_MOVIL = "pago_movil"
    ZELLE = "zelle"

    @property
    def is_cash(self) -> bool:
        """Entra en el arqueo de caja física"""
        return self in (PaymentMethod.EFECTIVO_BS, PaymentMethod.EFECTIVO_USD)

    @property
    def is_usd(self) -> bool:
        """Se recibe en dólares"""
        return self in (PaymentMethod.EFECTIVO_USD, PaymentMethod.ZELLE)


class Sale(Base, CreatedAtMixin):
    __tablename__ = "sales"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    invoice_number = Column(String(40), nullable=False)
    idempotency_key = Column(String(64), nullable=True)
    turno_id = Column(UUID(as_uuid=True), ForeignKey("turnos.id"), nullable=False, index=True)

    # Identidad del cajero al momento de la venta
    cashier_id = Column(String(128), nullable=False, index=True)
    cashier_name = Column(String(150), nullable=False)

    # Totales en Bs
    subtotal_bs = Column(Numeric(15, 2), nullable=False)
    discount_bs = Column(Numeric(15, 2), nullable=False, default=0)
    total_bs = Column(Numeric(15, 2), nullable=False)

    # Totales en USD a la tasa de la venta
    subtotal_usd = Column(Numeric(15, 2), nullable=False)
    discount_usd = Column(Numeric(15, 2), nullable=False, default=0)
    total_usd = Column(Numeric(15, 2), nullable=False)

    exchange_rate = Column(Numeric(18, 6), nullable=False)  # Bs por USD usada en la venta
    sold_at = Column(DateTime(timezone=True), nullable=False, index=True)

    # Relationships
    turno = relationship("Turno", back_populates="sales")
    line_items = relationship("SaleLineItem", back_populates="sale", cascade="all, delete-orphan",
                              order_by="SaleLineItem.position")
    payments = relationship("SalePayment", back_populates="sale", cascade="all, delete-orphan",
                            order_by="SalePayment.position")

    __table_args__ = (
        UniqueConstraint("invoice_number", name="uq_sale_invoice_number"),
        UniqueConstraint("cashier_id", "idempotency_key", name="uq_sale_cashier_idempotency_key"),
        Index("ix_sales_cashier_sold_at", "cashier_id", "sold_at"),
    )

    @property
    def payment_methods(self):
        return [payment.method for payment in self.payments]


class SaleLineItem(Base):
    __tablename__ = "sale_line_items"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    sale_id = Column(UUID(as_uuid=True), ForeignKey("sales.id"), nullable=False, index=True)
    position = Column(Integer, nullable=False)

    # Copia del producto al momento de la venta
    product_id = Column(UUID(as_uuid=True), ForeignKey("products.id"), nullable=False, index=True)
    code = Column(String(20), nullable=False)
    name = Column(String(150), nullable=False)
    unit_price = Column(Numeric(15, 2), nullable=False)
    unit = Column(Enum(UnitOfMeasure), nullable=False)
    quantity = Column(Numeric(15, 3), nullable=False)

    line_subtotal_bs = Column(Numeric(15, 2), nullable=False)
    line_subtotal_usd = Column(Numeric(15, 2), nullable=False)

    sale = relationship("Sale", back_populates="line_items")


class SalePayment(Base):
    __tablename__ = "sale_payments"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    sale_id = Column(UUID(as_uuid=True), ForeignKey("sales.id"), nullable=False, index=True)
    position = Column(Integer, nullable=False)
    method = Column(Enum(PaymentMethod), nullable=False)
    amount_bs = Column(Numeric(15, 2), nullable=False)
    amount_usd = Column(Numeric(15, 2), nullable=False)

    sale = relationship("Sale", back_populates="payments")

    __table_args__ = (
        UniqueConstraint("sale_id", "method", name="uq_sale_payment_method"),
    )
