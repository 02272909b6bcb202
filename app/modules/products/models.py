from app.database.database import Base
from sqlalchemy import Column, Integer, String, Numeric, Enum, CheckConstraint, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from uuid import uuid4
from app.common.mixins import TimestampMixin
import enum


class UnitOfMeasure(str, enum.Enum):
    """Unidad de venta del producto"""
    KG = "kg"              # Pesable: cantidad fraccionaria (gramos -> kg)
    UNIDAD = "unidad"      # Contable: cantidad entera
    LITRO = "litro"        # Volumen: cantidad fraccionaria
    PAQUETE = "paquete"    # Contable: cantidad entera

    @property
    def allows_fraction(self) -> bool:
        return self in (UnitOfMeasure.KG, UnitOfMeasure.LITRO)


class Product(Base, TimestampMixin):
    """
    Producto del inventario.

    El stock solo se modifica por el descuento atómico de una venta
    (InventoryLedger) o por ajustes administrativos fuera de este servicio.
    """
    __tablename__ = "products"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    code = Column(String(20), nullable=False)  # Código secuencial ("100", "101", ...)
    code_int = Column(Integer, nullable=False, index=True)
    barcode = Column(String(50), nullable=True, index=True)  # Código de barras para el lector
    name = Column(String(150), nullable=False)
    name_lower = Column(String(150), nullable=False, index=True)  # Búsqueda por prefijo
    description = Column(String(255), nullable=True)
    unit_price = Column(Numeric(15, 2), nullable=False)  # Precio en Bs
    unit = Column(Enum(UnitOfMeasure), nullable=False, default=UnitOfMeasure.UNIDAD)
    stock = Column(Numeric(15, 3), nullable=False, default=0)

    __table_args__ = (
        UniqueConstraint("code", name="uq_product_code"),
        CheckConstraint("stock >= 0", name="ck_product_stock_non_negative"),
        CheckConstraint("unit_price > 0", name="ck_product_price_positive"),
    )
