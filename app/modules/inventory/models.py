from app.database.database import Base
from sqlalchemy import Column, String, ForeignKey, Numeric, Enum
from sqlalchemy.orm import relationship
from sqlalchemy.dialects.postgresql import UUID
from uuid import uuid4
from app.common.mixins import CreatedAtMixin
import enum


class MovementType(str, enum.Enum):
    OUT = "OUT"    # Salida por venta
    IN = "IN"      # Entrada (ajustes administrativos externos)
    ADJ = "ADJ"


class InventoryMovement(Base, CreatedAtMixin):
    """Rastro de auditoría de cada cambio de stock."""
    __tablename__ = "inventory_movements"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    product_id = Column(UUID(as_uuid=True), ForeignKey("products.id"), nullable=False, index=True)
    quantity = Column(Numeric(15, 3), nullable=False)  # Negativo en salidas
    stock_after = Column(Numeric(15, 3), nullable=False)
    movement_type = Column(Enum(MovementType), nullable=False)
    reference = Column(String(100), nullable=True)  # Número de factura
    notes = Column(String(255), nullable=True)
    created_by = Column(String(128), nullable=False)  # uid del actor

    product = relationship("Product")
