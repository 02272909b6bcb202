"""
Modelos SQLAlchemy para turnos de caja

Un turno agrupa las ventas de un cajero entre su apertura y su cierre.
Se cierra una sola vez, por un supervisor, con el arqueo de caja en Bs y USD.
Nunca se elimina: es el registro de auditoría del efectivo.
"""

from app.database.database import Base
from sqlalchemy import Column, String, DateTime, ForeignKey, Numeric, Integer, Enum, Text, Index, UniqueConstraint, text
from sqlalchemy.orm import relationship
from sqlalchemy.dialects.postgresql import UUID
from uuid import uuid4
from app.common.mixins import TimestampMixin
from app.modules.sales.models import PaymentMethod
import enum


# ===== ENUMS =====

class TurnoStatus(str, enum.Enum):
    """Estados del turno"""
    OPEN = "open"       # Turno en curso
    CLOSED = "closed"   # Turno cerrado (terminal)


class VarianceStatus(str, enum.Enum):
    """Resultado del arqueo"""
    BALANCED = "balanced"   # Cuadrado
    SHORTAGE = "shortage"   # Faltante
    OVERAGE = "overage"     # Sobrante


# ===== MODELOS =====

class Turno(Base, TimestampMixin):
    """
    Turno de un cajero.

    Solo puede existir un turno abierto por cajero: lo garantiza el índice
    único parcial sobre cashier_id cuando status = 'OPEN'.
    """
    __tablename__ = "turnos"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    cashier_id = Column(String(128), nullable=False, index=True)
    cashier_name = Column(String(150), nullable=False)
    status = Column(Enum(TurnoStatus), nullable=False, default=TurnoStatus.OPEN, index=True)
    opened_at = Column(DateTime(timezone=True), nullable=False)
    closed_at = Column(DateTime(timezone=True), nullable=True)

    # Fondo de apertura
    opening_float_bs = Column(Numeric(15, 2), nullable=False, default=0)
    opening_float_usd = Column(Numeric(15, 2), nullable=False, default=0)

    # Totales (se llenan al cerrar, recalculados desde las ventas)
    total_sales_bs = Column(Numeric(15, 2), nullable=True)
    total_sales_usd = Column(Numeric(15, 2), nullable=True)
    sales_count = Column(Integer, nullable=True)

    # Arqueo
    expected_cash_bs = Column(Numeric(15, 2), nullable=True)
    expected_cash_usd = Column(Numeric(15, 2), nullable=True)
    counted_cash_bs = Column(Numeric(15, 2), nullable=True)
    counted_cash_usd = Column(Numeric(15, 2), nullable=True)
    variance_bs = Column(Numeric(15, 2), nullable=True)
    variance_usd = Column(Numeric(15, 2), nullable=True)
    variance_status_bs = Column(Enum(VarianceStatus), nullable=True)
    variance_status_usd = Column(Enum(VarianceStatus), nullable=True)

    # Supervisor que cerró
    closed_by_id = Column(String(128), nullable=True)
    closed_by_name = Column(String(150), nullable=True)
    closing_notes = Column(Text, nullable=True)

    # Relationships
    sales = relationship("Sale", back_populates="turno", order_by="Sale.sold_at")
    payment_totals = relationship("TurnoPaymentTotal", back_populates="turno", cascade="all, delete-orphan",
                                  order_by="TurnoPaymentTotal.method")

    __table_args__ = (
        Index(
            "uq_turno_abierto_por_cajero",
            "cashier_id",
            unique=True,
            sqlite_where=text("status = 'OPEN'"),
            postgresql_where=text("status = 'OPEN'"),
        ),
    )

    @property
    def is_open(self) -> bool:
        return self.status == TurnoStatus.OPEN


class TurnoPaymentTotal(Base):
    """Total cobrado por método de pago en un turno cerrado"""
    __tablename__ = "turno_payment_totals"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    turno_id = Column(UUID(as_uuid=True), ForeignKey("turnos.id"), nullable=False, index=True)
    method = Column(Enum(PaymentMethod), nullable=False)
    amount_bs = Column(Numeric(15, 2), nullable=False)
    amount_usd = Column(Numeric(15, 2), nullable=False)

    turno = relationship("Turno", back_populates="payment_totals")

    __table_args__ = (
        UniqueConstraint("turno_id", "method", name="uq_turno_payment_total_method"),
    )
