"""
Esquemas Pydantic para turnos y arqueo de caja
"""

from pydantic import BaseModel, Field
from decimal import Decimal
from typing import Optional, List
from uuid import UUID
from datetime import datetime

from app.modules.sales.models import PaymentMethod
from app.modules.turnos.models import TurnoStatus, VarianceStatus


class TurnoOpen(BaseModel):
    """Fondo de apertura entregado al cajero"""
    opening_float_bs: Decimal = Field(default=Decimal("0"), description="Fondo en Bs")
    opening_float_usd: Decimal = Field(default=Decimal("0"), description="Fondo en USD")


class TurnoClose(BaseModel):
    """Efectivo contado por el supervisor. Es lo único que aporta el cliente al cierre."""
    counted_cash_bs: Decimal = Field(..., ge=0, description="Efectivo contado en Bs")
    counted_cash_usd: Decimal = Field(default=Decimal("0"), ge=0, description="Efectivo contado en USD")
    closing_notes: Optional[str] = Field(None, max_length=500, description="Notas de cierre")


class PaymentTotalOut(BaseModel):
    method: PaymentMethod
    amount_bs: Decimal
    amount_usd: Decimal

    model_config = {"from_attributes": True}


class TurnoOut(BaseModel):
    id: UUID
    cashier_id: str
    cashier_name: str
    status: TurnoStatus
    opened_at: datetime
    closed_at: Optional[datetime] = None
    opening_float_bs: Decimal
    opening_float_usd: Decimal

    # Cierre
    total_sales_bs: Optional[Decimal] = None
    total_sales_usd: Optional[Decimal] = None
    sales_count: Optional[int] = None
    expected_cash_bs: Optional[Decimal] = None
    expected_cash_usd: Optional[Decimal] = None
    counted_cash_bs: Optional[Decimal] = None
    counted_cash_usd: Optional[Decimal] = None
    variance_bs: Optional[Decimal] = Field(None, description="Contado - esperado (negativo = faltante)")
    variance_usd: Optional[Decimal] = None
    variance_status_bs: Optional[VarianceStatus] = None
    variance_status_usd: Optional[VarianceStatus] = None
    closed_by_id: Optional[str] = None
    closed_by_name: Optional[str] = None
    closing_notes: Optional[str] = None
    payment_totals: List[PaymentTotalOut] = []

    model_config = {"from_attributes": True}


class TurnoList(BaseModel):
    turnos: List[TurnoOut]
    total: int
    limit: int
    offset: int


class ArqueoSummary(BaseModel):
    """Arqueo calculado desde las ventas registradas del turno"""
    turno_id: UUID
    cashier_id: str
    cashier_name: str
    status: TurnoStatus
    opened_at: datetime
    opening_float_bs: Decimal
    opening_float_usd: Decimal
    sales_count: int
    total_sales_bs: Decimal
    total_sales_usd: Decimal
    payment_totals: List[PaymentTotalOut]
    expected_cash_bs: Decimal = Field(description="Fondo Bs + ventas en efectivo Bs")
    expected_cash_usd: Decimal = Field(description="Fondo USD + ventas en efectivo USD")


class OpenCashierOut(BaseModel):
    turno_id: UUID
    cashier_id: str
    cashier_name: str
    opened_at: datetime
