"""
Pydantic schemas for Reports module

Response models for all report endpoints. Amounts are in Bs unless the
field name says USD.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from app.modules.products.models import UnitOfMeasure
from app.modules.sales.models import PaymentMethod


class PaymentMethodTotal(BaseModel):
    method: PaymentMethod
    amount_bs: Decimal
    amount_usd: Decimal


# Cashier Report Schemas
class CashierSaleItem(BaseModel):
    id: UUID
    invoice_number: str
    sold_at: datetime
    total_bs: Decimal
    total_usd: Decimal
    payment_methods: List[PaymentMethod]


class CashierReportResponse(BaseModel):
    """Ventas de un cajero en su turno abierto o en un rango de días"""
    cashier_id: str
    turno_id: Optional[UUID] = Field(None, description="Turno abierto usado como ventana")
    period_start: Optional[date] = None
    period_end: Optional[date] = None
    sales_count: int
    total_bs: Decimal
    total_usd: Decimal
    average_ticket_bs: Decimal
    payment_totals: List[PaymentMethodTotal]
    sales: List[CashierSaleItem]


# Dashboard Schemas
class KPIResponse(BaseModel):
    day: date = Field(description="Día actual en la zona del negocio")
    sales_today_bs: Decimal
    sales_today_usd: Decimal
    transactions_today: int
    sales_last_7_days_bs: Decimal
    sales_last_7_days_usd: Decimal
    transactions_last_7_days: int
    active_products: int
    low_stock_products: int


class DailySalesPoint(BaseModel):
    day: date
    total_bs: Decimal
    total_usd: Decimal
    transactions: int


class DailySalesResponse(BaseModel):
    period_start: date
    period_end: date
    days: List[DailySalesPoint]


class CashierBreakdownItem(BaseModel):
    cashier_id: str
    cashier_name: str
    sales_count: int
    total_bs: Decimal
    total_usd: Decimal
    average_ticket_bs: Decimal


class SalesByCashierResponse(BaseModel):
    period_start: date
    period_end: date
    cashiers: List[CashierBreakdownItem]
    total_bs: Decimal
    total_usd: Decimal


# Inventory Report Schemas
class LowStockItem(BaseModel):
    product_id: UUID
    code: str
    name: str
    unit: UnitOfMeasure
    stock: Decimal


class LowStockResponse(BaseModel):
    threshold: Decimal
    total_products: int
    products: List[LowStockItem]
