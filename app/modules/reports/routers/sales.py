"""
Sales Reports Router

FastAPI router for sales report endpoints: cashier report, dashboard KPIs,
daily series and per-cashier breakdown.
"""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from app.database.database import get_db
from app.modules.auth.dependencies import AuthDependencies
from app.modules.auth.schemas import AuthContext

from ..services.sales import SalesReportService
from ..schemas import (
    CashierReportResponse,
    KPIResponse,
    DailySalesResponse,
    SalesByCashierResponse
)


router = APIRouter(prefix="/reports", tags=["Reports"])


def _validate_range(start_date: Optional[date], end_date: Optional[date]):
    if start_date and end_date and end_date < start_date:
        raise HTTPException(
            status_code=422,
            detail="end_date debe ser mayor o igual a start_date"
        )


@router.get("/cashier", response_model=CashierReportResponse)
def get_cashier_report(
    cashier_id: Optional[str] = Query(None, description="Solo supervisor/admin: reporte de otro cajero"),
    start_date: Optional[date] = Query(None, description="Fecha inicial (sin fechas: turno abierto)"),
    end_date: Optional[date] = Query(None, description="Fecha final"),
    auth_context: AuthContext = Depends(AuthDependencies.require_any_role()),
    db: Session = Depends(get_db)
):
    """
    Reporte de ventas del cajero.

    Sin fechas cubre el turno abierto; con fechas, los días indicados en la
    zona horaria del negocio. Un cajero solo puede ver su propio reporte.
    """
    _validate_range(start_date, end_date)
    if cashier_id and cashier_id != auth_context.user_id and not auth_context.is_supervisor:
        raise HTTPException(
            status_code=403,
            detail="Solo un supervisor puede consultar el reporte de otro cajero"
        )
    service = SalesReportService(db)
    return service.get_cashier_report(
        cashier_id=cashier_id or auth_context.user_id,
        start_date=start_date,
        end_date=end_date
    )


@router.get("/kpis", response_model=KPIResponse)
def get_kpis(
    auth_context: AuthContext = Depends(AuthDependencies.require_supervisor()),
    db: Session = Depends(get_db)
):
    """Ventas de hoy y de los últimos 7 días, productos activos y con stock bajo."""
    return SalesReportService(db).get_kpis()


@router.get("/daily-sales", response_model=DailySalesResponse)
def get_daily_sales(
    days: int = Query(7, ge=1, le=90, description="Cantidad de días, hoy incluido"),
    auth_context: AuthContext = Depends(AuthDependencies.require_supervisor()),
    db: Session = Depends(get_db)
):
    """Serie diaria de ventas por día calendario del negocio."""
    return SalesReportService(db).get_daily_sales(days=days)


@router.get("/by-cashier", response_model=SalesByCashierResponse)
def get_sales_by_cashier(
    start_date: Optional[date] = Query(None, description="Fecha inicial (por defecto hoy)"),
    end_date: Optional[date] = Query(None, description="Fecha final (por defecto start_date)"),
    auth_context: AuthContext = Depends(AuthDependencies.require_supervisor()),
    db: Session = Depends(get_db)
):
    """Ventas por cajero en el rango indicado."""
    _validate_range(start_date, end_date)
    service = SalesReportService(db)
    start_date = start_date or end_date or service._today()
    return service.get_sales_by_cashier(start_date, end_date or start_date)
