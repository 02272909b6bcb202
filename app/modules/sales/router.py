"""
Router FastAPI para ventas del punto de venta

- POST /sales: confirmar venta (descuento de stock atómico)
- GET /sales: historial con filtros
- GET /sales/{id}: detalle
"""

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session
from typing import Annotated, Optional
from uuid import UUID
from datetime import date

from app.core.config import settings
from app.database.database import get_db
from app.dependencies.dbDependecies import db_dependency
from app.dependencies.rateDependencies import exchange_rate_dependency
from app.modules.auth.dependencies import AuthDependencies
from app.modules.auth.schemas import AuthContext
from app.modules.sales.service import SaleService
from app.modules.sales.schemas import SaleCreate, SaleOut, SaleList

sales_router = APIRouter(prefix="/sales", tags=["Sales"])


@sales_router.post("", response_model=SaleOut, status_code=status.HTTP_201_CREATED)
def commit_sale(
    sale_data: SaleCreate,
    auth_context: Annotated[AuthContext, Depends(AuthDependencies.require_role(["cajero", "admin"]))],
    exchange_rate: exchange_rate_dependency,
    db: db_dependency
):
    """
    Confirmar una venta del carrito.

    - **items**: productos y cantidades (el precio se toma del producto)
    - **payment_methods**: al menos un método de pago
    - **discount_bs**: descuento en Bs, entre 0 y el subtotal
    - **idempotency_key**: opcional, para reintentar sin duplicar la venta

    Validaciones:
    - El cajero debe tener un turno abierto
    - Stock suficiente para cada producto; si no, no se descuenta nada
    - Se usa la última tasa publicada, nunca se consulta una fuente externa
    """
    return SaleService(db).commit_sale(sale_data, cashier=auth_context, exchange_rate=exchange_rate)


@sales_router.get("", response_model=SaleList)
def list_sales(
    cashier_id: Optional[str] = Query(None, description="Filtrar por cajero"),
    turno_id: Optional[UUID] = Query(None, description="Filtrar por turno"),
    start_date: Optional[date] = Query(None, description="Fecha inicial (zona del negocio)"),
    end_date: Optional[date] = Query(None, description="Fecha final (zona del negocio)"),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    offset: int = Query(0, ge=0),
    auth_context: AuthContext = Depends(AuthDependencies.require_any_role()),
    db: Session = Depends(get_db)
):
    """
    Historial de ventas, más recientes primero.

    Un cajero solo ve sus propias ventas.
    """
    if not auth_context.is_supervisor:
        cashier_id = auth_context.user_id
    sales, total = SaleService(db).list_sales(
        cashier_id=cashier_id,
        turno_id=turno_id,
        start_date=start_date,
        end_date=end_date,
        limit=limit,
        offset=offset
    )
    return SaleList(sales=sales, total=total, limit=limit, offset=offset)


@sales_router.get("/{sale_id}", response_model=SaleOut)
def get_sale(
    sale_id: UUID,
    auth_context: AuthContext = Depends(AuthDependencies.require_any_role()),
    db: Session = Depends(get_db)
):
    sale = SaleService(db).get_sale(sale_id)
    if not auth_context.is_supervisor and sale.cashier_id != auth_context.user_id:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Venta no encontrada")
    return sale
