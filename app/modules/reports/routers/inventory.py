"""
Inventory Reports Router
"""

from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.database.database import get_db
from app.modules.auth.dependencies import AuthDependencies
from app.modules.auth.schemas import AuthContext

from ..services.inventory import InventoryReportService
from ..schemas import LowStockResponse


router = APIRouter(prefix="/reports", tags=["Reports"])


@router.get("/low-stock", response_model=LowStockResponse)
def get_low_stock(
    threshold: Optional[Decimal] = Query(None, ge=0, description="Umbral (por defecto LOW_STOCK_THRESHOLD)"),
    limit: int = Query(100, ge=1, le=1000),
    auth_context: AuthContext = Depends(AuthDependencies.require_any_role()),
    db: Session = Depends(get_db)
):
    """Productos con stock menor o igual al umbral."""
    return InventoryReportService(db).get_low_stock(threshold=threshold, limit=limit)
