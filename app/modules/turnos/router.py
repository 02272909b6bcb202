"""
Router FastAPI para turnos de caja

Apertura por el cajero, cierre con arqueo por supervisor y consultas de
historial. Los totales de cierre se recalculan en el servidor.
"""

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session
from typing import Optional, List
from uuid import UUID

from app.core.config import settings
from app.database.database import get_db
from app.modules.auth.dependencies import AuthDependencies
from app.modules.auth.schemas import AuthContext
from app.modules.turnos.models import TurnoStatus
from app.modules.turnos.service import TurnoService
from app.modules.turnos.schemas import (
    TurnoOpen, TurnoClose, TurnoOut, TurnoList, ArqueoSummary, OpenCashierOut
)

turnos_router = APIRouter(prefix="/turnos", tags=["Turnos"])


@turnos_router.post("/open", response_model=TurnoOut, status_code=status.HTTP_201_CREATED)
def open_turno(
    turno_data: TurnoOpen,
    auth_context: AuthContext = Depends(AuthDependencies.require_role(["cajero", "admin"])),
    db: Session = Depends(get_db)
):
    """
    Iniciar turno para el usuario autenticado.

    - **opening_float_bs** / **opening_float_usd**: fondo entregado (>= 0)

    Falla con 409 si el cajero ya tiene un turno abierto.
    """
    return TurnoService(db).open_turno(turno_data, cashier=auth_context)


@turnos_router.get("/active", response_model=Optional[TurnoOut])
def get_active_turno(
    cashier_id: Optional[str] = Query(None, description="Solo supervisor/admin: turno de otro cajero"),
    auth_context: AuthContext = Depends(AuthDependencies.require_any_role()),
    db: Session = Depends(get_db)
):
    """Turno abierto del cajero, o null si no tiene."""
    if cashier_id and cashier_id != auth_context.user_id and not auth_context.is_supervisor:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Solo un supervisor puede consultar el turno de otro cajero"
        )
    return TurnoService(db).get_active_turno(cashier_id or auth_context.user_id)


@turnos_router.get("/open-cashiers", response_model=List[OpenCashierOut])
def get_open_cashiers(
    auth_context: AuthContext = Depends(AuthDependencies.require_supervisor()),
    db: Session = Depends(get_db)
):
    """Cajeros con turno abierto en este momento."""
    return [
        OpenCashierOut(
            turno_id=turno.id,
            cashier_id=turno.cashier_id,
            cashier_name=turno.cashier_name,
            opened_at=turno.opened_at
        )
        for turno in TurnoService(db).get_open_cashiers()
    ]


@turnos_router.get("", response_model=TurnoList)
def list_turnos(
    status_filter: Optional[TurnoStatus] = Query(None, alias="status"),
    cashier_id: Optional[str] = Query(None),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    offset: int = Query(0, ge=0),
    auth_context: AuthContext = Depends(AuthDependencies.require_supervisor()),
    db: Session = Depends(get_db)
):
    """Historial de turnos, más recientes primero."""
    turnos, total = TurnoService(db).list_turnos(
        status=status_filter,
        cashier_id=cashier_id,
        limit=limit,
        offset=offset
    )
    return TurnoList(turnos=turnos, total=total, limit=limit, offset=offset)


@turnos_router.get("/{turno_id}", response_model=TurnoOut)
def get_turno(
    turno_id: UUID,
    auth_context: AuthContext = Depends(AuthDependencies.require_supervisor()),
    db: Session = Depends(get_db)
):
    """Detalle del turno con su auditoría de cierre."""
    return TurnoService(db).get_turno(turno_id)


@turnos_router.get("/{turno_id}/arqueo", response_model=ArqueoSummary)
def preview_arqueo(
    turno_id: UUID,
    auth_context: AuthContext = Depends(AuthDependencies.require_supervisor()),
    db: Session = Depends(get_db)
):
    """Efectivo esperado y totales por método de pago, sin cerrar el turno."""
    return TurnoService(db).preview_arqueo(turno_id)


@turnos_router.post("/{turno_id}/close", response_model=TurnoOut)
def close_turno(
    turno_id: UUID,
    close_data: TurnoClose,
    auth_context: AuthContext = Depends(AuthDependencies.require_supervisor()),
    db: Session = Depends(get_db)
):
    """
    Cerrar turno con arqueo.

    - **counted_cash_bs** / **counted_cash_usd**: efectivo contado por el supervisor

    El descuadre es contado - (fondo + ventas en efectivo). Negativo es
    faltante, positivo sobrante. Un turno cerrado no se reabre.
    """
    return TurnoService(db).close_turno(turno_id, close_data, supervisor=auth_context)
