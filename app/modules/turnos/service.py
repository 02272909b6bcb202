"""
Servicios de negocio para turnos de caja

Implementa el ciclo de vida del turno:
- Apertura con fondo en Bs y USD (un solo turno abierto por cajero)
- Arqueo: efectivo esperado recalculado desde las ventas registradas
- Cierre por supervisor con efectivo contado y descuadre

Los totales de cierre nunca vienen del cliente: se recalculan en el
servidor a partir de las ventas del turno.
"""

from sqlalchemy.orm import Session, selectinload
from sqlalchemy.exc import IntegrityError
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Tuple
from uuid import UUID
import logging

from app.common.dates import utcnow
from app.common.exceptions import (
    InvalidOpeningFloat, TurnoAlreadyOpen, TurnoNotFound, TurnoNotOpen, NoActiveTurno
)
from app.common.money import ZERO, quantize_money, sum_money, to_decimal
from app.modules.auth.schemas import AuthContext
from app.modules.sales.models import Sale, PaymentMethod
from app.modules.turnos.models import Turno, TurnoPaymentTotal, TurnoStatus, VarianceStatus
from app.modules.turnos.schemas import TurnoOpen, TurnoClose, ArqueoSummary, PaymentTotalOut

logger = logging.getLogger(__name__)


# ===== CÁLCULOS DE ARQUEO =====

def summarize_payments(sales: Iterable[Sale]) -> Dict[PaymentMethod, Dict[str, Decimal]]:
    """
    Totales cobrados por método de pago.

    Incluye todos los métodos del enum, aunque no tengan ventas, para que
    ningún método quede fuera del cierre.
    """
    totals = {method: {"bs": ZERO, "usd": ZERO} for method in PaymentMethod}
    for sale in sales:
        for payment in sale.payments:
            bucket = totals[payment.method]
            bucket["bs"] += to_decimal(payment.amount_bs)
            bucket["usd"] += to_decimal(payment.amount_usd)
    return {
        method: {"bs": quantize_money(values["bs"]), "usd": quantize_money(values["usd"])}
        for method, values in totals.items()
    }


def compute_expected_cash(turno: Turno, sales: Iterable[Sale]) -> Dict[str, Decimal]:
    """
    Efectivo esperado en caja = fondo + ventas cobradas en efectivo.

    El efectivo en Bs y en USD se cuentan por separado; cada uno se
    compara con su propio fondo.
    """
    totals = summarize_payments(sales)
    return {
        "expected_bs": quantize_money(
            to_decimal(turno.opening_float_bs) + totals[PaymentMethod.EFECTIVO_BS]["bs"]
        ),
        "expected_usd": quantize_money(
            to_decimal(turno.opening_float_usd) + totals[PaymentMethod.EFECTIVO_USD]["usd"]
        ),
    }


def classify_variance(variance: Decimal) -> VarianceStatus:
    """Negativo = faltante, positivo = sobrante"""
    if variance < 0:
        return VarianceStatus.SHORTAGE
    if variance > 0:
        return VarianceStatus.OVERAGE
    return VarianceStatus.BALANCED


class TurnoService:
    """Servicio para el ciclo de vida de turnos"""

    def __init__(self, db: Session):
        self.db = db

    def open_turno(self, turno_data: TurnoOpen, cashier: AuthContext) -> Turno:
        """Abrir turno para el cajero autenticado"""
        opening_bs = quantize_money(turno_data.opening_float_bs)
        opening_usd = quantize_money(turno_data.opening_float_usd)
        if opening_bs < 0 or opening_usd < 0:
            raise InvalidOpeningFloat()

        existing = self.get_active_turno(cashier.user_id)
        if existing:
            raise TurnoAlreadyOpen(cashier.user_id, existing.id)

        turno = Turno(
            cashier_id=cashier.user_id,
            cashier_name=cashier.user_name,
            status=TurnoStatus.OPEN,
            opened_at=utcnow(),
            opening_float_bs=opening_bs,
            opening_float_usd=opening_usd,
        )
        self.db.add(turno)
        try:
            self.db.commit()
        except IntegrityError:
            # Otra petición abrió un turno entre la consulta y el insert
            self.db.rollback()
            raise TurnoAlreadyOpen(cashier.user_id)
        self.db.refresh(turno)

        logger.info(
            f"Turno {turno.id} abierto para {cashier.user_name} ({cashier.user_id}). "
            f"Fondo: {opening_bs} Bs / {opening_usd} USD"
        )
        return turno

    def get_active_turno(self, cashier_id: str) -> Optional[Turno]:
        """
        Obtener el turno abierto del cajero.

        Retorna None si el cajero no tiene turno abierto.
        """
        return self.db.query(Turno).filter(
            Turno.cashier_id == cashier_id,
            Turno.status == TurnoStatus.OPEN
        ).first()

    def lock_active_turno(self, cashier_id: str) -> Turno:
        """
        Turno abierto del cajero con bloqueo compartido, para registrar una
        venta. El cierre toma un bloqueo exclusivo, así que una venta en curso
        y el cierre del mismo turno no se solapan.
        """
        turno = (
            self.db.query(Turno)
            .filter(Turno.cashier_id == cashier_id, Turno.status == TurnoStatus.OPEN)
            .populate_existing()
            .with_for_update(read=True)
            .first()
        )
        if not turno:
            raise NoActiveTurno(cashier_id)
        return turno

    def get_turno(self, turno_id: UUID) -> Turno:
        turno = (
            self.db.query(Turno)
            .options(selectinload(Turno.payment_totals))
            .filter(Turno.id == turno_id)
            .first()
        )
        if not turno:
            raise TurnoNotFound(turno_id)
        return turno

    def _turno_sales(self, turno_id: UUID) -> List[Sale]:
        return (
            self.db.query(Sale)
            .options(selectinload(Sale.payments))
            .filter(Sale.turno_id == turno_id)
            .all()
        )

    def _build_arqueo(self, turno: Turno, sales: List[Sale]) -> ArqueoSummary:
        totals = summarize_payments(sales)
        expected = compute_expected_cash(turno, sales)
        return ArqueoSummary(
            turno_id=turno.id,
            cashier_id=turno.cashier_id,
            cashier_name=turno.cashier_name,
            status=turno.status,
            opened_at=turno.opened_at,
            opening_float_bs=to_decimal(turno.opening_float_bs),
            opening_float_usd=to_decimal(turno.opening_float_usd),
            sales_count=len(sales),
            total_sales_bs=sum_money(values["bs"] for values in totals.values()),
            total_sales_usd=sum_money(values["usd"] for values in totals.values()),
            payment_totals=[
                PaymentTotalOut(method=method, amount_bs=values["bs"], amount_usd=values["usd"])
                for method, values in totals.items()
            ],
            expected_cash_bs=expected["expected_bs"],
            expected_cash_usd=expected["expected_usd"],
        )

    def preview_arqueo(self, turno_id: UUID) -> ArqueoSummary:
        """Efectivo esperado a la fecha, sin cerrar el turno"""
        turno = self.get_turno(turno_id)
        return self._build_arqueo(turno, self._turno_sales(turno.id))

    def close_turno(self, turno_id: UUID, close_data: TurnoClose, supervisor: AuthContext) -> Turno:
        """
        Cerrar turno con arqueo.

        Bloquea el turno, recalcula totales y efectivo esperado desde las
        ventas registradas y guarda el descuadre (contado - esperado).
        """
        try:
            turno = (
                self.db.query(Turno)
                .filter(Turno.id == turno_id)
                .populate_existing()
                .with_for_update()
                .first()
            )
            if not turno:
                raise TurnoNotFound(turno_id)
            if turno.status != TurnoStatus.OPEN:
                raise TurnoNotOpen(turno_id)

            arqueo = self._build_arqueo(turno, self._turno_sales(turno.id))

            counted_bs = quantize_money(close_data.counted_cash_bs)
            counted_usd = quantize_money(close_data.counted_cash_usd)
            variance_bs = counted_bs - arqueo.expected_cash_bs
            variance_usd = counted_usd - arqueo.expected_cash_usd

            for total in arqueo.payment_totals:
                turno.payment_totals.append(TurnoPaymentTotal(
                    method=total.method,
                    amount_bs=total.amount_bs,
                    amount_usd=total.amount_usd,
                ))

            turno.total_sales_bs = arqueo.total_sales_bs
            turno.total_sales_usd = arqueo.total_sales_usd
            turno.sales_count = arqueo.sales_count
            turno.expected_cash_bs = arqueo.expected_cash_bs
            turno.expected_cash_usd = arqueo.expected_cash_usd
            turno.counted_cash_bs = counted_bs
            turno.counted_cash_usd = counted_usd
            turno.variance_bs = variance_bs
            turno.variance_usd = variance_usd
            turno.variance_status_bs = classify_variance(variance_bs)
            turno.variance_status_usd = classify_variance(variance_usd)
            turno.closed_by_id = supervisor.user_id
            turno.closed_by_name = supervisor.user_name
            turno.closing_notes = close_data.closing_notes
            turno.closed_at = utcnow()
            turno.status = TurnoStatus.CLOSED

            self.db.commit()
            self.db.refresh(turno)

        except (TurnoNotFound, TurnoNotOpen):
            self.db.rollback()
            raise

        log = logger.warning if VarianceStatus.SHORTAGE in (
            turno.variance_status_bs, turno.variance_status_usd
        ) else logger.info
        log(
            f"Turno {turno.id} cerrado por {supervisor.user_name}. "
            f"Descuadre Bs: {turno.variance_bs} ({turno.variance_status_bs.value}), "
            f"USD: {turno.variance_usd} ({turno.variance_status_usd.value})"
        )
        return turno

    def list_turnos(self, status: Optional[TurnoStatus] = None, cashier_id: Optional[str] = None,
                    limit: int = 50, offset: int = 0) -> Tuple[List[Turno], int]:
        """Historial de turnos, más recientes primero"""
        query = self.db.query(Turno)
        if status:
            query = query.filter(Turno.status == status)
        if cashier_id:
            query = query.filter(Turno.cashier_id == cashier_id)

        total = query.count()
        turnos = (
            query.options(selectinload(Turno.payment_totals))
            .order_by(Turno.opened_at.desc())
            .offset(offset)
            .limit(limit)
            .all()
        )
        return turnos, total

    def get_open_cashiers(self) -> List[Turno]:
        """Cajeros con turno abierto en este momento"""
        return (
            self.db.query(Turno)
            .filter(Turno.status == TurnoStatus.OPEN)
            .order_by(Turno.opened_at)
            .all()
        )
