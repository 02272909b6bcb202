"""
Servicio de confirmación de ventas

commit_sale ejecuta en UNA sola transacción:
- bloqueo del turno abierto del cajero
- relectura de cada producto y descuento de stock con verificación
- cálculo de totales en Bs y USD con el precio vivo y la tasa recibida
- número de factura, pagos, movimientos de inventario y la venta

Si cualquier paso falla se hace rollback completo: ningún stock cambia y
ninguna venta queda visible.
"""

from sqlalchemy.orm import Session, selectinload
from sqlalchemy.exc import IntegrityError, OperationalError
from fastapi import HTTPException, status
from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional, Tuple
from uuid import UUID
import logging

from app.common.dates import utcnow, to_business_time, range_bounds_utc
from app.common.exceptions import (
    PosError, EmptyCart, InvalidQuantity, NoPaymentMethod, InvalidDiscount,
    TransactionConflict, ExchangeRateUnavailable
)
from app.common.money import (
    ZERO, to_decimal, quantize_money, quantize_quantity, quantize_rate,
    line_subtotal, convert_to_usd, sum_money, split_evenly
)
from app.core.config import settings
from app.modules.auth.schemas import AuthContext
from app.modules.configuration.service import ConfigurationService
from app.modules.inventory.service import InventoryLedger
from app.modules.sales.models import Sale, SaleLineItem, SalePayment, PaymentMethod
from app.modules.sales.schemas import SaleCreate, CartItem
from app.modules.turnos.service import TurnoService

logger = logging.getLogger(__name__)

# Errores de Postgres que indican conflicto entre transacciones
RETRYABLE_PGCODES = ("40001", "40P01")


def build_invoice_number(sold_at: datetime, prefix: str = "", tz_name: Optional[str] = None) -> str:
    """Número base: prefijo + fecha y hora local del negocio (YYYYMMDDHHMMSS)"""
    return f"{prefix}{to_business_time(sold_at, tz_name).strftime('%Y%m%d%H%M%S')}"


class SaleService:
    """Servicio para ventas del punto de venta"""

    def __init__(self, db: Session):
        self.db = db

    # ===== VALIDACIÓN PREVIA (sin transacción) =====

    def _validate_cart(self, sale_data: SaleCreate) -> Tuple[List[CartItem], List[PaymentMethod], Decimal]:
        if not sale_data.items:
            raise EmptyCart()

        for item in sale_data.items:
            if item.quantity <= 0:
                raise InvalidQuantity("Todas las cantidades deben ser mayores a cero.")
            if item.quantity != quantize_quantity(item.quantity):
                raise InvalidQuantity("Las cantidades admiten como máximo 3 decimales.")

        # Conjunto de métodos, conservando el orden de selección
        methods = list(dict.fromkeys(sale_data.payment_methods))
        if not methods:
            raise NoPaymentMethod()

        discount = to_decimal(sale_data.discount_bs)
        if discount < 0:
            raise InvalidDiscount("El descuento no puede ser negativo.")
        if discount != quantize_money(discount):
            raise InvalidDiscount("El descuento admite como máximo 2 decimales.")

        return sale_data.items, methods, discount

    def _find_by_idempotency_key(self, cashier_id: str, key: str) -> Optional[Sale]:
        return (
            self.db.query(Sale)
            .options(selectinload(Sale.line_items), selectinload(Sale.payments))
            .filter(Sale.cashier_id == cashier_id, Sale.idempotency_key == key)
            .first()
        )

    def _next_invoice_number(self, sold_at: datetime, prefix: str, tz_name: str) -> str:
        """
        Número de factura derivado del instante de la venta.
        Si ya existe otra venta en el mismo segundo se agrega un sufijo -NN.
        """
        base = build_invoice_number(sold_at, prefix, tz_name)
        taken = {
            number for (number,) in self.db.query(Sale.invoice_number)
            .filter(Sale.invoice_number.startswith(base, autoescape=True))
            .all()
        }
        if base not in taken:
            return base
        suffix = 1
        while f"{base}-{suffix:02d}" in taken:
            suffix += 1
        return f"{base}-{suffix:02d}"

    # ===== CONFIRMACIÓN =====

    def commit_sale(self, sale_data: SaleCreate, cashier: AuthContext, exchange_rate: Decimal) -> Sale:
        """
        Confirmar una venta.

        Raises:
            EmptyCart, InvalidQuantity, NoPaymentMethod, InvalidDiscount: carrito inválido
            ExchangeRateUnavailable: la tasa recibida no es positiva
            NoActiveTurno: el cajero no tiene turno abierto
            ProductNotFound, InsufficientStock: el carrito no se puede despachar
            TransactionConflict: se agotaron los reintentos por conflicto concurrente
        """
        items, methods, discount = self._validate_cart(sale_data)

        rate = quantize_rate(exchange_rate) if exchange_rate is not None else None
        if not rate or rate <= 0:
            raise ExchangeRateUnavailable()

        if sale_data.idempotency_key:
            existing = self._find_by_idempotency_key(cashier.user_id, sale_data.idempotency_key)
            if existing:
                logger.info(f"Venta {existing.invoice_number} devuelta por clave de idempotencia")
                return existing

        # Se lee antes de abrir la transacción de la venta
        config = ConfigurationService(self.db).get_config()
        prefix, tz_name = config.invoice_prefix or "", config.timezone

        attempts = max(1, settings.SALE_COMMIT_MAX_RETRIES)
        for attempt in range(1, attempts + 1):
            try:
                sale = self._commit_once(items, methods, discount, rate, cashier,
                                         sale_data.idempotency_key, prefix, tz_name)
            except TransactionConflict:
                self.db.rollback()
                logger.warning(f"Conflicto de stock al confirmar venta (intento {attempt}/{attempts})")
                continue
            except PosError as e:
                self.db.rollback()
                logger.info(f"Venta rechazada para {cashier.user_id}: {e.code} - {e.detail}")
                raise
            except (IntegrityError, OperationalError) as e:
                self.db.rollback()
                if sale_data.idempotency_key:
                    existing = self._find_by_idempotency_key(cashier.user_id, sale_data.idempotency_key)
                    if existing:
                        return existing
                if isinstance(e, OperationalError) and getattr(e.orig, "pgcode", None) not in RETRYABLE_PGCODES:
                    raise
                logger.warning(f"Reintentando venta tras conflicto (intento {attempt}/{attempts}): {e.orig}")
                continue
            except Exception:
                self.db.rollback()
                raise

            logger.info(
                f"Venta {sale.invoice_number} registrada por {cashier.user_name} "
                f"({cashier.user_id}): {sale.total_bs} Bs / {sale.total_usd} USD"
            )
            return sale

        raise TransactionConflict()

    def _commit_once(self, items: List[CartItem], methods: List[PaymentMethod], discount: Decimal,
                     rate: Decimal, cashier: AuthContext, idempotency_key: Optional[str],
                     prefix: str, tz_name: str) -> Sale:
        turno = TurnoService(self.db).lock_active_turno(cashier.user_id)
        ledger = InventoryLedger(self.db)

        line_items = []
        decremented = []
        for position, item in enumerate(items):
            # Precio y stock vivos, nunca los del cliente
            product = ledger.reserve_and_decrement(item.product_id, item.quantity)
            quantity = to_decimal(item.quantity)
            subtotal_bs = line_subtotal(product.unit_price, quantity)
            line_items.append(SaleLineItem(
                position=position,
                product_id=product.id,
                code=product.code,
                name=product.name,
                unit_price=product.unit_price,
                unit=product.unit,
                quantity=quantity,
                line_subtotal_bs=subtotal_bs,
                line_subtotal_usd=convert_to_usd(subtotal_bs, rate),
            ))
            decremented.append((product, quantity))

        subtotal_bs = sum_money(line.line_subtotal_bs for line in line_items)
        if discount > subtotal_bs:
            raise InvalidDiscount(
                f"El descuento ({discount} Bs) no puede superar el subtotal ({subtotal_bs} Bs)."
            )
        total_bs = quantize_money(subtotal_bs - discount)

        subtotal_usd = sum_money(line.line_subtotal_usd for line in line_items)
        discount_usd = convert_to_usd(discount, rate) if discount else ZERO
        total_usd = quantize_money(subtotal_usd - discount_usd)

        # Cada moneda se reparte por separado: los pagos suman el total exacto en ambas
        shares = zip(methods, split_evenly(total_bs, len(methods)), split_evenly(total_usd, len(methods)))
        payments = []
        for position, (method, amount_bs, amount_usd) in enumerate(shares):
            payments.append(SalePayment(
                position=position,
                method=method,
                amount_bs=amount_bs,
                amount_usd=amount_usd,
            ))

        sold_at = utcnow()
        invoice_number = self._next_invoice_number(sold_at, prefix, tz_name)

        sale = Sale(
            invoice_number=invoice_number,
            idempotency_key=idempotency_key,
            turno_id=turno.id,
            cashier_id=cashier.user_id,
            cashier_name=cashier.user_name,
            subtotal_bs=subtotal_bs,
            discount_bs=quantize_money(discount),
            total_bs=total_bs,
            subtotal_usd=subtotal_usd,
            discount_usd=discount_usd,
            total_usd=total_usd,
            exchange_rate=rate,
            sold_at=sold_at,
            line_items=line_items,
            payments=payments,
        )
        self.db.add(sale)

        for product, quantity in decremented:
            ledger.record_movement(product, quantity, f"POS-{invoice_number}", cashier.user_id)

        self.db.commit()
        self.db.refresh(sale)
        return sale

    # ===== CONSULTAS =====

    def get_sale(self, sale_id: UUID) -> Sale:
        sale = (
            self.db.query(Sale)
            .options(selectinload(Sale.line_items), selectinload(Sale.payments))
            .filter(Sale.id == sale_id)
            .first()
        )
        if not sale:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Venta no encontrada"
            )
        return sale

    def list_sales(self, cashier_id: Optional[str] = None, turno_id: Optional[UUID] = None,
                   start_date: Optional[date] = None, end_date: Optional[date] = None,
                   limit: int = 50, offset: int = 0) -> Tuple[List[Sale], int]:
        """Historial de ventas, más recientes primero"""
        query = self.db.query(Sale)
        if cashier_id:
            query = query.filter(Sale.cashier_id == cashier_id)
        if turno_id:
            query = query.filter(Sale.turno_id == turno_id)
        if start_date or end_date:
            tz_name = ConfigurationService(self.db).get_timezone()
            start, end = range_bounds_utc(start_date or end_date, end_date or start_date, tz_name)
            query = query.filter(Sale.sold_at >= start, Sale.sold_at < end)

        total = query.count()
        sales = (
            query.options(selectinload(Sale.line_items), selectinload(Sale.payments))
            .order_by(Sale.sold_at.desc())
            .offset(offset)
            .limit(limit)
            .all()
        )
        return sales, total
