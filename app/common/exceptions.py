"""
Errores de dominio del motor de ventas y turnos.

Cada error lleva el status HTTP, un código estable para el cliente y un
mensaje accionable en español. Los servicios los lanzan para condiciones
esperadas; el handler registrado en app.main los convierte en respuestas.
"""

from decimal import Decimal
from typing import Any, Dict, Optional
from uuid import UUID

from fastapi import Request, status
from fastapi.responses import JSONResponse


class PosError(Exception):
    """Base de todos los errores esperados del dominio POS"""
    status_code: int = status.HTTP_400_BAD_REQUEST
    code: str = "pos_error"

    def __init__(self, detail: str, **extra: Any):
        super().__init__(detail)
        self.detail = detail
        self.extra = extra

    def to_dict(self) -> Dict[str, Any]:
        payload = {"detail": self.detail, "code": self.code}
        for key, value in self.extra.items():
            if isinstance(value, (Decimal, UUID)):
                value = str(value)
            payload[key] = value
        return payload


# ===== VALIDACIÓN =====

class ValidationFailed(PosError):
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    code = "validation_error"


class EmptyCart(ValidationFailed):
    code = "empty_cart"

    def __init__(self):
        super().__init__("El carrito está vacío. Agregue al menos un producto.")


class InvalidQuantity(ValidationFailed):
    code = "invalid_quantity"


class NoPaymentMethod(ValidationFailed):
    code = "no_payment_method"

    def __init__(self):
        super().__init__("Debe seleccionar al menos un método de pago.")


class InvalidDiscount(ValidationFailed):
    code = "invalid_discount"


class InvalidOpeningFloat(ValidationFailed):
    code = "invalid_opening_float"

    def __init__(self):
        super().__init__("El fondo no puede ser negativo.")


# ===== CONSISTENCIA =====

class ProductNotFound(PosError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "product_not_found"

    def __init__(self, product_id: UUID, name: Optional[str] = None):
        label = f'"{name}"' if name else str(product_id)
        super().__init__(f"El producto {label} no fue encontrado.", product_id=product_id)
        self.product_id = product_id


class InsufficientStock(PosError):
    status_code = status.HTTP_409_CONFLICT
    code = "insufficient_stock"

    def __init__(self, product_id: UUID, name: str, available: Decimal, requested: Decimal):
        super().__init__(
            f'Stock insuficiente para "{name}". Disponible: {available.normalize():f}, '
            f"Solicitado: {requested.normalize():f}.",
            product_id=product_id,
            available=available,
            requested=requested,
        )
        self.product_id = product_id
        self.available = available
        self.requested = requested


class TransactionConflict(PosError):
    status_code = status.HTTP_409_CONFLICT
    code = "transaction_conflict"

    def __init__(self):
        super().__init__(
            "La venta entró en conflicto con otra operación simultánea. "
            "El stock no ha sido modificado; intente de nuevo."
        )


# ===== CICLO DE VIDA DEL TURNO =====

class TurnoAlreadyOpen(PosError):
    status_code = status.HTTP_409_CONFLICT
    code = "turno_already_open"

    def __init__(self, cashier_id: str, turno_id: Optional[UUID] = None):
        super().__init__(
            "El cajero ya tiene un turno abierto. Ciérrelo antes de iniciar otro.",
            cashier_id=cashier_id,
            turno_id=turno_id,
        )


class TurnoNotFound(PosError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "turno_not_found"

    def __init__(self, turno_id: UUID):
        super().__init__("Turno no encontrado.", turno_id=turno_id)


class TurnoNotOpen(PosError):
    status_code = status.HTTP_409_CONFLICT
    code = "turno_not_open"

    def __init__(self, turno_id: UUID):
        super().__init__("El turno ya está cerrado.", turno_id=turno_id)


class NoActiveTurno(PosError):
    status_code = status.HTTP_409_CONFLICT
    code = "no_active_turno"

    def __init__(self, cashier_id: str):
        super().__init__(
            "No hay un turno abierto para este cajero. Inicie un turno antes de vender.",
            cashier_id=cashier_id,
        )


# ===== DEPENDENCIAS EXTERNAS =====

class ExchangeRateUnavailable(PosError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    code = "exchange_rate_unavailable"

    def __init__(self):
        super().__init__("No hay una tasa de cambio registrada para procesar la venta.")


async def pos_error_handler(request: Request, exc: PosError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())
