"""
Primitivas de dinero y cantidades en punto fijo.

Todos los montos se manejan como Decimal con 2 decimales y las cantidades
pesables con 3 decimales (gramos expresados en kilogramos). Nunca se usa
float para aritmética de montos.
"""

from decimal import Decimal, ROUND_DOWN, ROUND_HALF_UP, InvalidOperation
from typing import Iterable, List, Union

MONEY_PLACES = Decimal("0.01")
QUANTITY_PLACES = Decimal("0.001")
RATE_PLACES = Decimal("0.000001")
ZERO = Decimal("0.00")

Number = Union[Decimal, int, float, str]


def to_decimal(value: Number) -> Decimal:
    """Convertir a Decimal pasando por str para no heredar error de float."""
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value))
    except InvalidOperation:
        raise ValueError(f"Valor numérico inválido: {value!r}")


def quantize_money(value: Number) -> Decimal:
    return to_decimal(value).quantize(MONEY_PLACES, rounding=ROUND_HALF_UP)


def quantize_quantity(value: Number) -> Decimal:
    return to_decimal(value).quantize(QUANTITY_PLACES, rounding=ROUND_HALF_UP)


def quantize_rate(value: Number) -> Decimal:
    return to_decimal(value).quantize(RATE_PLACES, rounding=ROUND_HALF_UP)


def is_whole(quantity: Number) -> bool:
    """True si la cantidad no tiene parte fraccionaria."""
    return to_decimal(quantity) == to_decimal(quantity).to_integral_value()


def line_subtotal(unit_price: Number, quantity: Number) -> Decimal:
    """Precio unitario x cantidad, redondeado una sola vez al centavo."""
    return quantize_money(to_decimal(unit_price) * to_decimal(quantity))


def convert_to_usd(amount_bs: Number, exchange_rate: Number) -> Decimal:
    """
    Convertir un monto en Bs a USD con la tasa indicada (Bs por USD).

    La división se hace con precisión completa y se redondea al final.
    """
    rate = to_decimal(exchange_rate)
    if rate <= 0:
        raise ValueError("La tasa de cambio debe ser mayor a cero")
    return quantize_money(to_decimal(amount_bs) / rate)


def sum_money(values: Iterable[Number]) -> Decimal:
    total = ZERO
    for value in values:
        total += to_decimal(value)
    return quantize_money(total)


def split_evenly(amount: Number, parts: int) -> List[Decimal]:
    """
    Repartir un monto en partes iguales al centavo.

    Cada parte se trunca al centavo y el residuo se asigna a la última,
    así la suma es exactamente el monto original y ninguna parte queda
    negativa.
    """
    if parts < 1:
        raise ValueError("Se requiere al menos una parte")
    total = quantize_money(amount)
    share = (total / parts).quantize(MONEY_PLACES, rounding=ROUND_DOWN)
    shares = [share] * (parts - 1)
    shares.append(total - share * (parts - 1))
    return shares
