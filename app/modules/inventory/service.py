"""
Libro de inventario: descuento atómico de stock con verificación.

No existen reservas previas: el stock se verifica y se descuenta en el mismo
instante en que se confirma la venta (optimista, gana el último en confirmar).
Los métodos de esta clase NO hacen commit; se ejecutan dentro de la
transacción de la venta y se revierten con ella.
"""
from decimal import Decimal
from typing import Optional
from uuid import UUID
import logging

from sqlalchemy import update
from sqlalchemy.orm import Session

from app.common.exceptions import (
    InvalidQuantity, ProductNotFound, InsufficientStock, TransactionConflict
)
from app.common.money import Number, to_decimal, quantize_quantity, is_whole
from app.modules.inventory.models import InventoryMovement, MovementType
from app.modules.products.models import Product

logger = logging.getLogger(__name__)


class InventoryLedger:
    """Service for stock decrements inside a sale transaction."""

    def __init__(self, db: Session):
        self.db = db

    def lock_product(self, product_id: UUID) -> Optional[Product]:
        """Releer el producto autoritativo bloqueando la fila hasta el commit."""
        return (
            self.db.query(Product)
            .filter(Product.id == product_id)
            .populate_existing()
            .with_for_update()
            .first()
        )

    def validate_quantity(self, product: Product, quantity: Number) -> Decimal:
        quantity = to_decimal(quantity)
        if quantity <= 0:
            raise InvalidQuantity(f'La cantidad para "{product.name}" debe ser mayor a cero.')
        if quantity != quantize_quantity(quantity):
            raise InvalidQuantity(
                f'La cantidad para "{product.name}" admite como máximo 3 decimales.'
            )
        if not product.unit.allows_fraction and not is_whole(quantity):
            raise InvalidQuantity(
                f'"{product.name}" se vende por {product.unit.value}: la cantidad debe ser entera.'
            )
        return quantity

    def reserve_and_decrement(self, product_id: UUID, quantity: Number) -> Product:
        """
        Verificar y descontar `quantity` del stock del producto.

        Raises:
            InvalidQuantity: cantidad no positiva o fraccionaria en producto contable
            ProductNotFound: el producto ya no existe
            InsufficientStock: stock actual menor a lo solicitado (incluye disponible)
            TransactionConflict: otra transacción cambió el stock entre lectura y escritura

        Returns:
            El producto con el stock ya descontado.
        """
        if to_decimal(quantity) <= 0:
            raise InvalidQuantity("La cantidad debe ser mayor a cero.")

        product = self.lock_product(product_id)
        if product is None:
            raise ProductNotFound(product_id)

        quantity = self.validate_quantity(product, quantity)
        available = to_decimal(product.stock)
        if available < quantity:
            raise InsufficientStock(product.id, product.name, available, quantity)

        # Escritura condicional: nunca deja el stock negativo aunque la
        # lectura anterior haya quedado obsoleta
        result = self.db.execute(
            update(Product)
            .where(Product.id == product_id, Product.stock >= quantity)
            .values(stock=Product.stock - quantity)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            logger.warning(f"Conflicto de stock en producto {product_id}")
            raise TransactionConflict()

        self.db.refresh(product)
        return product

    def record_movement(self, product: Product, quantity: Decimal, reference: str,
                        user_id: str, notes: Optional[str] = None) -> InventoryMovement:
        """Registrar la salida de inventario asociada a una venta."""
        movement = InventoryMovement(
            product_id=product.id,
            quantity=-quantity,
            stock_after=product.stock,
            movement_type=MovementType.OUT,
            reference=reference,
            notes=notes or f"Venta POS - Factura {reference}",
            created_by=user_id,
        )
        self.db.add(movement)
        return movement
