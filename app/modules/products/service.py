"""
Consultas de productos para el punto de venta.

Solo lectura: la gestión del catálogo vive fuera de este servicio. Las
búsquedas siempre leen el registro vivo (precio y stock actuales).
"""
from typing import List, Optional
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy import func
from sqlalchemy.orm import Session

from app.modules.products.models import Product

FIRST_PRODUCT_CODE = 100


class ProductService:
    """Service for product lookup operations."""

    def __init__(self, db: Session):
        self.db = db

    def get_product(self, product_id: UUID) -> Product:
        product = self.db.query(Product).filter(Product.id == product_id).first()
        if not product:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Producto no encontrado"
            )
        return product

    def get_by_barcode(self, barcode: str) -> Optional[Product]:
        return self.db.query(Product).filter(Product.barcode == barcode.strip()).first()

    def get_by_code(self, code: str) -> Optional[Product]:
        return self.db.query(Product).filter(Product.code == code.strip()).first()

    def search_by_name_prefix(self, prefix: str, limit: int = 20) -> List[Product]:
        """Búsqueda por prefijo de nombre, sin distinguir mayúsculas."""
        cleaned = prefix.strip().lower()
        if len(cleaned) < 2:
            return []
        return (
            self.db.query(Product)
            .filter(Product.name_lower.startswith(cleaned, autoescape=True))
            .order_by(Product.name_lower)
            .limit(limit)
            .all()
        )

    def search(self, term: str, limit: int = 20) -> List[Product]:
        """
        Búsqueda del POS: si el término es numérico se intenta primero como
        código de barras (coincidencia exacta); si no, por prefijo de nombre.
        """
        cleaned = term.strip()
        if cleaned.isdigit():
            product = self.get_by_barcode(cleaned)
            if product:
                return [product]
        return self.search_by_name_prefix(cleaned, limit=limit)

    def next_code(self) -> str:
        """Siguiente código secuencial de producto."""
        last = self.db.query(func.max(Product.code_int)).scalar()
        return str((last or FIRST_PRODUCT_CODE - 1) + 1)
