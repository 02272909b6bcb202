from pydantic import BaseModel, Field
from uuid import UUID
from typing import Optional, List
from decimal import Decimal
from app.modules.products.models import UnitOfMeasure


class ProductOut(BaseModel):
    """Producto tal como lo ve el punto de venta (precio y stock vivos)"""
    id: UUID
    code: str
    barcode: Optional[str] = None
    name: str
    description: Optional[str] = None
    unit_price: Decimal = Field(description="Precio unitario en Bs")
    unit: UnitOfMeasure
    stock: Decimal

    model_config = {"from_attributes": True}


class ProductList(BaseModel):
    products: List[ProductOut]
    total: int


class NextProductCode(BaseModel):
    code: str
