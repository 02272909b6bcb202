from fastapi import APIRouter, Depends, HTTPException, Path, Query, status
from sqlalchemy.orm import Session
from uuid import UUID

from app.database.database import get_db
from app.modules.auth.dependencies import AuthDependencies
from app.modules.auth.schemas import AuthContext
from app.modules.products.service import ProductService
from app.modules.products.schemas import ProductOut, ProductList, NextProductCode

product_router = APIRouter(prefix="/products", tags=["Products"])


@product_router.get("/search", response_model=ProductList)
def search_products(
    q: str = Query(..., min_length=1, description="Código de barras o prefijo del nombre"),
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_any_role())
):
    """
    Buscar productos para el carrito.

    Un término numérico se busca primero como código de barras exacto;
    en otro caso, por prefijo del nombre (mínimo 2 caracteres).
    """
    products = ProductService(db).search(q, limit=limit)
    return ProductList(products=products, total=len(products))


@product_router.get("/next-code", response_model=NextProductCode)
def get_next_code(
    db: Session = Depends(get_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_role(["admin"]))
):
    """Siguiente código secuencial disponible para un producto nuevo."""
    return NextProductCode(code=ProductService(db).next_code())


@product_router.get("/by-barcode/{barcode}", response_model=ProductOut)
def get_product_by_barcode(
    barcode: str = Path(..., min_length=1),
    db: Session = Depends(get_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_any_role())
):
    product = ProductService(db).get_by_barcode(barcode)
    if not product:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Producto no encontrado")
    return product


@product_router.get("/{product_id}", response_model=ProductOut)
def get_product(
    product_id: UUID,
    db: Session = Depends(get_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_any_role())
):
    """Producto por ID con precio y stock vivos."""
    return ProductService(db).get_product(product_id)
