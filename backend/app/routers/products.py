"""Router para el catálogo de productos evaluados."""

import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query

from ..database import DbSession
from ..models import Product, User, UserRole
from ..schemas import ProductCreate, ProductOut, ProductUpdate
from .auth import get_current_user, require_role

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/", response_model=List[ProductOut])
def list_products(
    db: DbSession,
    active: bool | None = Query(None, description="Filtrar por activos/inactivos"),
    _: User = Depends(get_current_user),
):
    """Lista productos."""
    query = db.query(Product)
    if active is not None:
        query = query.filter(Product.active == active)
    return query.order_by(Product.name).all()


@router.post("/", response_model=ProductOut, status_code=201)
def create_product(
    payload: ProductCreate,
    db: DbSession,
    _: User = Depends(require_role(UserRole.ADMIN)),
):
    """
    Crea un producto.

    - **icon**: nombre del ícono que dibuja el cliente
    - **color**: color de la tarjeta (ej. `hsl(217, 91%, 60%)`)
    """
    product = Product(**payload.model_dump())
    db.add(product)
    db.commit()
    db.refresh(product)

    logger.info(f"Producto creado: {product.id} - {product.name}")
    return product


@router.put("/{product_id}", response_model=ProductOut)
def update_product(
    product_id: int,
    payload: ProductUpdate,
    db: DbSession,
    _: User = Depends(require_role(UserRole.ADMIN)),
):
    product = db.get(Product, product_id)
    if not product:
        raise HTTPException(status_code=404, detail="Producto no encontrado")

    for field, value in payload.model_dump(exclude_unset=True).items():
        setattr(product, field, value)

    db.commit()
    db.refresh(product)

    logger.info(f"Producto actualizado: {product.id}")
    return product


@router.delete("/{product_id}")
def delete_product(
    product_id: int,
    db: DbSession,
    _: User = Depends(require_role(UserRole.ADMIN)),
):
    product = db.get(Product, product_id)
    if not product:
        raise HTTPException(status_code=404, detail="Producto no encontrado")

    db.delete(product)
    db.commit()

    logger.info(f"Producto eliminado: {product_id}")
    return {"message": "Producto eliminado", "id": product_id}
