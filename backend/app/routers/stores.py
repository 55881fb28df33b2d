"""Router para operaciones con tiendas."""

import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query

from ..database import DbSession
from ..models import Chain, Store, User, UserRole, Zone
from ..schemas import StoreCreate, StoreOut, StoreUpdate
from .auth import get_current_user, require_role

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/", response_model=StoreOut, status_code=201)
def create_store(
    payload: StoreCreate,
    db: DbSession,
    _: User = Depends(require_role(UserRole.ADMIN)),
):
    """
    Crea una tienda.

    - **chain_id** / **zone_id**: cadena y zona a las que pertenece
    - **latitude** / **longitude**: coordenadas en grados decimales (opcionales)
    - **geofence_radius**: radio permitido en metros (100 por defecto)
    """
    zone = db.get(Zone, payload.zone_id)
    if not db.get(Chain, payload.chain_id) or not zone:
        raise HTTPException(status_code=404, detail="Cadena o zona no encontrada")
    if zone.chain_id != payload.chain_id:
        raise HTTPException(status_code=400, detail="La zona no pertenece a la cadena")

    store = Store(**payload.model_dump())
    db.add(store)
    db.commit()
    db.refresh(store)

    logger.info(f"Tienda creada: {store.id} - {store.name}")
    return store


@router.get("/", response_model=List[StoreOut])
def list_stores(
    db: DbSession,
    chain_id: int | None = Query(None, description="Filtrar por cadena"),
    zone_id: int | None = Query(None, description="Filtrar por zona"),
    _: User = Depends(get_current_user),
):
    """Lista tiendas. El filtro por zona tiene prioridad sobre el de cadena."""
    query = db.query(Store)
    if zone_id is not None:
        query = query.filter(Store.zone_id == zone_id)
    elif chain_id is not None:
        query = query.filter(Store.chain_id == chain_id)
    return query.order_by(Store.name).all()


@router.get("/{store_id}", response_model=StoreOut)
def get_store(store_id: int, db: DbSession, _: User = Depends(get_current_user)):
    """Busca una tienda por ID."""
    store = db.get(Store, store_id)
    if not store:
        raise HTTPException(status_code=404, detail="Tienda no encontrada")
    return store


@router.put("/{store_id}", response_model=StoreOut)
def update_store(
    store_id: int,
    payload: StoreUpdate,
    db: DbSession,
    _: User = Depends(require_role(UserRole.ADMIN)),
):
    """
    Actualiza una tienda existente.

    - Solo se actualizan los campos enviados
    - Enviar `latitude`/`longitude` en null quita las coordenadas
    """
    store = db.get(Store, store_id)
    if not store:
        raise HTTPException(status_code=404, detail="Tienda no encontrada")

    for field, value in payload.model_dump(exclude_unset=True).items():
        setattr(store, field, value)

    db.commit()
    db.refresh(store)

    logger.info(f"Tienda actualizada: {store.id}")
    return store


@router.delete("/{store_id}")
def delete_store(
    store_id: int,
    db: DbSession,
    _: User = Depends(require_role(UserRole.ADMIN)),
):
    """Elimina una tienda."""
    store = db.get(Store, store_id)
    if not store:
        raise HTTPException(status_code=404, detail="Tienda no encontrada")

    db.delete(store)
    db.commit()

    logger.info(f"Tienda eliminada: {store_id}")
    return {"message": "Tienda eliminada", "id": store_id}
