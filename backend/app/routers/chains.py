"""Router para cadenas comerciales y sus zonas."""

import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query

from ..database import DbSession
from ..models import Chain, User, UserRole, Zone
from ..schemas import ChainCreate, ChainOut, ChainUpdate, ZoneCreate, ZoneOut, ZoneUpdate
from .auth import get_current_user, require_role

logger = logging.getLogger(__name__)

router = APIRouter()


# === Cadenas ===


@router.get("/chains", response_model=List[ChainOut])
def list_chains(db: DbSession, _: User = Depends(get_current_user)):
    """Lista todas las cadenas."""
    return db.query(Chain).order_by(Chain.name).all()


@router.post("/chains", response_model=ChainOut, status_code=201)
def create_chain(
    payload: ChainCreate,
    db: DbSession,
    _: User = Depends(require_role(UserRole.ADMIN)),
):
    """Crea una cadena."""
    chain = Chain(**payload.model_dump())
    db.add(chain)
    db.commit()
    db.refresh(chain)

    logger.info(f"Cadena creada: {chain.id} - {chain.name}")
    return chain


@router.put("/chains/{chain_id}", response_model=ChainOut)
def update_chain(
    chain_id: int,
    payload: ChainUpdate,
    db: DbSession,
    _: User = Depends(require_role(UserRole.ADMIN)),
):
    """Actualiza una cadena."""
    chain = db.get(Chain, chain_id)
    if not chain:
        raise HTTPException(status_code=404, detail="Cadena no encontrada")

    for field, value in payload.model_dump(exclude_unset=True).items():
        setattr(chain, field, value)

    db.commit()
    db.refresh(chain)
    return chain


@router.delete("/chains/{chain_id}")
def delete_chain(
    chain_id: int,
    db: DbSession,
    _: User = Depends(require_role(UserRole.ADMIN)),
):
    """Elimina una cadena junto con sus zonas y tiendas."""
    chain = db.get(Chain, chain_id)
    if not chain:
        raise HTTPException(status_code=404, detail="Cadena no encontrada")

    db.delete(chain)
    db.commit()

    logger.info(f"Cadena eliminada: {chain_id}")
    return {"message": "Cadena eliminada", "id": chain_id}


# === Zonas ===


@router.get("/zones", response_model=List[ZoneOut])
def list_zones(
    db: DbSession,
    chain_id: int | None = Query(None, description="Filtrar por cadena"),
    _: User = Depends(get_current_user),
):
    """Lista zonas, opcionalmente de una cadena."""
    query = db.query(Zone)
    if chain_id is not None:
        query = query.filter(Zone.chain_id == chain_id)
    return query.order_by(Zone.name).all()


@router.post("/zones", response_model=ZoneOut, status_code=201)
def create_zone(
    payload: ZoneCreate,
    db: DbSession,
    _: User = Depends(require_role(UserRole.ADMIN)),
):
    """Crea una zona dentro de una cadena."""
    if not db.get(Chain, payload.chain_id):
        raise HTTPException(status_code=404, detail="Cadena no encontrada")

    zone = Zone(**payload.model_dump())
    db.add(zone)
    db.commit()
    db.refresh(zone)

    logger.info(f"Zona creada: {zone.id} - {zone.name}")
    return zone


@router.put("/zones/{zone_id}", response_model=ZoneOut)
def update_zone(
    zone_id: int,
    payload: ZoneUpdate,
    db: DbSession,
    _: User = Depends(require_role(UserRole.ADMIN)),
):
    zone = db.get(Zone, zone_id)
    if not zone:
        raise HTTPException(status_code=404, detail="Zona no encontrada")

    for field, value in payload.model_dump(exclude_unset=True).items():
        setattr(zone, field, value)

    db.commit()
    db.refresh(zone)
    return zone


@router.delete("/zones/{zone_id}")
def delete_zone(
    zone_id: int,
    db: DbSession,
    _: User = Depends(require_role(UserRole.ADMIN)),
):
    zone = db.get(Zone, zone_id)
    if not zone:
        raise HTTPException(status_code=404, detail="Zona no encontrada")

    db.delete(zone)
    db.commit()

    logger.info(f"Zona eliminada: {zone_id}")
    return {"message": "Zona eliminada", "id": zone_id}
