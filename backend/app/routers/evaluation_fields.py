"""Router para los campos configurables del formulario de evaluación."""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from ..database import DbSession
from ..models import EvaluationField, User, UserRole
from ..schemas import EvaluationFieldCreate, EvaluationFieldOut, EvaluationFieldUpdate
from .auth import get_current_user, require_role

logger = logging.getLogger(__name__)

router = APIRouter()


def _ensure_unique_name(db: Session, technical_name: str, field_id: Optional[int] = None) -> None:
    existing = db.query(EvaluationField).filter(EvaluationField.technical_name == technical_name).first()
    if existing and existing.id != field_id:
        raise HTTPException(status_code=400, detail="Ya existe un campo con ese nombre técnico")


@router.get("/", response_model=List[EvaluationFieldOut])
def list_fields(
    db: DbSession,
    step: Optional[int] = Query(None, ge=1, le=5, description="Filtrar por paso del flujo"),
    active: Optional[bool] = Query(None, description="Filtrar por activos/inactivos"),
    _: User = Depends(get_current_user),
):
    """Campos del formulario, en el orden en que se muestran."""
    query = db.query(EvaluationField)
    if step is not None:
        query = query.filter(EvaluationField.step == step)
    if active is not None:
        query = query.filter(EvaluationField.active == active)
    return query.order_by(EvaluationField.step, EvaluationField.sort_order, EvaluationField.id).all()


@router.post("/", response_model=EvaluationFieldOut, status_code=201)
def create_field(
    payload: EvaluationFieldCreate,
    db: DbSession,
    _: User = Depends(require_role(UserRole.ADMIN)),
):
    """
    Crea un campo de evaluación.

    - **technical_name**: único; 400 si ya existe
    - **options**: valores posibles para campos `select`
    """
    _ensure_unique_name(db, payload.technical_name)

    field = EvaluationField(**payload.model_dump(mode="json"))
    db.add(field)
    db.commit()
    db.refresh(field)

    logger.info(f"Campo de evaluación creado: {field.id} - {field.technical_name}")
    return field


@router.put("/{field_id}", response_model=EvaluationFieldOut)
def update_field(
    field_id: int,
    payload: EvaluationFieldUpdate,
    db: DbSession,
    _: User = Depends(require_role(UserRole.ADMIN)),
):
    field = db.get(EvaluationField, field_id)
    if not field:
        raise HTTPException(status_code=404, detail="Campo no encontrado")

    data = payload.model_dump(mode="json", exclude_unset=True)
    if data.get("technical_name"):
        _ensure_unique_name(db, data["technical_name"], field_id=field.id)

    for name, value in data.items():
        if value is None and name != "options":
            continue
        setattr(field, name, value)

    db.commit()
    db.refresh(field)

    logger.info(f"Campo de evaluación actualizado: {field.id}")
    return field


@router.delete("/{field_id}")
def delete_field(
    field_id: int,
    db: DbSession,
    _: User = Depends(require_role(UserRole.ADMIN)),
):
    field = db.get(EvaluationField, field_id)
    if not field:
        raise HTTPException(status_code=404, detail="Campo no encontrado")

    db.delete(field)
    db.commit()

    logger.info(f"Campo de evaluación eliminado: {field_id}")
    return {"message": "Campo eliminado correctamente", "id": field_id}
