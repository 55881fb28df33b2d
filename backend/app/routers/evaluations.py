"""Router para evaluaciones e incidencias."""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from ..database import DbSession
from ..models import Evaluation, Incident, Product, Store, User, UserRole
from ..schemas import (
    EvaluationCreate,
    EvaluationOut,
    EvaluationUpdate,
    IncidentOut,
    IncidentRecordCreate,
    IncidentUpdate,
)
from ..services.evaluations import EvaluationService
from .auth import get_current_user, require_role

logger = logging.getLogger(__name__)

router = APIRouter()


def _visible(evaluation: Optional[Evaluation], user: User) -> bool:
    """Los promotores solo ven sus propias evaluaciones."""
    if evaluation is None:
        return False
    return user.role != UserRole.PROMOTOR.value or evaluation.user_id == user.id


@router.get("/", response_model=List[EvaluationOut])
def list_evaluations(
    db: DbSession,
    user_id: Optional[int] = Query(None, description="Filtrar por usuario"),
    store_id: Optional[int] = Query(None, description="Filtrar por tienda"),
    user: User = Depends(get_current_user),
):
    """
    Lista evaluaciones, más recientes primero.

    Los promotores solo ven las propias.
    """
    if user.role == UserRole.PROMOTOR.value:
        user_id = user.id
    return EvaluationService(db).list_evaluations(user_id=user_id, store_id=store_id)


@router.get("/{evaluation_id}", response_model=EvaluationOut)
def get_evaluation(evaluation_id: int, db: DbSession, user: User = Depends(get_current_user)):
    evaluation = EvaluationService(db).get(evaluation_id)
    if not _visible(evaluation, user):
        raise HTTPException(status_code=404, detail="Evaluación no encontrada")
    return evaluation


@router.post("/", response_model=EvaluationOut, status_code=201)
def create_evaluation(payload: EvaluationCreate, db: DbSession, user: User = Depends(get_current_user)):
    """
    Registra una evaluación a nombre del usuario autenticado.

    - **store_id** / **product_id**: tienda y producto evaluados
    - **incidents**: incidencias detectadas (opcional)
    """
    if not db.get(Store, payload.store_id):
        raise HTTPException(status_code=404, detail="Tienda no encontrada")
    if not db.get(Product, payload.product_id):
        raise HTTPException(status_code=404, detail="Producto no encontrado")

    return EvaluationService(db).create_evaluation(payload, user_id=user.id)


@router.put("/{evaluation_id}", response_model=EvaluationOut)
def update_evaluation(
    evaluation_id: int,
    payload: EvaluationUpdate,
    db: DbSession,
    user: User = Depends(get_current_user),
):
    """Actualiza una evaluación. Los promotores solo pueden editar las propias."""
    service = EvaluationService(db)
    evaluation = service.get(evaluation_id)
    if not _visible(evaluation, user):
        raise HTTPException(status_code=404, detail="Evaluación no encontrada")
    return service.update(evaluation, payload)


@router.get("/{evaluation_id}/incidents", response_model=List[IncidentOut])
def list_incidents(evaluation_id: int, db: DbSession, user: User = Depends(get_current_user)):
    """Incidencias registradas en una evaluación."""
    evaluation = EvaluationService(db).get(evaluation_id)
    if not _visible(evaluation, user):
        raise HTTPException(status_code=404, detail="Evaluación no encontrada")
    return evaluation.incidents


@router.post("/incidents", response_model=IncidentOut, status_code=201)
def create_incident(payload: IncidentRecordCreate, db: DbSession, user: User = Depends(get_current_user)):
    """Registra una incidencia sobre una evaluación ya guardada."""
    service = EvaluationService(db)
    evaluation = service.get(payload.evaluation_id)
    if not _visible(evaluation, user):
        raise HTTPException(status_code=404, detail="Evaluación no encontrada")
    return service.add_incident(evaluation, payload)


@router.put("/incidents/{incident_id}", response_model=IncidentOut)
def update_incident(
    incident_id: int,
    payload: IncidentUpdate,
    db: DbSession,
    user: User = Depends(get_current_user),
):
    incident = db.get(Incident, incident_id)
    if not incident or not _visible(incident.evaluation, user):
        raise HTTPException(status_code=404, detail="Incidencia no encontrada")
    return EvaluationService(db).update_incident(incident, payload)


@router.delete("/incidents/{incident_id}")
def delete_incident(
    incident_id: int,
    db: DbSession,
    _: User = Depends(require_role(UserRole.ADMIN, UserRole.SUPERVISOR)),
):
    incident = db.get(Incident, incident_id)
    if not incident:
        raise HTTPException(status_code=404, detail="Incidencia no encontrada")

    EvaluationService(db).delete_incident(incident)
    return {"message": "Incidencia eliminada", "id": incident_id}


@router.put("/incidents/{incident_id}/resolve", response_model=IncidentOut)
def resolve_incident(
    incident_id: int,
    db: DbSession,
    _: User = Depends(require_role(UserRole.ADMIN, UserRole.SUPERVISOR)),
):
    """Marca una incidencia como resuelta."""
    incident = db.get(Incident, incident_id)
    if not incident:
        raise HTTPException(status_code=404, detail="Incidencia no encontrada")

    incident.resolved = True
    db.commit()
    db.refresh(incident)

    logger.info(f"Incidencia resuelta: {incident_id}")
    return incident
