"""Persistencia de evaluaciones e incidencias."""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from ..models import Evaluation, Incident, PromoterVisit
from ..schemas import EvaluationCreate, EvaluationUpdate, IncidentRecordCreate, IncidentUpdate

logger = logging.getLogger(__name__)


class EvaluationService:
    """Crea y consulta evaluaciones."""

    def __init__(self, db: Session):
        self.db = db

    def create_evaluation(
        self,
        data: EvaluationCreate,
        user_id: int,
        check_in: Optional[PromoterVisit] = None,
    ) -> Evaluation:
        """Guarda una evaluación con sus incidencias en una sola transacción.

        Si viene el check-in de la visita, queda ligado a la evaluación en el mismo commit.
        """
        payload = data.model_dump(mode="json", exclude={"incidents"})
        payload["current_price"] = data.current_price
        payload["suggested_price"] = data.suggested_price
        payload["expiration_date"] = data.expiration_date
        payload["completed_at"] = data.completed_at

        evaluation = Evaluation(user_id=user_id, **payload)
        evaluation.incidents = [
            Incident(**incident.model_dump(mode="json")) for incident in data.incidents
        ]

        self.db.add(evaluation)
        if check_in is not None:
            check_in.evaluation = evaluation
        self.db.commit()
        self.db.refresh(evaluation)

        logger.info(
            f"Evaluación creada: {evaluation.id} (tienda {evaluation.store_id}, "
            f"producto {evaluation.product_id}, {len(data.incidents)} incidencia(s))"
        )
        return evaluation

    def get(self, evaluation_id: int) -> Optional[Evaluation]:
        return self.db.get(Evaluation, evaluation_id)

    def list_evaluations(self, user_id: Optional[int] = None, store_id: Optional[int] = None) -> list[Evaluation]:
        """Lista evaluaciones, más recientes primero."""
        query = self.db.query(Evaluation)
        if user_id is not None:
            query = query.filter(Evaluation.user_id == user_id)
        if store_id is not None:
            query = query.filter(Evaluation.store_id == store_id)
        return query.order_by(Evaluation.created_at.desc(), Evaluation.id.desc()).all()

    def update(self, evaluation: Evaluation, data: EvaluationUpdate) -> Evaluation:
        """Actualiza solo los campos enviados."""
        for field, value in data.model_dump(exclude_unset=True).items():
            if hasattr(value, "value"):
                value = value.value
            setattr(evaluation, field, value)

        self.db.commit()
        self.db.refresh(evaluation)

        logger.info(f"Evaluación actualizada: {evaluation.id}")
        return evaluation

    # === Incidencias ===

    def add_incident(self, evaluation: Evaluation, data: IncidentRecordCreate) -> Incident:
        """Agrega una incidencia y marca la evaluación con incidencias."""
        incident = Incident(**data.model_dump(mode="json", exclude={"evaluation_id"}))
        evaluation.incidents.append(incident)
        evaluation.has_incidents = True

        self.db.commit()
        self.db.refresh(incident)

        logger.info(f"Incidencia {incident.id} agregada a la evaluación {evaluation.id}")
        return incident

    def update_incident(self, incident: Incident, data: IncidentUpdate) -> Incident:
        """Actualiza los campos enviados. Tipo, severidad y estado no aceptan None."""
        for field, value in data.model_dump(mode="json", exclude_unset=True).items():
            if value is None and field in ("type", "severity", "resolved"):
                continue
            setattr(incident, field, value)

        self.db.commit()
        self.db.refresh(incident)

        logger.info(f"Incidencia actualizada: {incident.id}")
        return incident

    def delete_incident(self, incident: Incident) -> None:
        incident_id = incident.id
        self.db.delete(incident)
        self.db.commit()

        logger.info(f"Incidencia eliminada: {incident_id}")
