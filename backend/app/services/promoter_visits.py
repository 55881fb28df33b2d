"""Registro de entradas y salidas de promotores en tiendas."""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from ..models import PromoterVisit, utc_now

logger = logging.getLogger(__name__)


class PromoterVisitService:
    """Check-in al pasar la geocerca y check-out al completar o cancelar la visita."""

    def __init__(self, db: Session):
        self.db = db

    def check_in(
        self,
        user_id: int,
        store_id: int,
        latitude: Optional[float] = None,
        longitude: Optional[float] = None,
        geofence_overridden: bool = False,
    ) -> PromoterVisit:
        visit = PromoterVisit(
            user_id=user_id,
            store_id=store_id,
            check_in_latitude=latitude,
            check_in_longitude=longitude,
            geofence_overridden=geofence_overridden,
        )
        self.db.add(visit)
        self.db.commit()
        self.db.refresh(visit)

        logger.info(f"Check-in {visit.id}: usuario {user_id} en tienda {store_id}")
        return visit

    def get(self, visit_id: int) -> Optional[PromoterVisit]:
        return self.db.get(PromoterVisit, visit_id)

    def check_out(
        self,
        visit: PromoterVisit,
        latitude: Optional[float] = None,
        longitude: Optional[float] = None,
        notes: Optional[str] = None,
    ) -> PromoterVisit:
        """Marca la salida. No hace commit: lo hace quien cierra la visita."""
        if visit.check_out_time is None:
            visit.check_out_time = utc_now()
            visit.check_out_latitude = latitude
            visit.check_out_longitude = longitude
        if notes:
            visit.notes = notes
        return visit

    def list_visits(self, user_id: Optional[int] = None, store_id: Optional[int] = None) -> list[PromoterVisit]:
        """Lista visitas, la entrada más reciente primero."""
        query = self.db.query(PromoterVisit)
        if user_id is not None:
            query = query.filter(PromoterVisit.user_id == user_id)
        if store_id is not None:
            query = query.filter(PromoterVisit.store_id == store_id)
        return query.order_by(PromoterVisit.check_in_time.desc(), PromoterVisit.id.desc()).all()
