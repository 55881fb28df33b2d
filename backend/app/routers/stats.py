"""Router para estadísticas del tablero de inicio."""

import logging
from datetime import UTC, datetime

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel
from slowapi import Limiter
from slowapi.util import get_remote_address
from sqlalchemy import func

from ..config import settings
from ..database import DbSession
from ..models import Evaluation, EvaluationStatus, Store, User, UserRole
from .auth import get_current_user

logger = logging.getLogger(__name__)

router = APIRouter()
limiter = Limiter(key_func=get_remote_address, enabled=settings.rate_limit_enabled)


# === Schemas ===

class DashboardStats(BaseModel):
    """Indicadores generales del tablero."""
    visits_today: int
    visits_this_month: int
    active_promoters: int
    total_stores: int
    completed_evaluations: int
    in_progress_evaluations: int
    average_freshness: float


# === Endpoints ===

@router.get("/dashboard", response_model=DashboardStats)
@limiter.limit("30/minute")
def get_dashboard_stats(
    request: Request,
    db: DbSession,
    _: User = Depends(get_current_user),
):
    """Indicadores del día y del mes. Es la página de inicio de todos los roles."""

    now = datetime.now(UTC)
    day_start = now.replace(hour=0, minute=0, second=0, microsecond=0)
    month_start = day_start.replace(day=1)

    visits_today = db.query(Evaluation).filter(Evaluation.created_at >= day_start).count()
    visits_this_month = db.query(Evaluation).filter(Evaluation.created_at >= month_start).count()

    active_promoters = db.query(User).filter(
        User.role == UserRole.PROMOTOR.value,
        User.active == True,
    ).count()

    total_stores = db.query(Store).filter(Store.active == True).count()

    completed = db.query(Evaluation).filter(
        Evaluation.status == EvaluationStatus.COMPLETED.value
    ).count()
    in_progress = db.query(Evaluation).filter(
        Evaluation.status == EvaluationStatus.IN_PROGRESS.value
    ).count()

    avg_freshness = db.query(func.avg(Evaluation.freshness)).filter(
        Evaluation.freshness.isnot(None)
    ).scalar()

    return DashboardStats(
        visits_today=visits_today,
        visits_this_month=visits_this_month,
        active_promoters=active_promoters,
        total_stores=total_stores,
        completed_evaluations=completed,
        in_progress_evaluations=in_progress,
        average_freshness=round(float(avg_freshness or 0), 1),
    )
