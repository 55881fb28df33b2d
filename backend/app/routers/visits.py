"""Router del flujo de visita: selección de tienda por geocerca y captura de la evaluación."""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.orm import Session

from ..config import settings
from ..database import DbSession
from ..models import Product, Store, StoreAssignment, User, UserRole
from ..schemas import (
    DraftOut,
    DraftUpdate,
    EvaluationOut,
    GeoPositionOut,
    LocationErrorCode,
    ProductOut,
    PromoterVisitOut,
    StoreCandidateOut,
    StoreOut,
    StoreScanResponse,
    VisitSessionOut,
    VisitStart,
)
from ..services.auth import can_override_geofence
from ..services.evaluations import EvaluationService
from ..services.geofence import (
    GeofenceLocator,
    ReportedLocationProvider,
    StoreCandidate,
    can_select,
)
from ..services.promoter_visits import PromoterVisitService
from ..services.visit_sessions import VisitSession, VisitSessionStore, get_visit_sessions
from ..services.visit_workflow import (
    STEP_LABELS,
    SubmitError,
    SubmitInProgress,
    VisitWorkflow,
    WorkflowClosed,
    step_number,
)
from .auth import get_current_user

logger = logging.getLogger(__name__)

router = APIRouter()


# === Helpers ===


def _assigned_store_ids(db: Session, user: User) -> Optional[set[int]]:
    """Tiendas asignadas a un promotor; None si puede ver todas."""
    if user.role != UserRole.PROMOTOR.value:
        return None
    ids = {
        row[0]
        for row in db.query(StoreAssignment.store_id).filter(StoreAssignment.user_id == user.id).all()
    }
    return ids or None


def _available_stores(db: Session, user: User) -> list[StoreOut]:
    query = db.query(Store).filter(Store.active == True)
    assigned = _assigned_store_ids(db, user)
    if assigned is not None:
        query = query.filter(Store.id.in_(assigned))
    return [StoreOut.model_validate(s) for s in query.order_by(Store.name).all()]


def _candidate_out(candidate: StoreCandidate, can_override: bool) -> StoreCandidateOut:
    return StoreCandidateOut(
        store=candidate.store,
        distance_meters=(
            round(candidate.distance_meters, 1) if candidate.distance_meters is not None else None
        ),
        in_range=candidate.in_range,
        has_coordinates=candidate.has_coordinates,
        selectable=can_select(candidate, can_override),
    )


def _session_out(session: VisitSession) -> VisitSessionOut:
    workflow = session.workflow
    return VisitSessionOut(
        id=session.id,
        step=workflow.step.value,
        step_number=step_number(workflow.step),
        step_label=STEP_LABELS[workflow.step],
        can_proceed=workflow.can_proceed,
        submitting=workflow.state.submitting,
        error=workflow.state.error,
        store=workflow.store,
        products=workflow.products,
        draft=DraftOut.model_validate(workflow.draft),
        price_variation_percent=workflow.price_variation_percent,
        is_expiration_near=workflow.is_expiration_near,
        check_in_id=session.check_in_id,
    )


def _get_session(session_id: str, user: User, sessions: VisitSessionStore) -> VisitSession:
    session = sessions.get(session_id, user.id)
    if session is None:
        raise HTTPException(status_code=404, detail="Visita no encontrada")
    return session


def _out_of_range_detail(candidate: StoreCandidate, warning: Optional[str]) -> str:
    if warning:
        return f"No se puede validar la ubicación: {warning}"
    if not candidate.has_coordinates:
        return "La tienda no tiene coordenadas registradas"
    radius = candidate.store.geofence_radius
    if radius is None:
        radius = settings.geofence_default_radius_m
    return (
        f"Estás a {candidate.distance_meters:.0f} m de la tienda; "
        f"debes estar dentro de {radius} m"
    )


# === Selección de tienda ===


@router.get("/stores", response_model=StoreScanResponse)
async def scan_stores(
    db: DbSession,
    latitude: Optional[float] = Query(None, ge=-90, le=90),
    longitude: Optional[float] = Query(None, ge=-180, le=180),
    accuracy: Optional[float] = Query(None, ge=0),
    location_error: Optional[LocationErrorCode] = Query(
        None, description="Error que reportó la geolocalización del dispositivo"
    ),
    user: User = Depends(get_current_user),
):
    """
    Clasifica las tiendas disponibles para el usuario por cercanía.

    - Con coordenadas: distancia en metros y si está dentro de la geocerca
    - Sin coordenadas o con **location_error**: ninguna tienda queda en rango
      y se devuelve un aviso
    """
    stores = _available_stores(db, user)
    locator = GeofenceLocator(ReportedLocationProvider(latitude, longitude, accuracy, location_error))
    result = await locator.scan(stores)

    override = can_override_geofence(user)
    position = None
    if result.position is not None:
        position = GeoPositionOut(
            latitude=result.position.latitude,
            longitude=result.position.longitude,
            accuracy=result.position.accuracy,
        )

    return StoreScanResponse(
        position=position,
        warning=result.warning,
        can_override=override,
        candidates=[_candidate_out(c, override) for c in result.candidates],
    )


# === Visitas en curso ===


@router.post("/sessions", response_model=VisitSessionOut, status_code=201)
async def start_visit(
    payload: VisitStart,
    db: DbSession,
    user: User = Depends(get_current_user),
    sessions: VisitSessionStore = Depends(get_visit_sessions),
):
    """Elige una tienda e inicia la visita si está dentro de la geocerca (o el usuario puede ignorarla)."""
    store = db.get(Store, payload.store_id)
    if not store or not store.active:
        raise HTTPException(status_code=404, detail="Tienda no encontrada")

    assigned = _assigned_store_ids(db, user)
    if assigned is not None and store.id not in assigned:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="No autorizado")

    snapshot = StoreOut.model_validate(store)
    locator = GeofenceLocator(
        ReportedLocationProvider(
            payload.latitude, payload.longitude, payload.accuracy, payload.location_error
        )
    )
    result = await locator.scan([snapshot])
    candidate = result.candidates[0]

    override = can_override_geofence(user)
    if not can_select(candidate, override):
        logger.info(f"Tienda {store.id} fuera de rango para {user.username}")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=_out_of_range_detail(candidate, result.warning),
        )
    if not candidate.in_range:
        logger.info(f"Geocerca ignorada por {user.username} en tienda {store.id}")

    products = [
        ProductOut.model_validate(p)
        for p in db.query(Product).filter(Product.active == True).order_by(Product.name).all()
    ]
    check_in = PromoterVisitService(db).check_in(
        user.id,
        store.id,
        latitude=payload.latitude,
        longitude=payload.longitude,
        geofence_overridden=not candidate.in_range,
    )
    session = sessions.create(
        VisitWorkflow(snapshot, products, user_id=user.id), check_in_id=check_in.id
    )
    return _session_out(session)


@router.get("/sessions/{session_id}", response_model=VisitSessionOut)
def get_visit(
    session_id: str,
    user: User = Depends(get_current_user),
    sessions: VisitSessionStore = Depends(get_visit_sessions),
):
    return _session_out(_get_session(session_id, user, sessions))


@router.patch("/sessions/{session_id}/draft", response_model=VisitSessionOut)
def update_draft(
    session_id: str,
    payload: DraftUpdate,
    user: User = Depends(get_current_user),
    sessions: VisitSessionStore = Depends(get_visit_sessions),
):
    """Actualiza campos del borrador. Solo se aplican los campos enviados."""
    session = _get_session(session_id, user, sessions)
    try:
        session.workflow.update(**payload.model_dump(exclude_unset=True))
    except (SubmitInProgress, WorkflowClosed) as exc:
        raise HTTPException(status_code=409, detail=str(exc))
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    return _session_out(session)


@router.post("/sessions/{session_id}/next", response_model=VisitSessionOut)
def next_step(
    session_id: str,
    user: User = Depends(get_current_user),
    sessions: VisitSessionStore = Depends(get_visit_sessions),
):
    """Avanza al siguiente paso. Si el paso está incompleto la visita no cambia."""
    session = _get_session(session_id, user, sessions)
    session.workflow.next()
    return _session_out(session)


@router.post("/sessions/{session_id}/previous", response_model=VisitSessionOut)
def previous_step(
    session_id: str,
    user: User = Depends(get_current_user),
    sessions: VisitSessionStore = Depends(get_visit_sessions),
):
    """Regresa al paso anterior conservando lo capturado."""
    session = _get_session(session_id, user, sessions)
    session.workflow.previous()
    return _session_out(session)


@router.post("/sessions/{session_id}/complete", response_model=EvaluationOut, status_code=201)
async def complete_visit(
    session_id: str,
    db: DbSession,
    latitude: Optional[float] = Query(None, ge=-90, le=90),
    longitude: Optional[float] = Query(None, ge=-180, le=180),
    user: User = Depends(get_current_user),
    sessions: VisitSessionStore = Depends(get_visit_sessions),
):
    """
    Completa la visita, guarda la evaluación y registra la salida de la tienda.

    - 409 si la visita no está en Incidencias, le faltan datos o ya se está enviando
    - 502 si no se pudo guardar; el borrador se conserva para reintentar
    """
    session = _get_session(session_id, user, sessions)
    service = EvaluationService(db)
    visit_log = PromoterVisitService(db)
    user_id = user.id
    check_in_id = session.check_in_id

    def save(record):
        try:
            check_in = visit_log.get(check_in_id) if check_in_id is not None else None
            if check_in is not None:
                visit_log.check_out(check_in, latitude, longitude)
            return service.create_evaluation(record, user_id, check_in=check_in)
        except Exception:
            db.rollback()
            raise

    async def submit(record):
        return await run_in_threadpool(save, record)

    try:
        evaluation = await session.workflow.complete(submit)
    except SubmitError as exc:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=f"No se pudo guardar la evaluación: {exc}",
        )

    if evaluation is None:
        raise HTTPException(status_code=409, detail="La visita no se puede completar todavía")

    sessions.discard(session.id)
    return evaluation


@router.delete("/sessions/{session_id}")
def cancel_visit(
    session_id: str,
    db: DbSession,
    latitude: Optional[float] = Query(None, ge=-90, le=90),
    longitude: Optional[float] = Query(None, ge=-180, le=180),
    user: User = Depends(get_current_user),
    sessions: VisitSessionStore = Depends(get_visit_sessions),
):
    """Cancela la visita y descarta el borrador. Solo queda registrada la salida de la tienda."""
    session = _get_session(session_id, user, sessions)
    if not session.workflow.cancel():
        raise HTTPException(status_code=409, detail="Hay un envío en curso")

    sessions.discard(session.id)

    visit_log = PromoterVisitService(db)
    check_in = visit_log.get(session.check_in_id) if session.check_in_id is not None else None
    if check_in is not None:
        visit_log.check_out(check_in, latitude, longitude, notes="Visita cancelada")
        db.commit()

    return {"message": "Visita cancelada"}


# === Historial de entradas y salidas ===


@router.get("/check-ins", response_model=List[PromoterVisitOut])
def list_check_ins(
    db: DbSession,
    user_id: Optional[int] = Query(None, description="Filtrar por usuario"),
    store_id: Optional[int] = Query(None, description="Filtrar por tienda"),
    user: User = Depends(get_current_user),
):
    """Entradas y salidas registradas. Los promotores solo ven las propias."""
    if user.role == UserRole.PROMOTOR.value:
        user_id = user.id
    return PromoterVisitService(db).list_visits(user_id=user_id, store_id=store_id)
