"""Flujo de visita: máquina de estados lineal de cinco pasos.

Selección de producto → Disponibilidad → Calidad → Precios → Incidencias.
El borrador es un valor inmutable que se reemplaza en cada cambio; nada se
persiste hasta que `complete()` entrega el registro final al colaborador de
envío.
"""

from __future__ import annotations

import dataclasses
import logging
import math
import re
import threading
from dataclasses import dataclass, field
from datetime import UTC, date, datetime
from decimal import ROUND_HALF_UP, Decimal, DecimalException
from enum import Enum
from typing import Any, Awaitable, Callable, Iterable, Optional, TypeVar

from ..config import settings
from ..models import EvaluationStatus
from ..schemas import (
    Appearance,
    DisplayCondition,
    EvaluationCreate,
    IncidentCreate,
    IncidentType,
    PackagingCondition,
    Promotion,
    Severity,
    StockLocation,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


class WorkflowStep(str, Enum):
    PRODUCT_SELECTION = "product-selection"
    AVAILABILITY = "availability"
    QUALITY = "quality"
    PRICES = "prices"
    INCIDENTS = "incidents"
    SUBMITTED = "submitted"
    CANCELLED = "cancelled"


STEPS: tuple[WorkflowStep, ...] = (
    WorkflowStep.PRODUCT_SELECTION,
    WorkflowStep.AVAILABILITY,
    WorkflowStep.QUALITY,
    WorkflowStep.PRICES,
    WorkflowStep.INCIDENTS,
)

STEP_LABELS = {
    WorkflowStep.PRODUCT_SELECTION: "Selección",
    WorkflowStep.AVAILABILITY: "Disponibilidad",
    WorkflowStep.QUALITY: "Calidad",
    WorkflowStep.PRICES: "Precios",
    WorkflowStep.INCIDENTS: "Incidencias",
    WorkflowStep.SUBMITTED: "Completada",
    WorkflowStep.CANCELLED: "Cancelada",
}

TERMINAL_STEPS = frozenset({WorkflowStep.SUBMITTED, WorkflowStep.CANCELLED})


def step_number(step: WorkflowStep) -> int:
    """Número de paso 1-5. Los estados terminales cuentan como el último paso."""
    if step in TERMINAL_STEPS:
        return len(STEPS)
    return STEPS.index(step) + 1


# =============================================================================
# ERRORES
# =============================================================================

class WorkflowError(Exception):
    """Error base del flujo de visita."""


class WorkflowClosed(WorkflowError):
    """El flujo ya terminó (enviado o cancelado)."""


class SubmitInProgress(WorkflowError):
    """Hay un envío en curso; el borrador no se puede modificar."""


class SubmitError(WorkflowError):
    """El colaborador de envío falló. El borrador se conserva para reintentar."""


# =============================================================================
# BORRADOR
# =============================================================================

@dataclass(frozen=True)
class EvaluationDraft:
    """Datos capturados durante la visita, agrupados por paso."""

    # Selección
    product_id: Optional[int] = None

    # Disponibilidad
    stock: str = ""
    location: Optional[StockLocation] = None
    display_condition: Optional[DisplayCondition] = None
    area_photo_url: str = ""

    # Calidad
    freshness: int = 3
    appearance: Optional[Appearance] = None
    packaging_condition: Optional[PackagingCondition] = None
    expiration_date: Optional[date] = None
    temperature: Optional[float] = None
    quality_photo_url: str = ""

    # Precios
    current_price: str = ""
    suggested_price: str = ""
    active_promotions: tuple[Promotion, ...] = ()
    promotion_description: str = ""
    pop_material_present: bool = False
    pop_material_photo_url: str = ""
    price_photo_url: str = ""

    # Incidencias
    incident_types: tuple[IncidentType, ...] = ()
    severity: Optional[Severity] = None
    action_required: str = ""
    evidence_photo_url: str = ""
    detected_competition: str = ""

    def replace(self, **changes: Any) -> "EvaluationDraft":
        """Devuelve una copia con los cambios aplicados.

        Los valores de catálogo se convierten a su enum (ValueError si no
        existen) y None en un campo de texto lo deja vacío.
        """
        for name, value in list(changes.items()):
            if name in _SET_FIELDS:
                enum_cls = _SET_FIELDS[name]
                changes[name] = tuple(dict.fromkeys(enum_cls(v) for v in value or ()))
            elif name in _CHOICE_FIELDS and value is not None:
                changes[name] = _CHOICE_FIELDS[name](value)
            elif value is None and isinstance(getattr(self, name), str):
                changes[name] = ""
        if "freshness" in changes and changes["freshness"] is None:
            changes["freshness"] = 3
        return dataclasses.replace(self, **changes)

    @property
    def has_no_incidents(self) -> bool:
        return IncidentType.NO_INCIDENTS in self.incident_types

    @property
    def real_incidents(self) -> tuple[IncidentType, ...]:
        return tuple(i for i in self.incident_types if i is not IncidentType.NO_INCIDENTS)

    @property
    def has_real_incidents(self) -> bool:
        return bool(self.real_incidents)


_CHOICE_FIELDS: dict[str, type[Enum]] = {
    "location": StockLocation,
    "display_condition": DisplayCondition,
    "appearance": Appearance,
    "packaging_condition": PackagingCondition,
    "severity": Severity,
}

_SET_FIELDS: dict[str, type[Enum]] = {
    "active_promotions": Promotion,
    "incident_types": IncidentType,
}


def _filled(value: Any) -> bool:
    if isinstance(value, str):
        return value != ""
    return value is not None


def can_proceed(step: WorkflowStep, draft: EvaluationDraft) -> bool:
    """Indica si el paso actual está completo para avanzar (o completar, en Incidencias)."""
    if step is WorkflowStep.PRODUCT_SELECTION:
        return draft.product_id is not None
    if step is WorkflowStep.AVAILABILITY:
        return _filled(draft.stock) and _filled(draft.location) and _filled(draft.display_condition)
    if step is WorkflowStep.QUALITY:
        return _filled(draft.appearance) and _filled(draft.packaging_condition)
    if step is WorkflowStep.PRICES:
        return _filled(draft.current_price)
    if step is WorkflowStep.INCIDENTS:
        if draft.has_no_incidents:
            return True
        if draft.has_real_incidents:
            return _filled(draft.severity) and _filled(draft.action_required)
        return True
    return False


# =============================================================================
# VALORES DERIVADOS
# =============================================================================

# Máximo que cabe en las columnas Numeric(10, 2) de evaluations
MAX_PRICE = Decimal("99999999.99")

_INT_PREFIX = re.compile(r"^\s*[+-]?\d+")
_DECIMAL_PREFIX = re.compile(r"^\s*[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?")


def parse_decimal(text: str | None) -> Optional[Decimal]:
    """Lee el número al inicio del texto, como lo captura el formulario. None si no hay."""
    match = _DECIMAL_PREFIX.match(text or "")
    if not match:
        return None
    try:
        value = Decimal(match.group(0).strip())
    except DecimalException:
        return None
    return value if value.is_finite() else None


def coerce_int(text: str | None) -> int:
    """Entero no negativo; texto vacío o inválido vale 0."""
    match = _INT_PREFIX.match(text or "")
    if not match:
        return 0
    return max(int(match.group(0)), 0)


def coerce_decimal(text: str | None) -> Decimal:
    """Decimal no negativo y acotado a MAX_PRICE; texto vacío o inválido vale 0."""
    value = parse_decimal(text)
    if value is None or value < 0:
        return Decimal("0")
    return min(value, MAX_PRICE)


def check_price(text: str | None) -> None:
    """ValueError si el precio capturado no cabe en la columna de la evaluación."""
    value = parse_decimal(text)
    if value is not None and abs(value) > MAX_PRICE:
        raise ValueError(f"El precio no puede ser mayor a {MAX_PRICE}")


def price_variation_percent(current_price: str | None, suggested_price: str | None) -> str:
    """Variación del precio actual contra el sugerido, con un decimal ("-10.0").

    "0" si falta alguno de los dos precios o el sugerido es cero.
    """
    if not current_price or not suggested_price:
        return "0"
    current = parse_decimal(current_price)
    suggested = parse_decimal(suggested_price)
    if current is None or suggested is None or suggested == 0:
        return "0"
    try:
        variation = (current - suggested) / suggested * 100
        return str(variation.quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))
    except DecimalException:
        return "0"


def days_until(expiration_date: date, now: datetime | None = None) -> int:
    """Días (redondeados hacia arriba) desde ahora hasta la medianoche UTC de la fecha."""
    now = now or datetime.now(UTC)
    if now.tzinfo is None:
        now = now.replace(tzinfo=UTC)
    target = datetime(expiration_date.year, expiration_date.month, expiration_date.day, tzinfo=UTC)
    return math.ceil((target - now).total_seconds() / 86400)


def is_expiration_near(
    expiration_date: date | None,
    now: datetime | None = None,
    warning_days: int | None = None,
) -> bool:
    """True si la fecha de caducidad cae dentro de los próximos días de aviso."""
    if expiration_date is None:
        return False
    if warning_days is None:
        warning_days = settings.expiration_warning_days
    return 0 <= days_until(expiration_date, now) <= warning_days


# =============================================================================
# REGISTRO FINAL
# =============================================================================

def build_record(draft: EvaluationDraft, store_id: int, now: datetime | None = None) -> EvaluationCreate:
    """Traduce el borrador al registro de evaluación completada."""
    incidents: list[IncidentCreate] = []
    if draft.has_real_incidents and not draft.has_no_incidents and draft.severity is not None:
        incidents = [
            IncidentCreate(
                type=incident_type,
                severity=draft.severity,
                description=draft.detected_competition or None,
                action_required=draft.action_required or None,
                photo_url=draft.evidence_photo_url or None,
            )
            for incident_type in draft.real_incidents
        ]

    return EvaluationCreate(
        store_id=store_id,
        product_id=draft.product_id,
        status=EvaluationStatus.COMPLETED.value,
        current_step=len(STEPS),
        stock=coerce_int(draft.stock),
        location=draft.location,
        display_condition=draft.display_condition,
        area_photo_url=draft.area_photo_url or None,
        freshness=draft.freshness,
        appearance=draft.appearance,
        packaging_condition=draft.packaging_condition,
        expiration_date=draft.expiration_date,
        temperature=draft.temperature,
        quality_photo_url=draft.quality_photo_url or None,
        current_price=coerce_decimal(draft.current_price),
        suggested_price=coerce_decimal(draft.suggested_price),
        active_promotions=list(draft.active_promotions),
        price_photo_url=draft.price_photo_url or None,
        has_incidents=len(draft.incident_types) > 0,
        incidents=incidents,
        completed_at=now or datetime.now(UTC),
    )


# =============================================================================
# TRANSICIONES
# =============================================================================

class WorkflowEvent(str, Enum):
    NEXT = "next"
    PREVIOUS = "previous"
    CANCEL = "cancel"


@dataclass(frozen=True)
class WorkflowState:
    step: WorkflowStep = WorkflowStep.PRODUCT_SELECTION
    draft: EvaluationDraft = field(default_factory=EvaluationDraft)
    submitting: bool = False
    error: Optional[str] = None


def transition(state: WorkflowState, event: WorkflowEvent) -> WorkflowState:
    """Aplica un evento de navegación. Si no está permitido devuelve el mismo estado."""
    if state.step in TERMINAL_STEPS:
        return state

    if event is WorkflowEvent.CANCEL:
        if state.submitting:
            return state
        return WorkflowState(step=WorkflowStep.CANCELLED)

    index = STEPS.index(state.step)

    if event is WorkflowEvent.NEXT:
        if index == len(STEPS) - 1 or not can_proceed(state.step, state.draft):
            return state
        return dataclasses.replace(state, step=STEPS[index + 1], error=None)

    if event is WorkflowEvent.PREVIOUS:
        if index == 0 or state.submitting:
            return state
        return dataclasses.replace(state, step=STEPS[index - 1], error=None)

    return state


class VisitWorkflow:
    """Visita a una tienda: captura una evaluación de un producto y la envía al terminar.

    Los endpoints síncronos corren en el threadpool y `complete` en el event
    loop, así que cada lectura y reemplazo de `state` ocurre bajo `_lock`. El
    lock nunca se mantiene durante el `await` del envío.
    """

    def __init__(self, store: Any, products: Iterable[Any], user_id: int):
        self.store = store
        self.user_id = user_id
        self.products = [p for p in products if p.active]
        self.state = WorkflowState()
        self.result: Any = None
        self._lock = threading.Lock()

    @property
    def step(self) -> WorkflowStep:
        return self.state.step

    @property
    def draft(self) -> EvaluationDraft:
        return self.state.draft

    @property
    def can_proceed(self) -> bool:
        state = self.state
        if state.step in TERMINAL_STEPS or state.submitting:
            return False
        return can_proceed(state.step, state.draft)

    @property
    def is_finished(self) -> bool:
        return self.state.step in TERMINAL_STEPS

    @property
    def price_variation_percent(self) -> str:
        draft = self.draft
        return price_variation_percent(draft.current_price, draft.suggested_price)

    @property
    def is_expiration_near(self) -> bool:
        return is_expiration_near(self.draft.expiration_date)

    def update(self, **changes: Any) -> EvaluationDraft:
        """Reemplaza el borrador con los campos indicados."""
        with self._lock:
            state = self.state
            if state.step in TERMINAL_STEPS:
                raise WorkflowClosed("La visita ya terminó")
            if state.submitting:
                raise SubmitInProgress("Hay un envío en curso")

            for name in ("current_price", "suggested_price"):
                if name in changes:
                    check_price(changes[name])

            if "product_id" in changes and changes["product_id"] != state.draft.product_id:
                product_id = changes["product_id"]
                if state.step is not WorkflowStep.PRODUCT_SELECTION:
                    raise ValueError("El producto solo se elige en el primer paso")
                if product_id is not None and all(p.id != product_id for p in self.products):
                    raise ValueError(f"Producto {product_id} no disponible para evaluación")

            self.state = dataclasses.replace(state, draft=state.draft.replace(**changes))
            return self.state.draft

    def _apply(self, event: WorkflowEvent) -> bool:
        with self._lock:
            before = self.state
            self.state = transition(before, event)
            moved = self.state is not before
        if moved:
            logger.debug(f"Visita tienda {self.store.id}: {before.step.value} -> {self.state.step.value}")
        return moved

    def next(self) -> bool:
        return self._apply(WorkflowEvent.NEXT)

    def previous(self) -> bool:
        return self._apply(WorkflowEvent.PREVIOUS)

    def cancel(self) -> bool:
        cancelled = self._apply(WorkflowEvent.CANCEL)
        if cancelled:
            logger.info(f"Visita cancelada: tienda {self.store.id}, usuario {self.user_id}")
        return cancelled

    async def complete(self, submit: Callable[[EvaluationCreate], Awaitable[T]]) -> Optional[T]:
        """Construye el registro y lo envía.

        Devuelve None si el paso no lo permite (guardia). Si el envío falla se
        queda en Incidencias con el borrador intacto y lanza SubmitError.
        """
        with self._lock:
            state = self.state
            if (
                state.step is not WorkflowStep.INCIDENTS
                or state.submitting
                or not can_proceed(state.step, state.draft)
            ):
                return None
            record = build_record(state.draft, store_id=self.store.id)
            self.state = dataclasses.replace(state, submitting=True, error=None)

        try:
            result = await submit(record)
        except Exception as exc:
            with self._lock:
                self.state = dataclasses.replace(self.state, submitting=False, error=str(exc))
            logger.warning(f"Falló el envío de la visita (tienda {self.store.id}): {exc}")
            raise SubmitError(str(exc)) from exc

        with self._lock:
            self.result = result
            self.state = WorkflowState(step=WorkflowStep.SUBMITTED)
        logger.info(f"Visita completada: tienda {self.store.id}, usuario {self.user_id}")
        return result
