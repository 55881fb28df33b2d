"""Schemas Pydantic para validación y serialización."""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from .models import EvaluationFieldType


# === Enums ===


class StockLocation(str, Enum):
    """Ubicación del producto dentro de la tienda."""

    EXHIBIDOR_PRINCIPAL = "Exhibidor principal"
    AREA_REFRIGERADA = "Área refrigerada"
    ANAQUEL_SECUNDARIO = "Anaquel secundario"
    BODEGA = "Bodega"
    GONDOLA = "Góndola"
    OTRO = "Otro"


class DisplayCondition(str, Enum):
    """Estado del display."""

    EXCELENTE = "Excelente"
    BUENO = "Bueno"
    REGULAR = "Regular"
    MALO = "Malo"


class Appearance(str, Enum):
    """Apariencia general del producto."""

    EXCELENTE = "Excelente"
    BUENA = "Buena"
    REGULAR = "Regular"
    MALA = "Mala"


class PackagingCondition(str, Enum):
    """Estado del empaque."""

    INTACTO = "Intacto"
    LEVE_DESGASTE = "Leve desgaste"
    DANADO = "Dañado"


class Promotion(str, Enum):
    """Promociones activas en el punto de venta."""

    DOS_X_UNO = "2x1"
    DESCUENTO = "Descuento %"
    TRES_X_DOS = "3x2"
    GRATIS = "Gratis"
    NINGUNA = "Ninguna"


class IncidentType(str, Enum):
    """Tipos de incidencia. NO_INCIDENTS marca explícitamente que todo está bien."""

    PRODUCTO_VENCIDO = "Producto vencido"
    EMPAQUE_DANADO = "Empaque dañado"
    PROMOCION_FALTANTE = "Promoción faltante"
    COMPETENCIA_AGRESIVA = "Competencia agresiva"
    PRECIO_INCORRECTO = "Precio incorrecto"
    SIN_STOCK = "Sin stock"
    OTRO = "Otro"
    NO_INCIDENTS = "✅ No incidents / Everything OK"


class Severity(str, Enum):
    """Severidad de una incidencia."""

    BAJA = "Baja"
    MEDIA = "Media"
    ALTA = "Alta"
    CRITICA = "Crítica"


class LocationErrorCode(str, Enum):
    """Errores que reporta la API de geolocalización del dispositivo."""

    DENIED = "denied"
    TIMEOUT = "timeout"
    UNAVAILABLE = "unavailable"


# === Catálogos ===


class ChainCreate(BaseModel):
    """Schema para crear una cadena."""

    name: str = Field(..., min_length=1, max_length=255)
    description: str | None = None


class ChainUpdate(BaseModel):
    """Schema para actualizar una cadena."""

    name: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = None


class ChainOut(ChainCreate):
    model_config = ConfigDict(from_attributes=True)

    id: int
    created_at: datetime | None = None


class ZoneCreate(BaseModel):
    """Schema para crear una zona."""

    chain_id: int
    name: str = Field(..., min_length=1, max_length=255)
    description: str | None = None


class ZoneUpdate(BaseModel):
    chain_id: int | None = None
    name: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = None


class ZoneOut(ZoneCreate):
    model_config = ConfigDict(from_attributes=True)

    id: int
    created_at: datetime | None = None


class StoreBase(BaseModel):
    """Campos comunes de tienda."""

    chain_id: int
    zone_id: int
    name: str = Field(..., min_length=1, max_length=255)
    address: str | None = None
    city: str | None = Field(None, max_length=120)
    latitude: float | None = Field(None, ge=-90, le=90)
    longitude: float | None = Field(None, ge=-180, le=180)
    geofence_radius: int | None = Field(100, ge=1)
    active: bool = True


class StoreCreate(StoreBase):
    """Schema para crear una tienda."""


class StoreUpdate(BaseModel):
    """Schema para actualizar una tienda. Solo se aplican los campos enviados."""

    chain_id: int | None = None
    zone_id: int | None = None
    name: str | None = Field(None, min_length=1, max_length=255)
    address: str | None = None
    city: str | None = Field(None, max_length=120)
    latitude: float | None = Field(None, ge=-90, le=90)
    longitude: float | None = Field(None, ge=-180, le=180)
    geofence_radius: int | None = Field(None, ge=1)
    active: bool | None = None


class StoreOut(StoreBase):
    model_config = ConfigDict(from_attributes=True)

    id: int


class ProductCreate(BaseModel):
    """Schema para crear un producto."""

    name: str = Field(..., min_length=1, max_length=255)
    icon: str = Field(..., min_length=1, max_length=50)
    color: str = Field(..., min_length=1, max_length=50)
    active: bool = True


class ProductUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=255)
    icon: str | None = Field(None, min_length=1, max_length=50)
    color: str | None = Field(None, min_length=1, max_length=50)
    active: bool | None = None


class ProductOut(ProductCreate):
    model_config = ConfigDict(from_attributes=True)

    id: int


# === Evaluaciones ===


class IncidentCreate(BaseModel):
    """Incidencia registrada junto con la evaluación."""

    type: IncidentType
    severity: Severity
    description: str | None = None
    action_required: str | None = None
    photo_url: str | None = None


class IncidentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    evaluation_id: int
    type: str
    severity: str
    description: str | None = None
    action_required: str | None = None
    photo_url: str | None = None
    resolved: bool
    created_at: datetime | None = None


class IncidentRecordCreate(IncidentCreate):
    """Incidencia agregada a una evaluación ya guardada."""

    evaluation_id: int


class IncidentUpdate(BaseModel):
    """Schema para actualizar una incidencia. Solo se aplican los campos enviados."""

    type: IncidentType | None = None
    severity: Severity | None = None
    description: str | None = None
    action_required: str | None = None
    photo_url: str | None = None
    resolved: bool | None = None


class EvaluationCreate(BaseModel):
    """Registro de evaluación que se persiste al completar una visita."""

    store_id: int
    product_id: int
    status: str = "in_progress"
    current_step: int = Field(1, ge=1, le=5)

    stock: int | None = Field(None, ge=0)
    location: StockLocation | None = None
    display_condition: DisplayCondition | None = None
    area_photo_url: str | None = None

    freshness: int | None = Field(None, ge=1, le=5)
    appearance: Appearance | None = None
    packaging_condition: PackagingCondition | None = None
    expiration_date: date | None = None
    temperature: float | None = None
    quality_photo_url: str | None = None

    current_price: Decimal | None = Field(None, ge=0)
    suggested_price: Decimal | None = Field(None, ge=0)
    active_promotions: list[Promotion] = Field(default_factory=list)
    price_photo_url: str | None = None

    has_incidents: bool = False
    incidents: list[IncidentCreate] = Field(default_factory=list)

    completed_at: datetime | None = None


class EvaluationUpdate(BaseModel):
    """Schema para actualizar una evaluación existente."""

    status: str | None = None
    current_step: int | None = Field(None, ge=1, le=5)
    stock: int | None = Field(None, ge=0)
    location: StockLocation | None = None
    display_condition: DisplayCondition | None = None
    freshness: int | None = Field(None, ge=1, le=5)
    appearance: Appearance | None = None
    packaging_condition: PackagingCondition | None = None
    current_price: Decimal | None = Field(None, ge=0)
    suggested_price: Decimal | None = Field(None, ge=0)
    has_incidents: bool | None = None
    completed_at: datetime | None = None


class EvaluationOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    store_id: int
    product_id: int
    status: str
    current_step: int
    stock: int | None = None
    location: str | None = None
    display_condition: str | None = None
    area_photo_url: str | None = None
    freshness: int | None = None
    appearance: str | None = None
    packaging_condition: str | None = None
    expiration_date: date | None = None
    temperature: float | None = None
    quality_photo_url: str | None = None
    current_price: Decimal | None = None
    suggested_price: Decimal | None = None
    active_promotions: list[str] | None = None
    price_photo_url: str | None = None
    has_incidents: bool | None = None
    completed_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


# === Campos de evaluación ===


TECHNICAL_NAME_PATTERN = r"^[a-z][a-z0-9_]*$"


class EvaluationFieldCreate(BaseModel):
    """
    Campo configurable del formulario.

    **technical_name** es la clave estable del campo: minúsculas, dígitos y guion bajo.
    """

    label: str = Field(..., min_length=1, max_length=255)
    technical_name: str = Field(..., min_length=1, max_length=100, pattern=TECHNICAL_NAME_PATTERN)
    field_type: EvaluationFieldType = EvaluationFieldType.TEXT
    step: int = Field(1, ge=1, le=5)
    options: list[str] | None = None
    required: bool = False
    sort_order: int = 0
    active: bool = True


class EvaluationFieldUpdate(BaseModel):
    label: str | None = Field(None, min_length=1, max_length=255)
    technical_name: str | None = Field(None, min_length=1, max_length=100, pattern=TECHNICAL_NAME_PATTERN)
    field_type: EvaluationFieldType | None = None
    step: int | None = Field(None, ge=1, le=5)
    options: list[str] | None = None
    required: bool | None = None
    sort_order: int | None = None
    active: bool | None = None


class EvaluationFieldOut(EvaluationFieldCreate):
    model_config = ConfigDict(from_attributes=True)

    id: int
    created_at: datetime | None = None


# === Visitas ===


class StoreCandidateOut(BaseModel):
    """Tienda clasificada por cercanía al usuario."""

    store: StoreOut
    distance_meters: float | None = None
    in_range: bool
    has_coordinates: bool
    selectable: bool


class GeoPositionOut(BaseModel):
    latitude: float
    longitude: float
    accuracy: float | None = None


class StoreScanResponse(BaseModel):
    """Resultado de la selección de tienda por geocerca."""

    position: GeoPositionOut | None = None
    warning: str | None = None
    can_override: bool
    candidates: list[StoreCandidateOut]


class VisitStart(BaseModel):
    """Inicio de visita: tienda elegida y la posición que reportó el dispositivo."""

    store_id: int
    latitude: float | None = Field(None, ge=-90, le=90)
    longitude: float | None = Field(None, ge=-180, le=180)
    accuracy: float | None = Field(None, ge=0)
    location_error: LocationErrorCode | None = None


class DraftUpdate(BaseModel):
    """Cambios parciales al borrador. Solo se aplican los campos enviados."""

    product_id: int | None = None

    stock: str | None = None
    location: StockLocation | None = None
    display_condition: DisplayCondition | None = None
    area_photo_url: str | None = None

    freshness: int | None = Field(None, ge=1, le=5)
    appearance: Appearance | None = None
    packaging_condition: PackagingCondition | None = None
    expiration_date: date | None = None
    temperature: float | None = None
    quality_photo_url: str | None = None

    current_price: str | None = None
    suggested_price: str | None = None
    active_promotions: list[Promotion] | None = None
    promotion_description: str | None = None
    pop_material_present: bool | None = None
    pop_material_photo_url: str | None = None
    price_photo_url: str | None = None

    incident_types: list[IncidentType] | None = None
    severity: Severity | None = None
    action_required: str | None = None
    evidence_photo_url: str | None = None
    detected_competition: str | None = None


class DraftOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    product_id: int | None = None
    stock: str
    location: StockLocation | None = None
    display_condition: DisplayCondition | None = None
    area_photo_url: str
    freshness: int
    appearance: Appearance | None = None
    packaging_condition: PackagingCondition | None = None
    expiration_date: date | None = None
    temperature: float | None = None
    quality_photo_url: str
    current_price: str
    suggested_price: str
    active_promotions: list[Promotion]
    promotion_description: str
    pop_material_present: bool
    pop_material_photo_url: str
    price_photo_url: str
    incident_types: list[IncidentType]
    severity: Severity | None = None
    action_required: str
    evidence_photo_url: str
    detected_competition: str


class VisitSessionOut(BaseModel):
    """Estado de una visita en curso."""

    id: str
    step: str
    step_number: int
    step_label: str
    can_proceed: bool
    submitting: bool
    error: str | None = None
    store: StoreOut
    products: list[ProductOut]
    draft: DraftOut
    price_variation_percent: str
    is_expiration_near: bool
    check_in_id: int | None = None


class PromoterVisitOut(BaseModel):
    """Entrada y salida registradas de un promotor en una tienda."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    store_id: int
    evaluation_id: int | None = None
    check_in_time: datetime
    check_out_time: datetime | None = None
    check_in_latitude: float | None = None
    check_in_longitude: float | None = None
    check_out_latitude: float | None = None
    check_out_longitude: float | None = None
    geofence_overridden: bool
    notes: str | None = None


# === Health ===


class HealthResponse(BaseModel):
    """Response del health check."""

    status: str
    db: bool
