"""Modelos SQLAlchemy del inspector de calidad de berries."""

from datetime import UTC, datetime
from enum import Enum as PyEnum

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from .database import Base


def utc_now() -> datetime:
    """Devuelve el datetime actual en UTC."""
    return datetime.now(UTC)


# =============================================================================
# USUARIOS Y SESIONES
# =============================================================================

class UserRole(str, PyEnum):
    """Roles del sistema."""
    ADMIN = "admin"
    SUPERVISOR = "supervisor"
    PROMOTOR = "promotor"


class User(Base):
    """Usuarios del sistema (administradores, supervisores y promotores)."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String(100), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    email = Column(String(255), nullable=True)
    name = Column(String(255), nullable=False)
    role = Column(String(20), nullable=False, default=UserRole.PROMOTOR.value)
    active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), default=utc_now)
    last_login = Column(DateTime(timezone=True), nullable=True)

    # Relationships
    sessions = relationship("UserSession", back_populates="user", cascade="all, delete-orphan")
    assignments = relationship("StoreAssignment", back_populates="user", cascade="all, delete-orphan")
    evaluations = relationship("Evaluation", back_populates="user")

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN.value

    def has_role(self, *roles: str) -> bool:
        """Verifica si el usuario tiene alguno de los roles indicados."""
        return self.role in roles


class UserSession(Base):
    """Sesiones de usuario (tokens de refresh)."""

    __tablename__ = "user_sessions"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    refresh_token_hash = Column(String(255), nullable=False, unique=True)
    device_info = Column(String(255), nullable=True)
    ip_address = Column(String(45), nullable=True)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime(timezone=True), default=utc_now)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    last_used_at = Column(DateTime(timezone=True), default=utc_now)

    # Relationships
    user = relationship("User", back_populates="sessions")

    __table_args__ = (
        Index("ix_sessions_user_active", "user_id", "is_active"),
    )


# =============================================================================
# CATÁLOGOS: CADENAS, ZONAS, TIENDAS Y PRODUCTOS
# =============================================================================

class Chain(Base):
    """Cadena comercial (HEB, La Comer, ...)."""

    __tablename__ = "chains"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), unique=True, nullable=False)
    description = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utc_now)

    # Relationships
    zones = relationship("Zone", back_populates="chain", cascade="all, delete-orphan")
    stores = relationship("Store", back_populates="chain", cascade="all, delete-orphan")


class Zone(Base):
    """Zona geográfica dentro de una cadena."""

    __tablename__ = "zones"

    id = Column(Integer, primary_key=True, index=True)
    chain_id = Column(Integer, ForeignKey("chains.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utc_now)

    # Relationships
    chain = relationship("Chain", back_populates="zones")
    stores = relationship("Store", back_populates="zone", cascade="all, delete-orphan")


class Store(Base):
    """Tienda visitada por los promotores."""

    __tablename__ = "stores"

    id = Column(Integer, primary_key=True, index=True)
    chain_id = Column(Integer, ForeignKey("chains.id", ondelete="CASCADE"), nullable=False, index=True)
    zone_id = Column(Integer, ForeignKey("zones.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    address = Column(Text, nullable=True)
    city = Column(String(120), nullable=True)
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)
    geofence_radius = Column(Integer, default=100)  # metros
    active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), default=utc_now)

    # Relationships
    chain = relationship("Chain", back_populates="stores")
    zone = relationship("Zone", back_populates="stores")
    assignments = relationship("StoreAssignment", back_populates="store", cascade="all, delete-orphan")

    __table_args__ = (
        Index("ix_stores_chain_zone", "chain_id", "zone_id"),
    )


class Product(Base):
    """Producto evaluado (Arándano, Frambuesa, ...)."""

    __tablename__ = "products"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), unique=True, nullable=False)
    icon = Column(String(50), nullable=False)
    color = Column(String(50), nullable=False)
    active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), default=utc_now)


class StoreAssignment(Base):
    """Asignación de un promotor a una tienda."""

    __tablename__ = "store_assignments"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    store_id = Column(Integer, ForeignKey("stores.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), default=utc_now)

    # Relationships
    user = relationship("User", back_populates="assignments")
    store = relationship("Store", back_populates="assignments")

    __table_args__ = (
        UniqueConstraint("user_id", "store_id", name="uq_store_assignment_user_store"),
    )


# =============================================================================
# EVALUACIONES E INCIDENCIAS
# =============================================================================

class EvaluationStatus(str, PyEnum):
    """Estado de una evaluación."""
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class Evaluation(Base):
    """Evaluación de calidad de un producto en una tienda."""

    __tablename__ = "evaluations"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    store_id = Column(Integer, ForeignKey("stores.id"), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False, index=True)
    status = Column(String(20), nullable=False, default=EvaluationStatus.IN_PROGRESS.value)
    current_step = Column(Integer, nullable=False, default=1)

    # Disponibilidad
    stock = Column(Integer, nullable=True)
    location = Column(String(50), nullable=True)
    display_condition = Column(String(20), nullable=True)
    area_photo_url = Column(Text, nullable=True)

    # Calidad
    freshness = Column(Integer, nullable=True)
    appearance = Column(String(20), nullable=True)
    packaging_condition = Column(String(20), nullable=True)
    expiration_date = Column(Date, nullable=True)
    temperature = Column(Float, nullable=True)
    quality_photo_url = Column(Text, nullable=True)

    # Precios
    current_price = Column(Numeric(10, 2), nullable=True)
    suggested_price = Column(Numeric(10, 2), nullable=True)
    active_promotions = Column(JSON, nullable=True)
    price_photo_url = Column(Text, nullable=True)

    # Incidencias
    has_incidents = Column(Boolean, default=False)

    completed_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utc_now)
    updated_at = Column(DateTime(timezone=True), default=utc_now, onupdate=utc_now)

    # Relationships
    user = relationship("User", back_populates="evaluations")
    store = relationship("Store")
    product = relationship("Product")
    incidents = relationship("Incident", back_populates="evaluation", cascade="all, delete-orphan")

    __table_args__ = (
        Index("ix_evaluations_store_created", "store_id", "created_at"),
        Index("ix_evaluations_user_created", "user_id", "created_at"),
    )


class Incident(Base):
    """Incidencia detectada durante una evaluación."""

    __tablename__ = "incidents"

    id = Column(Integer, primary_key=True, index=True)
    evaluation_id = Column(Integer, ForeignKey("evaluations.id", ondelete="CASCADE"), nullable=False, index=True)
    type = Column(String(100), nullable=False)
    severity = Column(String(20), nullable=False)
    description = Column(Text, nullable=True)
    action_required = Column(Text, nullable=True)
    photo_url = Column(Text, nullable=True)
    resolved = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), default=utc_now)

    # Relationships
    evaluation = relationship("Evaluation", back_populates="incidents")


# =============================================================================
# CONFIGURACIÓN Y REGISTRO DE VISITAS
# =============================================================================

class EvaluationFieldType(str, PyEnum):
    """Tipos de campo configurables en el formulario de evaluación."""
    TEXT = "text"
    NUMBER = "number"
    SELECT = "select"
    BOOLEAN = "boolean"
    DATE = "date"
    PHOTO = "photo"


class EvaluationField(Base):
    """Campo configurable del formulario de evaluación (página de Configuración)."""

    __tablename__ = "evaluation_fields"

    id = Column(Integer, primary_key=True, index=True)
    label = Column(String(255), nullable=False)
    technical_name = Column(String(100), unique=True, nullable=False, index=True)
    field_type = Column(String(20), nullable=False, default=EvaluationFieldType.TEXT.value)
    step = Column(Integer, nullable=False, default=1)
    options = Column(JSON, nullable=True)
    required = Column(Boolean, nullable=False, default=False)
    sort_order = Column(Integer, nullable=False, default=0)
    active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), default=utc_now)


class PromoterVisit(Base):
    """Entrada y salida de un promotor en una tienda."""

    __tablename__ = "promoter_visits"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    store_id = Column(Integer, ForeignKey("stores.id", ondelete="CASCADE"), nullable=False, index=True)
    evaluation_id = Column(Integer, ForeignKey("evaluations.id", ondelete="SET NULL"), nullable=True)
    check_in_time = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    check_out_time = Column(DateTime(timezone=True), nullable=True)
    check_in_latitude = Column(Float, nullable=True)
    check_in_longitude = Column(Float, nullable=True)
    check_out_latitude = Column(Float, nullable=True)
    check_out_longitude = Column(Float, nullable=True)
    geofence_overridden = Column(Boolean, nullable=False, default=False)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utc_now)

    # Relationships
    user = relationship("User")
    store = relationship("Store")
    evaluation = relationship("Evaluation")

    __table_args__ = (
        Index("ix_promoter_visits_user_check_in", "user_id", "check_in_time"),
    )
