"""Configuración de fixtures para pruebas."""

import os

# Antes de importar la app: base en memoria y sin límite de peticiones
os.environ.setdefault("ENV", "test")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.database import Base, get_db
from app.main import app
from app.models import Chain, Product, Store, UserRole, Zone
from app.services.auth import AuthService, create_access_token
from app.services.visit_sessions import VisitSessionStore, get_visit_sessions


# Base de datos en memoria para pruebas
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Coordenadas de las tiendas de prueba (Monterrey)
STORE_LAT = 25.6866
STORE_LNG = -100.3161


@pytest.fixture(scope="function")
def db_session():
    """Crea una sesión de base de datos para pruebas."""
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def visit_sessions():
    """Registro de visitas aislado por prueba."""
    return VisitSessionStore(ttl_minutes=120)


@pytest.fixture(scope="function")
def client(db_session, visit_sessions):
    """Crea un cliente de pruebas con base de datos aislada."""

    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_visit_sessions] = lambda: visit_sessions
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


# === Usuarios ===


@pytest.fixture
def admin_user(db_session):
    return AuthService(db_session).create_user(
        username="superadmin", password="admin123", name="Super Admin", role=UserRole.ADMIN.value
    )


@pytest.fixture
def promotor_user(db_session):
    return AuthService(db_session).create_user(
        username="carlos", password="promoter123", name="Carlos", role=UserRole.PROMOTOR.value
    )


@pytest.fixture
def supervisor_user(db_session):
    return AuthService(db_session).create_user(
        username="sofia", password="super123", name="Sofía", role=UserRole.SUPERVISOR.value
    )


def auth_headers_for(user) -> dict:
    return {"Authorization": f"Bearer {create_access_token(user.id, user.role)}"}


@pytest.fixture
def admin_headers(admin_user):
    return auth_headers_for(admin_user)


@pytest.fixture
def promotor_headers(promotor_user):
    return auth_headers_for(promotor_user)


@pytest.fixture
def supervisor_headers(supervisor_user):
    return auth_headers_for(supervisor_user)


# === Catálogos ===


@pytest.fixture
def chain(db_session):
    chain = Chain(name="La Comer")
    db_session.add(chain)
    db_session.commit()
    return chain


@pytest.fixture
def zone(db_session, chain):
    zone = Zone(chain_id=chain.id, name="Norte")
    db_session.add(zone)
    db_session.commit()
    return zone


@pytest.fixture
def store(db_session, chain, zone):
    store = Store(
        chain_id=chain.id,
        zone_id=zone.id,
        name="La comer Nor",
        city="Monterrey",
        latitude=STORE_LAT,
        longitude=STORE_LNG,
        geofence_radius=100,
    )
    db_session.add(store)
    db_session.commit()
    return store


@pytest.fixture
def products(db_session):
    items = [
        Product(name="Arándano", icon="Apple", color="hsl(217, 91%, 60%)"),
        Product(name="Frambuesa", icon="Cherry", color="hsl(340, 82%, 52%)"),
        Product(name="Zarzamora", icon="Grape", color="hsl(280, 60%, 40%)", active=False),
    ]
    db_session.add_all(items)
    db_session.commit()
    return items
