"""Router de autenticación y administración de usuarios."""

import logging
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel, ConfigDict, EmailStr, Field
from slowapi import Limiter
from slowapi.util import get_remote_address

from ..config import settings
from ..database import DbSession
from ..models import Store, StoreAssignment, User, UserRole
from ..services.auth import AuthService, can_override_geofence, decode_token, hash_password

logger = logging.getLogger(__name__)
router = APIRouter()
limiter = Limiter(key_func=get_remote_address, enabled=settings.rate_limit_enabled)
security = HTTPBearer(auto_error=False)


# =============================================================================
# SCHEMAS
# =============================================================================

class LoginRequest(BaseModel):
    """Schema para login."""
    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class UserOut(BaseModel):
    """Schema de salida para usuario."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    username: str
    email: Optional[str] = None
    name: str
    role: UserRole
    active: bool
    can_override_geofence: bool = False
    created_at: Optional[datetime] = None


class LoginResponse(BaseModel):
    """Schema de respuesta del login."""
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    user: UserOut


class RefreshRequest(BaseModel):
    refresh_token: str


class TokenResponse(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"


class UserCreate(BaseModel):
    """Schema para crear usuario."""
    username: str = Field(..., min_length=2, max_length=100)
    password: str = Field(..., min_length=6)
    name: str = Field(..., min_length=1)
    email: Optional[EmailStr] = None
    role: UserRole = UserRole.PROMOTOR
    active: bool = True


class UserUpdate(BaseModel):
    """Schema para actualizar usuario."""
    username: Optional[str] = Field(None, min_length=2, max_length=100)
    password: Optional[str] = Field(None, min_length=6)
    name: Optional[str] = Field(None, min_length=1)
    email: Optional[EmailStr] = None
    role: Optional[UserRole] = None
    active: Optional[bool] = None


class StoreAssignmentCreate(BaseModel):
    user_id: int
    store_id: int


class StoreAssignmentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    store_id: int
    created_at: Optional[datetime] = None


def _user_out(user: User) -> UserOut:
    out = UserOut.model_validate(user)
    out.can_override_geofence = can_override_geofence(user)
    return out


# =============================================================================
# DEPENDENCIAS
# =============================================================================

def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: DbSession = None
) -> User:
    """Obtiene el usuario actual a partir del token JWT."""
    if not credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="No autenticado",
            headers={"WWW-Authenticate": "Bearer"},
        )

    payload = decode_token(credentials.credentials)
    if not payload or payload.get("type") != "access":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token inválido o expirado",
            headers={"WWW-Authenticate": "Bearer"},
        )

    user = AuthService(db).get_user_by_id(int(payload.get("sub", 0)))
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Usuario no encontrado o desactivado",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return user


def require_role(*roles: UserRole):
    """Fábrica de dependencias que exige alguno de los roles."""
    allowed = {r.value for r in roles}

    def role_checker(user: User = Depends(get_current_user)) -> User:
        if not user.has_role(*allowed):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="No autorizado"
            )
        return user
    return role_checker


# =============================================================================
# AUTENTICACIÓN
# =============================================================================

@router.post("/login", response_model=LoginResponse)
@limiter.limit("10/minute")
def login(request: Request, data: LoginRequest, db: DbSession):
    """Autentica un usuario y devuelve los tokens."""
    auth_service = AuthService(db)

    user = auth_service.get_user_by_username(data.username)
    if user and not user.active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Usuario desactivado"
        )

    user = auth_service.authenticate(data.username, data.password)
    if not user:
        logger.warning(f"Login fallido para '{data.username}'")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Usuario o contraseña incorrectos"
        )

    access_token, refresh_token = auth_service.create_session(
        user=user,
        device_info=request.headers.get("user-agent"),
        ip_address=request.client.host if request.client else None
    )

    logger.info(f"Login: {user.username} ({user.role})")
    return LoginResponse(
        access_token=access_token,
        refresh_token=refresh_token,
        user=_user_out(user),
    )


@router.post("/refresh", response_model=TokenResponse)
@limiter.limit("30/minute")
def refresh_token(request: Request, data: RefreshRequest, db: DbSession):
    """Renueva los tokens usando el refresh token."""
    result = AuthService(db).refresh_session(data.refresh_token)

    if not result:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Refresh token inválido o expirado"
        )

    access_token, new_refresh_token = result
    return TokenResponse(access_token=access_token, refresh_token=new_refresh_token)


@router.post("/logout")
def logout(data: RefreshRequest, db: DbSession):
    """Cierra la sesión ligada al refresh token."""
    payload = decode_token(data.refresh_token)
    if payload and payload.get("type") == "refresh":
        user_id = int(payload.get("sub", 0))
        AuthService(db).logout(payload.get("session_id"), user_id)
        logger.info(f"Logout: usuario {user_id}")

    return {"message": "Sesión cerrada"}


@router.get("/me", response_model=UserOut)
def get_me(user: User = Depends(get_current_user)):
    """Devuelve los datos del usuario autenticado."""
    return _user_out(user)


# =============================================================================
# USUARIOS
# =============================================================================

@router.get("/users", response_model=List[UserOut])
def list_users(
    db: DbSession,
    _: User = Depends(require_role(UserRole.ADMIN, UserRole.SUPERVISOR)),
):
    """Lista todos los usuarios."""
    return [_user_out(u) for u in db.query(User).order_by(User.name).all()]


@router.post("/users", response_model=UserOut, status_code=201)
def create_user(
    data: UserCreate,
    db: DbSession,
    admin: User = Depends(require_role(UserRole.ADMIN)),
):
    """Crea un usuario."""
    user = AuthService(db).create_user(
        username=data.username,
        password=data.password,
        name=data.name,
        role=data.role.value,
        email=data.email,
        active=data.active,
    )
    logger.info(f"Usuario creado por {admin.username}: {user.id} - {user.username}")
    return _user_out(user)


@router.put("/users/{user_id}", response_model=UserOut)
def update_user(
    user_id: int,
    data: UserUpdate,
    db: DbSession,
    _: User = Depends(require_role(UserRole.ADMIN)),
):
    """Actualiza un usuario. Solo se aplican los campos enviados."""
    user = db.get(User, user_id)
    if not user:
        raise HTTPException(status_code=404, detail="Usuario no encontrado")

    update_data = data.model_dump(exclude_unset=True)
    if "password" in update_data:
        password = update_data.pop("password")
        if password:
            user.password_hash = hash_password(password)
    for field, value in update_data.items():
        if isinstance(value, UserRole):
            value = value.value
        setattr(user, field, value)

    db.commit()
    db.refresh(user)

    logger.info(f"Usuario actualizado: {user.id}")
    return _user_out(user)


@router.delete("/users/{user_id}")
def delete_user(
    user_id: int,
    db: DbSession,
    admin: User = Depends(require_role(UserRole.ADMIN)),
):
    """Elimina un usuario."""
    user = db.get(User, user_id)
    if not user:
        raise HTTPException(status_code=404, detail="Usuario no encontrado")
    if user.id == admin.id:
        raise HTTPException(status_code=400, detail="No puedes eliminar tu propio usuario")

    db.delete(user)
    db.commit()

    logger.info(f"Usuario eliminado: {user_id}")
    return {"message": "Usuario eliminado", "id": user_id}


# =============================================================================
# ASIGNACIONES DE TIENDAS
# =============================================================================

@router.get("/store-assignments", response_model=List[StoreAssignmentOut])
def list_store_assignments(
    db: DbSession,
    user_id: Optional[int] = Query(None, description="Filtrar por usuario"),
    store_id: Optional[int] = Query(None, description="Filtrar por tienda"),
    _: User = Depends(require_role(UserRole.ADMIN, UserRole.SUPERVISOR)),
):
    """Lista asignaciones de promotores a tiendas."""
    query = db.query(StoreAssignment)
    if user_id is not None:
        query = query.filter(StoreAssignment.user_id == user_id)
    if store_id is not None:
        query = query.filter(StoreAssignment.store_id == store_id)
    return query.order_by(StoreAssignment.id).all()


@router.post("/store-assignments", response_model=StoreAssignmentOut, status_code=201)
def create_store_assignment(
    data: StoreAssignmentCreate,
    db: DbSession,
    _: User = Depends(require_role(UserRole.ADMIN)),
):
    """Asigna un usuario a una tienda."""
    if not db.get(User, data.user_id):
        raise HTTPException(status_code=404, detail="Usuario no encontrado")
    if not db.get(Store, data.store_id):
        raise HTTPException(status_code=404, detail="Tienda no encontrada")

    existing = db.query(StoreAssignment).filter(
        StoreAssignment.user_id == data.user_id,
        StoreAssignment.store_id == data.store_id,
    ).first()
    if existing:
        return existing

    assignment = StoreAssignment(user_id=data.user_id, store_id=data.store_id)
    db.add(assignment)
    db.commit()
    db.refresh(assignment)

    logger.info(f"Asignación creada: usuario {data.user_id} -> tienda {data.store_id}")
    return assignment


@router.delete("/store-assignments/{user_id}/{store_id}")
def delete_store_assignment(
    user_id: int,
    store_id: int,
    db: DbSession,
    _: User = Depends(require_role(UserRole.ADMIN)),
):
    """Elimina la asignación de un usuario a una tienda."""
    assignment = db.query(StoreAssignment).filter(
        StoreAssignment.user_id == user_id,
        StoreAssignment.store_id == store_id,
    ).first()
    if not assignment:
        raise HTTPException(status_code=404, detail="Asignación no encontrada")

    db.delete(assignment)
    db.commit()
    return {"message": "Asignación eliminada"}
