"""Servicio de autenticación y autorización."""

import hashlib
import secrets
from datetime import UTC, datetime, timedelta
from typing import Optional

import bcrypt
import jwt
from sqlalchemy import func
from sqlalchemy.orm import Session

from ..config import settings
from ..models import User, UserRole, UserSession

# Configuración JWT
JWT_SECRET = settings.secret_key
JWT_ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = settings.access_token_expire_minutes
REFRESH_TOKEN_EXPIRE_DAYS = settings.refresh_token_expire_days


# =============================================================================
# FUNCIONES DE HASH
# =============================================================================

def hash_password(password: str) -> str:
    """Genera el hash bcrypt de la contraseña."""
    salt = bcrypt.gensalt(rounds=12)
    return bcrypt.hashpw(password.encode(), salt).decode()


def verify_password(password: str, password_hash: str) -> bool:
    """Verifica si la contraseña corresponde al hash."""
    return bcrypt.checkpw(password.encode(), password_hash.encode())


def hash_token(token: str) -> str:
    """Genera el hash SHA-256 de un token."""
    return hashlib.sha256(token.encode()).hexdigest()


def generate_token() -> str:
    """Genera un token aleatorio seguro."""
    return secrets.token_urlsafe(32)


def as_utc(value: datetime) -> datetime:
    """SQLite devuelve datetimes sin zona; se asumen UTC."""
    return value if value.tzinfo else value.replace(tzinfo=UTC)


# =============================================================================
# FUNCIONES JWT
# =============================================================================

def create_access_token(user_id: int, role: str) -> str:
    """Crea un access token JWT."""
    now = datetime.now(UTC)
    payload = {
        "sub": str(user_id),
        "role": role,
        "type": "access",
        "exp": now + timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES),
        "iat": now,
    }
    return jwt.encode(payload, JWT_SECRET, algorithm=JWT_ALGORITHM)


def create_refresh_token(user_id: int, session_id: int, token: str) -> str:
    """Crea un refresh token JWT ligado a una sesión."""
    now = datetime.now(UTC)
    payload = {
        "sub": str(user_id),
        "session_id": session_id,
        "jti": token,
        "type": "refresh",
        "exp": now + timedelta(days=REFRESH_TOKEN_EXPIRE_DAYS),
        "iat": now,
    }
    return jwt.encode(payload, JWT_SECRET, algorithm=JWT_ALGORITHM)


def decode_token(token: str) -> Optional[dict]:
    """Decodifica y valida un token JWT."""
    try:
        return jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        return None
    except jwt.InvalidTokenError:
        return None


# =============================================================================
# SERVICIO DE AUTENTICACIÓN
# =============================================================================

class AuthService:
    """Servicio para operaciones de autenticación."""

    def __init__(self, db: Session):
        self.db = db

    def get_user_by_username(self, username: str) -> Optional[User]:
        """Busca un usuario por nombre de usuario sin distinguir mayúsculas."""
        return self.db.query(User).filter(
            func.lower(User.username) == username.strip().lower()
        ).first()

    def authenticate(self, username: str, password: str) -> Optional[User]:
        """Autentica un usuario activo por nombre de usuario y contraseña."""
        user = self.get_user_by_username(username)
        if not user or not user.active:
            return None

        if not verify_password(password, user.password_hash):
            return None

        return user

    def create_session(
        self,
        user: User,
        device_info: Optional[str] = None,
        ip_address: Optional[str] = None
    ) -> tuple[str, str]:
        """
        Crea una nueva sesión para el usuario.

        Devuelve: (access_token, refresh_token)
        """
        refresh_token = generate_token()

        session = UserSession(
            user_id=user.id,
            refresh_token_hash=hash_token(refresh_token),
            device_info=device_info,
            ip_address=ip_address,
            expires_at=datetime.now(UTC) + timedelta(days=REFRESH_TOKEN_EXPIRE_DAYS)
        )
        self.db.add(session)
        self.db.flush()

        user.last_login = datetime.now(UTC)

        access_token = create_access_token(user.id, user.role)
        refresh_token_jwt = create_refresh_token(user.id, session.id, refresh_token)

        self.db.commit()

        return access_token, refresh_token_jwt

    def refresh_session(self, refresh_token: str) -> Optional[tuple[str, str]]:
        """
        Renueva una sesión usando el refresh token.

        Devuelve: (new_access_token, new_refresh_token) o None si es inválido
        """
        payload = decode_token(refresh_token)
        if not payload or payload.get("type") != "refresh":
            return None

        session_id = payload.get("session_id")
        user_id = int(payload.get("sub", 0))

        session = self.db.query(UserSession).filter(
            UserSession.id == session_id,
            UserSession.user_id == user_id,
            UserSession.is_active == True
        ).first()

        if not session or as_utc(session.expires_at) < datetime.now(UTC):
            return None
        if session.refresh_token_hash != hash_token(payload.get("jti", "")):
            return None

        user = self.db.get(User, user_id)
        if not user or not user.active:
            return None

        new_refresh_token = generate_token()
        session.refresh_token_hash = hash_token(new_refresh_token)
        session.last_used_at = datetime.now(UTC)
        session.expires_at = datetime.now(UTC) + timedelta(days=REFRESH_TOKEN_EXPIRE_DAYS)

        access_token = create_access_token(user.id, user.role)
        refresh_token_jwt = create_refresh_token(user.id, session.id, new_refresh_token)

        self.db.commit()

        return access_token, refresh_token_jwt

    def logout(self, session_id: int, user_id: int) -> bool:
        """Invalida una sesión específica."""
        session = self.db.query(UserSession).filter(
            UserSession.id == session_id,
            UserSession.user_id == user_id
        ).first()

        if session:
            session.is_active = False
            self.db.commit()
            return True
        return False

    def get_user_by_id(self, user_id: int) -> Optional[User]:
        """Busca un usuario activo por ID."""
        return self.db.query(User).filter(
            User.id == user_id,
            User.active == True
        ).first()

    def create_user(
        self,
        username: str,
        password: str,
        name: str,
        role: str = UserRole.PROMOTOR.value,
        email: Optional[str] = None,
        active: bool = True,
    ) -> User:
        """Crea un nuevo usuario."""
        user = User(
            username=username.strip(),
            password_hash=hash_password(password),
            name=name,
            role=role,
            email=email.lower() if email else None,
            active=active,
        )
        self.db.add(user)
        self.db.commit()
        self.db.refresh(user)
        return user

    def update_password(self, user: User, new_password: str) -> None:
        """Actualiza la contraseña del usuario."""
        user.password_hash = hash_password(new_password)
        self.db.commit()


def can_override_geofence(user: User) -> bool:
    """Los administradores pueden ignorar la geocerca cuando el modo prueba está activo."""
    return settings.geofence_admin_override and user.is_admin


def create_initial_admin(db: Session, username: str, password: str, name: str) -> Optional[User]:
    """Crea el primer administrador si todavía no hay usuarios."""
    if db.query(User).first():
        return None

    return AuthService(db).create_user(
        username=username,
        password=password,
        name=name,
        role=UserRole.ADMIN.value,
    )
