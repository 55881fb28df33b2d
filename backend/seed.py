"""Carga datos de demostración: usuarios, cadenas, zona, tiendas y productos.

Uso: python seed.py
Es idempotente: los registros que ya existen (por nombre) se dejan igual.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy.orm import Session

from app.database import SessionLocal
from app.models import Chain, Product, Store, User, UserRole, Zone
from app.services.auth import AuthService

USERS: list[dict[str, Any]] = [
    {"username": "superadmin", "password": "admin123", "name": "Super Admin",
     "email": "admin@admin.com", "role": UserRole.ADMIN.value},
    {"username": "carlos", "password": "promoter123", "name": "Carlos",
     "email": "admin@test.com", "role": UserRole.PROMOTOR.value},
    {"username": "lucio", "password": "lucio123", "name": "Lucio",
     "email": "lucio@gmail.com.mx", "role": UserRole.PROMOTOR.value},
]

CHAINS: list[dict[str, Any]] = [
    {"name": "HEB", "description": "H-E-B Supermercados"},
    {"name": "La Comer", "description": None},
]

STORES: list[dict[str, Any]] = [
    {"name": "comer nor test", "city": "Monterrey", "latitude": 25.6866, "longitude": -100.3161},
    {"name": "La comer Nor", "city": "Monterrey", "latitude": 25.6866, "longitude": -100.3161},
]

PRODUCTS: list[dict[str, Any]] = [
    {"name": "Espinaca Baby", "icon": "Grape", "color": "hsl(142, 71%, 45%)"},
    {"name": "Arándano", "icon": "Apple", "color": "hsl(217, 91%, 60%)"},
    {"name": "Frambuesa", "icon": "Cherry", "color": "hsl(340, 82%, 52%)"},
]


def seed_users(db: Session) -> int:
    auth = AuthService(db)
    created = 0
    for data in USERS:
        if auth.get_user_by_username(data["username"]):
            continue
        auth.create_user(**data)
        created += 1
    return created


def _get_or_create(db: Session, model: Any, lookup: dict[str, Any], **values: Any) -> tuple[Any, bool]:
    instance = db.query(model).filter_by(**lookup).first()
    if instance:
        return instance, False
    instance = model(**lookup, **values)
    db.add(instance)
    db.flush()
    return instance, True


def seed_catalog(db: Session) -> dict[str, int]:
    counts = {"chains": 0, "zones": 0, "stores": 0, "products": 0}

    chains = {}
    for data in CHAINS:
        chain, created = _get_or_create(db, Chain, {"name": data["name"]}, description=data["description"])
        chains[chain.name] = chain
        counts["chains"] += int(created)

    la_comer = chains["La Comer"]
    zone, created = _get_or_create(db, Zone, {"chain_id": la_comer.id, "name": "Norte"})
    counts["zones"] += int(created)

    for data in STORES:
        _, created = _get_or_create(
            db,
            Store,
            {"name": data["name"], "zone_id": zone.id},
            chain_id=la_comer.id,
            city=data["city"],
            latitude=data["latitude"],
            longitude=data["longitude"],
            geofence_radius=100,
        )
        counts["stores"] += int(created)

    for data in PRODUCTS:
        _, created = _get_or_create(
            db, Product, {"name": data["name"]}, icon=data["icon"], color=data["color"]
        )
        counts["products"] += int(created)

    db.commit()
    return counts


def main() -> None:
    db = SessionLocal()
    try:
        users = seed_users(db)
        counts = seed_catalog(db)
        print(f"OK: {users} usuarios, " + ", ".join(f"{v} {k}" for k, v in counts.items()))
    finally:
        db.close()


if __name__ == "__main__":
    main()
