"""Geocerca: clasifica y ordena tiendas por cercanía a la posición del usuario."""

from __future__ import annotations

import asyncio
import logging
import math
from dataclasses import dataclass
from typing import Any, Iterable, Optional, Protocol

from ..config import settings
from ..schemas import LocationErrorCode

logger = logging.getLogger(__name__)

EARTH_RADIUS_M = 6_371_000.0


@dataclass(frozen=True)
class GeoPosition:
    latitude: float
    longitude: float
    accuracy: Optional[float] = None


@dataclass(frozen=True)
class StoreCandidate:
    """Tienda con su distancia calculada. Nunca se persiste."""

    store: Any
    distance_meters: Optional[float]
    in_range: bool
    has_coordinates: bool


# =============================================================================
# ERRORES DE UBICACIÓN
# =============================================================================

class LocationError(Exception):
    """Falla al obtener la posición actual."""

    code = LocationErrorCode.UNAVAILABLE
    message = "No se pudo obtener la ubicación"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.message)


class LocationUnavailable(LocationError):
    code = LocationErrorCode.UNAVAILABLE
    message = "Geolocalización no disponible en este dispositivo"


class LocationDenied(LocationError):
    code = LocationErrorCode.DENIED
    message = "Permiso de ubicación denegado"


class LocationTimeout(LocationError):
    code = LocationErrorCode.TIMEOUT
    message = "Tiempo de espera agotado al obtener la ubicación"


_ERRORS_BY_CODE: dict[LocationErrorCode, type[LocationError]] = {
    LocationErrorCode.UNAVAILABLE: LocationUnavailable,
    LocationErrorCode.DENIED: LocationDenied,
    LocationErrorCode.TIMEOUT: LocationTimeout,
}


# =============================================================================
# PROVEEDORES DE UBICACIÓN
# =============================================================================

class LocationProvider(Protocol):
    async def get_current_position(self, timeout_ms: int, high_accuracy: bool) -> GeoPosition:
        ...


class ReportedLocationProvider:
    """Proveedor que entrega la posición (o el error) que reportó el dispositivo."""

    def __init__(
        self,
        latitude: float | None = None,
        longitude: float | None = None,
        accuracy: float | None = None,
        error_code: LocationErrorCode | None = None,
    ):
        self.latitude = latitude
        self.longitude = longitude
        self.accuracy = accuracy
        self.error_code = error_code

    async def get_current_position(self, timeout_ms: int, high_accuracy: bool) -> GeoPosition:
        if self.error_code is not None:
            raise _ERRORS_BY_CODE[self.error_code]()
        if self.latitude is None or self.longitude is None:
            raise LocationUnavailable()
        return GeoPosition(self.latitude, self.longitude, self.accuracy)


# =============================================================================
# CÁLCULO DE DISTANCIAS
# =============================================================================

def haversine_m(a: GeoPosition, b: GeoPosition) -> float:
    """Distancia en metros entre dos puntos lat/lng."""
    lat1 = math.radians(a.latitude)
    lat2 = math.radians(b.latitude)
    dlat = lat2 - lat1
    dlng = math.radians(b.longitude - a.longitude)

    sin_dlat = math.sin(dlat / 2.0)
    sin_dlng = math.sin(dlng / 2.0)
    h = sin_dlat * sin_dlat + math.cos(lat1) * math.cos(lat2) * sin_dlng * sin_dlng
    c = 2.0 * math.atan2(math.sqrt(h), math.sqrt(1.0 - h))
    return EARTH_RADIUS_M * c


def store_position(store: Any) -> Optional[GeoPosition]:
    """Coordenadas de la tienda, o None si le falta alguna."""
    lat = getattr(store, "latitude", None)
    lng = getattr(store, "longitude", None)
    if lat is None or lng is None:
        return None
    return GeoPosition(float(lat), float(lng))


def classify(
    position: Optional[GeoPosition],
    stores: Iterable[Any],
    default_radius_m: int = 100,
) -> list[StoreCandidate]:
    """Calcula distancia y si está en rango para cada tienda, ordenadas por cercanía.

    Las tiendas sin coordenadas (o todas, si no hay posición) quedan al final
    en el orden de entrada.
    """
    with_distance: list[StoreCandidate] = []
    without_distance: list[StoreCandidate] = []

    for store in stores:
        store_pos = store_position(store)
        if store_pos is None or position is None:
            without_distance.append(
                StoreCandidate(
                    store=store,
                    distance_meters=None,
                    in_range=False,
                    has_coordinates=store_pos is not None,
                )
            )
            continue

        radius = getattr(store, "geofence_radius", None)
        if radius is None:
            radius = default_radius_m
        distance = haversine_m(position, store_pos)
        with_distance.append(
            StoreCandidate(
                store=store,
                distance_meters=distance,
                in_range=distance <= radius,
                has_coordinates=True,
            )
        )

    with_distance.sort(key=lambda c: c.distance_meters)
    return with_distance + without_distance


def can_select(candidate: StoreCandidate, can_override: bool) -> bool:
    """Una tienda se puede elegir si está en rango o el usuario puede ignorar la geocerca."""
    return candidate.in_range or can_override


# =============================================================================
# LOCALIZADOR
# =============================================================================

@dataclass(frozen=True)
class ScanResult:
    position: Optional[GeoPosition]
    candidates: list[StoreCandidate]
    warning: Optional[str] = None


class GeofenceLocator:
    """Obtiene la posición una sola vez y clasifica las tiendas contra ella."""

    def __init__(
        self,
        provider: LocationProvider | None,
        timeout_ms: int | None = None,
        high_accuracy: bool | None = None,
        default_radius_m: int | None = None,
    ):
        self.provider = provider
        self.timeout_ms = timeout_ms if timeout_ms is not None else settings.location_timeout_ms
        self.high_accuracy = (
            high_accuracy if high_accuracy is not None else settings.location_high_accuracy
        )
        self.default_radius_m = (
            default_radius_m if default_radius_m is not None else settings.geofence_default_radius_m
        )

    async def locate(self) -> GeoPosition:
        """Pide la posición actual al proveedor, sin reintentos."""
        if self.provider is None:
            raise LocationUnavailable()
        try:
            return await asyncio.wait_for(
                self.provider.get_current_position(self.timeout_ms, self.high_accuracy),
                timeout=self.timeout_ms / 1000,
            )
        except asyncio.TimeoutError as exc:
            raise LocationTimeout() from exc

    def classify(self, position: Optional[GeoPosition], stores: Iterable[Any]) -> list[StoreCandidate]:
        return classify(position, stores, self.default_radius_m)

    async def scan(self, stores: Iterable[Any]) -> ScanResult:
        """Localiza y clasifica. Una falla de ubicación se degrada a 'sin posición'."""
        try:
            position = await self.locate()
        except LocationError as exc:
            logger.warning(f"Ubicación no disponible ({exc.code.value}): {exc}")
            return ScanResult(position=None, candidates=self.classify(None, stores), warning=str(exc))

        return ScanResult(position=position, candidates=self.classify(position, stores))
