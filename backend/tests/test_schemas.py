"""Pruebas para schemas Pydantic."""

from decimal import Decimal

import pytest
from pydantic import ValidationError

from app.schemas import (
    DraftOut,
    DraftUpdate,
    EvaluationCreate,
    IncidentType,
    StoreCreate,
    VisitStart,
)
from app.services.visit_workflow import EvaluationDraft


class TestStoreCreate:
    """Pruebas para el schema de tienda."""

    def test_default_radius(self):
        store = StoreCreate(chain_id=1, zone_id=1, name="La comer Nor")
        assert store.geofence_radius == 100
        assert store.latitude is None

    def test_invalid_latitude(self):
        with pytest.raises(ValidationError):
            StoreCreate(chain_id=1, zone_id=1, name="X", latitude=91)

    def test_radius_must_be_positive(self):
        with pytest.raises(ValidationError):
            StoreCreate(chain_id=1, zone_id=1, name="X", geofence_radius=0)


class TestVisitStart:
    """Pruebas para el inicio de visita."""

    def test_position_is_optional(self):
        data = VisitStart(store_id=1, location_error="timeout")
        assert data.latitude is None
        assert data.location_error.value == "timeout"

    def test_unknown_location_error(self):
        with pytest.raises(ValidationError):
            VisitStart(store_id=1, location_error="gps-off")


class TestDraftSchemas:
    """Pruebas para el borrador expuesto por la API."""

    def test_update_only_keeps_sent_fields(self):
        data = DraftUpdate(stock="12", severity=None)
        assert data.model_dump(exclude_unset=True) == {"stock": "12", "severity": None}

    def test_update_rejects_unknown_incident(self):
        with pytest.raises(ValidationError):
            DraftUpdate(incident_types=["Robo"])

    def test_update_freshness_range(self):
        with pytest.raises(ValidationError):
            DraftUpdate(freshness=6)

    def test_out_from_draft(self):
        draft = EvaluationDraft().replace(incident_types=[IncidentType.NO_INCIDENTS.value])
        out = DraftOut.model_validate(draft)
        assert out.incident_types == [IncidentType.NO_INCIDENTS]
        assert out.freshness == 3
        assert out.stock == ""


class TestEvaluationCreate:
    """Pruebas para el registro de evaluación."""

    def test_prices_parse_as_decimal(self):
        data = EvaluationCreate(store_id=1, product_id=1, current_price="45.50")
        assert data.current_price == Decimal("45.50")

    def test_negative_stock_rejected(self):
        with pytest.raises(ValidationError):
            EvaluationCreate(store_id=1, product_id=1, stock=-1)

    def test_defaults(self):
        data = EvaluationCreate(store_id=1, product_id=1)
        assert data.status == "in_progress"
        assert data.current_step == 1
        assert data.incidents == []
        assert data.has_incidents is False
