"""Pruebas para los endpoints de la API."""

from decimal import Decimal

import pytest

from app.models import Evaluation, Incident, PromoterVisit, Store, StoreAssignment
from app.services.evaluations import EvaluationService

STORE_LAT = 25.6866
STORE_LNG = -100.3161
FAR_LAT = STORE_LAT + 0.01  # ~1.1 km al norte


def start_visit(client, headers, store, latitude=STORE_LAT, longitude=STORE_LNG, **extra):
    payload = {"store_id": store.id, "latitude": latitude, "longitude": longitude, **extra}
    return client.post("/visits/sessions", json=payload, headers=headers)


def fill_until_incidents(client, headers, session_id, product_id):
    url = f"/visits/sessions/{session_id}"
    steps = [
        {"product_id": product_id},
        {"stock": "30", "location": "Bodega", "display_condition": "Bueno"},
        {"appearance": "Buena", "packaging_condition": "Intacto", "freshness": 4},
        {"current_price": "90", "suggested_price": "100", "active_promotions": ["2x1"]},
    ]
    for changes in steps:
        assert client.patch(f"{url}/draft", json=changes, headers=headers).status_code == 200
        response = client.post(f"{url}/next", headers=headers)
        assert response.status_code == 200
    assert response.json()["step"] == "incidents"


class TestHealthEndpoint:
    """Pruebas para el endpoint /health."""

    def test_health_check(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        assert data["db"] is True


class TestRootEndpoint:
    """Pruebas para el endpoint /."""

    def test_root(self, client):
        response = client.get("/")
        assert response.status_code == 200
        data = response.json()
        assert data["app"] == "Berry Inspector API"
        assert "version" in data


class TestAuthEndpoints:
    """Pruebas para /auth."""

    def test_login_success(self, client, admin_user):
        response = client.post("/auth/login", json={"username": "SuperAdmin", "password": "admin123"})
        assert response.status_code == 200
        data = response.json()
        assert data["access_token"]
        assert data["refresh_token"]
        assert data["user"]["role"] == "admin"
        assert data["user"]["can_override_geofence"] is True

    def test_login_wrong_password(self, client, admin_user):
        response = client.post("/auth/login", json={"username": "superadmin", "password": "nope"})
        assert response.status_code == 401
        assert response.json()["detail"] == "Usuario o contraseña incorrectos"

    def test_login_inactive_user(self, client, db_session, promotor_user):
        promotor_user.active = False
        db_session.commit()
        response = client.post("/auth/login", json={"username": "carlos", "password": "promoter123"})
        assert response.status_code == 401
        assert response.json()["detail"] == "Usuario desactivado"

    def test_me_requires_token(self, client):
        response = client.get("/auth/me")
        assert response.status_code == 401

    def test_me_rejects_invalid_token(self, client):
        response = client.get("/auth/me", headers={"Authorization": "Bearer basura"})
        assert response.status_code == 401

    def test_me(self, client, promotor_headers):
        response = client.get("/auth/me", headers=promotor_headers)
        assert response.status_code == 200
        data = response.json()
        assert data["username"] == "carlos"
        assert data["can_override_geofence"] is False

    def test_refresh_rotates_token(self, client, promotor_user):
        login = client.post("/auth/login", json={"username": "carlos", "password": "promoter123"})
        old_refresh = login.json()["refresh_token"]

        response = client.post("/auth/refresh", json={"refresh_token": old_refresh})
        assert response.status_code == 200
        assert response.json()["refresh_token"] != old_refresh

        reused = client.post("/auth/refresh", json={"refresh_token": old_refresh})
        assert reused.status_code == 401

    def test_logout_invalidates_refresh(self, client, promotor_user):
        login = client.post("/auth/login", json={"username": "carlos", "password": "promoter123"})
        refresh = login.json()["refresh_token"]

        assert client.post("/auth/logout", json={"refresh_token": refresh}).status_code == 200
        assert client.post("/auth/refresh", json={"refresh_token": refresh}).status_code == 401

    def test_users_forbidden_for_promotor(self, client, promotor_headers):
        response = client.get("/auth/users", headers=promotor_headers)
        assert response.status_code == 403

    def test_admin_creates_user(self, client, admin_headers):
        payload = {"username": "lucio", "password": "lucio123", "name": "Lucio"}
        response = client.post("/auth/users", json=payload, headers=admin_headers)
        assert response.status_code == 201
        assert response.json()["role"] == "promotor"

    def test_store_assignment(self, client, admin_headers, promotor_user, store):
        payload = {"user_id": promotor_user.id, "store_id": store.id}
        response = client.post("/auth/store-assignments", json=payload, headers=admin_headers)
        assert response.status_code == 201

        listed = client.get(
            f"/auth/store-assignments?user_id={promotor_user.id}", headers=admin_headers
        )
        assert [a["store_id"] for a in listed.json()] == [store.id]

        deleted = client.delete(
            f"/auth/store-assignments/{promotor_user.id}/{store.id}", headers=admin_headers
        )
        assert deleted.status_code == 200


class TestCatalogEndpoints:
    """Pruebas para cadenas, zonas, tiendas y productos."""

    def test_admin_creates_store(self, client, admin_headers):
        chain = client.post("/chains", json={"name": "HEB"}, headers=admin_headers).json()
        zone = client.post(
            "/zones", json={"chain_id": chain["id"], "name": "Norte"}, headers=admin_headers
        ).json()

        payload = {
            "chain_id": chain["id"],
            "zone_id": zone["id"],
            "name": "HEB Contry",
            "city": "Monterrey",
            "latitude": STORE_LAT,
            "longitude": STORE_LNG,
        }
        response = client.post("/stores/", json=payload, headers=admin_headers)
        assert response.status_code == 201
        assert response.json()["geofence_radius"] == 100

    def test_zone_must_belong_to_chain(self, client, admin_headers, zone):
        other = client.post("/chains", json={"name": "HEB"}, headers=admin_headers).json()
        payload = {"chain_id": other["id"], "zone_id": zone.id, "name": "Tienda"}
        response = client.post("/stores/", json=payload, headers=admin_headers)
        assert response.status_code == 400

    def test_promotor_cannot_write(self, client, promotor_headers, chain, zone):
        payload = {"chain_id": chain.id, "zone_id": zone.id, "name": "Tienda"}
        assert client.post("/stores/", json=payload, headers=promotor_headers).status_code == 403
        assert client.post("/chains", json={"name": "X"}, headers=promotor_headers).status_code == 403

    def test_list_stores_by_zone(self, client, promotor_headers, store, zone):
        response = client.get(f"/stores/?zone_id={zone.id}", headers=promotor_headers)
        assert response.status_code == 200
        assert [s["id"] for s in response.json()] == [store.id]

        response = client.get(f"/stores/?zone_id={zone.id + 99}", headers=promotor_headers)
        assert response.json() == []

    def test_update_store_clears_coordinates(self, client, admin_headers, store):
        response = client.put(
            f"/stores/{store.id}",
            json={"latitude": None, "longitude": None},
            headers=admin_headers,
        )
        assert response.status_code == 200
        assert response.json()["latitude"] is None

    def test_get_store_not_found(self, client, promotor_headers):
        response = client.get("/stores/999", headers=promotor_headers)
        assert response.status_code == 404

    def test_list_active_products(self, client, promotor_headers, products):
        response = client.get("/products/?active=true", headers=promotor_headers)
        assert [p["name"] for p in response.json()] == ["Arándano", "Frambuesa"]


class TestEvaluationEndpoints:
    """Pruebas para /evaluations."""

    def test_create_with_incidents(self, client, promotor_headers, store, products):
        payload = {
            "store_id": store.id,
            "product_id": products[0].id,
            "status": "completed",
            "current_step": 5,
            "stock": 12,
            "current_price": "45.50",
            "has_incidents": True,
            "incidents": [{"type": "Empaque dañado", "severity": "Alta"}],
        }
        response = client.post("/evaluations/", json=payload, headers=promotor_headers)
        assert response.status_code == 201
        evaluation_id = response.json()["id"]
        assert Decimal(response.json()["current_price"]) == Decimal("45.50")

        incidents = client.get(f"/evaluations/{evaluation_id}/incidents", headers=promotor_headers)
        assert [i["type"] for i in incidents.json()] == ["Empaque dañado"]

    def test_create_unknown_store(self, client, promotor_headers, products):
        payload = {"store_id": 999, "product_id": products[0].id}
        response = client.post("/evaluations/", json=payload, headers=promotor_headers)
        assert response.status_code == 404

    def test_promotor_only_sees_own(
        self, client, db_session, admin_user, promotor_user, promotor_headers, store, products
    ):
        db_session.add_all([
            Evaluation(user_id=admin_user.id, store_id=store.id, product_id=products[0].id),
            Evaluation(user_id=promotor_user.id, store_id=store.id, product_id=products[1].id),
        ])
        db_session.commit()

        response = client.get(f"/evaluations/?user_id={admin_user.id}", headers=promotor_headers)
        assert [e["user_id"] for e in response.json()] == [promotor_user.id]

    def test_supervisor_resolves_incident(
        self, client, db_session, promotor_user, supervisor_headers, store, products
    ):
        evaluation = Evaluation(user_id=promotor_user.id, store_id=store.id, product_id=products[0].id)
        evaluation.incidents = [Incident(type="Sin stock", severity="Media")]
        db_session.add(evaluation)
        db_session.commit()
        incident_id = evaluation.incidents[0].id

        response = client.put(f"/evaluations/incidents/{incident_id}/resolve", headers=supervisor_headers)
        assert response.status_code == 200
        assert response.json()["resolved"] is True

    def test_create_incident_marks_evaluation(
        self, client, db_session, promotor_user, promotor_headers, store, products
    ):
        evaluation = Evaluation(user_id=promotor_user.id, store_id=store.id, product_id=products[0].id)
        db_session.add(evaluation)
        db_session.commit()

        payload = {"evaluation_id": evaluation.id, "type": "Sin stock", "severity": "Media"}
        response = client.post("/evaluations/incidents", json=payload, headers=promotor_headers)
        assert response.status_code == 201
        assert response.json()["resolved"] is False

        db_session.refresh(evaluation)
        assert evaluation.has_incidents is True

    def test_create_incident_on_foreign_evaluation(
        self, client, db_session, admin_user, promotor_headers, store, products
    ):
        evaluation = Evaluation(user_id=admin_user.id, store_id=store.id, product_id=products[0].id)
        db_session.add(evaluation)
        db_session.commit()

        payload = {"evaluation_id": evaluation.id, "type": "Sin stock", "severity": "Media"}
        response = client.post("/evaluations/incidents", json=payload, headers=promotor_headers)
        assert response.status_code == 404

    def test_update_and_delete_incident(
        self, client, db_session, promotor_user, promotor_headers, supervisor_headers, store, products
    ):
        evaluation = Evaluation(user_id=promotor_user.id, store_id=store.id, product_id=products[0].id)
        evaluation.incidents = [Incident(type="Sin stock", severity="Media")]
        db_session.add(evaluation)
        db_session.commit()
        incident_id = evaluation.incidents[0].id

        response = client.put(
            f"/evaluations/incidents/{incident_id}",
            json={"severity": "Crítica", "description": "Anaquel vacío"},
            headers=promotor_headers,
        )
        assert response.status_code == 200
        assert response.json()["severity"] == "Crítica"
        assert response.json()["type"] == "Sin stock"

        forbidden = client.delete(f"/evaluations/incidents/{incident_id}", headers=promotor_headers)
        assert forbidden.status_code == 403

        deleted = client.delete(f"/evaluations/incidents/{incident_id}", headers=supervisor_headers)
        assert deleted.status_code == 200
        assert db_session.query(Incident).count() == 0

        missing = client.delete(f"/evaluations/incidents/{incident_id}", headers=supervisor_headers)
        assert missing.status_code == 404


class TestVisitStoreScan:
    """Pruebas para la selección de tienda por geocerca."""

    def test_store_in_range(self, client, promotor_headers, store):
        response = client.get(
            f"/visits/stores?latitude={STORE_LAT}&longitude={STORE_LNG}", headers=promotor_headers
        )
        assert response.status_code == 200
        data = response.json()
        assert data["warning"] is None
        assert data["can_override"] is False
        candidate = data["candidates"][0]
        assert candidate["in_range"] is True
        assert candidate["selectable"] is True
        assert candidate["distance_meters"] == 0

    def test_store_out_of_range(self, client, promotor_headers, store):
        response = client.get(
            f"/visits/stores?latitude={FAR_LAT}&longitude={STORE_LNG}", headers=promotor_headers
        )
        candidate = response.json()["candidates"][0]
        assert candidate["in_range"] is False
        assert candidate["selectable"] is False
        assert candidate["distance_meters"] > 1000

    def test_location_denied(self, client, admin_headers, store):
        response = client.get("/visits/stores?location_error=denied", headers=admin_headers)
        data = response.json()
        assert data["position"] is None
        assert data["warning"] == "Permiso de ubicación denegado"
        assert data["can_override"] is True
        candidate = data["candidates"][0]
        assert candidate["in_range"] is False
        assert candidate["distance_meters"] is None
        assert candidate["selectable"] is True

    def test_promotor_sees_assigned_stores(
        self, client, db_session, promotor_user, promotor_headers, store, chain, zone
    ):
        other = Store(chain_id=chain.id, zone_id=zone.id, name="Otra tienda")
        db_session.add(other)
        db_session.commit()

        response = client.get("/visits/stores", headers=promotor_headers)
        assert len(response.json()["candidates"]) == 2

        db_session.add(StoreAssignment(user_id=promotor_user.id, store_id=store.id))
        db_session.commit()

        response = client.get("/visits/stores", headers=promotor_headers)
        assert [c["store"]["id"] for c in response.json()["candidates"]] == [store.id]


class TestVisitSessions:
    """Pruebas para el flujo de visita vía HTTP."""

    def test_out_of_range_is_rejected(self, client, promotor_headers, store, products, visit_sessions):
        response = start_visit(client, promotor_headers, store, latitude=FAR_LAT)
        assert response.status_code == 403
        assert len(visit_sessions) == 0

    def test_admin_override(self, client, admin_headers, store, products):
        response = start_visit(client, admin_headers, store, latitude=None, longitude=None)
        assert response.status_code == 201

    def test_start_visit(self, client, promotor_headers, store, products):
        response = start_visit(client, promotor_headers, store)
        assert response.status_code == 201
        data = response.json()
        assert data["step"] == "product-selection"
        assert data["step_number"] == 1
        assert data["can_proceed"] is False
        assert [p["name"] for p in data["products"]] == ["Arándano", "Frambuesa"]
        assert data["draft"]["freshness"] == 3

    def test_next_is_noop_when_incomplete(self, client, promotor_headers, store, products):
        session_id = start_visit(client, promotor_headers, store).json()["id"]
        response = client.post(f"/visits/sessions/{session_id}/next", headers=promotor_headers)
        assert response.status_code == 200
        assert response.json()["step"] == "product-selection"

    def test_invalid_choice_is_rejected(self, client, promotor_headers, store, products):
        session_id = start_visit(client, promotor_headers, store).json()["id"]
        response = client.patch(
            f"/visits/sessions/{session_id}/draft",
            json={"location": "Azotea"},
            headers=promotor_headers,
        )
        assert response.status_code == 422

    def test_inactive_product_is_rejected(self, client, promotor_headers, store, products):
        session_id = start_visit(client, promotor_headers, store).json()["id"]
        response = client.patch(
            f"/visits/sessions/{session_id}/draft",
            json={"product_id": products[2].id},
            headers=promotor_headers,
        )
        assert response.status_code == 400

    def test_price_too_large_is_rejected(self, client, promotor_headers, store, products):
        session_id = start_visit(client, promotor_headers, store).json()["id"]
        url = f"/visits/sessions/{session_id}"

        response = client.patch(
            f"{url}/draft",
            json={"current_price": "1" + "0" * 29, "suggested_price": "1"},
            headers=promotor_headers,
        )
        assert response.status_code == 400

        state = client.get(url, headers=promotor_headers)
        assert state.status_code == 200
        assert state.json()["draft"]["current_price"] == ""
        assert state.json()["price_variation_percent"] == "0"

    def test_full_visit(self, client, db_session, promotor_user, promotor_headers, store, products):
        session_id = start_visit(client, promotor_headers, store).json()["id"]
        fill_until_incidents(client, promotor_headers, session_id, products[0].id)

        state = client.get(f"/visits/sessions/{session_id}", headers=promotor_headers).json()
        assert state["price_variation_percent"] == "-10.0"
        assert state["step_label"] == "Incidencias"

        client.patch(
            f"/visits/sessions/{session_id}/draft",
            json={
                "incident_types": ["Precio incorrecto"],
                "severity": "Alta",
                "action_required": "Corregir etiqueta",
            },
            headers=promotor_headers,
        )

        response = client.post(f"/visits/sessions/{session_id}/complete", headers=promotor_headers)
        assert response.status_code == 201
        data = response.json()
        assert data["status"] == "completed"
        assert data["current_step"] == 5
        assert data["stock"] == 30
        assert data["has_incidents"] is True
        assert data["user_id"] == promotor_user.id
        assert data["active_promotions"] == ["2x1"]

        incidents = db_session.query(Incident).all()
        assert [(i.type, i.severity) for i in incidents] == [("Precio incorrecto", "Alta")]

        gone = client.get(f"/visits/sessions/{session_id}", headers=promotor_headers)
        assert gone.status_code == 404

    def test_complete_too_early(self, client, promotor_headers, store, products):
        session_id = start_visit(client, promotor_headers, store).json()["id"]
        response = client.post(f"/visits/sessions/{session_id}/complete", headers=promotor_headers)
        assert response.status_code == 409

    def test_submit_failure_keeps_visit(
        self, client, db_session, monkeypatch, promotor_headers, store, products
    ):
        session_id = start_visit(client, promotor_headers, store).json()["id"]
        fill_until_incidents(client, promotor_headers, session_id, products[0].id)

        def boom(self, data, user_id, check_in=None):
            raise RuntimeError("base de datos no disponible")

        monkeypatch.setattr(EvaluationService, "create_evaluation", boom)
        response = client.post(f"/visits/sessions/{session_id}/complete", headers=promotor_headers)
        assert response.status_code == 502
        assert "base de datos no disponible" in response.json()["detail"]

        state = client.get(f"/visits/sessions/{session_id}", headers=promotor_headers).json()
        assert state["step"] == "incidents"
        assert state["error"] == "base de datos no disponible"
        assert state["draft"]["stock"] == "30"
        assert db_session.query(Evaluation).count() == 0

        monkeypatch.undo()
        response = client.post(f"/visits/sessions/{session_id}/complete", headers=promotor_headers)
        assert response.status_code == 201

    def test_cancel_discards_visit(self, client, db_session, promotor_headers, store, products):
        session_id = start_visit(client, promotor_headers, store).json()["id"]
        client.patch(
            f"/visits/sessions/{session_id}/draft",
            json={"product_id": products[0].id},
            headers=promotor_headers,
        )

        response = client.delete(f"/visits/sessions/{session_id}", headers=promotor_headers)
        assert response.status_code == 200
        assert client.get(f"/visits/sessions/{session_id}", headers=promotor_headers).status_code == 404
        assert db_session.query(Evaluation).count() == 0

        fresh = start_visit(client, promotor_headers, store).json()
        assert fresh["draft"]["product_id"] is None

    def test_visit_belongs_to_user(self, client, promotor_headers, admin_headers, store, products):
        session_id = start_visit(client, promotor_headers, store).json()["id"]
        response = client.get(f"/visits/sessions/{session_id}", headers=admin_headers)
        assert response.status_code == 404


class TestCheckIns:
    """Pruebas para el registro de entradas y salidas en tienda."""

    def test_start_records_check_in(self, client, db_session, promotor_user, promotor_headers, store, products):
        data = start_visit(client, promotor_headers, store).json()

        check_in = db_session.get(PromoterVisit, data["check_in_id"])
        assert check_in.user_id == promotor_user.id
        assert check_in.store_id == store.id
        assert check_in.check_in_latitude == STORE_LAT
        assert check_in.check_out_time is None
        assert check_in.geofence_overridden is False

    def test_rejected_start_records_nothing(self, client, db_session, promotor_headers, store, products):
        start_visit(client, promotor_headers, store, latitude=FAR_LAT)
        assert db_session.query(PromoterVisit).count() == 0

    def test_override_is_recorded(self, client, db_session, admin_headers, store, products):
        data = start_visit(client, admin_headers, store, latitude=FAR_LAT).json()
        assert db_session.get(PromoterVisit, data["check_in_id"]).geofence_overridden is True

    def test_complete_checks_out(self, client, db_session, promotor_headers, store, products):
        data = start_visit(client, promotor_headers, store).json()
        fill_until_incidents(client, promotor_headers, data["id"], products[0].id)

        response = client.post(
            f"/visits/sessions/{data['id']}/complete?latitude={STORE_LAT}&longitude={STORE_LNG}",
            headers=promotor_headers,
        )
        assert response.status_code == 201

        check_in = db_session.get(PromoterVisit, data["check_in_id"])
        db_session.refresh(check_in)
        assert check_in.check_out_time is not None
        assert check_in.check_out_longitude == STORE_LNG
        assert check_in.evaluation_id == response.json()["id"]

    def test_cancel_checks_out(self, client, db_session, promotor_headers, store, products):
        data = start_visit(client, promotor_headers, store).json()
        client.delete(f"/visits/sessions/{data['id']}", headers=promotor_headers)

        check_in = db_session.get(PromoterVisit, data["check_in_id"])
        db_session.refresh(check_in)
        assert check_in.check_out_time is not None
        assert check_in.evaluation_id is None
        assert check_in.notes == "Visita cancelada"

    def test_promotor_lists_own_check_ins(
        self, client, promotor_headers, admin_headers, promotor_user, store, products
    ):
        start_visit(client, promotor_headers, store)
        start_visit(client, admin_headers, store)

        own = client.get("/visits/check-ins", headers=promotor_headers).json()
        assert [c["user_id"] for c in own] == [promotor_user.id]

        everyone = client.get("/visits/check-ins", headers=admin_headers).json()
        assert len(everyone) == 2


class TestEvaluationFieldEndpoints:
    """Pruebas para /evaluation-fields."""

    def test_admin_creates_field(self, client, admin_headers, promotor_headers):
        payload = {
            "label": "Color del fruto",
            "technical_name": "fruit_color",
            "field_type": "select",
            "step": 3,
            "options": ["Rojo", "Morado"],
        }
        response = client.post("/evaluation-fields/", json=payload, headers=admin_headers)
        assert response.status_code == 201
        assert response.json()["required"] is False

        listed = client.get("/evaluation-fields/?step=3", headers=promotor_headers)
        assert [f["technical_name"] for f in listed.json()] == ["fruit_color"]

    def test_duplicate_technical_name(self, client, admin_headers):
        payload = {"label": "Lote", "technical_name": "lot_number"}
        assert client.post("/evaluation-fields/", json=payload, headers=admin_headers).status_code == 201

        response = client.post("/evaluation-fields/", json=payload, headers=admin_headers)
        assert response.status_code == 400
        assert response.json()["detail"] == "Ya existe un campo con ese nombre técnico"

    def test_invalid_technical_name(self, client, admin_headers):
        payload = {"label": "Lote", "technical_name": "Número de lote"}
        response = client.post("/evaluation-fields/", json=payload, headers=admin_headers)
        assert response.status_code == 422

    def test_promotor_cannot_write(self, client, promotor_headers):
        payload = {"label": "Lote", "technical_name": "lot_number"}
        response = client.post("/evaluation-fields/", json=payload, headers=promotor_headers)
        assert response.status_code == 403

    def test_update_and_delete(self, client, admin_headers):
        first = client.post(
            "/evaluation-fields/", json={"label": "Lote", "technical_name": "lot_number"}, headers=admin_headers
        ).json()
        second = client.post(
            "/evaluation-fields/", json={"label": "Origen", "technical_name": "origin"}, headers=admin_headers
        ).json()

        clash = client.put(
            f"/evaluation-fields/{second['id']}", json={"technical_name": "lot_number"}, headers=admin_headers
        )
        assert clash.status_code == 400

        same_name = client.put(
            f"/evaluation-fields/{first['id']}",
            json={"technical_name": "lot_number", "required": True},
            headers=admin_headers,
        )
        assert same_name.status_code == 200
        assert same_name.json()["required"] is True

        deleted = client.delete(f"/evaluation-fields/{first['id']}", headers=admin_headers)
        assert deleted.status_code == 200
        assert client.delete(f"/evaluation-fields/{first['id']}", headers=admin_headers).status_code == 404


class TestStatsEndpoint:
    """Pruebas para /stats/dashboard."""

    def test_dashboard(
        self, client, db_session, promotor_user, supervisor_headers, store, products
    ):
        db_session.add_all([
            Evaluation(
                user_id=promotor_user.id, store_id=store.id, product_id=products[0].id,
                status="completed", freshness=4,
            ),
            Evaluation(
                user_id=promotor_user.id, store_id=store.id, product_id=products[1].id,
                status="in_progress", freshness=5,
            ),
        ])
        db_session.commit()

        response = client.get("/stats/dashboard", headers=supervisor_headers)
        assert response.status_code == 200
        data = response.json()
        assert data["visits_today"] == 2
        assert data["visits_this_month"] == 2
        assert data["active_promoters"] == 1
        assert data["total_stores"] == 1
        assert data["completed_evaluations"] == 1
        assert data["in_progress_evaluations"] == 1
        assert data["average_freshness"] == pytest.approx(4.5)

    def test_dashboard_open_to_promotor(self, client, promotor_headers, store):
        response = client.get("/stats/dashboard", headers=promotor_headers)
        assert response.status_code == 200
        assert response.json()["total_stores"] == 1
        assert response.json()["visits_today"] == 0

    def test_dashboard_requires_token(self, client):
        assert client.get("/stats/dashboard").status_code == 401
