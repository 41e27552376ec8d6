from barbersmart.domain.units.repository import UnitRepository
from barbersmart.models import Barbershop, BusinessHours, UserBarbershop
from barbersmart.models_integrations import BarbershopDomain

from .conftest import auth_headers


def _create_unit(client, tenant, **payload):
    payload.setdefault("name", "Unidade Centro")
    return client.post("/units", json=payload, headers=tenant.headers)


def test_list_units(client, tenant):
    response = client.get("/units", headers=tenant.headers)
    assert response.status_code == 200
    assert [u["name"] for u in response.json()] == ["Barbearia Matriz"]


def test_requests_without_token_are_unauthorized(client, tenant):
    assert client.get("/units/tree").status_code in (401, 403)


def test_create_child_unit(client, db, tenant):
    response = _create_unit(client, tenant, subdomain="Centro", phone="(11) 3333-4444")
    assert response.status_code == 201
    unit = response.json()
    assert unit["parent_id"] == tenant.root.id
    assert unit["phone"] == "1133334444"

    assert db.query(UserBarbershop).filter(UserBarbershop.barbershop_id == unit["id"]).count() == 1
    assert db.query(BusinessHours).filter(BusinessHours.barbershop_id == unit["id"]).count() == 7
    domain = db.query(BarbershopDomain).filter(BarbershopDomain.barbershop_id == unit["id"]).one()
    assert domain.subdomain == "centro"

    tree = client.get("/units/tree", headers=tenant.headers).json()
    assert tree["root"]["id"] == tenant.root.id
    assert [c["name"] for c in tree["children"]] == ["Unidade Centro"]


def test_failed_step_undoes_unit_creation(client, db, tenant, monkeypatch):
    def broken(*args, **kwargs):
        raise RuntimeError("database went away")

    monkeypatch.setattr(UnitRepository, "replace_business_hours", staticmethod(broken))

    response = _create_unit(client, tenant, name="Unidade Falha")

    assert response.status_code == 500
    assert response.json()["detail"] == "Erro ao criar unidade"
    assert db.query(Barbershop).filter(Barbershop.name == "Unidade Falha").count() == 0
    assert db.query(UserBarbershop).count() == 1


def test_duplicate_subdomain_is_rejected_and_undone(client, db, tenant):
    assert _create_unit(client, tenant, subdomain="centro").status_code == 201

    response = _create_unit(client, tenant, name="Unidade Dois", subdomain="centro")

    assert response.status_code == 409
    assert db.query(Barbershop).filter(Barbershop.name == "Unidade Dois").count() == 0
    assert db.query(BarbershopDomain).count() == 1


def test_new_user_creates_own_root(client, db, tenant):
    headers = auth_headers("user-new")
    response = client.post("/units", json={"name": "Outra Barbearia"}, headers=headers)
    assert response.status_code == 201
    assert response.json()["parent_id"] is None


def test_only_root_admins_attach_units(client, tenant):
    response = client.post(
        "/units", json={"name": "Intrusa", "parent_id": tenant.root.id}, headers=auth_headers("user-stranger")
    )
    assert response.status_code == 403


def test_foreign_unit_header_is_rejected(client, tenant):
    other = client.post("/units", json={"name": "Outra Barbearia"}, headers=auth_headers("user-new")).json()
    response = client.get("/units/tree", headers=auth_headers(tenant.user.id, other["id"]))
    assert response.status_code == 403


def test_root_cannot_be_deactivated(client, tenant):
    response = client.post(f"/units/{tenant.root.id}/toggle", headers=tenant.headers)
    assert response.status_code == 400


def test_toggle_child_unit(client, tenant):
    unit = _create_unit(client, tenant).json()
    response = client.post(f"/units/{unit['id']}/toggle", headers=tenant.headers)
    assert response.status_code == 200
    assert response.json()["active"] is False


def test_business_hours_validation(client, tenant):
    monday = {"day_of_week": "monday", "is_open": True, "open_time": "09:00", "close_time": "18:00"}

    response = client.put("/units/current/business-hours", json={"days": [monday, monday]}, headers=tenant.headers)
    assert response.status_code == 400

    inverted = {**monday, "open_time": "18:00", "close_time": "09:00"}
    response = client.put("/units/current/business-hours", json={"days": [inverted]}, headers=tenant.headers)
    assert response.status_code == 400

    response = client.put("/units/current/business-hours", json={"days": [monday]}, headers=tenant.headers)
    assert response.status_code == 200
    assert len(client.get("/units/current/business-hours", headers=tenant.headers).json()) == 1


def test_update_unit_can_clear_optional_fields(client, tenant):
    unit_id = _create_unit(client, tenant, phone="(11) 3333-4444", address="Rua A, 10").json()["id"]

    response = client.patch(f"/units/{unit_id}", json={"phone": None}, headers=tenant.headers)

    assert response.status_code == 200
    body = response.json()
    assert body["phone"] is None
    assert body["address"] == "Rua A, 10"
    assert body["name"] == "Unidade Centro"

    assert client.patch(f"/units/{unit_id}", json={"name": None}, headers=tenant.headers).status_code == 422
