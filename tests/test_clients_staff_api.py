from datetime import date

from barbersmart.models import Appointment, Client


def _client(client, tenant, **payload):
    payload.setdefault("name", "Maria Souza")
    return client.post("/clients", json=payload, headers=tenant.headers)


# ============================================================================
# CLIENTS
# ============================================================================


def test_create_client_normalizes_documents(client, tenant):
    response = _client(client, tenant, phone="(11) 91234-5678", cpf="529.982.247-25", email="Maria@Email.com")
    assert response.status_code == 201
    body = response.json()
    assert body["phone"] == "11912345678"
    assert body["cpf"] == "52998224725"
    assert body["email"] == "maria@email.com"
    assert body["active"] is True


def test_invalid_client_documents(client, tenant):
    assert _client(client, tenant, cpf="111.111.111-11").status_code == 422
    assert _client(client, tenant, name="   ").status_code == 422


def test_duplicate_phone(client, tenant):
    _client(client, tenant, phone="11912345678")
    response = _client(client, tenant, name="Outra Maria", phone="(11) 91234-5678")
    assert response.status_code == 409


def test_search_filter_and_paginate(client, tenant):
    _client(client, tenant, name="Ana", tags=["vip"])
    _client(client, tenant, name="Bruno", email="bruno@email.com")
    _client(client, tenant, name="Carla", tags=["vip"])

    body = client.get("/clients", params={"search": "bruno@"}, headers=tenant.headers).json()
    assert [c["name"] for c in body["clients"]] == ["Bruno"]

    body = client.get("/clients", params={"tag": "vip", "descending": True}, headers=tenant.headers).json()
    assert [c["name"] for c in body["clients"]] == ["Carla", "Ana"]

    body = client.get("/clients", params={"page": 2, "page_size": 2}, headers=tenant.headers).json()
    assert body["total"] == 3
    assert [c["name"] for c in body["clients"]] == ["Carla"]


def test_delete_client_without_history(client, db, tenant):
    created = _client(client, tenant).json()
    response = client.delete(f"/clients/{created['id']}", headers=tenant.headers)
    assert response.json()["deleted"] is True
    assert db.query(Client).count() == 0


def test_client_with_history_is_deactivated(client, db, tenant):
    created = _client(client, tenant).json()
    db.add(
        Appointment(
            barbershop_id=tenant.root.id,
            client_id=created["id"],
            client_name="Maria Souza",
            appointment_date=date(2030, 3, 4),
            appointment_time="10:00",
        )
    )
    db.commit()

    response = client.delete(f"/clients/{created['id']}", headers=tenant.headers)

    assert response.json()["deleted"] is False
    assert client.get(f"/clients/{created['id']}", headers=tenant.headers).json()["active"] is False
    history = client.get(f"/clients/{created['id']}/history", headers=tenant.headers).json()
    assert [a["appointment_date"] for a in history] == ["2030-03-04"]


# ============================================================================
# STAFF
# ============================================================================


def test_schedule_validation_endpoint(client, tenant):
    schedule = {
        "monday": {"enabled": True, "start": "08:00", "end": "18:00"},
        "sunday": {"enabled": True, "start": "09:00", "end": "12:00"},
    }
    response = client.post("/staff/schedule/validate", json={"schedule": schedule}, headers=tenant.headers)
    body = response.json()
    assert body["can_save"] is False
    assert sorted(c["type"] for c in body["conflicts"]) == ["closed_day", "outside_hours"]


def test_staff_with_conflicting_schedule_is_rejected(client, tenant):
    schedule = {"sunday": {"enabled": True, "start": "09:00", "end": "12:00"}}
    response = client.post("/staff", json={"name": "Carlos", "schedule": schedule}, headers=tenant.headers)
    assert response.status_code == 400
    assert response.json()["detail"]["conflicts"][0]["day"] == "sunday"


def test_create_and_update_staff(client, tenant):
    schedule = {"monday": {"enabled": True, "start": "10:00", "end": "16:00"}}
    response = client.post(
        "/staff", json={"name": "Carlos", "commission_rate": 40, "schedule": schedule}, headers=tenant.headers
    )
    assert response.status_code == 201
    staff_id = response.json()["id"]

    response = client.patch(f"/staff/{staff_id}", json={"active": False}, headers=tenant.headers)
    assert response.json()["active"] is False
    assert client.get("/staff", params={"active_only": True}, headers=tenant.headers).json() == []

    assert client.patch(f"/staff/{staff_id}", json={"commission_rate": 120}, headers=tenant.headers).status_code == 422


# ============================================================================
# SERVICE CATALOG
# ============================================================================


def test_service_catalog(client, tenant):
    response = client.post("/services", json={"name": "Corte", "price": 50}, headers=tenant.headers)
    assert response.status_code == 201
    service_id = response.json()["id"]

    assert client.post("/services", json={"name": "Barba", "price": -1}, headers=tenant.headers).status_code == 422

    client.patch(f"/services/{service_id}", json={"active": False}, headers=tenant.headers)
    assert client.get("/services", params={"active_only": True}, headers=tenant.headers).json() == []
