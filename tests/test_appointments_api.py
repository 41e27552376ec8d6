import pytest

from barbersmart.models import Staff, Transaction

MONDAY = "2030-03-04"
SUNDAY = "2030-03-10"


@pytest.fixture
def staff(db, tenant):
    member = Staff(barbershop_id=tenant.root.id, name="Carlos", commission_rate=40)
    db.add(member)
    db.commit()
    return member


def _book(client, tenant, **payload):
    payload.setdefault("client_name", "João")
    payload.setdefault("appointment_date", MONDAY)
    payload.setdefault("appointment_time", "10:00")
    payload.setdefault("service_price", 50)
    return client.post("/appointments", json=payload, headers=tenant.headers)


def _weekly(client, tenant, count=4, **payload):
    return _book(client, tenant, recurrence={"rule": "weekly", "count": count}, **payload)


# ============================================================================
# CREATION
# ============================================================================


def test_single_appointment(client, tenant):
    response = _book(client, tenant, client_phone="(11) 98765-4321")
    assert response.status_code == 201
    body = response.json()
    assert len(body["created"]) == 1
    assert body["recurrence_group_id"] is None
    assert body["created"][0]["client_phone"] == "11987654321"
    assert body["created"][0]["status"] == "pendente"


def test_weekly_series(client, tenant, staff):
    response = _weekly(client, tenant, staff_id=staff.id)
    assert response.status_code == 201
    body = response.json()

    created = body["created"]
    assert [a["appointment_date"] for a in created] == ["2030-03-04", "2030-03-11", "2030-03-18", "2030-03-25"]
    assert [a["recurrence_index"] for a in created] == [0, 1, 2, 3]
    assert {a["recurrence_group_id"] for a in created} == {body["recurrence_group_id"]}
    assert body["summary"] == "Semanalmente por 4 vezes, a partir de 04/03/2030"
    assert body["total_price"] == 200


def test_staff_conflict_blocks_series(client, tenant, staff):
    assert _book(client, tenant, staff_id=staff.id, appointment_date="2030-03-11").status_code == 201

    response = _weekly(client, tenant, staff_id=staff.id)

    assert response.status_code == 409
    conflicts = response.json()["detail"]["conflicts"]
    assert [c["appointment_date"] for c in conflicts] == ["2030-03-11"]


def test_skip_conflicts_creates_remaining_dates(client, tenant, staff):
    _book(client, tenant, staff_id=staff.id, appointment_date="2030-03-11", appointment_time="10:15")

    response = _weekly(client, tenant, staff_id=staff.id, skip_conflicts=True)

    assert response.status_code == 201
    body = response.json()
    assert len(body["created"]) == 3
    assert body["skipped"][0]["appointment_date"] == "2030-03-11"
    assert body["summary"].startswith("Semanalmente por 3 vezes")


def test_other_staff_is_not_a_conflict(client, db, tenant, staff):
    other = Staff(barbershop_id=tenant.root.id, name="Bruno")
    db.add(other)
    db.commit()
    _book(client, tenant, staff_id=other.id)

    assert _book(client, tenant, staff_id=staff.id).status_code == 201


def test_closed_day_is_rejected(client, tenant):
    response = _book(client, tenant, appointment_date=SUNDAY)
    assert response.status_code == 409
    assert response.json()["detail"]["conflicts"][0]["reason"] == "Barbearia fechada neste dia da semana"

    assert _book(client, tenant, appointment_date=SUNDAY, validate_schedule=False).status_code == 201


def test_blocked_date(client, tenant):
    blocked = {"blocked_date": MONDAY, "reason": "Feriado"}
    client.post("/units/current/blocked-dates", json=blocked, headers=tenant.headers)
    response = _book(client, tenant)
    assert response.status_code == 409


def test_invalid_payload(client, tenant):
    assert _book(client, tenant, appointment_time="25:00").status_code == 422
    assert _book(client, tenant, recurrence={"rule": "daily", "count": 2}).status_code == 422
    assert _book(client, tenant, recurrence={"rule": "weekly", "count": 60}).status_code == 422
    assert _book(client, tenant, duration_minutes=0).status_code == 422
    assert _book(client, tenant, duration_minutes=600).status_code == 422


def test_recurrence_preview(client, tenant):
    response = client.post(
        "/appointments/recurrence/preview",
        params={"start_date": MONDAY, "price": 50},
        json={"rule": "biweekly", "count": 3},
        headers=tenant.headers,
    )
    assert response.status_code == 200
    body = response.json()
    assert body["dates"] == ["2030-03-04", "2030-03-18", "2030-04-01"]
    assert body["label"] == "Quinzenalmente"
    assert body["duration_label"] == "(1 mês)"
    assert body["total_price"] == 150
    assert body["count_options"][0] == {"value": 2, "label": "2 vezes (2 semanas)"}


# ============================================================================
# SERIES ACTIONS
# ============================================================================


def test_cancel_future_occurrences(client, tenant):
    created = _weekly(client, tenant).json()
    second = created["created"][1]["id"]

    response = client.post(f"/appointments/{second}/cancel", json={"scope": "future"}, headers=tenant.headers)

    assert response.status_code == 200
    assert response.json()["affected"] == 3

    series = client.get(f"/appointments/series/{created['recurrence_group_id']}", headers=tenant.headers).json()
    assert series["cancelled_count"] == 3
    assert series["pending_count"] == 1
    assert series["total_value"] == 50
    assert series["recurrence_label"] == "Semanalmente"


def test_cancel_single_leaves_series(client, tenant):
    created = _weekly(client, tenant).json()
    first = created["created"][0]["id"]

    response = client.post(f"/appointments/{first}/cancel", json={"scope": "single"}, headers=tenant.headers)

    assert response.json()["appointment_ids"] == [first]


def test_pause_and_resume(client, tenant):
    created = _weekly(client, tenant).json()
    ids = [a["id"] for a in created["created"]]

    paused = client.post(
        f"/appointments/{ids[0]}/pause", json={"scope": "all", "reason": "Férias"}, headers=tenant.headers
    )
    assert paused.json()["affected"] == 4

    resumed = client.post(f"/appointments/{ids[2]}/resume", json={"scope": "future"}, headers=tenant.headers)
    assert resumed.json()["affected"] == 2

    series = client.get(f"/appointments/series/{created['recurrence_group_id']}", headers=tenant.headers).json()
    assert series["paused_count"] == 2
    assert series["appointments"][0]["pause_reason"] == "Férias"


def test_pause_until_before_appointment(client, tenant):
    created = _book(client, tenant).json()
    response = client.post(
        f"/appointments/{created['created'][0]['id']}/pause",
        json={"scope": "single", "paused_until": "2030-03-01"},
        headers=tenant.headers,
    )
    assert response.status_code == 400


# ============================================================================
# STATUS
# ============================================================================


def test_completing_records_revenue_once(client, db, tenant, staff):
    appointment = _book(client, tenant, staff_id=staff.id).json()["created"][0]

    for _ in range(2):
        response = client.patch(
            f"/appointments/{appointment['id']}/status", json={"status": "concluido"}, headers=tenant.headers
        )
        assert response.status_code == 200

    transactions = db.query(Transaction).all()
    assert len(transactions) == 1
    assert transactions[0].type == "receita"
    assert transactions[0].amount == 50
    assert transactions[0].commission_amount == 20
    assert transactions[0].staff_id == staff.id


def test_invalid_status(client, tenant):
    appointment = _book(client, tenant).json()["created"][0]
    response = client.patch(
        f"/appointments/{appointment['id']}/status", json={"status": "done"}, headers=tenant.headers
    )
    assert response.status_code == 422


# ============================================================================
# QUERIES
# ============================================================================


def test_list_groups_series(client, tenant):
    _weekly(client, tenant, count=2)
    _book(client, tenant, appointment_time="15:00")

    response = client.get(
        "/appointments", params={"date_from": "2030-03-01", "date_to": "2030-03-31"}, headers=tenant.headers
    )

    body = response.json()
    assert body["total"] == 3
    assert len(body["standalone"]) == 1
    assert len(body["series"]) == 1
    assert body["series"][0]["size"] == 2
    assert body["date_from"] == "2030-03-01"


def test_list_search_and_pagination(client, tenant):
    _book(client, tenant, client_name="Maria")
    _book(client, tenant, client_name="Pedro", appointment_time="11:00")

    body = client.get("/appointments", params={"search": "mar"}, headers=tenant.headers).json()
    assert [a["client_name"] for a in body["appointments"]] == ["Maria"]

    page = client.get("/appointments", params={"page": 2, "page_size": 1}, headers=tenant.headers).json()
    assert page["total"] == 2
    assert len(page["appointments"]) == 1


def test_available_slots(client, tenant, staff):
    _book(client, tenant, staff_id=staff.id)

    response = client.get("/appointments/slots", params={"date": MONDAY, "staff_id": staff.id}, headers=tenant.headers)
    slots = response.json()["slots"]
    assert slots[0] == "09:00"
    assert slots[-1] == "17:30"
    assert "09:30" in slots
    assert "10:00" not in slots

    unit_wide = client.get("/appointments/slots", params={"date": MONDAY}, headers=tenant.headers).json()
    assert "10:00" in unit_wide["slots"]


def test_slots_on_closed_day(client, tenant):
    body = client.get("/appointments/slots", params={"date": SUNDAY}, headers=tenant.headers).json()
    assert body["slots"] == []
    assert body["reason"] == "Barbearia fechada neste dia da semana"


def test_appointments_are_scoped_to_unit(client, tenant):
    appointment = _book(client, tenant).json()["created"][0]
    other_unit = client.post("/units", json={"name": "Unidade Norte"}, headers=tenant.headers).json()

    headers = {**tenant.headers, "X-Barbershop-Id": other_unit["id"]}
    assert client.get(f"/appointments/{appointment['id']}", headers=headers).status_code == 404


def test_series_summary_covers_whole_group_across_pages(client, tenant):
    created = _weekly(client, tenant).json()
    group_id = created["recurrence_group_id"]

    page = client.get("/appointments", params={"page_size": 2}, headers=tenant.headers).json()

    assert len(page["appointments"]) == 2
    summary = page["series"][0]
    assert summary["size"] == 4
    assert summary["total_value"] == 200
    assert summary["last_date"] == "2030-03-25"

    full = client.get(f"/appointments/series/{group_id}", headers=tenant.headers).json()
    assert summary["size"] == full["size"]
    assert summary["total_value"] == full["total_value"]
