from datetime import date

import pytest
from fastapi import HTTPException
from sqlalchemy.exc import OperationalError

from barbersmart.auth import TenantContext
from barbersmart.domain.reports.repository import ReportRepository
from barbersmart.domain.reports.service import ReportService
from barbersmart.models import Appointment, Barbershop, Review, Staff, Transaction

TODAY = date(2030, 3, 15)


def _appointment(unit_id, status, day=date(2030, 3, 5), **extra):
    return Appointment(
        barbershop_id=unit_id,
        client_name="Cliente",
        service_name=extra.pop("service_name", "Corte"),
        service_price=extra.pop("service_price", 50.0),
        appointment_date=day,
        appointment_time="10:00",
        status=status,
        **extra,
    )


def _revenue(unit_id, amount, day=date(2030, 3, 5), **extra):
    return Transaction(barbershop_id=unit_id, type="receita", amount=amount, transaction_date=day, **extra)


@pytest.fixture
def children(db, tenant):
    north = Barbershop(name="Unidade Norte", parent_id=tenant.root.id)
    south = Barbershop(name="Unidade Sul", parent_id=tenant.root.id)
    closed = Barbershop(name="Unidade Fechada", parent_id=tenant.root.id, active=False)
    db.add_all([north, south, closed])
    db.commit()
    return north, south, closed


def _context(tenant, *units) -> TenantContext:
    ids = [tenant.root.id] + [u.id for u in units]
    return TenantContext(user=tenant.user, barbershop_id=tenant.root.id, role="admin", unit_ids=ids)


# ============================================================================
# MULTI-UNIT REPORT
# ============================================================================


def test_root_alone_is_reported_without_children(db, tenant):
    root_id = tenant.root.id
    db.add_all(
        [
            _appointment(root_id, "concluido"),
            _appointment(root_id, "cancelado"),
            _appointment(root_id, "concluido", day=date(2030, 4, 2)),
            _revenue(root_id, 50.0),
            Review(barbershop_id=root_id, rating=4),
            Review(barbershop_id=root_id, rating=5),
        ]
    )
    db.commit()

    report = ReportService(db).multi_unit_report(tenant.context(), "month", today=TODAY)

    assert (report["start_date"], report["end_date"]) == (date(2030, 3, 1), date(2030, 3, 31))
    assert report["unit_ids"] == [root_id]
    unit = report["units"][0]
    assert unit["appointments"] == 2
    assert unit["occupancy_rate"] == 50
    assert unit["average_ticket"] == 50
    assert unit["rating"] == 4.5
    assert unit["top_services"] == [{"name": "Corte", "count": 2}]
    assert report["totals"]["best_unit"] == "Barbearia Matriz"


def test_active_children_are_rolled_up(db, tenant, children):
    north, south, closed = children
    db.add_all(
        [
            _appointment(north.id, "concluido", service_price=80.0),
            _appointment(north.id, "confirmado"),
            _appointment(south.id, "pendente"),
            _appointment(closed.id, "concluido"),
            _revenue(north.id, 80.0),
            _revenue(south.id, 30.0),
            _revenue(closed.id, 500.0),
        ]
    )
    db.commit()

    report = ReportService(db).multi_unit_report(_context(tenant, north, south, closed), "month", today=TODAY)

    assert sorted(u["name"] for u in report["units"]) == ["Unidade Norte", "Unidade Sul"]
    totals = report["totals"]
    assert totals["revenue"] == 110
    assert totals["appointments"] == 3
    assert totals["completed"] == 1
    assert totals["occupancy_rate"] == 67
    assert totals["average_rating"] == 0
    assert totals["best_unit"] == "Unidade Norte"
    assert totals["worst_unit"] == "Unidade Sul"


def test_unit_filter_limits_the_report(db, tenant, children):
    north, south, _ = children
    report = ReportService(db).multi_unit_report(
        _context(tenant, north, south), "week", unit_ids=[south.id], today=TODAY
    )
    assert report["unit_ids"] == [south.id]
    assert (report["start_date"], report["end_date"]) == (date(2030, 3, 11), date(2030, 3, 17))


def test_foreign_unit_filter_is_denied(db, tenant):
    with pytest.raises(HTTPException) as exc_info:
        ReportService(db).multi_unit_report(tenant.context(), "month", unit_ids=["outra"], today=TODAY)
    assert exc_info.value.status_code == 403


def test_unknown_period(db, tenant):
    with pytest.raises(HTTPException) as exc_info:
        ReportService(db).multi_unit_report(tenant.context(), "decade", today=TODAY)
    assert exc_info.value.status_code == 400


def test_multi_unit_endpoint(client, tenant):
    response = client.get("/reports/multi-unit", params={"period": "week"}, headers=tenant.headers)
    assert response.status_code == 200
    body = response.json()
    assert body["period"] == "week"
    assert body["totals"]["revenue"] == 0
    assert body["totals"]["worst_unit"] == "Barbearia Matriz"

    assert client.get("/reports/multi-unit", params={"period": "decade"}, headers=tenant.headers).status_code == 422


def test_dashboard_endpoint(client, tenant):
    response = client.get("/reports/dashboard", headers=tenant.headers)
    assert response.status_code == 200
    body = response.json()
    assert [u["name"] for u in body["units"]] == ["Barbearia Matriz"]
    assert body["total_today_appointments"] == 0


def test_failing_query_aborts_the_report(client, tenant, monkeypatch):
    def broken(*args, **kwargs):
        raise OperationalError("SELECT", {}, Exception("connection reset"))

    monkeypatch.setattr(ReportRepository, "get_revenue", staticmethod(broken))

    response = client.get("/reports/multi-unit", headers=tenant.headers)

    assert response.status_code == 500
    assert response.json()["detail"] == "Erro ao carregar relatórios"


def test_missing_reviews_table_rates_zero(db, tenant):
    db.add(_appointment(tenant.root.id, "concluido"))
    db.commit()
    Review.__table__.drop(bind=db.get_bind())

    assert ReportRepository.get_average_rating(db, tenant.root.id) == 0.0
    report = ReportService(db).multi_unit_report(tenant.context(), "month", today=TODAY)
    assert report["units"][0]["rating"] == 0
    assert report["units"][0]["appointments"] == 1


# ============================================================================
# COMMISSIONS
# ============================================================================


def test_commissions_endpoint(client, db, tenant):
    carlos = Staff(barbershop_id=tenant.root.id, name="Carlos", commission_rate=40)
    db.add(carlos)
    db.commit()
    db.add_all(
        [
            _revenue(tenant.root.id, 100.0, staff_id=carlos.id),
            _revenue(tenant.root.id, 50.0, staff_id=carlos.id, commission_rate=50, commission_amount=25),
            _revenue(tenant.root.id, 70.0, day=date(2030, 4, 1), staff_id=carlos.id),
        ]
    )
    db.commit()

    response = client.get(
        "/reports/commissions",
        params={"start_date": "2030-03-01", "end_date": "2030-03-31"},
        headers=tenant.headers,
    )

    assert response.status_code == 200
    body = response.json()
    assert body["total_revenue"] == 150
    assert body["total_commissions"] == 65
    assert body["transactions_count"] == 2
    assert body["staff"][0]["name"] == "Carlos"


def test_commissions_reject_inverted_range(client, tenant):
    response = client.get(
        "/reports/commissions",
        params={"start_date": "2030-03-31", "end_date": "2030-03-01"},
        headers=tenant.headers,
    )
    assert response.status_code == 400
