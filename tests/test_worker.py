import asyncio
from datetime import date, datetime

import pytest

from barbersmart import worker
from barbersmart.models import Appointment, Staff
from barbersmart.services.whatsapp_service import SendResult

TODAY = date(2030, 3, 4)


@pytest.fixture
def outbox(monkeypatch):
    sent = []

    async def fake_send(db, barbershop_id, phone, message, **kwargs):
        sent.append({"phone": phone, "message": message, **kwargs})
        if phone == "11900000000":
            return SendResult(success=False, error="Número inválido")
        return SendResult(success=True, message_id=f"msg-{len(sent)}")

    monkeypatch.setattr(worker, "send_message", fake_send)
    return sent


def _recurring(unit_id, day, **extra):
    values = {
        "barbershop_id": unit_id,
        "client_name": "João",
        "client_phone": "11987654321",
        "service_name": "Corte",
        "appointment_date": day,
        "appointment_time": "10:00",
        "is_recurring": True,
        "recurrence_group_id": "grupo-1",
    }
    values.update(extra)
    return Appointment(**values)


def test_only_due_recurring_appointments_are_selected(db, tenant):
    unit_id = tenant.root.id
    db.add_all(
        [
            _recurring(unit_id, date(2030, 3, 5)),
            _recurring(unit_id, date(2030, 3, 11)),
            _recurring(unit_id, date(2030, 3, 12)),
            _recurring(unit_id, date(2030, 3, 6), status="cancelado"),
            _recurring(unit_id, date(2030, 3, 6), is_paused=True),
            _recurring(unit_id, date(2030, 3, 6), is_recurring=False),
        ]
    )
    db.commit()

    pending = worker.get_pending_recurring_reminders(db, TODAY)

    assert [a.appointment_date for a in pending[unit_id]] == [date(2030, 3, 5), date(2030, 3, 11)]


def test_reminders_are_sent_once(db, tenant, outbox):
    carlos = Staff(barbershop_id=tenant.root.id, name="Carlos")
    db.add(carlos)
    db.commit()
    db.add(_recurring(tenant.root.id, date(2030, 3, 5), staff_id=carlos.id))
    db.commit()

    first = asyncio.run(worker.send_recurring_reminders(db, TODAY))
    second = asyncio.run(worker.send_recurring_reminders(db, TODAY))

    assert first == {"sent": 1, "failed": 0, "total": 1}
    assert second["total"] == 0
    assert outbox[0]["message_type"] == "recurring_reminder"
    assert "05/03/2030" in outbox[0]["message"]
    assert "Carlos" in outbox[0]["message"]


def test_failed_and_phoneless_reminders_are_retried_later(db, tenant, outbox):
    db.add_all(
        [
            _recurring(tenant.root.id, date(2030, 3, 5), client_phone=None),
            _recurring(tenant.root.id, date(2030, 3, 6), client_phone="11900000000"),
        ]
    )
    db.commit()

    result = asyncio.run(worker.send_recurring_reminders(db, TODAY))

    assert result == {"sent": 0, "failed": 2, "total": 2}
    assert len(outbox) == 1
    assert db.query(Appointment).filter(Appointment.recurring_reminder_sent_at.isnot(None)).count() == 0


# ============================================================================
# APPOINTMENT REMINDERS
# ============================================================================

NOW = datetime(2030, 3, 4, 9, 0)


def _single(unit_id, day, time, **extra):
    return _recurring(unit_id, day, appointment_time=time, is_recurring=False, recurrence_group_id=None, **extra)


def test_only_appointments_starting_soon_are_reminded(db, tenant):
    unit_id = tenant.root.id
    db.add_all(
        [
            _single(unit_id, TODAY, "08:30"),
            _single(unit_id, TODAY, "09:00"),
            _single(unit_id, TODAY, "10:45"),
            _single(unit_id, TODAY, "11:30"),
            _single(unit_id, TODAY, "10:00", status="cancelado"),
            _single(unit_id, TODAY, "10:00", is_paused=True),
            _recurring(unit_id, TODAY, appointment_time="10:15"),
        ]
    )
    db.commit()

    pending = worker.get_pending_appointment_reminders(db, NOW)

    assert [a.appointment_time for a in pending[unit_id]] == ["09:00", "10:15", "10:45"]


def test_window_crosses_midnight(db, tenant):
    db.add_all([_single(tenant.root.id, date(2030, 3, 5), "00:30"), _single(tenant.root.id, TODAY, "23:10")])
    db.commit()

    pending = worker.get_pending_appointment_reminders(db, datetime(2030, 3, 4, 23, 0))

    assert [a.appointment_time for a in pending[tenant.root.id]] == ["23:10", "00:30"]


def test_appointment_reminders_are_sent_once(db, tenant, outbox):
    db.add_all([_single(tenant.root.id, TODAY, "10:00"), _single(tenant.root.id, TODAY, "10:30", client_phone=None)])
    db.commit()

    first = asyncio.run(worker.send_appointment_reminders(db, NOW))
    second = asyncio.run(worker.send_appointment_reminders(db, NOW))

    assert first == {"sent": 1, "failed": 1, "total": 2}
    assert second == {"sent": 0, "failed": 1, "total": 1}
    assert outbox[0]["message_type"] == "reminder"
    assert "Lembrete do seu agendamento:" in outbox[0]["message"]
    assert "04/03/2030" in outbox[0]["message"]
    reminded = db.query(Appointment).filter(Appointment.reminder_sent_at.isnot(None)).one()
    assert reminded.recurring_reminder_sent_at is None


def test_both_reminder_jobs_are_scheduled():
    scheduled = {job.coroutine for job in worker.WorkerSettings.cron_jobs}
    assert scheduled == {worker.send_recurring_reminders_task, worker.send_appointment_reminders_task}
