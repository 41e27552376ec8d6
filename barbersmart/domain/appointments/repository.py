"""Appointment repository - Database operations for appointments"""

from datetime import date
from typing import Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session, joinedload

from ...models import Appointment, Service, Staff, Transaction

SORT_COLUMNS = {
    "date": (Appointment.appointment_date, Appointment.appointment_time),
    "client": (Appointment.client_name,),
    "price": (Appointment.service_price,),
    "status": (Appointment.status,),
}


class AppointmentRepository:
    """Repository for appointment database operations"""

    @staticmethod
    def list_appointments(
        db: Session,
        barbershop_id: str,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        status: Optional[str] = None,
        staff_id: Optional[str] = None,
        search: Optional[str] = None,
        sort_by: str = "date",
        descending: bool = False,
        offset: int = 0,
        limit: int = 50,
    ) -> tuple[list[Appointment], int]:
        """Filtered, sorted page of appointments and the total match count"""
        query = db.query(Appointment).filter(Appointment.barbershop_id == barbershop_id)

        if date_from:
            query = query.filter(Appointment.appointment_date >= date_from)
        if date_to:
            query = query.filter(Appointment.appointment_date <= date_to)
        if status:
            query = query.filter(Appointment.status == status)
        if staff_id:
            query = query.filter(Appointment.staff_id == staff_id)
        if search:
            pattern = f"%{search.strip()}%"
            query = query.filter(
                or_(
                    Appointment.client_name.ilike(pattern),
                    Appointment.client_phone.ilike(pattern),
                    Appointment.service_name.ilike(pattern),
                )
            )

        total = query.count()
        columns = SORT_COLUMNS.get(sort_by, SORT_COLUMNS["date"])
        order = [c.desc() for c in columns] if descending else [c.asc() for c in columns]
        # Tie-breaker keeps pagination stable
        order.append(Appointment.id.asc())

        items = query.options(joinedload(Appointment.staff)).order_by(*order).offset(offset).limit(limit).all()
        return items, total

    @staticmethod
    def get_appointment(db: Session, appointment_id: str, barbershop_id: str) -> Optional[Appointment]:
        return (
            db.query(Appointment)
            .filter(Appointment.id == appointment_id, Appointment.barbershop_id == barbershop_id)
            .first()
        )

    @staticmethod
    def get_series(db: Session, group_id: str, barbershop_id: str) -> list[Appointment]:
        return (
            db.query(Appointment)
            .filter(Appointment.recurrence_group_id == group_id, Appointment.barbershop_id == barbershop_id)
            .order_by(Appointment.appointment_date.asc(), Appointment.appointment_time.asc())
            .all()
        )

    @staticmethod
    def get_booked_for_dates(
        db: Session, barbershop_id: str, staff_id: Optional[str], dates: list[date]
    ) -> list[Appointment]:
        """Non-cancelled appointments on the given dates (for one staff member when given)"""
        if not dates:
            return []
        query = db.query(Appointment).filter(
            Appointment.barbershop_id == barbershop_id,
            Appointment.appointment_date.in_(dates),
            Appointment.status != "cancelado",
        )
        if staff_id:
            query = query.filter(Appointment.staff_id == staff_id)
        return query.all()

    @staticmethod
    def create_appointments(db: Session, rows: list[dict]) -> list[Appointment]:
        """Insert all rows in one transaction"""
        appointments = [Appointment(**row) for row in rows]
        db.add_all(appointments)
        db.commit()
        for appointment in appointments:
            db.refresh(appointment)
        return appointments

    @staticmethod
    def update_appointments(db: Session, appointments: list[Appointment], **updates) -> list[Appointment]:
        for appointment in appointments:
            for key, value in updates.items():
                setattr(appointment, key, value)
        db.commit()
        return appointments

    @staticmethod
    def get_staff(db: Session, staff_id: str, barbershop_id: str) -> Optional[Staff]:
        return db.query(Staff).filter(Staff.id == staff_id, Staff.barbershop_id == barbershop_id).first()

    @staticmethod
    def get_service(db: Session, service_id: str, barbershop_id: str) -> Optional[Service]:
        return db.query(Service).filter(Service.id == service_id, Service.barbershop_id == barbershop_id).first()

    @staticmethod
    def get_revenue_transaction(db: Session, appointment_id: str) -> Optional[Transaction]:
        return (
            db.query(Transaction)
            .filter(Transaction.appointment_id == appointment_id, Transaction.type == "receita")
            .first()
        )

    @staticmethod
    def create_transaction(db: Session, **data) -> Transaction:
        transaction = Transaction(**data)
        db.add(transaction)
        db.commit()
        db.refresh(transaction)
        return transaction
