"""Report repository - Aggregate queries per unit and date range"""

import logging
from datetime import date, datetime, time, timedelta
from typing import Optional

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ...models import Appointment, Client, Review, Staff, Transaction

logger = logging.getLogger(__name__)

MISSING_TABLE_MARKERS = ("does not exist", "no such table")


def _day_bounds(start: date, end: date) -> tuple[datetime, datetime]:
    return datetime.combine(start, time.min), datetime.combine(end + timedelta(days=1), time.min)


class ReportRepository:
    """Repository for report queries, each scoped to one unit"""

    @staticmethod
    def get_revenue(db: Session, unit_id: str, start: date, end: date) -> float:
        total = (
            db.query(func.sum(Transaction.amount))
            .filter(
                Transaction.barbershop_id == unit_id,
                Transaction.type == "receita",
                Transaction.transaction_date >= start,
                Transaction.transaction_date <= end,
            )
            .scalar()
        )
        return float(total or 0)

    @staticmethod
    def get_appointments(db: Session, unit_id: str, start: date, end: date) -> list[Appointment]:
        return (
            db.query(Appointment)
            .filter(
                Appointment.barbershop_id == unit_id,
                Appointment.appointment_date >= start,
                Appointment.appointment_date <= end,
            )
            .all()
        )

    @staticmethod
    def count_active_clients(db: Session, unit_id: str) -> int:
        return db.query(Client).filter(Client.barbershop_id == unit_id, Client.active.is_(True)).count()

    @staticmethod
    def count_new_clients(db: Session, unit_id: str, start: date, end: date) -> int:
        lower, upper = _day_bounds(start, end)
        return (
            db.query(Client)
            .filter(Client.barbershop_id == unit_id, Client.created_at >= lower, Client.created_at < upper)
            .count()
        )

    @staticmethod
    def get_average_rating(db: Session, unit_id: str) -> float:
        """Mean review rating; 0 when the unit has no reviews or reviews are not set up"""
        try:
            avg = db.query(func.avg(Review.rating)).filter(Review.barbershop_id == unit_id).scalar()
        except SQLAlchemyError as e:
            message = str(e).lower()
            if not any(marker in message for marker in MISSING_TABLE_MARKERS):
                raise
            db.rollback()
            logger.info("ℹ️ Reviews not configured, rating defaults to 0")
            return 0.0
        return float(avg or 0)

    @staticmethod
    def get_staff(db: Session, unit_id: str) -> list[Staff]:
        return db.query(Staff).filter(Staff.barbershop_id == unit_id).all()

    @staticmethod
    def get_revenue_transactions(
        db: Session, unit_id: str, start: date, end: date, staff_id: Optional[str] = None
    ) -> list[Transaction]:
        query = db.query(Transaction).filter(
            Transaction.barbershop_id == unit_id,
            Transaction.type == "receita",
            Transaction.transaction_date >= start,
            Transaction.transaction_date <= end,
        )
        if staff_id:
            query = query.filter(Transaction.staff_id == staff_id)
        return query.order_by(Transaction.transaction_date.desc()).all()
