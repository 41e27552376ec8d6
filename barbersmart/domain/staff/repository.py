"""Staff repository - Database operations for staff members"""

from typing import Optional

from sqlalchemy.orm import Session

from ...models import Staff


class StaffRepository:
    """Repository for staff database operations"""

    @staticmethod
    def get_staff_list(db: Session, barbershop_id: str, active_only: bool = False) -> list[Staff]:
        query = db.query(Staff).filter(Staff.barbershop_id == barbershop_id)
        if active_only:
            query = query.filter(Staff.active.is_(True))
        return query.order_by(Staff.name.asc()).all()

    @staticmethod
    def get_staff(db: Session, staff_id: str, barbershop_id: str) -> Optional[Staff]:
        return db.query(Staff).filter(Staff.id == staff_id, Staff.barbershop_id == barbershop_id).first()

    @staticmethod
    def create_staff(db: Session, barbershop_id: str, **data) -> Staff:
        staff = Staff(barbershop_id=barbershop_id, **data)
        db.add(staff)
        db.commit()
        db.refresh(staff)
        return staff

    @staticmethod
    def update_staff(db: Session, staff: Staff, **updates) -> Staff:
        for key, value in updates.items():
            if hasattr(staff, key):
                setattr(staff, key, value)
        db.commit()
        db.refresh(staff)
        return staff
