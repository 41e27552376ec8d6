"""Unit repository - Database operations for units and their opening hours"""

from datetime import date
from typing import Optional

from sqlalchemy.orm import Session

from ...models import Barbershop, BlockedDate, BusinessHours, SpecialHours, UserBarbershop
from ...models_integrations import BarbershopDomain


class UnitRepository:
    """Repository for unit database operations"""

    @staticmethod
    def get_unit(db: Session, unit_id: str) -> Optional[Barbershop]:
        return db.query(Barbershop).filter(Barbershop.id == unit_id).first()

    @staticmethod
    def get_units(db: Session, unit_ids: list[str], active_only: bool = False) -> list[Barbershop]:
        if not unit_ids:
            return []
        query = db.query(Barbershop).filter(Barbershop.id.in_(unit_ids))
        if active_only:
            query = query.filter(Barbershop.active.is_(True))
        return query.order_by(Barbershop.created_at.asc(), Barbershop.name.asc()).all()

    @staticmethod
    def get_children(db: Session, root_id: str) -> list[Barbershop]:
        return (
            db.query(Barbershop)
            .filter(Barbershop.parent_id == root_id)
            .order_by(Barbershop.created_at.asc(), Barbershop.name.asc())
            .all()
        )

    @staticmethod
    def create_unit(db: Session, **unit_data) -> Barbershop:
        unit = Barbershop(**unit_data)
        db.add(unit)
        db.commit()
        db.refresh(unit)
        return unit

    @staticmethod
    def update_unit(db: Session, unit: Barbershop, **updates) -> Barbershop:
        for key, value in updates.items():
            if hasattr(unit, key):
                setattr(unit, key, value)
        db.commit()
        db.refresh(unit)
        return unit

    @staticmethod
    def delete_unit(db: Session, unit_id: str) -> None:
        db.query(Barbershop).filter(Barbershop.id == unit_id).delete(synchronize_session=False)
        db.commit()

    @staticmethod
    def link_user(db: Session, user_id: str, unit_id: str, role: str = "admin") -> UserBarbershop:
        link = UserBarbershop(user_id=user_id, barbershop_id=unit_id, role=role)
        db.add(link)
        db.commit()
        db.refresh(link)
        return link

    @staticmethod
    def unlink_user(db: Session, link_id: str) -> None:
        db.query(UserBarbershop).filter(UserBarbershop.id == link_id).delete(synchronize_session=False)
        db.commit()

    @staticmethod
    def get_membership(db: Session, user_id: str, unit_id: str) -> Optional[UserBarbershop]:
        return (
            db.query(UserBarbershop)
            .filter(UserBarbershop.user_id == user_id, UserBarbershop.barbershop_id == unit_id)
            .first()
        )

    @staticmethod
    def create_domain(db: Session, unit_id: str, subdomain: str) -> BarbershopDomain:
        domain = BarbershopDomain(barbershop_id=unit_id, subdomain=subdomain)
        db.add(domain)
        db.commit()
        db.refresh(domain)
        return domain

    @staticmethod
    def delete_domain(db: Session, unit_id: str) -> None:
        db.query(BarbershopDomain).filter(BarbershopDomain.barbershop_id == unit_id).delete(
            synchronize_session=False
        )
        db.commit()

    # ========================================================================
    # OPENING HOURS
    # ========================================================================

    @staticmethod
    def get_business_hours(db: Session, unit_id: str) -> list[BusinessHours]:
        return db.query(BusinessHours).filter(BusinessHours.barbershop_id == unit_id).all()

    @staticmethod
    def replace_business_hours(db: Session, unit_id: str, days: list[dict]) -> list[BusinessHours]:
        db.query(BusinessHours).filter(BusinessHours.barbershop_id == unit_id).delete(synchronize_session=False)
        rows = [BusinessHours(barbershop_id=unit_id, **day) for day in days]
        db.add_all(rows)
        db.commit()
        return rows

    @staticmethod
    def delete_business_hours(db: Session, unit_id: str) -> None:
        db.query(BusinessHours).filter(BusinessHours.barbershop_id == unit_id).delete(synchronize_session=False)
        db.commit()

    @staticmethod
    def get_blocked_dates(db: Session, unit_id: str, start: Optional[date] = None) -> list[BlockedDate]:
        query = db.query(BlockedDate).filter(BlockedDate.barbershop_id == unit_id)
        if start:
            query = query.filter(BlockedDate.blocked_date >= start)
        return query.order_by(BlockedDate.blocked_date.asc()).all()

    @staticmethod
    def add_blocked_date(db: Session, unit_id: str, blocked_date: date, reason: Optional[str]) -> BlockedDate:
        row = BlockedDate(barbershop_id=unit_id, blocked_date=blocked_date, reason=reason)
        db.add(row)
        db.commit()
        db.refresh(row)
        return row

    @staticmethod
    def delete_blocked_date(db: Session, unit_id: str, blocked_id: str) -> int:
        deleted = (
            db.query(BlockedDate)
            .filter(BlockedDate.id == blocked_id, BlockedDate.barbershop_id == unit_id)
            .delete(synchronize_session=False)
        )
        db.commit()
        return deleted

    @staticmethod
    def get_special_hours(db: Session, unit_id: str, start: Optional[date] = None) -> list[SpecialHours]:
        query = db.query(SpecialHours).filter(SpecialHours.barbershop_id == unit_id)
        if start:
            query = query.filter(SpecialHours.special_date >= start)
        return query.order_by(SpecialHours.special_date.asc()).all()

    @staticmethod
    def add_special_hours(db: Session, unit_id: str, **data) -> SpecialHours:
        row = SpecialHours(barbershop_id=unit_id, **data)
        db.add(row)
        db.commit()
        db.refresh(row)
        return row

    @staticmethod
    def delete_special_hours(db: Session, unit_id: str, special_id: str) -> int:
        deleted = (
            db.query(SpecialHours)
            .filter(SpecialHours.id == special_id, SpecialHours.barbershop_id == unit_id)
            .delete(synchronize_session=False)
        )
        db.commit()
        return deleted
