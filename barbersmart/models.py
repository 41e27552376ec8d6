import uuid

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base


def generate_uuid():
    """Generate a UUID string primary key"""
    return str(uuid.uuid4())


class User(Base):
    """Authenticated profile, keyed by the token subject"""

    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    email = Column(String(255), unique=True, index=True, nullable=True)
    full_name = Column(String(255), nullable=True)
    avatar_url = Column(String(500), nullable=True)
    created_at = Column(DateTime, server_default=func.now())

    memberships = relationship("UserBarbershop", back_populates="user", cascade="all, delete-orphan")


class Barbershop(Base):
    """A unit. The root unit of a tenant (matriz) has no parent"""

    __tablename__ = "barbershops"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    name = Column(String(255), nullable=False)
    parent_id = Column(String(36), ForeignKey("barbershops.id"), nullable=True, index=True)
    address = Column(String(500), nullable=True)
    phone = Column(String(30), nullable=True)
    email = Column(String(255), nullable=True)
    active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    parent = relationship("Barbershop", remote_side=[id], backref="children")
    memberships = relationship("UserBarbershop", back_populates="barbershop", cascade="all, delete-orphan")


class UserBarbershop(Base):
    __tablename__ = "user_barbershops"
    __table_args__ = (UniqueConstraint("user_id", "barbershop_id", name="uq_user_barbershop"),)

    id = Column(String(36), primary_key=True, default=generate_uuid)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    barbershop_id = Column(String(36), ForeignKey("barbershops.id"), nullable=False, index=True)
    role = Column(String(30), default="admin", nullable=False)  # admin, barbeiro, recepcionista
    created_at = Column(DateTime, server_default=func.now())

    user = relationship("User", back_populates="memberships")
    barbershop = relationship("Barbershop", back_populates="memberships")


class Client(Base):
    __tablename__ = "clients"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    barbershop_id = Column(String(36), ForeignKey("barbershops.id"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    phone = Column(String(30), nullable=True)
    email = Column(String(255), nullable=True)
    cpf = Column(String(14), nullable=True)
    birth_date = Column(Date, nullable=True)
    notes = Column(Text, nullable=True)
    tags = Column(JSON, nullable=True)  # list of strings
    active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())


class Staff(Base):
    __tablename__ = "staff"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    barbershop_id = Column(String(36), ForeignKey("barbershops.id"), nullable=False, index=True)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=True)
    name = Column(String(255), nullable=False)
    phone = Column(String(30), nullable=True)
    email = Column(String(255), nullable=True)
    specialties = Column(JSON, nullable=True)
    commission_rate = Column(Float, default=0, nullable=True)  # percentage
    # Weekly schedule, standard ({"monday": {...}}) or multi-unit ({"units": {unit_id: {...}}})
    schedule = Column(JSON, nullable=True)
    active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, server_default=func.now())


class Service(Base):
    __tablename__ = "services"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    barbershop_id = Column(String(36), ForeignKey("barbershops.id"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    price = Column(Float, nullable=False, default=0)
    duration_minutes = Column(Integer, nullable=False, default=30)
    active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, server_default=func.now())


class Appointment(Base):
    __tablename__ = "appointments"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    barbershop_id = Column(String(36), ForeignKey("barbershops.id"), nullable=False, index=True)
    client_id = Column(String(36), ForeignKey("clients.id"), nullable=True)
    staff_id = Column(String(36), ForeignKey("staff.id"), nullable=True, index=True)
    service_id = Column(String(36), ForeignKey("services.id"), nullable=True)

    client_name = Column(String(255), nullable=False)
    client_phone = Column(String(30), nullable=True)
    service_name = Column(String(255), nullable=True)
    service_price = Column(Float, nullable=True)
    duration_minutes = Column(Integer, nullable=True, default=30)

    appointment_date = Column(Date, nullable=False, index=True)
    appointment_time = Column(String(5), nullable=False)  # HH:MM
    status = Column(String(20), default="pendente", nullable=False)  # pendente, confirmado, concluido, cancelado
    notes = Column(Text, nullable=True)

    # Payment tracking
    # pending, paid_online, paid_at_location, partial, overdue, refunded
    payment_status = Column(String(30), nullable=True)
    payment_method_chosen = Column(String(20), nullable=True)  # online, at_location
    payment_amount = Column(Float, nullable=True)
    payment_gateway = Column(String(30), nullable=True)
    payment_id = Column(String(255), nullable=True)

    # Recurrence linkage
    is_recurring = Column(Boolean, default=False, nullable=False)
    recurrence_group_id = Column(String(36), nullable=True, index=True)
    recurrence_rule = Column(String(20), nullable=True)  # weekly, biweekly, triweekly, monthly, custom
    recurrence_index = Column(Integer, nullable=True)
    original_date = Column(Date, nullable=True)
    recurring_reminder_sent_at = Column(DateTime, nullable=True)
    reminder_sent_at = Column(DateTime, nullable=True)

    # Pause state
    is_paused = Column(Boolean, default=False, nullable=False)
    paused_at = Column(DateTime, nullable=True)
    paused_until = Column(Date, nullable=True)
    pause_reason = Column(Text, nullable=True)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    client = relationship("Client")
    staff = relationship("Staff")
    service = relationship("Service")


class Transaction(Base):
    __tablename__ = "transactions"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    barbershop_id = Column(String(36), ForeignKey("barbershops.id"), nullable=False, index=True)
    staff_id = Column(String(36), ForeignKey("staff.id"), nullable=True, index=True)
    appointment_id = Column(String(36), ForeignKey("appointments.id"), nullable=True)
    type = Column(String(20), nullable=False)  # receita, despesa
    amount = Column(Float, nullable=False)
    description = Column(String(500), nullable=True)
    category = Column(String(100), nullable=True)
    payment_method = Column(String(30), nullable=True)
    commission_rate = Column(Float, nullable=True)
    commission_amount = Column(Float, nullable=True)
    transaction_date = Column(Date, nullable=False, index=True)
    created_at = Column(DateTime, server_default=func.now())

    staff = relationship("Staff")


class BusinessHours(Base):
    __tablename__ = "business_hours"
    __table_args__ = (UniqueConstraint("barbershop_id", "day_of_week", name="uq_business_hours_day"),)

    id = Column(String(36), primary_key=True, default=generate_uuid)
    barbershop_id = Column(String(36), ForeignKey("barbershops.id"), nullable=False, index=True)
    day_of_week = Column(String(10), nullable=False)  # monday ... sunday
    is_open = Column(Boolean, default=True, nullable=False)
    open_time = Column(String(5), nullable=True)
    close_time = Column(String(5), nullable=True)
    break_start = Column(String(5), nullable=True)
    break_end = Column(String(5), nullable=True)


class BlockedDate(Base):
    __tablename__ = "blocked_dates"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    barbershop_id = Column(String(36), ForeignKey("barbershops.id"), nullable=False, index=True)
    blocked_date = Column(Date, nullable=False)
    reason = Column(String(255), nullable=True)


class SpecialHours(Base):
    __tablename__ = "special_hours"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    barbershop_id = Column(String(36), ForeignKey("barbershops.id"), nullable=False, index=True)
    special_date = Column(Date, nullable=False)
    is_open = Column(Boolean, default=True, nullable=False)
    open_time = Column(String(5), nullable=True)
    close_time = Column(String(5), nullable=True)
    break_start = Column(String(5), nullable=True)
    break_end = Column(String(5), nullable=True)
    reason = Column(String(255), nullable=True)


class Review(Base):
    __tablename__ = "reviews"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    barbershop_id = Column(String(36), ForeignKey("barbershops.id"), nullable=False, index=True)
    appointment_id = Column(String(36), ForeignKey("appointments.id"), nullable=True)
    client_id = Column(String(36), ForeignKey("clients.id"), nullable=True)
    rating = Column(Integer, nullable=False)  # 1..5
    comment = Column(Text, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
