import os

# Must be set before the application modules read their configuration
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.pop("REDIS_URL", None)
os.environ.setdefault("SECRET_KEY", "test-secret-key")

from dataclasses import dataclass  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from barbersmart import models, models_integrations  # noqa: E402, F401
from barbersmart.auth import TenantContext  # noqa: E402
from barbersmart.database import Base, SessionLocal  # noqa: E402
from barbersmart.domain.units.repository import UnitRepository  # noqa: E402
from barbersmart.domain.units.service import default_business_hours  # noqa: E402
from barbersmart.main import app  # noqa: E402
from barbersmart.models import Barbershop, User, UserBarbershop  # noqa: E402
from barbersmart.security_utils import create_jwt_token  # noqa: E402

# One shared in-memory connection, visible from the TestClient thread
test_engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
SessionLocal.configure(bind=test_engine)


@dataclass
class Tenant:
    user: User
    root: Barbershop

    @property
    def headers(self) -> dict:
        return auth_headers(self.user.id, self.root.id)

    def context(self) -> TenantContext:
        return TenantContext(user=self.user, barbershop_id=self.root.id, role="admin", unit_ids=[self.root.id])


def auth_headers(user_id: str, unit_id: str = None) -> dict:
    headers = {"Authorization": f"Bearer {create_jwt_token({'sub': user_id})}"}
    if unit_id:
        headers["X-Barbershop-Id"] = unit_id
    return headers


@pytest.fixture
def db():
    Base.metadata.create_all(bind=test_engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=test_engine)


@pytest.fixture
def client(db):
    return TestClient(app)


@pytest.fixture
def tenant(db) -> Tenant:
    """Admin user owning a root unit with the default opening hours"""
    user = User(id="user-owner", email="dono@barbearia.com", full_name="Dono")
    root = Barbershop(name="Barbearia Matriz", phone="11987654321")
    db.add_all([user, root])
    db.commit()
    db.add(UserBarbershop(user_id=user.id, barbershop_id=root.id, role="admin"))
    db.commit()
    UnitRepository.replace_business_hours(db, root.id, default_business_hours())
    db.refresh(user)
    db.refresh(root)
    return Tenant(user=user, root=root)
