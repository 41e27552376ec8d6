import logging
from dataclasses import dataclass, field
from typing import Optional

from fastapi import Depends, Header, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from .database import get_db
from .models import Barbershop, User, UserBarbershop
from .security_utils import verify_jwt_token

logger = logging.getLogger(__name__)

security = HTTPBearer()


@dataclass
class TenantContext:
    """Explicit tenant state for a request: who is acting, on which unit"""

    user: User
    barbershop_id: str
    role: str
    # All units this user may read (own memberships plus their children)
    unit_ids: list[str] = field(default_factory=list)

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db),
) -> User:
    """Verify the bearer token and return the matching user, creating it on first access"""
    payload = verify_jwt_token(credentials.credentials)
    if not payload or not payload.get("sub"):
        raise HTTPException(status_code=401, detail="Invalid or expired token")

    user_id = payload["sub"]
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        logger.info(f"👤 Creating profile for new user {user_id}")
        user = User(id=user_id, email=payload.get("email"), full_name=payload.get("name"))
        db.add(user)
        db.commit()
        db.refresh(user)
    return user


def get_accessible_unit_ids(db: Session, user_id: str) -> list[str]:
    """Units the user is linked to, plus the children of any linked root unit"""
    linked = [
        row.barbershop_id
        for row in db.query(UserBarbershop.barbershop_id).filter(UserBarbershop.user_id == user_id).all()
    ]
    if not linked:
        return []
    children = [
        row.id for row in db.query(Barbershop.id).filter(Barbershop.parent_id.in_(linked)).all()
    ]
    seen = dict.fromkeys(linked + children)
    return list(seen)


def get_tenant_context(
    x_barbershop_id: Optional[str] = Header(None),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> TenantContext:
    """
    Resolve the unit a request acts on.
    Uses the X-Barbershop-Id header when given, otherwise the user's first (root first) unit.
    """
    memberships = db.query(UserBarbershop).filter(UserBarbershop.user_id == current_user.id).all()
    if not memberships:
        raise HTTPException(status_code=403, detail="Usuário não vinculado a nenhuma barbearia")

    unit_ids = get_accessible_unit_ids(db, current_user.id)
    roles = {m.barbershop_id: m.role for m in memberships}

    if x_barbershop_id:
        if x_barbershop_id not in unit_ids:
            logger.warning(f"⚠️ User {current_user.id} tried to access unit {x_barbershop_id}")
            raise HTTPException(status_code=403, detail="Acesso negado a esta unidade")
        barbershop_id = x_barbershop_id
        role = roles.get(barbershop_id)
        if role is None:
            # Access through the parent unit
            unit = db.query(Barbershop).filter(Barbershop.id == barbershop_id).first()
            role = roles.get(unit.parent_id, "barbeiro") if unit else "barbeiro"
    else:
        ordered = sorted(
            memberships,
            key=lambda m: (m.barbershop.parent_id is not None, str(m.created_at or "")),
        )
        barbershop_id = ordered[0].barbershop_id
        role = ordered[0].role

    return TenantContext(user=current_user, barbershop_id=barbershop_id, role=role, unit_ids=unit_ids)


def require_admin(ctx: TenantContext = Depends(get_tenant_context)) -> TenantContext:
    if not ctx.is_admin:
        raise HTTPException(status_code=403, detail="Apenas administradores podem realizar esta ação")
    return ctx
