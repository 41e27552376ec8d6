"""Service catalog router - services offered by a unit"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from ...auth import TenantContext, get_tenant_context, require_admin
from ...database import get_db
from ...models import Service
from .schemas import ServiceCreate, ServiceResponse, ServiceUpdate

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/services", tags=["Services"])


@router.get("", response_model=list[ServiceResponse])
async def list_services(
    active_only: bool = Query(False),
    ctx: TenantContext = Depends(get_tenant_context),
    db: Session = Depends(get_db),
):
    query = db.query(Service).filter(Service.barbershop_id == ctx.barbershop_id)
    if active_only:
        query = query.filter(Service.active.is_(True))
    return query.order_by(Service.name.asc()).all()


@router.post("", response_model=ServiceResponse, status_code=201)
async def create_service(
    data: ServiceCreate,
    ctx: TenantContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    service = Service(barbershop_id=ctx.barbershop_id, **data.model_dump())
    db.add(service)
    db.commit()
    db.refresh(service)
    logger.info(f"✅ Service '{service.name}' created for barbershop {ctx.barbershop_id}")
    return service


@router.patch("/{service_id}", response_model=ServiceResponse)
async def update_service(
    service_id: str,
    data: ServiceUpdate,
    ctx: TenantContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    service = (
        db.query(Service).filter(Service.id == service_id, Service.barbershop_id == ctx.barbershop_id).first()
    )
    if not service:
        raise HTTPException(status_code=404, detail="Serviço não encontrado")
    for key, value in data.model_dump(exclude_unset=True).items():
        setattr(service, key, value)
    db.commit()
    db.refresh(service)
    return service
