"""Client router - FastAPI endpoints for client operations"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import TenantContext, get_tenant_context
from ...database import get_db
from ..appointments.schemas import AppointmentResponse
from .schemas import ClientCreate, ClientListResponse, ClientResponse, ClientUpdate
from .service import ClientService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/clients", tags=["Clients"])


def get_client_service(db: Session = Depends(get_db)) -> ClientService:
    """Dependency injection for ClientService"""
    return ClientService(db)


# ============================================================================
# CORE CRUD OPERATIONS
# ============================================================================


@router.get("", response_model=ClientListResponse)
async def list_clients(
    ctx: TenantContext = Depends(get_tenant_context),
    service: ClientService = Depends(get_client_service),
    search: Optional[str] = Query(None),
    active: Optional[bool] = Query(None),
    tag: Optional[str] = Query(None),
    sort_by: str = Query("name", pattern="^(name|created_at)$"),
    descending: bool = Query(False),
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=200),
):
    """Search, filter and paginate the unit's clients"""
    return service.list_clients(ctx, search, active, tag, sort_by, descending, page, page_size)


@router.get("/{client_id}", response_model=ClientResponse)
async def get_client(
    client_id: str,
    ctx: TenantContext = Depends(get_tenant_context),
    service: ClientService = Depends(get_client_service),
):
    return service.get_client(client_id, ctx)


@router.get("/{client_id}/history", response_model=list[AppointmentResponse])
async def get_client_history(
    client_id: str,
    ctx: TenantContext = Depends(get_tenant_context),
    service: ClientService = Depends(get_client_service),
):
    """Appointments of a client, newest first"""
    return service.get_history(client_id, ctx)


@router.post("", response_model=ClientResponse, status_code=201)
async def create_client(
    data: ClientCreate,
    ctx: TenantContext = Depends(get_tenant_context),
    service: ClientService = Depends(get_client_service),
):
    return service.create_client(data, ctx)


@router.patch("/{client_id}", response_model=ClientResponse)
async def update_client(
    client_id: str,
    data: ClientUpdate,
    ctx: TenantContext = Depends(get_tenant_context),
    service: ClientService = Depends(get_client_service),
):
    return service.update_client(client_id, data, ctx)


@router.delete("/{client_id}")
async def delete_client(
    client_id: str,
    ctx: TenantContext = Depends(get_tenant_context),
    service: ClientService = Depends(get_client_service),
):
    return service.delete_client(client_id, ctx)
