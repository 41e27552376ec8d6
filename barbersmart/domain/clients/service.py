"""Client service - Business logic for client operations"""

import logging
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...auth import TenantContext
from ...models import Appointment, Client
from .repository import ClientRepository
from .schemas import ClientCreate, ClientUpdate

logger = logging.getLogger(__name__)


class ClientService:
    """Service layer for client business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = ClientRepository()

    def list_clients(
        self,
        ctx: TenantContext,
        search: Optional[str] = None,
        active: Optional[bool] = None,
        tag: Optional[str] = None,
        sort_by: str = "name",
        descending: bool = False,
        page: int = 1,
        page_size: int = 50,
    ) -> dict:
        clients, total = self.repo.search_clients(
            self.db,
            ctx.barbershop_id,
            search=search,
            active=active,
            tag=tag,
            sort_by=sort_by,
            descending=descending,
            offset=(page - 1) * page_size,
            limit=page_size,
        )
        return {"clients": clients, "total": total, "page": page, "page_size": page_size}

    def get_client(self, client_id: str, ctx: TenantContext) -> Client:
        client = self.repo.get_client_by_id(self.db, client_id, ctx.barbershop_id)
        if not client:
            raise HTTPException(status_code=404, detail="Cliente não encontrado")
        return client

    def create_client(self, data: ClientCreate, ctx: TenantContext) -> Client:
        logger.info(f"📥 Creating client for barbershop {ctx.barbershop_id}")
        if data.phone and self.repo.get_client_by_phone(self.db, data.phone, ctx.barbershop_id):
            raise HTTPException(status_code=409, detail="Já existe um cliente com este telefone")
        return self.repo.create_client(self.db, ctx.barbershop_id, **data.model_dump())

    def update_client(self, client_id: str, data: ClientUpdate, ctx: TenantContext) -> Client:
        client = self.get_client(client_id, ctx)
        updates = data.model_dump(exclude_unset=True)
        if updates.get("phone") and updates["phone"] != client.phone:
            existing = self.repo.get_client_by_phone(self.db, updates["phone"], ctx.barbershop_id)
            if existing and existing.id != client.id:
                raise HTTPException(status_code=409, detail="Já existe um cliente com este telefone")
        return self.repo.update_client(self.db, client, **updates)

    def delete_client(self, client_id: str, ctx: TenantContext) -> dict:
        """Delete a client; clients with appointment history are deactivated instead"""
        client = self.get_client(client_id, ctx)
        has_history = self.db.query(Appointment.id).filter(Appointment.client_id == client.id).first() is not None
        if has_history:
            self.repo.update_client(self.db, client, active=False)
            logger.info(f"🗄️ Client {client.id} has history, deactivated instead of deleted")
            return {"message": "Cliente desativado", "deleted": False}

        self.repo.delete_client(self.db, client)
        return {"message": "Cliente excluído", "deleted": True}

    def get_history(self, client_id: str, ctx: TenantContext) -> list[Appointment]:
        client = self.get_client(client_id, ctx)
        return (
            self.db.query(Appointment)
            .filter(Appointment.client_id == client.id, Appointment.barbershop_id == ctx.barbershop_id)
            .order_by(Appointment.appointment_date.desc(), Appointment.appointment_time.desc())
            .all()
        )
