"""Client repository - Database operations for clients"""

from typing import Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from ...models import Client

SORT_COLUMNS = {
    "name": Client.name,
    "created_at": Client.created_at,
}


class ClientRepository:
    """Repository for client database operations"""

    @staticmethod
    def search_clients(
        db: Session,
        barbershop_id: str,
        search: Optional[str] = None,
        active: Optional[bool] = None,
        tag: Optional[str] = None,
        sort_by: str = "name",
        descending: bool = False,
        offset: int = 0,
        limit: int = 50,
    ) -> tuple[list[Client], int]:
        query = db.query(Client).filter(Client.barbershop_id == barbershop_id)

        if search:
            pattern = f"%{search.strip()}%"
            query = query.filter(
                or_(Client.name.ilike(pattern), Client.phone.ilike(pattern), Client.email.ilike(pattern))
            )
        if active is not None:
            query = query.filter(Client.active.is_(active))

        column = SORT_COLUMNS.get(sort_by, Client.name)
        query = query.order_by(column.desc() if descending else column.asc(), Client.id.asc())

        if tag:
            # Tags are a JSON list; filtered in Python to stay portable across databases
            matches = [c for c in query.all() if tag in (c.tags or [])]
            return matches[offset : offset + limit], len(matches)

        total = query.count()
        return query.offset(offset).limit(limit).all(), total

    @staticmethod
    def get_client_by_id(db: Session, client_id: str, barbershop_id: str) -> Optional[Client]:
        return db.query(Client).filter(Client.id == client_id, Client.barbershop_id == barbershop_id).first()

    @staticmethod
    def get_client_by_phone(db: Session, phone: str, barbershop_id: str) -> Optional[Client]:
        return db.query(Client).filter(Client.phone == phone, Client.barbershop_id == barbershop_id).first()

    @staticmethod
    def create_client(db: Session, barbershop_id: str, **client_data) -> Client:
        client = Client(barbershop_id=barbershop_id, **client_data)
        db.add(client)
        db.commit()
        db.refresh(client)
        return client

    @staticmethod
    def update_client(db: Session, client: Client, **updates) -> Client:
        for key, value in updates.items():
            if hasattr(client, key):
                setattr(client, key, value)
        db.commit()
        db.refresh(client)
        return client

    @staticmethod
    def delete_client(db: Session, client: Client) -> None:
        db.delete(client)
        db.commit()
