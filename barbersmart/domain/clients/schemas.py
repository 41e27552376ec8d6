"""Client domain schemas - Pydantic models for validation"""

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, field_validator

from ...shared.validators import validate_br_phone, validate_cpf_cnpj, validate_email


class ClientCreate(BaseModel):
    """Schema for creating a new client"""

    name: str
    phone: Optional[str] = None
    email: Optional[str] = None
    cpf: Optional[str] = None
    birth_date: Optional[date] = None
    notes: Optional[str] = None
    tags: Optional[list[str]] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        if not v or not v.strip():
            raise ValueError("Nome é obrigatório")
        return v.strip()

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v):
        return validate_br_phone(v)

    @field_validator("email")
    @classmethod
    def validate_email_field(cls, v):
        return validate_email(v)

    @field_validator("cpf")
    @classmethod
    def validate_document(cls, v):
        return validate_cpf_cnpj(v)


class ClientUpdate(BaseModel):
    """Schema for updating an existing client"""

    name: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    cpf: Optional[str] = None
    birth_date: Optional[date] = None
    notes: Optional[str] = None
    tags: Optional[list[str]] = None
    active: Optional[bool] = None

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v):
        return validate_br_phone(v)

    @field_validator("email")
    @classmethod
    def validate_email_field(cls, v):
        return validate_email(v)

    @field_validator("cpf")
    @classmethod
    def validate_document(cls, v):
        return validate_cpf_cnpj(v)


class ClientResponse(BaseModel):
    """Schema for client response"""

    id: str
    name: str
    phone: Optional[str] = None
    email: Optional[str] = None
    cpf: Optional[str] = None
    birth_date: Optional[date] = None
    notes: Optional[str] = None
    tags: Optional[list[str]] = None
    active: bool
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ClientListResponse(BaseModel):
    clients: list[ClientResponse]
    total: int
    page: int
    page_size: int
