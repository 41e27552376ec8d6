"""Service catalog schemas"""

from typing import Optional

from pydantic import BaseModel, field_validator


class ServiceCreate(BaseModel):
    name: str
    description: Optional[str] = None
    price: float
    duration_minutes: int = 30

    @field_validator("price")
    @classmethod
    def validate_price(cls, v):
        if v < 0:
            raise ValueError("Preço não pode ser negativo")
        return v

    @field_validator("duration_minutes")
    @classmethod
    def validate_duration(cls, v):
        if v < 5 or v > 480:
            raise ValueError("Duração deve estar entre 5 e 480 minutos")
        return v


class ServiceUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    price: Optional[float] = None
    duration_minutes: Optional[int] = None
    active: Optional[bool] = None


class ServiceResponse(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    price: float
    duration_minutes: int
    active: bool

    class Config:
        from_attributes = True
