"""Branding domain schemas"""

from typing import Literal, Optional

from pydantic import BaseModel, field_validator

from ...shared.validators import validate_hex_color


class BrandingUpdate(BaseModel):
    system_name: Optional[str] = None
    tagline: Optional[str] = None
    primary_color: Optional[str] = None
    secondary_color: Optional[str] = None
    accent_color: Optional[str] = None
    logo_url: Optional[str] = None
    logo_dark_url: Optional[str] = None
    favicon_url: Optional[str] = None

    @field_validator("primary_color", "secondary_color", "accent_color")
    @classmethod
    def validate_colors(cls, v):
        return validate_hex_color(v)

    @field_validator("system_name")
    @classmethod
    def validate_system_name(cls, v):
        if v is not None and not v.strip():
            raise ValueError("Nome do sistema não pode ser vazio")
        return v.strip() if v else v


class BrandingResponse(BaseModel):
    barbershop_id: str
    system_name: Optional[str] = None
    tagline: Optional[str] = None
    primary_color: Optional[str] = None
    secondary_color: Optional[str] = None
    accent_color: Optional[str] = None
    logo_url: Optional[str] = None
    logo_dark_url: Optional[str] = None
    favicon_url: Optional[str] = None

    class Config:
        from_attributes = True


class GenerateImagesRequest(BaseModel):
    type: Literal["logo-light", "logo-dark", "favicon", "all"] = "all"
    brand_name: Optional[str] = None
    primary_color: Optional[str] = None

    @field_validator("primary_color")
    @classmethod
    def validate_color(cls, v):
        return validate_hex_color(v)


class GenerateImagesResponse(BaseModel):
    success: bool
    images: dict[str, str]
    branding: BrandingResponse
