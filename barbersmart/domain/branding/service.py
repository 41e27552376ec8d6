"""Branding service - white-label settings, uploads and generated images"""

import logging

from fastapi import HTTPException, UploadFile
from sqlalchemy.orm import Session

from ...auth import TenantContext
from ...cache import cache
from ...config import DEFAULT_SYSTEM_NAME
from ...models_integrations import BrandingConfig
from ...services.storage_service import FAVICON_IMAGE_TYPES, LOGO_IMAGE_TYPES, upload_branding_image
from .images import ImageGenerationError, generate_branding_images
from .schemas import BrandingUpdate

logger = logging.getLogger(__name__)

DEFAULT_PRIMARY_COLOR = "#D4A574"

UPLOAD_TARGETS = {
    "logo": ("logo_url", LOGO_IMAGE_TYPES),
    "logo-dark": ("logo_dark_url", LOGO_IMAGE_TYPES),
    "favicon": ("favicon_url", FAVICON_IMAGE_TYPES),
}


class BrandingService:
    def __init__(self, db: Session):
        self.db = db

    def get_branding(self, barbershop_id: str) -> BrandingConfig:
        """Stored branding, or an unsaved default row"""
        config = self.db.query(BrandingConfig).filter(BrandingConfig.barbershop_id == barbershop_id).first()
        if config:
            return config
        return BrandingConfig(
            barbershop_id=barbershop_id, system_name=DEFAULT_SYSTEM_NAME, primary_color=DEFAULT_PRIMARY_COLOR
        )

    def _save(self, barbershop_id: str, values: dict) -> BrandingConfig:
        config = self.db.query(BrandingConfig).filter(BrandingConfig.barbershop_id == barbershop_id).first()
        if not config:
            config = BrandingConfig(barbershop_id=barbershop_id)
            self.db.add(config)
        for key, value in values.items():
            setattr(config, key, value)
        self.db.commit()
        self.db.refresh(config)
        # Public landing pages embed branding
        cache.delete_pattern("public:*")
        return config

    def update_branding(self, data: BrandingUpdate, ctx: TenantContext) -> BrandingConfig:
        config = self._save(ctx.barbershop_id, data.model_dump(exclude_unset=True))
        logger.info(f"🎨 Branding updated for barbershop {ctx.barbershop_id}")
        return config

    async def upload_image(self, target: str, file: UploadFile, ctx: TenantContext) -> dict:
        if target not in UPLOAD_TARGETS:
            raise HTTPException(status_code=400, detail="Tipo de imagem inválido")
        field_name, allowed = UPLOAD_TARGETS[target]
        uploaded = await upload_branding_image(file, ctx.barbershop_id, allowed)
        self._save(ctx.barbershop_id, {field_name: uploaded["url"]})
        return uploaded

    async def generate_images(self, kind: str, brand_name, primary_color, ctx: TenantContext) -> dict:
        current = self.get_branding(ctx.barbershop_id)
        name = brand_name or current.system_name or DEFAULT_SYSTEM_NAME
        color = primary_color or current.primary_color or DEFAULT_PRIMARY_COLOR
        logger.info(f"🎨 Generating branding images: type={kind}, brand={name}")

        try:
            images = await generate_branding_images(kind, name, color)
        except ImageGenerationError as e:
            raise HTTPException(status_code=502, detail=str(e))
        except Exception as e:
            logger.error(f"❌ Branding image generation failed: {e}")
            raise HTTPException(status_code=500, detail="Erro ao gerar imagens")

        values = dict(images)
        if current.id is None or not current.system_name:
            values["system_name"] = name
        branding = self._save(ctx.barbershop_id, values)
        return {"success": True, "images": images, "branding": branding}
