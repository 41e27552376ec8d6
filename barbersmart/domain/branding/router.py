"""Branding router - white-label configuration endpoints"""

from fastapi import APIRouter, Depends, File, UploadFile
from sqlalchemy.orm import Session

from ...auth import TenantContext, get_tenant_context, require_admin
from ...database import get_db
from .schemas import BrandingResponse, BrandingUpdate, GenerateImagesRequest, GenerateImagesResponse
from .service import BrandingService

router = APIRouter(prefix="/branding", tags=["Branding"])


def get_branding_service(db: Session = Depends(get_db)) -> BrandingService:
    return BrandingService(db)


@router.get("", response_model=BrandingResponse)
async def get_branding(
    ctx: TenantContext = Depends(get_tenant_context),
    service: BrandingService = Depends(get_branding_service),
):
    return service.get_branding(ctx.barbershop_id)


@router.put("", response_model=BrandingResponse)
async def update_branding(
    data: BrandingUpdate,
    ctx: TenantContext = Depends(require_admin),
    service: BrandingService = Depends(get_branding_service),
):
    return service.update_branding(data, ctx)


@router.post("/upload/{target}")
async def upload_branding_image(
    target: str,
    file: UploadFile = File(...),
    ctx: TenantContext = Depends(require_admin),
    service: BrandingService = Depends(get_branding_service),
):
    """Upload a logo, dark logo or favicon; target is logo | logo-dark | favicon"""
    return await service.upload_image(target, file, ctx)


@router.post("/generate", response_model=GenerateImagesResponse)
async def generate_branding_images(
    data: GenerateImagesRequest,
    ctx: TenantContext = Depends(require_admin),
    service: BrandingService = Depends(get_branding_service),
):
    return await service.generate_images(data.type, data.brand_name, data.primary_color, ctx)
