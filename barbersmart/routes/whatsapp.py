"""
WhatsApp Integration Routes
Per-unit provider configuration, test sends, message logs and diagnostics
"""

import logging
from datetime import datetime
from typing import Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, field_validator
from sqlalchemy.orm import Session

from ..auth import TenantContext, require_admin
from ..database import get_db
from ..models_integrations import WhatsAppConfig, WhatsAppLog
from ..security_utils import decrypt_credential, encrypt_credential, mask_secret
from ..services.whatsapp_service import diagnose_whatsapp, send_message
from ..shared.validators import validate_br_phone

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/whatsapp", tags=["WhatsApp"])


class WhatsAppConfigRequest(BaseModel):
    provider: Literal["evolution", "meta"] = "evolution"
    api_url: Optional[str] = None
    api_key: Optional[str] = None
    instance_name: Optional[str] = None
    phone_number_id: Optional[str] = None
    access_token: Optional[str] = None
    is_active: bool = True

    @field_validator("api_url")
    @classmethod
    def validate_api_url(cls, v):
        if v and not v.startswith(("http://", "https://")):
            raise ValueError("URL da API deve começar com http:// ou https://")
        return v.rstrip("/") if v else v


class WhatsAppConfigResponse(BaseModel):
    configured: bool
    provider: Optional[str] = None
    api_url: Optional[str] = None
    api_key: Optional[str] = None
    instance_name: Optional[str] = None
    phone_number_id: Optional[str] = None
    access_token: Optional[str] = None
    is_active: Optional[bool] = None
    connection_status: Optional[str] = None
    last_health_check: Optional[datetime] = None


class TestMessageRequest(BaseModel):
    phone: str
    message: str = "Mensagem de teste do BarberSmart ✅"

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v):
        return validate_br_phone(v)


def _config_response(config: Optional[WhatsAppConfig]) -> WhatsAppConfigResponse:
    if not config:
        return WhatsAppConfigResponse(configured=False)
    # Secrets are stored encrypted; only a masked hint leaves the API
    return WhatsAppConfigResponse(
        configured=True,
        provider=config.provider,
        api_url=config.api_url,
        api_key=mask_secret(decrypt_credential(config.api_key)),
        instance_name=config.instance_name,
        phone_number_id=config.phone_number_id,
        access_token=mask_secret(decrypt_credential(config.access_token)),
        is_active=config.is_active,
        connection_status=config.connection_status,
        last_health_check=config.last_health_check,
    )


def _get_config(db: Session, barbershop_id: str) -> Optional[WhatsAppConfig]:
    return (
        db.query(WhatsAppConfig)
        .filter(WhatsAppConfig.barbershop_id == barbershop_id)
        .order_by(WhatsAppConfig.created_at.desc())
        .first()
    )


@router.get("/config", response_model=WhatsAppConfigResponse)
async def get_whatsapp_config(ctx: TenantContext = Depends(require_admin), db: Session = Depends(get_db)):
    return _config_response(_get_config(db, ctx.barbershop_id))


@router.put("/config", response_model=WhatsAppConfigResponse)
async def save_whatsapp_config(
    data: WhatsAppConfigRequest,
    ctx: TenantContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """Create or replace the unit's WhatsApp configuration"""
    if data.provider == "evolution" and not data.instance_name:
        raise HTTPException(status_code=400, detail="Informe o nome da instância")
    if data.provider == "meta" and not data.phone_number_id:
        raise HTTPException(status_code=400, detail="Informe o Phone Number ID")

    config = _get_config(db, ctx.barbershop_id)
    if not config:
        config = WhatsAppConfig(barbershop_id=ctx.barbershop_id)
        db.add(config)

    config.provider = data.provider
    config.api_url = data.api_url
    config.instance_name = data.instance_name
    config.phone_number_id = data.phone_number_id
    config.is_active = data.is_active
    # Empty secrets keep the stored value
    if data.api_key:
        config.api_key = encrypt_credential(data.api_key)
    if data.access_token:
        config.access_token = encrypt_credential(data.access_token)

    db.commit()
    db.refresh(config)
    logger.info(f"✅ WhatsApp config saved for barbershop {ctx.barbershop_id} ({data.provider})")
    return _config_response(config)


@router.post("/test")
async def send_test_message(
    data: TestMessageRequest,
    ctx: TenantContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    result = await send_message(db, ctx.barbershop_id, data.phone, data.message, message_type="test")
    return result.to_dict()


@router.get("/logs")
async def get_whatsapp_logs(
    status: Optional[str] = Query(None, pattern="^(sent|failed)$"),
    limit: int = Query(50, ge=1, le=200),
    ctx: TenantContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    query = db.query(WhatsAppLog).filter(WhatsAppLog.barbershop_id == ctx.barbershop_id)
    if status:
        query = query.filter(WhatsAppLog.status == status)
    logs = query.order_by(WhatsAppLog.created_at.desc()).limit(limit).all()
    return [
        {
            "id": log.id,
            "recipient_phone": log.recipient_phone,
            "message_type": log.message_type,
            "status": log.status,
            "provider": log.provider,
            "instance_used": log.instance_used,
            "error_message": log.error_message,
            "created_at": log.created_at,
        }
        for log in logs
    ]


@router.get("/diagnostics")
async def whatsapp_diagnostics(ctx: TenantContext = Depends(require_admin), db: Session = Depends(get_db)):
    return await diagnose_whatsapp(db, ctx.barbershop_id)
