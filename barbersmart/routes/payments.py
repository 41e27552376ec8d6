"""
Payment Routes
Online payment creation for appointments and per-unit gateway settings
"""

import logging
from typing import Literal, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, field_validator
from sqlalchemy.orm import Session

from ..auth import TenantContext, get_tenant_context, require_admin
from ..database import get_db
from ..models_integrations import PaymentSettings
from ..security_utils import encrypt_credential
from ..services.payment_service import GATEWAYS, PaymentRequest, create_payment
from ..shared.validators import validate_cpf_cnpj

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/payments", tags=["Payments"])


class CreatePaymentRequest(BaseModel):
    """The amount charged always comes from the stored appointment"""

    appointment_id: str
    service_name: Optional[str] = None
    client_name: str
    client_email: Optional[str] = None
    client_cpf_cnpj: Optional[str] = None
    client_phone: Optional[str] = None
    billing_type: Literal["PIX", "BOLETO", "CREDIT_CARD"] = "PIX"
    deposit_only: bool = False
    gateway: Optional[str] = None

    @field_validator("client_cpf_cnpj")
    @classmethod
    def validate_document(cls, v):
        return validate_cpf_cnpj(v) if v else v

    @field_validator("gateway")
    @classmethod
    def validate_gateway(cls, v):
        if v and v not in GATEWAYS:
            raise ValueError(f"Gateway inválido: {v}")
        return v


class PaymentSettingsRequest(BaseModel):
    preferred_gateway: Optional[str] = None
    use_global_credentials: bool = True
    mercadopago_access_token: Optional[str] = None
    stripe_secret_key: Optional[str] = None
    asaas_api_key: Optional[str] = None
    asaas_sandbox: bool = False
    require_deposit: bool = False
    deposit_percentage: float = 0

    @field_validator("preferred_gateway")
    @classmethod
    def validate_gateway(cls, v):
        if v and v not in GATEWAYS:
            raise ValueError(f"Gateway inválido: {v}")
        return v

    @field_validator("deposit_percentage")
    @classmethod
    def validate_percentage(cls, v):
        if v < 0 or v > 100:
            raise ValueError("Percentual do sinal deve estar entre 0 e 100")
        return v


def _settings_response(settings: Optional[PaymentSettings]) -> dict:
    if not settings:
        return {"configured": False, "use_global_credentials": True, "require_deposit": False, "deposit_percentage": 0}
    return {
        "configured": True,
        "preferred_gateway": settings.preferred_gateway,
        "use_global_credentials": settings.use_global_credentials,
        "has_mercadopago_credentials": bool(settings.mercadopago_access_token),
        "has_stripe_credentials": bool(settings.stripe_secret_key),
        "has_asaas_credentials": bool(settings.asaas_api_key),
        "asaas_sandbox": settings.asaas_sandbox,
        "require_deposit": settings.require_deposit,
        "deposit_percentage": settings.deposit_percentage,
    }


@router.post("/create")
async def create_appointment_payment(
    data: CreatePaymentRequest,
    ctx: TenantContext = Depends(get_tenant_context),
    db: Session = Depends(get_db),
):
    """Create a checkout on the selected gateway for an appointment"""
    request = PaymentRequest(**data.model_dump())
    try:
        return await create_payment(db, ctx.barbershop_id, request)
    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"❌ Error creating payment: {e}")
        raise HTTPException(status_code=500, detail="Erro interno ao processar pagamento")


@router.get("/settings")
async def get_payment_settings(ctx: TenantContext = Depends(require_admin), db: Session = Depends(get_db)):
    settings = db.query(PaymentSettings).filter(PaymentSettings.barbershop_id == ctx.barbershop_id).first()
    return _settings_response(settings)


@router.put("/settings")
async def save_payment_settings(
    data: PaymentSettingsRequest,
    ctx: TenantContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    settings = db.query(PaymentSettings).filter(PaymentSettings.barbershop_id == ctx.barbershop_id).first()
    if not settings:
        settings = PaymentSettings(barbershop_id=ctx.barbershop_id)
        db.add(settings)

    settings.preferred_gateway = data.preferred_gateway
    settings.use_global_credentials = data.use_global_credentials
    settings.asaas_sandbox = data.asaas_sandbox
    settings.require_deposit = data.require_deposit
    settings.deposit_percentage = data.deposit_percentage
    for field_name in ("mercadopago_access_token", "stripe_secret_key", "asaas_api_key"):
        value = getattr(data, field_name)
        if value:
            setattr(settings, field_name, encrypt_credential(value))

    db.commit()
    db.refresh(settings)
    logger.info(f"✅ Payment settings saved for barbershop {ctx.barbershop_id}")
    return _settings_response(settings)
