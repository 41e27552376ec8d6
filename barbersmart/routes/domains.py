"""
Domain Routes
Subdomain and custom domain settings for a unit, with DNS verification
"""

import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, field_validator
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..auth import TenantContext, require_admin
from ..cache import cache, public_landing_key
from ..config import CUSTOM_DOMAIN_EXPECTED_IP, MAIN_DOMAINS
from ..database import get_db
from ..models_integrations import BarbershopDomain
from ..services.dns_service import generate_verification_token, txt_record_name, verify_custom_domain
from ..shared.validators import validate_domain, validate_subdomain

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/domains", tags=["Domains"])


class DomainUpdateRequest(BaseModel):
    subdomain: Optional[str] = None
    custom_domain: Optional[str] = None

    @field_validator("subdomain")
    @classmethod
    def validate_subdomain_field(cls, v):
        return validate_subdomain(v)

    @field_validator("custom_domain")
    @classmethod
    def validate_custom_domain_field(cls, v):
        v = validate_domain(v)
        if v and any(v == main or v.endswith(f".{main}") for main in MAIN_DOMAINS):
            raise ValueError("Use o campo de subdomínio para endereços da plataforma")
        return v


class DomainResponse(BaseModel):
    subdomain: Optional[str] = None
    subdomain_url: Optional[str] = None
    custom_domain: Optional[str] = None
    custom_domain_status: Optional[str] = None
    verification_token: Optional[str] = None
    dns_records: list[dict] = []
    dns_verified_at: Optional[datetime] = None
    last_checked_at: Optional[datetime] = None


def required_dns_records(domain: str, token: Optional[str]) -> list[dict]:
    """Records the unit owner must create at their DNS provider"""
    records = [
        {"type": "A", "name": "@", "value": CUSTOM_DOMAIN_EXPECTED_IP},
        {"type": "A", "name": "www", "value": CUSTOM_DOMAIN_EXPECTED_IP},
    ]
    if token:
        records.append({"type": "TXT", "name": txt_record_name(domain), "value": token})
    return records


def _domain_response(row: Optional[BarbershopDomain]) -> DomainResponse:
    if not row:
        return DomainResponse()
    return DomainResponse(
        subdomain=row.subdomain,
        subdomain_url=f"https://{row.subdomain}.{MAIN_DOMAINS[0]}" if row.subdomain and MAIN_DOMAINS else None,
        custom_domain=row.custom_domain,
        custom_domain_status=row.custom_domain_status if row.custom_domain else None,
        verification_token=row.verification_token,
        dns_records=required_dns_records(row.custom_domain, row.verification_token) if row.custom_domain else [],
        dns_verified_at=row.dns_verified_at,
        last_checked_at=row.last_checked_at,
    )


@router.get("", response_model=DomainResponse)
async def get_domain(ctx: TenantContext = Depends(require_admin), db: Session = Depends(get_db)):
    row = db.query(BarbershopDomain).filter(BarbershopDomain.barbershop_id == ctx.barbershop_id).first()
    return _domain_response(row)


@router.put("", response_model=DomainResponse)
async def update_domain(
    data: DomainUpdateRequest,
    ctx: TenantContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """Set the subdomain and/or custom domain; a new custom domain restarts verification"""
    row = db.query(BarbershopDomain).filter(BarbershopDomain.barbershop_id == ctx.barbershop_id).first()
    if not row:
        row = BarbershopDomain(barbershop_id=ctx.barbershop_id)
        db.add(row)

    previous = {row.subdomain, row.custom_domain}
    updates = data.model_dump(exclude_unset=True)
    if "subdomain" in updates:
        row.subdomain = updates["subdomain"]
    if "custom_domain" in updates and updates["custom_domain"] != row.custom_domain:
        row.custom_domain = updates["custom_domain"]
        row.verification_token = generate_verification_token() if row.custom_domain else None
        row.custom_domain_status = "pending"
        row.dns_verified_at = None

    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=409, detail="Domínio já está em uso por outra barbearia")
    db.refresh(row)

    stale_keys = [public_landing_key(d) for d in previous if d]
    if stale_keys:
        cache.delete(*stale_keys)
    logger.info(f"🌐 Domain settings updated for barbershop {ctx.barbershop_id}")
    return _domain_response(row)


@router.post("/verify")
async def verify_domain(ctx: TenantContext = Depends(require_admin), db: Session = Depends(get_db)):
    row = db.query(BarbershopDomain).filter(BarbershopDomain.barbershop_id == ctx.barbershop_id).first()
    if not row or not row.custom_domain:
        raise HTTPException(status_code=400, detail="Nenhum domínio personalizado configurado")
    return verify_custom_domain(db, row.custom_domain, row.verification_token, ctx.barbershop_id)
