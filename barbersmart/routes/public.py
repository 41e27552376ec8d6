"""
Public Routes
Read-only, unauthenticated data for a unit's landing and booking pages
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from ..cache import cache, public_landing_key
from ..config import DEFAULT_SYSTEM_NAME, PUBLIC_CACHE_TTL
from ..database import get_db
from ..domain.appointments.time_slots import DAY_NAMES
from ..models import Barbershop, BusinessHours, Review, Service
from ..models_integrations import BarbershopDomain, BrandingConfig
from ..services.tenant_resolver import extract_domain_to_check, resolve_tenant

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/public", tags=["Public"])


def _average_rating(db: Session, unit_id: str) -> dict:
    avg, count = (
        db.query(func.avg(Review.rating), func.count(Review.id)).filter(Review.barbershop_id == unit_id).one()
    )
    return {"average": round(float(avg), 1) if avg else 0, "count": count or 0}


def build_landing_payload(db: Session, unit: Barbershop) -> dict:
    """Everything a public page needs about one unit"""
    branding = db.query(BrandingConfig).filter(BrandingConfig.barbershop_id == unit.id).first()
    if branding is None and unit.parent_id:
        # Units inherit the matriz branding
        branding = db.query(BrandingConfig).filter(BrandingConfig.barbershop_id == unit.parent_id).first()
    services = (
        db.query(Service)
        .filter(Service.barbershop_id == unit.id, Service.active.is_(True))
        .order_by(Service.name.asc())
        .all()
    )
    hours = db.query(BusinessHours).filter(BusinessHours.barbershop_id == unit.id).all()
    hours.sort(key=lambda h: DAY_NAMES.index(h.day_of_week) if h.day_of_week in DAY_NAMES else len(DAY_NAMES))

    return {
        "unit": {
            "id": unit.id,
            "name": unit.name,
            "address": unit.address,
            "phone": unit.phone,
            "email": unit.email,
        },
        "branding": {
            "system_name": (branding.system_name if branding else None) or DEFAULT_SYSTEM_NAME,
            "tagline": branding.tagline if branding else None,
            "primary_color": branding.primary_color if branding else None,
            "secondary_color": branding.secondary_color if branding else None,
            "accent_color": branding.accent_color if branding else None,
            "logo_url": branding.logo_url if branding else None,
            "logo_dark_url": branding.logo_dark_url if branding else None,
            "favicon_url": branding.favicon_url if branding else None,
            "has_white_label": branding is not None,
        },
        "services": [
            {
                "id": s.id,
                "name": s.name,
                "description": s.description,
                "price": s.price,
                "duration_minutes": s.duration_minutes,
            }
            for s in services
        ],
        "business_hours": [
            {
                "day_of_week": h.day_of_week,
                "is_open": h.is_open,
                "open_time": h.open_time,
                "close_time": h.close_time,
                "break_start": h.break_start,
                "break_end": h.break_end,
            }
            for h in hours
        ],
        "rating": _average_rating(db, unit.id),
    }


def _cached_payload(db: Session, cache_id: str, unit: Optional[Barbershop]) -> dict:
    if unit is None or not unit.active:
        raise HTTPException(status_code=404, detail="Barbearia não encontrada")
    payload = build_landing_payload(db, unit)
    cache.set(public_landing_key(cache_id), payload, ttl=PUBLIC_CACHE_TTL)
    return payload


@router.get("/landing")
async def get_landing_for_host(request: Request, db: Session = Depends(get_db)):
    """Landing data for the tenant of the request's Host header"""
    domain = getattr(request.state, "tenant_domain", None)
    if not domain:
        raise HTTPException(status_code=404, detail="Barbearia não encontrada")
    return await get_landing(domain, db)


@router.get("/landing/{identifier}")
async def get_landing(identifier: str, db: Session = Depends(get_db)):
    """Landing data by subdomain or custom domain"""
    identifier = identifier.strip().lower()
    cached = cache.get(public_landing_key(identifier))
    if cached:
        return cached

    unit = (
        db.query(Barbershop)
        .join(BarbershopDomain, BarbershopDomain.barbershop_id == Barbershop.id)
        .filter(or_(BarbershopDomain.subdomain == identifier, BarbershopDomain.custom_domain == identifier))
        .first()
    )
    return _cached_payload(db, identifier, unit)


@router.get("/units/{unit_id}")
async def get_public_unit(unit_id: str, db: Session = Depends(get_db)):
    cached = cache.get(public_landing_key(unit_id))
    if cached:
        return cached
    unit = db.query(Barbershop).filter(Barbershop.id == unit_id).first()
    return _cached_payload(db, unit_id, unit)


@router.get("/resolve")
async def resolve_host(request: Request, host: Optional[str] = Query(None), db: Session = Depends(get_db)):
    """Which unit a hostname belongs to; defaults to the request's own Host header"""
    hostname = host or request.headers.get("x-forwarded-host") or request.headers.get("host")
    tenant = resolve_tenant(db, hostname)
    return {
        "host": hostname,
        "domain_to_check": extract_domain_to_check(hostname),
        "tenant": (
            {
                "barbershop_id": tenant.barbershop_id,
                "barbershop_name": tenant.barbershop_name,
                "matched_by": tenant.matched_by,
            }
            if tenant
            else None
        ),
    }
