"""
Tenant resolution from the request hostname

Supports subdomains of the platform domains (barbearia1.barbersmart.app) and
custom domains (minhabarbearia.com.br). Platform and development hosts resolve
to no tenant.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from ..config import IGNORED_DOMAINS, MAIN_DOMAINS
from ..models import Barbershop
from ..models_integrations import BarbershopDomain

logger = logging.getLogger(__name__)


@dataclass
class ResolvedTenant:
    barbershop_id: str
    barbershop_name: str
    matched_by: str  # subdomain, custom_domain
    domain: str


def normalize_host(host: Optional[str]) -> str:
    """Lowercase hostname without port or trailing dot"""
    if not host:
        return ""
    host = host.strip().lower()
    if host.startswith("["):
        return host
    return host.split(":", 1)[0].rstrip(".")


def is_ignored_domain(hostname: str) -> bool:
    if not hostname:
        return True
    return any(hostname == domain or hostname.endswith(f".{domain}") for domain in IGNORED_DOMAINS)


def is_main_domain(hostname: str) -> bool:
    if not hostname:
        return True
    return any(hostname in (domain, f"www.{domain}") for domain in MAIN_DOMAINS)


def subdomain_of_main(hostname: str) -> Optional[str]:
    """'barbearia1' for barbearia1.barbersmart.app; None for www or non-platform hosts"""
    for main in MAIN_DOMAINS:
        suffix = f".{main}"
        if hostname.endswith(suffix):
            subdomain = hostname[: -len(suffix)]
            return None if subdomain == "www" else subdomain
    return None


def extract_domain_to_check(host: Optional[str]) -> Optional[str]:
    """The subdomain or custom domain to look up, or None for platform/dev hosts"""
    hostname = normalize_host(host)
    if not hostname or is_ignored_domain(hostname) or is_main_domain(hostname):
        return None

    for main in MAIN_DOMAINS:
        if hostname.endswith(f".{main}"):
            return subdomain_of_main(hostname)
    return hostname


def resolve_tenant(db: Session, host: Optional[str]) -> Optional[ResolvedTenant]:
    domain = extract_domain_to_check(host)
    if not domain:
        return None

    row = (
        db.query(BarbershopDomain, Barbershop)
        .join(Barbershop, Barbershop.id == BarbershopDomain.barbershop_id)
        .filter(or_(BarbershopDomain.subdomain == domain, BarbershopDomain.custom_domain == domain))
        .filter(Barbershop.active.is_(True))
        .first()
    )
    if not row:
        logger.debug(f"No tenant for host {host}")
        return None

    domain_row, unit = row
    matched_by = "subdomain" if domain_row.subdomain == domain else "custom_domain"
    return ResolvedTenant(barbershop_id=unit.id, barbershop_name=unit.name, matched_by=matched_by, domain=domain)
