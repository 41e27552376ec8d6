"""
Custom domain DNS verification
A unit's custom domain is verified when its root A record points to our edge IP
and the TXT record under the verification prefix carries the unit's token.
"""

import logging
import secrets
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Optional

import dns.exception
import dns.resolver
from sqlalchemy.orm import Session

from ..config import CUSTOM_DOMAIN_EXPECTED_IP, CUSTOM_DOMAIN_TXT_PREFIX
from ..models_integrations import BarbershopDomain

logger = logging.getLogger(__name__)

STATUS_VERIFIED = "verified"
STATUS_PARTIAL = "partial"
STATUS_PENDING = "pending"


@dataclass
class RecordCheck:
    configured: bool = False
    value: Optional[str] = None
    expected: Optional[str] = None


@dataclass
class DnsVerification:
    domain: str
    a_record: RecordCheck = field(default_factory=RecordCheck)
    www_record: RecordCheck = field(default_factory=RecordCheck)
    txt_record: RecordCheck = field(default_factory=RecordCheck)
    overall_status: str = STATUS_PENDING

    def to_dict(self) -> dict:
        return asdict(self)


def generate_verification_token() -> str:
    return f"barbersmart_verify_{secrets.token_urlsafe(24)}"


def txt_record_name(domain: str) -> str:
    return f"{CUSTOM_DOMAIN_TXT_PREFIX}.{domain}"


def lookup_records(name: str, record_type: str) -> list[str]:
    """Record values for name/type; empty when the lookup fails"""
    try:
        answers = dns.resolver.resolve(name, record_type)
    except dns.exception.DNSException as e:
        logger.debug(f"DNS lookup failed for {record_type} {name}: {e}")
        return []

    if record_type == "TXT":
        return [
            "".join(part.decode() if isinstance(part, bytes) else str(part) for part in answer.strings).replace(
                '"', ""
            )
            for answer in answers
        ]
    return [answer.to_text() for answer in answers]


def _check(values: list[str], expected: Optional[str]) -> RecordCheck:
    return RecordCheck(
        configured=bool(expected) and expected in values,
        value=", ".join(values) if values else None,
        expected=expected,
    )


def overall_status(a_ok: bool, txt_ok: bool, www_ok: bool) -> str:
    if a_ok and txt_ok:
        return STATUS_VERIFIED
    if a_ok or txt_ok or www_ok:
        return STATUS_PARTIAL
    return STATUS_PENDING


def check_domain(domain: str, verification_token: Optional[str]) -> DnsVerification:
    domain = domain.strip().lower().rstrip(".")
    result = DnsVerification(domain=domain)
    result.a_record = _check(lookup_records(domain, "A"), CUSTOM_DOMAIN_EXPECTED_IP)
    result.www_record = _check(lookup_records(f"www.{domain}", "A"), CUSTOM_DOMAIN_EXPECTED_IP)
    if verification_token:
        result.txt_record = _check(lookup_records(txt_record_name(domain), "TXT"), verification_token)
    else:
        result.txt_record = RecordCheck(expected=None)

    result.overall_status = overall_status(
        result.a_record.configured, result.txt_record.configured, result.www_record.configured
    )
    logger.info(f"🌐 DNS verification for {domain}: {result.overall_status}")
    return result


def verify_custom_domain(
    db: Session, domain: str, verification_token: Optional[str], barbershop_id: Optional[str] = None
) -> dict:
    """Check the records and, when verified for a unit, move its domain to setting_up"""
    result = check_domain(domain, verification_token)

    if barbershop_id:
        row = db.query(BarbershopDomain).filter(BarbershopDomain.barbershop_id == barbershop_id).first()
        if row:
            row.last_checked_at = datetime.utcnow()
            if result.overall_status == STATUS_VERIFIED:
                row.dns_verified_at = datetime.utcnow()
                row.custom_domain_status = "setting_up"
                logger.info(f"✅ Domain {domain} verified for barbershop {barbershop_id}")
            db.commit()

    return result.to_dict()
