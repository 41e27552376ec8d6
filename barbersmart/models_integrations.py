"""
Integration Models
Provider configuration (encrypted credentials), message logs, branding and domains
"""

from sqlalchemy import JSON, Boolean, Column, DateTime, Float, ForeignKey, String, Text
from sqlalchemy.sql import func

from .database import Base
from .models import generate_uuid


class SystemConfig(Base):
    """Global key/value settings (evolution_api, otp_whatsapp, global_payment)"""

    __tablename__ = "system_config"

    key = Column(String(100), primary_key=True)
    value = Column(JSON, nullable=True)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())


class WhatsAppConfig(Base):
    """Per-unit WhatsApp provider configuration"""

    __tablename__ = "whatsapp_config"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    barbershop_id = Column(String(36), ForeignKey("barbershops.id"), nullable=False, index=True)
    provider = Column(String(20), default="evolution", nullable=False)  # evolution, meta

    # Evolution API (api_key encrypted)
    api_url = Column(String(500), nullable=True)
    api_key = Column(Text, nullable=True)
    instance_name = Column(String(255), nullable=True)

    # Meta Cloud API (access_token encrypted)
    phone_number_id = Column(String(100), nullable=True)
    access_token = Column(Text, nullable=True)

    is_active = Column(Boolean, default=True, nullable=False)
    connection_status = Column(String(30), nullable=True)  # connected, disconnected, not_found
    last_health_check = Column(DateTime, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())


class WhatsAppLog(Base):
    """Every WhatsApp send attempt"""

    __tablename__ = "whatsapp_logs"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    barbershop_id = Column(String(36), ForeignKey("barbershops.id"), nullable=True, index=True)
    appointment_id = Column(String(36), nullable=True)
    recipient_phone = Column(String(30), nullable=False)
    message_content = Column(Text, nullable=False)
    message_type = Column(String(50), nullable=True)
    status = Column(String(20), nullable=False)  # sent, failed
    provider = Column(String(20), nullable=True)
    instance_used = Column(String(255), nullable=True)
    provider_message_id = Column(String(255), nullable=True)
    error_message = Column(Text, nullable=True)
    created_at = Column(DateTime, server_default=func.now())


class PaymentSettings(Base):
    """Per-unit payment gateway settings (credentials encrypted)"""

    __tablename__ = "payment_settings"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    barbershop_id = Column(String(36), ForeignKey("barbershops.id"), nullable=False, unique=True)
    preferred_gateway = Column(String(30), nullable=True)  # mercadopago, stripe, asaas
    use_global_credentials = Column(Boolean, default=True, nullable=False)
    mercadopago_access_token = Column(Text, nullable=True)
    stripe_secret_key = Column(Text, nullable=True)
    asaas_api_key = Column(Text, nullable=True)
    asaas_sandbox = Column(Boolean, default=False, nullable=False)
    require_deposit = Column(Boolean, default=False, nullable=False)
    deposit_percentage = Column(Float, default=0, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())


class BrandingConfig(Base):
    __tablename__ = "branding_config"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    barbershop_id = Column(String(36), ForeignKey("barbershops.id"), nullable=False, unique=True)
    system_name = Column(String(255), nullable=True)
    tagline = Column(String(500), nullable=True)
    primary_color = Column(String(7), nullable=True)  # e.g., #RRGGBB
    secondary_color = Column(String(7), nullable=True)
    accent_color = Column(String(7), nullable=True)
    logo_url = Column(String(500), nullable=True)
    logo_dark_url = Column(String(500), nullable=True)
    favicon_url = Column(String(500), nullable=True)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())


class BarbershopDomain(Base):
    """Subdomain and custom domain routing for a unit"""

    __tablename__ = "barbershop_domains"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    barbershop_id = Column(String(36), ForeignKey("barbershops.id"), nullable=False, unique=True)
    subdomain = Column(String(63), unique=True, index=True, nullable=True)
    custom_domain = Column(String(255), unique=True, index=True, nullable=True)
    verification_token = Column(String(255), nullable=True)
    custom_domain_status = Column(String(30), default="pending", nullable=True)  # pending, setting_up, active
    dns_verified_at = Column(DateTime, nullable=True)
    last_checked_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
