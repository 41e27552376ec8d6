"""
WhatsApp Service
Resolves which WhatsApp provider/instance to use for a unit and sends messages

Resolution order for Evolution API:
1. Unit config (whatsapp_config), inheriting URL/key from the global config when missing
2. Global config (system_config.evolution_api + system_config.otp_whatsapp instance)
3. Any other connected instance on the global server (fallback)
"""

import logging
import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

import httpx
from sqlalchemy.orm import Session

from ..config import WHATSAPP_ACCESS_TOKEN, WHATSAPP_GRAPH_VERSION, WHATSAPP_PHONE_NUMBER_ID
from ..models_integrations import SystemConfig, WhatsAppConfig, WhatsAppLog
from ..security_utils import decrypt_credential

logger = logging.getLogger(__name__)

HTTP_TIMEOUT = 15.0

ERROR_INSTANCE = "INSTANCE_ERROR"
ERROR_SEND_FAILED = "SEND_FAILED"
ERROR_EXCEPTION = "EXCEPTION"
ERROR_NO_CONFIG = "NO_CONFIG"


@dataclass
class EvolutionConfig:
    api_url: str
    api_key: str
    instance_name: str
    source: str  # barbershop, global
    barbershop_id: Optional[str] = None

    @property
    def base_url(self) -> str:
        return self.api_url.rstrip("/")


@dataclass
class HealthResult:
    connected: bool
    state: str
    owner_jid: Optional[str] = None
    phone_number: Optional[str] = None


@dataclass
class SendResult:
    success: bool
    message_id: Optional[str] = None
    error: Optional[str] = None
    error_code: Optional[str] = None
    instance_used: Optional[str] = None
    source: Optional[str] = None
    provider: str = "evolution"
    extra: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "success": self.success,
            "message_id": self.message_id,
            "error": self.error,
            "error_code": self.error_code,
            "instance_used": self.instance_used,
            "source": self.source,
            "provider": self.provider,
        }


def _http_client() -> httpx.AsyncClient:
    return httpx.AsyncClient(timeout=HTTP_TIMEOUT)


def format_phone_number(phone: str) -> str:
    """Digits only, with the 55 country code added to national numbers"""
    formatted = re.sub(r"\D", "", phone or "")
    if not formatted.startswith("55") and len(formatted) <= 11:
        formatted = "55" + formatted
    return formatted


def get_system_config(db: Session, key: str) -> dict:
    row = db.query(SystemConfig).filter(SystemConfig.key == key).first()
    return (row.value or {}) if row else {}


# ============================================================================
# EVOLUTION API
# ============================================================================


async def check_instance_health(config: EvolutionConfig) -> HealthResult:
    """Query the instance connection state; 'open' means connected"""
    try:
        logger.debug(f"🔍 Checking WhatsApp instance health: {config.instance_name}")
        async with _http_client() as client:
            response = await client.get(
                f"{config.base_url}/instance/connectionState/{config.instance_name}",
                headers={"apikey": config.api_key, "Content-Type": "application/json"},
            )

        if response.status_code == 404:
            return HealthResult(connected=False, state="not_found")
        if not response.is_success:
            return HealthResult(connected=False, state="error")

        data = response.json() or {}
        instance = data.get("instance") or {}
        state = data.get("state") or instance.get("state") or "unknown"
        owner_jid = instance.get("ownerJid") or data.get("ownerJid")
        logger.info(f"📡 Instance {config.instance_name} state: {state}")
        return HealthResult(
            connected=state == "open",
            state=state,
            owner_jid=owner_jid,
            phone_number=owner_jid.split("@")[0] if owner_jid else None,
        )
    except (httpx.HTTPError, ValueError) as e:
        logger.error(f"❌ Health check error for {config.instance_name}: {e}")
        return HealthResult(connected=False, state="error")


async def fetch_all_instances(api_url: str, api_key: str) -> list[dict]:
    """List instances on an Evolution server as {name, state, owner_jid}"""
    try:
        async with _http_client() as client:
            response = await client.get(
                f"{api_url.rstrip('/')}/instance/fetchInstances",
                headers={"apikey": api_key, "Content-Type": "application/json"},
            )
        if not response.is_success:
            logger.error(f"❌ fetchInstances failed: HTTP {response.status_code}")
            return []
        data = response.json()
    except (httpx.HTTPError, ValueError) as e:
        logger.error(f"❌ fetchInstances error: {e}")
        return []

    entries = data if isinstance(data, list) else [v for v in (data or {}).values() if isinstance(v, dict)]
    instances = []
    for inst in entries:
        nested = inst.get("instance") or {}
        name = inst.get("instanceName") or inst.get("name") or nested.get("instanceName") or ""
        if not name:
            continue
        instances.append(
            {
                "name": name,
                "state": inst.get("connectionStatus") or inst.get("state") or nested.get("state") or "unknown",
                "owner_jid": inst.get("ownerJid") or nested.get("ownerJid"),
            }
        )
    logger.info(f"📋 Found {len(instances)} WhatsApp instances")
    return instances


async def resolve_whatsapp_config(
    db: Session,
    barbershop_id: Optional[str] = None,
    require_connected: bool = False,
    skip_health_check: bool = False,
) -> Optional[EvolutionConfig]:
    """Pick the Evolution config for a unit, falling back to the global instance"""
    logger.info(f"🔎 Resolving WhatsApp config for barbershop: {barbershop_id or 'GLOBAL'}")
    global_evolution = get_system_config(db, "evolution_api")
    check_health = require_connected and not skip_health_check

    # 1. Unit-specific config
    if barbershop_id:
        unit_config = (
            db.query(WhatsAppConfig)
            .filter(
                WhatsAppConfig.barbershop_id == barbershop_id,
                WhatsAppConfig.provider == "evolution",
                WhatsAppConfig.is_active.is_(True),
            )
            .first()
        )
        if unit_config:
            api_url = unit_config.api_url or global_evolution.get("api_url")
            api_key = decrypt_credential(unit_config.api_key) or global_evolution.get("api_key")
            if api_url and api_key and unit_config.instance_name:
                config = EvolutionConfig(
                    api_url=api_url,
                    api_key=api_key,
                    instance_name=unit_config.instance_name,
                    source="barbershop",
                    barbershop_id=barbershop_id,
                )
                if not check_health:
                    return config
                health = await check_instance_health(config)
                if health.connected:
                    return config
                logger.warning(f"⚠️ Barbershop instance {config.instance_name} not connected, trying global")

    # 2. Global config
    if not global_evolution.get("api_url") or not global_evolution.get("api_key"):
        logger.info("No global Evolution API configured")
        return None

    instance_name = get_system_config(db, "otp_whatsapp").get("instance_name")
    if not instance_name:
        logger.info("No global WhatsApp instance configured")
        return None

    config = EvolutionConfig(
        api_url=global_evolution["api_url"],
        api_key=global_evolution["api_key"],
        instance_name=instance_name,
        source="global",
    )
    if check_health:
        health = await check_instance_health(config)
        if not health.connected:
            logger.warning(f"⚠️ Global instance {instance_name} not connected")
            return None

    logger.info(f"✅ Using global WhatsApp config: {instance_name}")
    return config


async def find_connected_fallback(db: Session, exclude_instance: Optional[str] = None) -> Optional[EvolutionConfig]:
    """Any connected instance on the global Evolution server, other than ``exclude_instance``"""
    global_evolution = get_system_config(db, "evolution_api")
    api_url = global_evolution.get("api_url")
    api_key = global_evolution.get("api_key")
    if not api_url or not api_key:
        return None

    for inst in await fetch_all_instances(api_url, api_key):
        if inst["state"] == "open" and inst["name"] != exclude_instance:
            logger.info(f"🔁 Found fallback WhatsApp instance: {inst['name']}")
            return EvolutionConfig(api_url=api_url, api_key=api_key, instance_name=inst["name"], source="global")

    logger.info("No fallback WhatsApp instance found")
    return None


def _log_message(
    db: Optional[Session],
    barbershop_id: Optional[str],
    phone: str,
    message: str,
    result: SendResult,
    message_type: Optional[str],
    appointment_id: Optional[str],
) -> None:
    if db is None:
        return
    try:
        db.add(
            WhatsAppLog(
                barbershop_id=barbershop_id,
                appointment_id=appointment_id,
                recipient_phone=phone,
                message_content=message,
                message_type=message_type or "notification",
                status="sent" if result.success else "failed",
                provider=result.provider,
                instance_used=result.instance_used,
                provider_message_id=result.message_id,
                error_message=result.error,
            )
        )
        db.commit()
    except Exception as e:
        db.rollback()
        logger.error(f"❌ Failed to log WhatsApp message: {e}")


async def send_evolution_message(
    config: EvolutionConfig,
    to: str,
    message: str,
    db: Optional[Session] = None,
    barbershop_id: Optional[str] = None,
    message_type: Optional[str] = None,
    appointment_id: Optional[str] = None,
) -> SendResult:
    """Send a text message through an Evolution instance and log the attempt"""
    phone = format_phone_number(to)
    logger.info(f"📱 Sending WhatsApp message to {phone} via {config.instance_name}")

    try:
        async with _http_client() as client:
            response = await client.post(
                f"{config.base_url}/message/sendText/{config.instance_name}",
                headers={"apikey": config.api_key, "Content-Type": "application/json"},
                json={"number": phone, "text": message},
            )

        try:
            data = response.json() or {}
        except ValueError:
            data = {}

        if not response.is_success:
            error = str(data.get("message") or data.get("error") or data or response.text)
            is_instance_error = (
                "instance" in error
                or "Nenhuma instância" in error
                or "not found" in error
                or response.status_code == 404
            )
            logger.error(f"❌ WhatsApp send failed ({response.status_code}): {error}")
            result = SendResult(
                success=False,
                error=error,
                error_code=ERROR_INSTANCE if is_instance_error else ERROR_SEND_FAILED,
                instance_used=config.instance_name,
                source=config.source,
            )
        else:
            message_id = (data.get("key") or {}).get("id") or data.get("messageId") or data.get("id")
            logger.info(f"✅ WhatsApp message sent: {message_id}")
            result = SendResult(
                success=True, message_id=message_id, instance_used=config.instance_name, source=config.source
            )
    except httpx.HTTPError as e:
        logger.error(f"❌ WhatsApp send exception: {e}")
        result = SendResult(
            success=False,
            error=str(e),
            error_code=ERROR_EXCEPTION,
            instance_used=config.instance_name,
            source=config.source,
        )

    _log_message(db, barbershop_id, phone, message, result, message_type, appointment_id)
    return result


async def send_with_fallback(
    db: Session,
    barbershop_id: Optional[str],
    to: str,
    message: str,
    message_type: Optional[str] = None,
    appointment_id: Optional[str] = None,
) -> SendResult:
    """Send through the resolved instance, retrying once on another connected instance on instance errors"""
    log_kwargs = {
        "db": db,
        "barbershop_id": barbershop_id,
        "message_type": message_type,
        "appointment_id": appointment_id,
    }

    config = await resolve_whatsapp_config(db, barbershop_id, require_connected=True)
    if config is None:
        fallback = await find_connected_fallback(db)
        if fallback is None:
            return SendResult(
                success=False, error="Nenhuma configuração WhatsApp disponível", error_code=ERROR_NO_CONFIG
            )
        return await send_evolution_message(fallback, to, message, **log_kwargs)

    result = await send_evolution_message(config, to, message, **log_kwargs)
    if not result.success and result.error_code == ERROR_INSTANCE:
        logger.warning(f"⚠️ Primary instance {config.instance_name} failed, trying fallback")
        fallback = await find_connected_fallback(db, exclude_instance=config.instance_name)
        if fallback is not None:
            return await send_evolution_message(fallback, to, message, **log_kwargs)
    return result


# ============================================================================
# META CLOUD API
# ============================================================================


async def send_meta_message(
    phone_number_id: str,
    access_token: str,
    to: str,
    message: str,
    db: Optional[Session] = None,
    barbershop_id: Optional[str] = None,
    message_type: Optional[str] = None,
    appointment_id: Optional[str] = None,
) -> SendResult:
    """Send a text message through the WhatsApp Cloud API"""
    phone = format_phone_number(to)
    url = f"https://graph.facebook.com/{WHATSAPP_GRAPH_VERSION}/{phone_number_id}/messages"
    logger.info(f"📱 Sending WhatsApp (Meta) message to {phone}")

    try:
        async with _http_client() as client:
            response = await client.post(
                url,
                headers={"Authorization": f"Bearer {access_token}", "Content-Type": "application/json"},
                json={"messaging_product": "whatsapp", "to": phone, "type": "text", "text": {"body": message}},
            )
        try:
            data = response.json() or {}
        except ValueError:
            data = {}

        if response.is_success:
            messages = data.get("messages") or [{}]
            result = SendResult(success=True, message_id=messages[0].get("id"), provider="meta", source="barbershop")
            logger.info(f"✅ WhatsApp (Meta) message sent: {result.message_id}")
        else:
            error = (data.get("error") or {}).get("message") or response.text
            logger.error(f"❌ WhatsApp (Meta) send failed ({response.status_code}): {error}")
            result = SendResult(success=False, error=error, error_code=ERROR_SEND_FAILED, provider="meta")
    except httpx.HTTPError as e:
        logger.error(f"❌ WhatsApp (Meta) send exception: {e}")
        result = SendResult(success=False, error=str(e), error_code=ERROR_EXCEPTION, provider="meta")

    _log_message(db, barbershop_id, phone, message, result, message_type, appointment_id)
    return result


async def send_message(
    db: Session,
    barbershop_id: Optional[str],
    to: str,
    message: str,
    message_type: Optional[str] = None,
    appointment_id: Optional[str] = None,
) -> SendResult:
    """Entry point: a unit with an active Meta config uses it; everyone else goes through Evolution"""
    if barbershop_id:
        meta_config = (
            db.query(WhatsAppConfig)
            .filter(
                WhatsAppConfig.barbershop_id == barbershop_id,
                WhatsAppConfig.provider == "meta",
                WhatsAppConfig.is_active.is_(True),
            )
            .first()
        )
        if meta_config:
            access_token = decrypt_credential(meta_config.access_token) or WHATSAPP_ACCESS_TOKEN
            phone_number_id = meta_config.phone_number_id or WHATSAPP_PHONE_NUMBER_ID
            if access_token and phone_number_id:
                return await send_meta_message(
                    phone_number_id, access_token, to, message, db, barbershop_id, message_type, appointment_id
                )
            logger.warning(f"⚠️ Meta config for {barbershop_id} is incomplete, using Evolution")

    return await send_with_fallback(db, barbershop_id, to, message, message_type, appointment_id)


async def diagnose_whatsapp(db: Session, barbershop_id: Optional[str] = None) -> dict:
    """Snapshot of global/unit configuration, resolved instance, its health and all server instances"""
    global_evolution = get_system_config(db, "evolution_api")
    global_otp = get_system_config(db, "otp_whatsapp")

    unit_config = None
    if barbershop_id:
        unit_config = (
            db.query(WhatsAppConfig)
            .filter(WhatsAppConfig.barbershop_id == barbershop_id, WhatsAppConfig.provider == "evolution")
            .first()
        )

    resolved = await resolve_whatsapp_config(db, barbershop_id, skip_health_check=True)
    health = await check_instance_health(resolved) if resolved else None

    if health is not None and unit_config is not None and resolved.source == "barbershop":
        unit_config.connection_status = "connected" if health.connected else health.state
        unit_config.last_health_check = datetime.utcnow()
        db.commit()

    all_instances = []
    if global_evolution.get("api_url") and global_evolution.get("api_key"):
        all_instances = await fetch_all_instances(global_evolution["api_url"], global_evolution["api_key"])

    return {
        "global_config": {
            "evolution_api_configured": bool(global_evolution.get("api_url") and global_evolution.get("api_key")),
            "api_url": global_evolution.get("api_url"),
            "otp_instance_configured": bool(global_otp.get("instance_name")),
            "otp_instance_name": global_otp.get("instance_name"),
        },
        "barbershop_config": (
            {
                "has_own_config": unit_config is not None,
                "instance_name": unit_config.instance_name if unit_config else None,
                "is_active": bool(unit_config.is_active) if unit_config else False,
            }
            if barbershop_id
            else None
        ),
        "resolved_config": (
            {"instance_name": resolved.instance_name, "source": resolved.source, "api_url": resolved.api_url}
            if resolved
            else None
        ),
        "instance_health": (
            {"connected": health.connected, "state": health.state, "phone_number": health.phone_number}
            if health
            else None
        ),
        "all_instances": [{"name": i["name"], "state": i["state"]} for i in all_instances],
    }
