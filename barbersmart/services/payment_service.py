"""
Payment Service
Creates online payments for appointments through Mercado Pago, Stripe or Asaas

Credentials come from the unit's payment_settings (encrypted) or, when the unit
uses global credentials, from system_config.global_payment.
"""

import logging
from dataclasses import dataclass, replace
from datetime import date, timedelta
from typing import Optional

import httpx
from fastapi import HTTPException
from sqlalchemy.orm import Session

from ..config import FRONTEND_URL
from ..models import Appointment
from ..models_integrations import PaymentSettings
from ..security_utils import decrypt_credential
from .whatsapp_service import get_system_config

logger = logging.getLogger(__name__)

HTTP_TIMEOUT = 30.0

GATEWAYS = ("mercadopago", "stripe", "asaas")
DEFAULT_GATEWAY = "mercadopago"

# Order tried when the chosen gateway is disabled globally
GATEWAY_FALLBACKS = {
    "stripe": ("mercadopago", "asaas"),
    "mercadopago": ("stripe", "asaas"),
    "asaas": ("mercadopago", "stripe"),
}

CREDENTIAL_FIELDS = {
    "mercadopago": "mercadopago_access_token",
    "stripe": "stripe_secret_key",
    "asaas": "asaas_api_key",
}

MERCADOPAGO_PREFERENCES_URL = "https://api.mercadopago.com/checkout/preferences"
MERCADOPAGO_PAYMENTS_URL = "https://api.mercadopago.com/v1/payments"
STRIPE_CHECKOUT_URL = "https://api.stripe.com/v1/checkout/sessions"
ASAAS_URL = "https://api.asaas.com/v3"
ASAAS_SANDBOX_URL = "https://sandbox.asaas.com/api/v3"


@dataclass
class PaymentRequest:
    """Checkout data; name and price are taken from the stored appointment"""

    appointment_id: str
    client_name: str
    service_name: Optional[str] = None
    service_price: Optional[float] = None
    client_email: Optional[str] = None
    client_cpf_cnpj: Optional[str] = None
    client_phone: Optional[str] = None
    billing_type: str = "PIX"
    deposit_only: bool = False
    gateway: Optional[str] = None


def _http_client() -> httpx.AsyncClient:
    return httpx.AsyncClient(timeout=HTTP_TIMEOUT)


def select_gateway(
    requested: Optional[str], settings: Optional[PaymentSettings], global_config: Optional[dict]
) -> Optional[str]:
    """
    Explicit gateway, else the unit preference, else Mercado Pago.
    With global credentials (or no unit settings) a gateway disabled globally
    is replaced by the first enabled alternative; None when nothing is enabled.
    """
    selected = requested or (settings.preferred_gateway if settings else None) or DEFAULT_GATEWAY

    uses_global = settings is None or settings.use_global_credentials
    if uses_global and global_config:
        if not global_config.get(f"{selected}_enabled"):
            selected = next(
                (g for g in GATEWAY_FALLBACKS.get(selected, ()) if global_config.get(f"{g}_enabled")),
                None,
            )
    return selected


def calculate_amount(price: float, deposit_only: bool, settings: Optional[PaymentSettings]) -> tuple[float, str]:
    """(amount, payment_type); a deposit applies only when the unit requires one"""
    if deposit_only and settings and settings.require_deposit and (settings.deposit_percentage or 0) > 0:
        return price * settings.deposit_percentage / 100, "deposit"
    return price, "full"


def resolve_credential(gateway: str, settings: Optional[PaymentSettings], global_config: dict) -> Optional[str]:
    field_name = CREDENTIAL_FIELDS[gateway]
    own = getattr(settings, field_name, None) if settings else None
    if settings is None or settings.use_global_credentials or not own:
        return decrypt_credential(global_config.get(field_name))
    return decrypt_credential(own)


def _gateway_error(gateway: str, response: httpx.Response, detail: str) -> HTTPException:
    logger.error(f"❌ {gateway} error {response.status_code}: {response.text[:500]}")
    return HTTPException(status_code=502, detail=detail)


# ============================================================================
# GATEWAYS
# ============================================================================


async def create_mercadopago_payment(
    token: str, barbershop_id: str, req: PaymentRequest, amount: float, payment_type: str, deposit_pct: float
) -> dict:
    origin = FRONTEND_URL.rstrip("/")
    description = f"Sinal de {deposit_pct:g}% - {req.service_name}" if payment_type == "deposit" else req.service_name
    preference = {
        "items": [
            {
                "id": req.appointment_id,
                "title": req.service_name,
                "description": description,
                "quantity": 1,
                "currency_id": "BRL",
                "unit_price": round(amount, 2),
            }
        ],
        "payer": {"name": req.client_name, **({"email": req.client_email} if req.client_email else {})},
        "back_urls": {
            "success": f"{origin}/booking/success?appointment={req.appointment_id}",
            "failure": f"{origin}/booking/failure?appointment={req.appointment_id}",
            "pending": f"{origin}/booking/pending?appointment={req.appointment_id}",
        },
        "auto_return": "approved",
        "external_reference": req.appointment_id,
        "metadata": {
            "barbershop_id": barbershop_id,
            "appointment_id": req.appointment_id,
            "payment_type": payment_type,
            "original_price": req.service_price,
        },
    }

    async with _http_client() as client:
        response = await client.post(
            MERCADOPAGO_PREFERENCES_URL, headers={"Authorization": f"Bearer {token}"}, json=preference
        )
    if not response.is_success:
        raise _gateway_error("Mercado Pago", response, "Erro ao criar preferência de pagamento")

    data = response.json()
    return {
        "payment_id": data["id"],
        "preference_id": data["id"],
        "init_point": data.get("init_point"),
        "sandbox_init_point": data.get("sandbox_init_point"),
    }


async def create_stripe_payment(
    secret_key: str, barbershop_id: str, req: PaymentRequest, amount: float, payment_type: str
) -> dict:
    origin = FRONTEND_URL.rstrip("/")
    form = {
        "payment_method_types[0]": "card",
        "line_items[0][price_data][currency]": "brl",
        "line_items[0][price_data][product_data][name]": req.service_name,
        "line_items[0][price_data][unit_amount]": str(round(amount * 100)),
        "line_items[0][quantity]": "1",
        "mode": "payment",
        "success_url": f"{origin}/booking/success?appointment={req.appointment_id}&session_id={{CHECKOUT_SESSION_ID}}",
        "cancel_url": f"{origin}/booking/failure?appointment={req.appointment_id}",
        "client_reference_id": req.appointment_id,
        "metadata[barbershop_id]": barbershop_id,
        "metadata[appointment_id]": req.appointment_id,
        "metadata[payment_type]": payment_type,
    }
    if req.client_email:
        form["customer_email"] = req.client_email

    async with _http_client() as client:
        response = await client.post(STRIPE_CHECKOUT_URL, headers={"Authorization": f"Bearer {secret_key}"}, data=form)
    if not response.is_success:
        raise _gateway_error("Stripe", response, "Erro ao criar sessão de pagamento")

    data = response.json()
    return {"payment_id": data["id"], "session_id": data["id"], "checkout_url": data.get("url")}


async def create_asaas_payment(api_key: str, sandbox: bool, req: PaymentRequest, amount: float) -> dict:
    base_url = ASAAS_SANDBOX_URL if sandbox else ASAAS_URL
    headers = {"access_token": api_key}

    async with _http_client() as client:
        customer_id = None
        if req.client_cpf_cnpj:
            search = await client.get(f"{base_url}/customers", headers=headers, params={"cpfCnpj": req.client_cpf_cnpj})
            if search.is_success:
                found = (search.json() or {}).get("data") or []
                if found:
                    customer_id = found[0]["id"]

        if not customer_id:
            customer = {"name": req.client_name}
            if req.client_email:
                customer["email"] = req.client_email
            if req.client_cpf_cnpj:
                customer["cpfCnpj"] = req.client_cpf_cnpj
            if req.client_phone:
                customer["phone"] = req.client_phone
            created = await client.post(f"{base_url}/customers", headers=headers, json=customer)
            if not created.is_success:
                raise _gateway_error("Asaas", created, "Erro ao criar cliente no Asaas")
            customer_id = created.json()["id"]

        due = date.today() + timedelta(days=3 if req.billing_type == "BOLETO" else 0)
        payment_response = await client.post(
            f"{base_url}/payments",
            headers=headers,
            json={
                "customer": customer_id,
                "billingType": req.billing_type,
                "value": round(amount, 2),
                "dueDate": due.isoformat(),
                "description": req.service_name,
                "externalReference": req.appointment_id,
            },
        )
        if not payment_response.is_success:
            raise _gateway_error("Asaas", payment_response, "Erro ao criar pagamento no Asaas")
        payment = payment_response.json()

        pix_qr_code = None
        pix_copy_paste = None
        if req.billing_type == "PIX":
            pix = await client.get(f"{base_url}/payments/{payment['id']}/pixQrCode", headers=headers)
            if pix.is_success:
                pix_data = pix.json()
                pix_qr_code = pix_data.get("encodedImage")
                pix_copy_paste = pix_data.get("payload")

    return {
        "payment_id": payment["id"],
        "invoice_url": payment.get("invoiceUrl"),
        "bank_slip_url": payment.get("bankSlipUrl"),
        "pix_qr_code": pix_qr_code,
        "pix_copy_paste": pix_copy_paste,
        "billing_type": req.billing_type,
    }


# ============================================================================
# ENTRY POINT
# ============================================================================


async def create_payment(db: Session, barbershop_id: str, req: PaymentRequest) -> dict:
    """Create the payment on the selected gateway and mark the appointment as pending payment"""
    appointment = (
        db.query(Appointment)
        .filter(Appointment.id == req.appointment_id, Appointment.barbershop_id == barbershop_id)
        .first()
    )
    if not appointment:
        raise HTTPException(status_code=404, detail="Agendamento não encontrado")

    price = float(appointment.service_price or 0)
    if price <= 0:
        raise HTTPException(status_code=400, detail="Agendamento sem valor definido")
    req = replace(req, service_price=price, service_name=appointment.service_name or req.service_name or "Serviço")

    settings = db.query(PaymentSettings).filter(PaymentSettings.barbershop_id == barbershop_id).first()
    global_config = get_system_config(db, "global_payment")

    gateway = select_gateway(req.gateway, settings, global_config)
    if not gateway:
        raise HTTPException(status_code=400, detail="Nenhum gateway de pagamento configurado")
    if gateway not in GATEWAYS:
        raise HTTPException(status_code=400, detail="Gateway de pagamento inválido")

    credential = resolve_credential(gateway, settings, global_config)
    if not credential:
        raise HTTPException(status_code=400, detail=f"Credenciais do gateway {gateway} não configuradas")

    amount, payment_type = calculate_amount(req.service_price, req.deposit_only, settings)
    logger.info(f"💳 Creating {gateway} payment for appointment {req.appointment_id}: {amount:.2f} ({payment_type})")

    if gateway == "stripe":
        details = await create_stripe_payment(credential, barbershop_id, req, amount, payment_type)
    elif gateway == "asaas":
        sandbox = settings.asaas_sandbox if settings and not settings.use_global_credentials else bool(
            global_config.get("asaas_sandbox")
        )
        details = await create_asaas_payment(credential, sandbox, req, amount)
    else:
        deposit_pct = settings.deposit_percentage if settings else 0
        details = await create_mercadopago_payment(credential, barbershop_id, req, amount, payment_type, deposit_pct)

    appointment.payment_status = "pending"
    appointment.payment_method_chosen = "online"
    appointment.payment_gateway = gateway
    appointment.payment_id = details["payment_id"]
    appointment.payment_amount = amount
    db.commit()

    logger.info(f"✅ Payment {details['payment_id']} created via {gateway}")
    return {"gateway": gateway, "amount": amount, "payment_type": payment_type, **details}


# ============================================================================
# WEBHOOK SUPPORT
# ============================================================================


PAID_STATUSES = ("paid_online", "partial")


def mercadopago_tokens(db: Session, barbershop_id: Optional[str] = None) -> list[str]:
    """
    Access tokens that may own a Mercado Pago payment: the unit's resolved
    credential when the unit is known, otherwise every stored one plus the global one.
    """
    global_config = get_system_config(db, "global_payment")
    if barbershop_id:
        settings = db.query(PaymentSettings).filter(PaymentSettings.barbershop_id == barbershop_id).first()
        token = resolve_credential("mercadopago", settings, global_config)
        return [token] if token else []

    tokens = []
    own = (
        db.query(PaymentSettings)
        .filter(
            PaymentSettings.use_global_credentials.is_(False),
            PaymentSettings.mercadopago_access_token.isnot(None),
        )
        .all()
    )
    for settings in own:
        token = decrypt_credential(settings.mercadopago_access_token)
        if token and token not in tokens:
            tokens.append(token)
    global_token = decrypt_credential(global_config.get("mercadopago_access_token"))
    if global_token and global_token not in tokens:
        tokens.append(global_token)
    return tokens


async def fetch_mercadopago_payment(token: str, payment_id: str) -> Optional[dict]:
    async with _http_client() as client:
        response = await client.get(
            f"{MERCADOPAGO_PAYMENTS_URL}/{payment_id}", headers={"Authorization": f"Bearer {token}"}
        )
    if not response.is_success:
        logger.debug(f"Mercado Pago payment {payment_id} not readable with this token: {response.status_code}")
        return None
    return response.json()


def find_payment_appointment(
    db: Session, appointment_id: Optional[str] = None, payment_id: Optional[str] = None
) -> Optional[Appointment]:
    """Appointment referenced by a gateway event, by our id first and then by the gateway payment id"""
    if appointment_id:
        appointment = db.query(Appointment).filter(Appointment.id == str(appointment_id)).first()
        if appointment:
            return appointment
    if payment_id:
        return db.query(Appointment).filter(Appointment.payment_id == str(payment_id)).first()
    return None


def apply_payment_update(
    db: Session,
    appointment: Appointment,
    payment_status: str,
    amount: Optional[float] = None,
    payment_id: Optional[str] = None,
) -> Appointment:
    """Record a gateway status on the appointment; a paid pending appointment becomes confirmed"""
    appointment.payment_status = payment_status
    if amount is not None:
        appointment.payment_amount = amount
    if payment_id:
        appointment.payment_id = str(payment_id)
    if payment_status in PAID_STATUSES and appointment.status == "pendente":
        appointment.status = "confirmado"
    db.commit()
    logger.info(f"💰 Appointment {appointment.id} payment status: {payment_status}")
    return appointment
