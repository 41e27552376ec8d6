import json
import time
from datetime import date

import httpx
import pytest

from barbersmart.models import Appointment
from barbersmart.models_integrations import SystemConfig
from barbersmart.routes import payment_webhooks
from barbersmart.routes.payment_webhooks import asaas_payment_status, mercadopago_payment_status
from barbersmart.security_utils import encrypt_credential
from barbersmart.services import payment_service
from barbersmart.webhook_security import (
    compute_hmac_sha256,
    parse_signature_header,
    verify_mercadopago_signature,
    verify_stripe_signature,
)

STRIPE_SECRET = "whsec_test"
MP_SECRET = "mp-secret"


@pytest.fixture
def appointment(db, tenant):
    apt = Appointment(
        barbershop_id=tenant.root.id,
        client_name="João",
        service_name="Corte",
        service_price=45.0,
        appointment_date=date(2030, 3, 4),
        appointment_time="10:00",
        payment_status="pending",
        payment_gateway="stripe",
        payment_id="cs_1",
    )
    db.add(apt)
    db.commit()
    return apt


def _stripe_headers(body: bytes, secret: str = STRIPE_SECRET, timestamp: int = None) -> dict:
    timestamp = timestamp or int(time.time())
    signature = compute_hmac_sha256(secret, f"{timestamp}.".encode() + body)
    return {"Stripe-Signature": f"t={timestamp},v1={signature}", "Content-Type": "application/json"}


def _stripe_event(appointment_id: str, **session) -> bytes:
    obj = {"id": "cs_1", "client_reference_id": appointment_id, "payment_status": "paid", "amount_total": 4500}
    obj.update(session)
    return json.dumps({"type": "checkout.session.completed", "data": {"object": obj}}).encode()


# ============================================================================
# SIGNATURES
# ============================================================================


def test_parse_signature_header():
    assert parse_signature_header("t=1, v1=abc,broken") == {"t": "1", "v1": "abc"}
    assert parse_signature_header(None) == {}


def test_stripe_signature_rejects_stale_timestamp():
    body = b'{"type": "ping"}'
    headers = _stripe_headers(body, timestamp=1_000_000)
    assert verify_stripe_signature(body, headers["Stripe-Signature"], STRIPE_SECRET, now=1_000_100) is True
    assert verify_stripe_signature(body, headers["Stripe-Signature"], STRIPE_SECRET, now=1_001_000) is False
    assert verify_stripe_signature(body, headers["Stripe-Signature"], "other", now=1_000_100) is False


def test_mercadopago_signature_manifest():
    signature = compute_hmac_sha256(MP_SECRET, b"id:123;request-id:req-1;ts:1700000000;")
    header = f"ts=1700000000,v1={signature}"
    assert verify_mercadopago_signature(header, "req-1", "123", MP_SECRET) is True
    assert verify_mercadopago_signature(header, "req-2", "123", MP_SECRET) is False
    assert verify_mercadopago_signature("v1=abc", "req-1", "123", MP_SECRET) is False


# ============================================================================
# STATUS MAPPING
# ============================================================================


def test_mercadopago_status_mapping():
    assert mercadopago_payment_status({"status": "approved"}) == "paid_online"
    assert mercadopago_payment_status({"status": "approved", "metadata": {"payment_type": "deposit"}}) == "partial"
    assert mercadopago_payment_status({"status": "rejected"}) == "pending"
    assert mercadopago_payment_status({"status": "charged_back"}) == "refunded"


def test_asaas_status_mapping():
    assert asaas_payment_status("PAYMENT_RECEIVED", {}) == "paid_online"
    assert asaas_payment_status("PAYMENT_OVERDUE", {}) == "overdue"
    assert asaas_payment_status("PAYMENT_UPDATED", {"status": "REFUNDED"}) == "refunded"
    assert asaas_payment_status("PAYMENT_UPDATED", {"status": "AWAITING_RISK_ANALYSIS"}) is None
    assert asaas_payment_status("PAYMENT_CHECKOUT_VIEWED", {}) is None


# ============================================================================
# STRIPE
# ============================================================================


def test_stripe_checkout_completed_marks_paid(client, db, appointment, monkeypatch):
    monkeypatch.setattr(payment_webhooks, "STRIPE_WEBHOOK_SECRET", STRIPE_SECRET)
    body = _stripe_event(appointment.id)

    response = client.post("/webhooks/payments/stripe", content=body, headers=_stripe_headers(body))

    assert response.status_code == 200
    assert response.json() == {
        "status": "success",
        "event_type": "checkout.session.completed",
        "payment_status": "paid_online",
    }
    db.refresh(appointment)
    assert appointment.payment_status == "paid_online"
    assert appointment.payment_amount == 45.0
    assert appointment.status == "confirmado"


def test_stripe_deposit_is_partial(client, db, appointment, monkeypatch):
    monkeypatch.setattr(payment_webhooks, "STRIPE_WEBHOOK_SECRET", STRIPE_SECRET)
    body = _stripe_event(appointment.id, amount_total=1350, metadata={"payment_type": "deposit"})

    client.post("/webhooks/payments/stripe", content=body, headers=_stripe_headers(body))

    db.refresh(appointment)
    assert appointment.payment_status == "partial"
    assert appointment.payment_amount == 13.5


def test_stripe_bad_signature_changes_nothing(client, db, appointment, monkeypatch):
    monkeypatch.setattr(payment_webhooks, "STRIPE_WEBHOOK_SECRET", STRIPE_SECRET)
    body = _stripe_event(appointment.id)

    response = client.post("/webhooks/payments/stripe", content=body, headers=_stripe_headers(body, secret="forged"))

    assert response.status_code == 401
    db.refresh(appointment)
    assert appointment.payment_status == "pending"
    assert appointment.status == "pendente"


def test_stripe_session_found_by_payment_id(client, db, appointment, monkeypatch):
    monkeypatch.setattr(payment_webhooks, "STRIPE_WEBHOOK_SECRET", None)
    body = _stripe_event(None)

    response = client.post("/webhooks/payments/stripe", content=body, headers={"Content-Type": "application/json"})

    assert response.json()["payment_status"] == "paid_online"
    db.refresh(appointment)
    assert appointment.payment_status == "paid_online"


def test_invalid_json_is_rejected(client, monkeypatch):
    monkeypatch.setattr(payment_webhooks, "STRIPE_WEBHOOK_SECRET", None)
    response = client.post("/webhooks/payments/stripe", content=b"not json")
    assert response.status_code == 400


# ============================================================================
# MERCADO PAGO
# ============================================================================


def test_mercadopago_payment_is_read_back(client, db, tenant, appointment, monkeypatch):
    monkeypatch.setattr(payment_webhooks, "MERCADOPAGO_WEBHOOK_SECRET", MP_SECRET)
    db.add(SystemConfig(key="global_payment", value={"mercadopago_access_token": encrypt_credential("APP_USR-1")}))
    db.commit()
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["auth"] = request.headers["Authorization"]
        return httpx.Response(
            200,
            json={"id": 987, "status": "approved", "transaction_amount": 45.0, "external_reference": appointment.id},
        )

    monkeypatch.setattr(
        payment_service, "_http_client", lambda: httpx.AsyncClient(transport=httpx.MockTransport(handler))
    )
    ts = str(int(time.time()))
    signature = compute_hmac_sha256(MP_SECRET, f"id:987;request-id:req-1;ts:{ts};".encode())
    body = json.dumps({"type": "payment", "action": "payment.updated", "data": {"id": "987"}}).encode()

    response = client.post(
        "/webhooks/payments/mercadopago?data.id=987&type=payment",
        content=body,
        headers={"x-signature": f"ts={ts},v1={signature}", "x-request-id": "req-1"},
    )

    assert response.status_code == 200
    assert response.json()["payment_status"] == "paid_online"
    assert seen == {"path": "/v1/payments/987", "auth": "Bearer APP_USR-1"}
    db.refresh(appointment)
    assert appointment.payment_status == "paid_online"
    assert appointment.payment_id == "987"
    assert appointment.status == "confirmado"


def test_mercadopago_bad_signature(client, appointment, monkeypatch):
    monkeypatch.setattr(payment_webhooks, "MERCADOPAGO_WEBHOOK_SECRET", MP_SECRET)
    body = json.dumps({"type": "payment", "data": {"id": "987"}}).encode()
    response = client.post(
        "/webhooks/payments/mercadopago",
        content=body,
        headers={"x-signature": "ts=1,v1=forged", "x-request-id": "req-1"},
    )
    assert response.status_code == 401


def test_mercadopago_non_payment_notification_is_ignored(client, monkeypatch):
    monkeypatch.setattr(payment_webhooks, "MERCADOPAGO_WEBHOOK_SECRET", None)
    body = json.dumps({"type": "merchant_order", "data": {"id": "5"}}).encode()
    response = client.post("/webhooks/payments/mercadopago", content=body)
    assert response.status_code == 200
    assert response.json()["payment_status"] is None


# ============================================================================
# ASAAS
# ============================================================================


def _asaas(client, body: dict, token: str = "asaas-token"):
    return client.post("/webhooks/payments/asaas", json=body, headers={"asaas-access-token": token})


def test_asaas_payment_received(client, db, appointment, monkeypatch):
    monkeypatch.setattr(payment_webhooks, "ASAAS_WEBHOOK_TOKEN", "asaas-token")

    response = _asaas(
        client, {"event": "PAYMENT_RECEIVED", "payment": {"id": "pay_1", "externalReference": appointment.id}}
    )

    assert response.json()["payment_status"] == "paid_online"
    db.refresh(appointment)
    assert appointment.payment_status == "paid_online"
    assert appointment.payment_id == "pay_1"
    assert appointment.status == "confirmado"


def test_asaas_wrong_token(client, db, appointment, monkeypatch):
    monkeypatch.setattr(payment_webhooks, "ASAAS_WEBHOOK_TOKEN", "asaas-token")

    response = _asaas(
        client, {"event": "PAYMENT_RECEIVED", "payment": {"externalReference": appointment.id}}, token="guess"
    )

    assert response.status_code == 401
    db.refresh(appointment)
    assert appointment.payment_status == "pending"


def test_asaas_refund_keeps_appointment_status(client, db, appointment, monkeypatch):
    monkeypatch.setattr(payment_webhooks, "ASAAS_WEBHOOK_TOKEN", "asaas-token")
    appointment.status = "concluido"
    db.commit()

    _asaas(client, {"event": "PAYMENT_REFUNDED", "payment": {"id": "pay_1", "externalReference": appointment.id}})

    db.refresh(appointment)
    assert appointment.payment_status == "refunded"
    assert appointment.status == "concluido"
