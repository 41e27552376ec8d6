"""
Payment Gateway Webhooks
Mercado Pago, Stripe and Asaas notifications that settle appointment payments
"""

import json
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from ..config import ASAAS_WEBHOOK_TOKEN, MERCADOPAGO_WEBHOOK_SECRET, STRIPE_WEBHOOK_SECRET
from ..database import get_db
from ..services.payment_service import (
    apply_payment_update,
    fetch_mercadopago_payment,
    find_payment_appointment,
    mercadopago_tokens,
)
from ..webhook_security import verify_asaas_token, verify_mercadopago_signature, verify_stripe_signature

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/webhooks/payments", tags=["Webhooks"])

STRIPE_PAID_EVENTS = ("checkout.session.completed", "checkout.session.async_payment_succeeded")
STRIPE_UNPAID_EVENTS = ("checkout.session.async_payment_failed", "checkout.session.expired")

ASAAS_EVENT_STATUSES = {
    "PAYMENT_CREATED": "pending",
    "PAYMENT_CONFIRMED": "paid_online",
    "PAYMENT_RECEIVED": "paid_online",
    "PAYMENT_OVERDUE": "overdue",
    "PAYMENT_DELETED": "refunded",
    "PAYMENT_REFUNDED": "refunded",
}
ASAAS_PAYMENT_STATUSES = {
    "CONFIRMED": "paid_online",
    "RECEIVED": "paid_online",
    "PENDING": "pending",
    "REFUNDED": "refunded",
}


def _parse_json(body: bytes) -> dict:
    try:
        payload = json.loads(body.decode("utf-8"))
    except (json.JSONDecodeError, UnicodeDecodeError):
        logger.error("❌ Invalid JSON payload")
        raise HTTPException(status_code=400, detail="Invalid JSON") from None
    if not isinstance(payload, dict):
        raise HTTPException(status_code=400, detail="Invalid JSON")
    return payload


# ============================================================================
# STATUS MAPPING
# ============================================================================


def mercadopago_payment_status(payment: dict) -> str:
    """Approved deposits are partial; rejected or cancelled payments stay pending so the client can retry"""
    status = payment.get("status")
    if status == "approved":
        payment_type = (payment.get("metadata") or {}).get("payment_type")
        return "partial" if payment_type == "deposit" else "paid_online"
    if status in ("refunded", "charged_back"):
        return "refunded"
    return "pending"


def stripe_payment_status(event_type: str, session: dict) -> Optional[str]:
    if event_type in STRIPE_PAID_EVENTS:
        if session.get("payment_status") not in ("paid", "no_payment_required"):
            return "pending"
        payment_type = (session.get("metadata") or {}).get("payment_type")
        return "partial" if payment_type == "deposit" else "paid_online"
    if event_type in STRIPE_UNPAID_EVENTS:
        return "pending"
    return None


def asaas_payment_status(event: Optional[str], payment: dict) -> Optional[str]:
    if event == "PAYMENT_UPDATED":
        return ASAAS_PAYMENT_STATUSES.get(payment.get("status"))
    return ASAAS_EVENT_STATUSES.get(event)


# ============================================================================
# MERCADO PAGO
# ============================================================================


@router.post("/mercadopago")
async def handle_mercadopago_webhook(request: Request, db: Session = Depends(get_db)):
    """
    Mercado Pago notifications only carry the payment id; the payment is read
    back from the API with the owning unit's token to learn its status.
    """
    try:
        body = await request.body()
        payload = _parse_json(body)

        data_id = request.query_params.get("data.id") or (payload.get("data") or {}).get("id")
        if MERCADOPAGO_WEBHOOK_SECRET:
            if not verify_mercadopago_signature(
                request.headers.get("x-signature"),
                request.headers.get("x-request-id"),
                data_id,
                MERCADOPAGO_WEBHOOK_SECRET,
            ):
                logger.error("❌ Invalid Mercado Pago webhook signature")
                raise HTTPException(status_code=401, detail="Invalid signature")
        else:
            logger.warning("⚠️ MERCADOPAGO_WEBHOOK_SECRET not configured, skipping verification")

        event_type = payload.get("type") or request.query_params.get("type")
        action = payload.get("action")
        logger.info(f"📥 Received Mercado Pago webhook: {event_type} {action or ''}")

        if event_type != "payment" and action not in ("payment.created", "payment.updated"):
            logger.info(f"ℹ️ Ignoring non-payment notification: {event_type}")
            return {"status": "success", "event_type": event_type, "payment_status": None}
        if not data_id:
            logger.warning("⚠️ No payment ID in Mercado Pago webhook")
            return {"status": "success", "event_type": event_type, "payment_status": None}

        payment_status = await handle_mercadopago_payment(db, str(data_id), payload.get("external_reference"))
        return {"status": "success", "event_type": event_type, "payment_status": payment_status}

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"❌ Mercado Pago webhook processing error: {str(e)}")
        raise HTTPException(status_code=500, detail="Webhook processing failed")


async def handle_mercadopago_payment(db: Session, payment_id: str, reference: Optional[str]) -> Optional[str]:
    known = find_payment_appointment(db, reference)
    payment = None
    for token in mercadopago_tokens(db, known.barbershop_id if known else None):
        payment = await fetch_mercadopago_payment(token, payment_id)
        if payment:
            break
    if not payment:
        logger.warning(f"⚠️ Mercado Pago payment {payment_id} not found with any configured token")
        return None

    appointment = find_payment_appointment(db, payment.get("external_reference") or reference, payment_id)
    if not appointment:
        logger.warning(f"⚠️ No appointment for Mercado Pago payment {payment_id}")
        return None

    payment_status = mercadopago_payment_status(payment)
    apply_payment_update(
        db, appointment, payment_status, amount=payment.get("transaction_amount"), payment_id=payment_id
    )
    return payment_status


# ============================================================================
# STRIPE
# ============================================================================


@router.post("/stripe")
async def handle_stripe_webhook(request: Request, db: Session = Depends(get_db)):
    """Checkout session events for appointment payments"""
    try:
        body = await request.body()
        if STRIPE_WEBHOOK_SECRET:
            if not verify_stripe_signature(body, request.headers.get("stripe-signature"), STRIPE_WEBHOOK_SECRET):
                logger.error("❌ Invalid Stripe webhook signature")
                raise HTTPException(status_code=401, detail="Invalid signature")
        else:
            logger.warning("⚠️ STRIPE_WEBHOOK_SECRET not configured, skipping verification")

        payload = _parse_json(body)
        event_type = payload.get("type")
        session = (payload.get("data") or {}).get("object") or {}
        logger.info(f"📥 Received Stripe webhook: {event_type}")

        payment_status = stripe_payment_status(event_type, session)
        if payment_status is None:
            logger.info(f"ℹ️ Unhandled event type: {event_type}")
            return {"status": "success", "event_type": event_type, "payment_status": None}

        appointment_id = session.get("client_reference_id") or (session.get("metadata") or {}).get("appointment_id")
        appointment = find_payment_appointment(db, appointment_id, session.get("id"))
        if not appointment:
            logger.warning(f"⚠️ No appointment for Stripe session {session.get('id')}")
            return {"status": "success", "event_type": event_type, "payment_status": None}

        amount_total = session.get("amount_total")
        apply_payment_update(
            db,
            appointment,
            payment_status,
            amount=amount_total / 100 if amount_total is not None else None,
            payment_id=session.get("id"),
        )
        return {"status": "success", "event_type": event_type, "payment_status": payment_status}

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"❌ Stripe webhook processing error: {str(e)}")
        raise HTTPException(status_code=500, detail="Webhook processing failed")


# ============================================================================
# ASAAS
# ============================================================================


@router.post("/asaas")
async def handle_asaas_webhook(request: Request, db: Session = Depends(get_db)):
    """Asaas payment events; externalReference holds the appointment id"""
    try:
        if ASAAS_WEBHOOK_TOKEN:
            if not verify_asaas_token(request.headers.get("asaas-access-token"), ASAAS_WEBHOOK_TOKEN):
                logger.error("❌ Invalid Asaas webhook token")
                raise HTTPException(status_code=401, detail="Invalid signature")
        else:
            logger.warning("⚠️ ASAAS_WEBHOOK_TOKEN not configured, skipping verification")

        payload = _parse_json(await request.body())
        event_type = payload.get("event")
        payment = payload.get("payment") or {}
        logger.info(f"📥 Received Asaas webhook: {event_type}")

        payment_status = asaas_payment_status(event_type, payment)
        if payment_status is None:
            logger.info(f"ℹ️ Unhandled event type: {event_type} ({payment.get('status')})")
            return {"status": "success", "event_type": event_type, "payment_status": None}

        appointment = find_payment_appointment(db, payment.get("externalReference"), payment.get("id"))
        if not appointment:
            logger.warning(f"⚠️ No appointment for Asaas payment {payment.get('id')}")
            return {"status": "success", "event_type": event_type, "payment_status": None}

        apply_payment_update(db, appointment, payment_status, payment_id=payment.get("id"))
        return {"status": "success", "event_type": event_type, "payment_status": payment_status}

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"❌ Asaas webhook processing error: {str(e)}")
        raise HTTPException(status_code=500, detail="Webhook processing failed")
