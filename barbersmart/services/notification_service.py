"""
Appointment Notification Service
WhatsApp messages sent when an appointment changes status, and appointment reminders
"""

import logging
from datetime import date
from typing import Optional

from ..database import SessionLocal
from ..models import Appointment
from .whatsapp_service import send_message

logger = logging.getLogger(__name__)

STATUS_MESSAGE_TYPES = {
    "confirmado": "appointment_confirmed",
    "cancelado": "appointment_cancelled",
    "concluido": "appointment_completed",
}


def _format_date(value: Optional[date]) -> str:
    return value.strftime("%d/%m/%Y") if value else ""


def build_status_message(appointment: Appointment, status: str) -> Optional[str]:
    """Portuguese message for a status change, or None if the status has no notification"""
    staff_name = appointment.staff.name if appointment.staff else "Não especificado"
    when = _format_date(appointment.appointment_date)

    if status == "confirmado":
        return (
            f"Olá {appointment.client_name}! ✅\n\n"
            "Ótima notícia! Seu agendamento foi confirmado:\n\n"
            f"📅 Data: {when}\n"
            f"⏰ Horário: {appointment.appointment_time}\n"
            f"✂️ Serviço: {appointment.service_name}\n"
            f"👤 Profissional: {staff_name}\n\n"
            "Aguardamos você! 💈"
        )
    if status == "cancelado":
        return (
            f"Olá {appointment.client_name}! 😔\n\n"
            "Infelizmente seu agendamento foi cancelado:\n\n"
            f"📅 Data: {when}\n"
            f"⏰ Horário: {appointment.appointment_time}\n"
            f"✂️ Serviço: {appointment.service_name}\n\n"
            "Se desejar reagendar, entre em contato conosco. Ficaremos felizes em atendê-lo! 💈"
        )
    if status == "concluido":
        return (
            f"Olá {appointment.client_name}! 🎉\n\n"
            "Obrigado por nos visitar hoje! Esperamos que tenha gostado do atendimento.\n\n"
            f"✂️ Serviço: {appointment.service_name}\n"
            f"👤 Profissional: {staff_name}\n\n"
            "⭐ Sua opinião é muito importante para nós!\n"
            "Que tal deixar uma avaliação sobre o serviço?\n\n"
            "Agradecemos a preferência e esperamos vê-lo em breve! 💈"
        )
    return None


def build_reminder_message(appointment: Appointment) -> str:
    staff_line = f"\n👤 {appointment.staff.name}" if appointment.staff else ""
    return (
        f"Olá {appointment.client_name}! 👋\n\n"
        "Lembrete do seu agendamento:\n"
        f"📅 {_format_date(appointment.appointment_date)}\n"
        f"⏰ {appointment.appointment_time}\n"
        f"✂️ {appointment.service_name or 'serviço'}{staff_line}\n\n"
        "Até logo!"
    )


def build_recurring_reminder_message(appointment: Appointment) -> str:
    staff_line = f"\n👤 {appointment.staff.name}" if appointment.staff else ""
    return (
        f"Olá {appointment.client_name}! 👋\n\n"
        "Lembrete do seu agendamento recorrente:\n"
        f"📅 {_format_date(appointment.appointment_date)}\n"
        f"⏰ {appointment.appointment_time}\n"
        f"✂️ {appointment.service_name or 'Serviço'}{staff_line}\n\n"
        "🔄 Este é um lembrete do seu horário fixo.\n\n"
        "Se precisar remarcar, entre em contato conosco!\n\n"
        "Até logo!"
    )


async def notify_appointment_status(appointment_id: str, status: str) -> Optional[dict]:
    """
    Background task: send the WhatsApp message for a status change.
    Opens its own session since the request session is closed by then.
    """
    db = SessionLocal()
    try:
        appointment = db.query(Appointment).filter(Appointment.id == appointment_id).first()
        if not appointment or not appointment.client_phone:
            logger.debug(f"No phone for appointment {appointment_id}, skipping notification")
            return None

        message = build_status_message(appointment, status)
        if not message:
            return None

        result = await send_message(
            db,
            appointment.barbershop_id,
            appointment.client_phone,
            message,
            message_type=STATUS_MESSAGE_TYPES.get(status),
            appointment_id=appointment.id,
        )
        if result.success:
            logger.info(f"✅ Status notification ({status}) sent for appointment {appointment_id}")
        else:
            logger.warning(f"⚠️ Status notification failed for {appointment_id}: {result.error}")
        return result.to_dict()
    finally:
        db.close()
