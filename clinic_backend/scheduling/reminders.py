import re
from datetime import datetime, timedelta
from urllib.parse import quote

from clinic_backend.scheduling.lifecycle import is_terminal

REMINDER_WINDOW = timedelta(hours=2)
WHATSAPP_BASE_URL = 'https://wa.me'


def is_reminder_eligible(appointment_date: datetime, now: datetime) -> bool:
    remaining = appointment_date - now
    return timedelta(0) < remaining <= REMINDER_WINDOW


def can_offer_reminder(status, appointment_date: datetime, now: datetime) -> bool:
    return not is_terminal(status) and is_reminder_eligible(appointment_date, now)


def format_whatsapp_phone(phone: str | None, country_code: str) -> str:
    digits = re.sub(r'\D', '', phone or '')
    if not digits:
        return ''

    if digits.startswith('0'):
        digits = country_code + digits[1:]

    if not digits.startswith(country_code):
        digits = country_code + digits

    return digits


def build_reminder_message(patient_name: str | None, appointment_date: datetime, clinic_name: str | None = None) -> str:
    name = patient_name or 'there'
    place = clinic_name or 'the clinic'
    return (
        f'Hello {name}, this is a reminder of your appointment at {place} on '
        f'{appointment_date:%d/%m/%Y} at {appointment_date:%I:%M %p}. '
        'Please arrive 15 minutes early.'
    )


def build_whatsapp_link(phone: str, message: str) -> str:
    return f'{WHATSAPP_BASE_URL}/{phone}?text={quote(message)}'
