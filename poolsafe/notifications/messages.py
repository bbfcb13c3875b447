"""
Rendu des emails (Jinja2, échappement HTML automatique).
Chaque fonction retourne (sujet, html).
"""
from typing import Any, Dict, Tuple

from jinja2 import Environment, FileSystemLoader, select_autoescape

from poolsafe.config import BUSINESS_NAME, TEMPLATES_DIR

_env = Environment(
    loader=FileSystemLoader(str(TEMPLATES_DIR)),
    autoescape=select_autoescape(["html"]),
)


def _render(template: str, **context: Any) -> str:
    return _env.get_template(template).render(business_name=BUSINESS_NAME, **context)


def booking_business(booking: Dict[str, Any], intent_id: str, amount: str) -> Tuple[str, str]:
    subject = f"New booking: {booking.get('name') or booking.get('email')}"
    return subject, _render("booking_business.html", booking=booking, intent_id=intent_id, amount=amount)


def booking_customer(booking: Dict[str, Any], intent_id: str, amount: str) -> Tuple[str, str]:
    subject = "Your pool safety inspection booking is confirmed"
    return subject, _render("booking_customer.html", booking=booking, intent_id=intent_id, amount=amount)


def refund_business(booking: Dict[str, Any], charge_id: str, amount: str) -> Tuple[str, str]:
    subject = f"Refund issued: {booking.get('name') or booking.get('email')}"
    return subject, _render("refund_business.html", booking=booking, charge_id=charge_id, amount=amount)


def refund_customer(booking: Dict[str, Any], charge_id: str, amount: str) -> Tuple[str, str]:
    subject = "Your pool safety inspection refund"
    return subject, _render("refund_customer.html", booking=booking, charge_id=charge_id, amount=amount)


def contact_message(name: str, email: str, phone: str, message: str) -> Tuple[str, str]:
    return "New Contact Form Submission", _render(
        "contact.html", name=name, email=email, phone=phone, message=message
    )
