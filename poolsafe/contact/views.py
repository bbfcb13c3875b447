import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from poolsafe import config
from poolsafe.errors import NotificationFailure
from poolsafe.notifications import EmailSender, messages
from poolsafe.payments.views import get_mailer
from poolsafe.utils.rate_limit import optional_rate_limit

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/contact", tags=["Contact API"])


class ContactRequest(BaseModel):
    name: str = ""
    email: str = ""
    phone: str = ""
    message: str = ""


# module poolsafe.contact.views
@router.post("", dependencies=[Depends(optional_rate_limit(times=5, seconds=60))])
def send_contact_email(body: ContactRequest, mailer: EmailSender = Depends(get_mailer)):
    """
    Transmet le formulaire de contact à l'adresse de l'entreprise (reply_to = visiteur).
    - 400 si un champ manque, 500 si l'envoi échoue.
    """
    if not all(v.strip() for v in (body.name, body.email, body.phone, body.message)):
        return JSONResponse({"error": "Missing required fields"}, status_code=400)
    subject, html = messages.contact_message(body.name, body.email, body.phone, body.message)
    try:
        mailer.send(config.BUSINESS_EMAIL, subject, html, reply_to=body.email)
    except NotificationFailure as e:
        logger.error("contact.send failed email=%s: %s", body.email, e)
        return JSONResponse({"error": "Error sending email"}, status_code=500)
    return {"message": "Email sent successfully"}
