"""
Client SendGrid (API v3 /mail/send) via httpx.
"""
import logging
from typing import Any, Dict, Optional

import httpx

from poolsafe import config
from poolsafe.errors import NotificationFailure

logger = logging.getLogger(__name__)


class EmailSender:
    def __init__(
        self,
        api_key: Optional[str] = None,
        sender: Optional[str] = None,
        api_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.api_key = api_key if api_key is not None else config.SENDGRID_API_KEY
        self.sender = sender or config.VERIFIED_SENDER
        self.api_url = api_url or config.SENDGRID_API_URL
        self._client = httpx.Client(timeout=timeout or config.HTTP_TIMEOUT_SECONDS, transport=transport)

    def send(self, to: str, subject: str, html: str, reply_to: Optional[str] = None) -> None:
        """
        Envoie un email HTML.
        - NotificationFailure si la clé manque, si SendGrid répond hors 2xx ou si l'appel échoue.
        """
        if not self.api_key:
            raise NotificationFailure("SENDGRID_API_KEY is not set")
        payload: Dict[str, Any] = {
            "personalizations": [{"to": [{"email": to}]}],
            "from": {"email": self.sender},
            "subject": subject,
            "content": [{"type": "text/html", "value": html}],
        }
        if reply_to:
            payload["reply_to"] = {"email": reply_to}
        try:
            res = self._client.post(
                self.api_url,
                json=payload,
                headers={"Authorization": f"Bearer {self.api_key}"},
            )
        except httpx.HTTPError as e:
            raise NotificationFailure(f"Error sending email: {e}") from e
        if res.status_code >= 300:
            raise NotificationFailure(f"Error sending email: SendGrid returned {res.status_code}")
        logger.info("notifications.sent to=%s subject=%s", to, subject)

    def close(self) -> None:
        self._client.close()
