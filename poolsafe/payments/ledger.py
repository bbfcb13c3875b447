"""
Registre des événements webhook déjà traités.
- Stripe livre "au moins une fois": une même livraison peut arriver plusieurs fois.
- Redis (SET NX + TTL) si EVENT_LEDGER_REDIS_URL est défini, sinon mémoire locale du process.
"""
import logging
import time
from typing import Dict, Optional

import redis

from poolsafe import config

logger = logging.getLogger(__name__)

_KEY_PREFIX = "poolsafe:webhook:event:"


class ProcessedEventLedger:
    def __init__(self, client: Optional["redis.Redis"] = None, ttl_seconds: Optional[int] = None):
        self._redis = client
        self._ttl = ttl_seconds or config.EVENT_LEDGER_TTL_SECONDS
        self._local: Dict[str, float] = {}

    @classmethod
    def from_config(cls) -> "ProcessedEventLedger":
        if not config.EVENT_LEDGER_REDIS_URL:
            return cls()
        client = redis.from_url(config.EVENT_LEDGER_REDIS_URL, encoding="utf-8", decode_responses=True)
        return cls(client=client)

    def first_delivery(self, event_id: Optional[str]) -> bool:
        """
        Marque event_id comme traité; True si c'est la première livraison.
        - Sans id: toujours True (rien à dédupliquer).
        - Redis indisponible: journalisé puis True (on préfère un email en double à un email perdu).
        """
        if not event_id:
            return True
        if self._redis is not None:
            try:
                return bool(self._redis.set(_KEY_PREFIX + event_id, "1", nx=True, ex=self._ttl))
            except redis.RedisError:
                logger.exception("payments.ledger redis unavailable event_id=%s", event_id)
                return True
        now = time.time()
        self._local = {k: t for k, t in self._local.items() if now - t < self._ttl}
        if event_id in self._local:
            return False
        self._local[event_id] = now
        return True
