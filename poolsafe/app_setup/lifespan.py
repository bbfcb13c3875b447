"""
Cycle de vie de l'application.

Démarrage: connexion du rate limiter (fastapi-limiter) à Redis.
Arrêt: fermeture du client SendGrid partagé et de la connexion Redis.

Variables d'environnement:
  - RATE_LIMIT_REDIS_URL: URL Redis du limiter (défaut redis://127.0.0.1:6379/0)
  - DISABLE_FASTAPI_LIMITER_INIT_FOR_TESTS=1: aucune connexion, limiter désactivé
  - USE_FAKE_REDIS_FOR_TESTS=1: fakeredis à la place de Redis
  - LOCAL_RATE_LIMIT_FALLBACK=1: si Redis est injoignable, fenêtre mémoire locale
"""
import os
import logging
from contextlib import asynccontextmanager

import redis.asyncio as aioredis
from fastapi import FastAPI
from fastapi_limiter import FastAPILimiter

from poolsafe.payments.views import get_mailer

logger = logging.getLogger("uvicorn.error")


def _limiter_redis():
    if os.getenv("USE_FAKE_REDIS_FOR_TESTS") == "1":
        # Dépendance de test uniquement (extra "test")
        from fakeredis.aioredis import FakeRedis
        return FakeRedis(decode_responses=True)
    redis_url = os.getenv("RATE_LIMIT_REDIS_URL", "redis://127.0.0.1:6379/0")
    return aioredis.from_url(redis_url, encoding="utf-8", decode_responses=True)


async def init_rate_limiter(app: FastAPI) -> None:
    """Positionne app.state.rate_limit_enabled; un échec Redis ne bloque jamais le démarrage."""
    if os.getenv("DISABLE_FASTAPI_LIMITER_INIT_FOR_TESTS") == "1":
        app.state.rate_limit_enabled = False
        logger.info("Rate limiting disabled (DISABLE_FASTAPI_LIMITER_INIT_FOR_TESTS)")
        return
    try:
        await FastAPILimiter.init(_limiter_redis())
    except Exception as e:
        fallback = os.getenv("LOCAL_RATE_LIMIT_FALLBACK") == "1"
        app.state.rate_limit_enabled = fallback
        logger.warning("Rate limiter init failed (%s), local fallback=%s", e, fallback)
        return
    app.state.rate_limit_enabled = True
    logger.info("Rate limiting enabled")


@asynccontextmanager
async def lifespan(app: FastAPI):
    await init_rate_limiter(app)
    yield
    if get_mailer.cache_info().currsize:
        get_mailer().close()
    if FastAPILimiter.redis is not None:
        await FastAPILimiter.close()
