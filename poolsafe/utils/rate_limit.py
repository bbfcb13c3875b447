"""
Limitation de débit des endpoints publics (création d'intent, formulaire de contact).
- Production: fastapi-limiter sur Redis, clé = IP client + chemin.
- LOCAL_RATE_LIMIT_FALLBACK=1: fenêtre glissante en mémoire (dev, tests).
- Redis en panne en cours de route: la requête passe (pas de 429 injustifié).
"""
from typing import Dict, Any, List
from urllib.parse import urlparse
from fastapi import Request, Response, HTTPException
import os
import time


def _client_key(req: Request) -> str:
    # Pas de session: IP (X-Forwarded-For en priorité derrière un proxy) + chemin
    forwarded = (req.headers.get("x-forwarded-for") or "").split(",")[0].strip()
    ip = forwarded or (req.client.host if req.client else "local")
    return f"ip:{ip}:{req.url.path}"


def _local_window_exceeded(request: Request, times: int, seconds: int) -> bool:
    """Enregistre l'appel dans la fenêtre mémoire de l'app; True si la limite est déjà atteinte."""
    state = request.app.state
    if not hasattr(state, "rate_limit_hits"):
        state.rate_limit_hits = {}
    hits: Dict[str, List[float]] = state.rate_limit_hits
    key = _client_key(request)
    now = time.time()
    recent = [t for t in hits.get(key, ()) if now - t < seconds]
    if len(recent) >= times:
        hits[key] = recent
        return True
    hits[key] = recent + [now]
    return False


async def _client_identifier(request: Request) -> str:
    return _client_key(request)


def optional_rate_limit(times: int, seconds: int):
    """
    Dépendance FastAPI: limite à `times` appels par `seconds` et par client.
    Sans limiter initialisé (app.state.rate_limit_enabled != True), ne fait rien.
    """
    async def _dep(request: Request, response: Response):
        if os.getenv("LOCAL_RATE_LIMIT_FALLBACK") == "1":
            if _local_window_exceeded(request, times, seconds):
                raise HTTPException(status_code=429, detail="Too Many Requests")
            return

        if getattr(request.app.state, "rate_limit_enabled", None) is not True:
            return

        from fastapi_limiter.depends import RateLimiter

        limiter = RateLimiter(times=times, seconds=seconds, identifier=_client_identifier)
        try:
            await limiter(request, response)
        except HTTPException:
            raise
        except Exception:
            return
    return _dep


def rate_limit_health_info(request: Request) -> Dict[str, Any]:
    """Etat du rate limiting pour /health/rate-limit."""
    enabled = getattr(request.app.state, "rate_limit_enabled", None)
    try:
        from fastapi_limiter import FastAPILimiter
        ready = getattr(FastAPILimiter, "redis", None) is not None
    except ImportError:
        ready = False

    info: Dict[str, Any] = {
        "enabled": None if enabled is None else bool(enabled),
        "ready": ready,
        "backend": "redis" if ready else None,
    }
    redis_url = os.getenv("RATE_LIMIT_REDIS_URL")
    if ready and redis_url:
        parsed = urlparse(redis_url)
        info["redis"] = {"scheme": parsed.scheme, "host": parsed.hostname, "port": parsed.port}
    return info
