"""
Factory d'application recommandée pour les entrypoints (ex: poolsafe.asgi).
Ordonne les étapes d'initialisation de manière lisible et testable.
"""
from fastapi import FastAPI
from .lifespan import lifespan
from .middlewares import (
    register_basic_middlewares,
    register_security_middleware,
    register_no_cache_middleware,
    register_force_https_middleware,
)
from .exceptions import register_exception_handlers
from .routers import register_routers

def create_app() -> FastAPI:
    """
    Construit l'app FastAPI avec le lifespan et enregistre:
      1) middlewares de base (CORS, TrustedHost)
      2) en-têtes de sécurité, no-cache sur /api/v1/payments
      3) gestionnaires d'exceptions (CheckoutError -> {"error", "code"})
      4) tous les routers (payments, contact, health)
      5) redirection HTTPS, ajoutée en dernier pour s'exécuter en premier
    Retour:
      FastAPI prêt à être utilisé par le serveur ASGI.
    """
    # API seule: pas d'interface Swagger/ReDoc
    app = FastAPI(title="Pool Compliance SA API", lifespan=lifespan, docs_url=None, redoc_url=None)
    register_basic_middlewares(app)
    register_security_middleware(app)
    register_no_cache_middleware(app)
    register_exception_handlers(app)
    register_routers(app)
    register_force_https_middleware(app)
    return app
