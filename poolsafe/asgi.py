"""
ASGI entrypoint: expose `app` for process managers / deployments.

- En production, un process manager (ex: gunicorn/uvicorn-workers) importe `poolsafe.asgi:app`.
- Toute la configuration de FastAPI est centralisée dans poolsafe.app_setup.factory,
  ce fichier ne fait qu'exposer l'instance `app`.
"""

from poolsafe.app import app

__all__ = ["app"]
