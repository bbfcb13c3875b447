"""
Gestionnaires d'exceptions.
- CheckoutError (ValidationError, AmountMismatch, RemoteUnavailable, ...) -> {"error", "code"} + status_code.
- Erreurs de validation pydantic -> 400 {"error": "Invalid request data", "fields": {...}}.
- HTTPException -> {"error": detail} (même forme que le reste de l'API).
"""
import logging
from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from poolsafe.errors import CheckoutError, AuthenticationError

logger = logging.getLogger(__name__)

def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(CheckoutError)
    async def checkout_error_handler(request: Request, exc: CheckoutError):
        if isinstance(exc, AuthenticationError):
            logger.warning("webhook rejected path=%s: %s", request.url.path, exc.message)
        else:
            logger.info("checkout error path=%s code=%s: %s", request.url.path, exc.code, exc.message)
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        fields = {
            ".".join(str(p) for p in err.get("loc", ())[1:]) or "body": err.get("msg", "")
            for err in exc.errors()
        }
        return JSONResponse(
            status_code=400,
            content={"error": "Invalid request data", "code": "validation_error", "fields": fields},
        )

    @app.exception_handler(HTTPException)
    async def http_error_handler(request: Request, exc: HTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.detail},
            headers=getattr(exc, "headers", None),
        )
