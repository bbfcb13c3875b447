from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from poolsafe.payments.stripe_client import stripe_health_info
from poolsafe.utils.rate_limit import rate_limit_health_info

router = APIRouter(prefix="/health", tags=["Health"])

@router.get("")
def health_root():
    return {"ok": True}

@router.get("/stripe")
def health_stripe():
    return JSONResponse(stripe_health_info())

@router.get("/rate-limit")
def health_rate_limit(request: Request):
    return JSONResponse(rate_limit_health_info(request))
