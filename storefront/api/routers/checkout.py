# storefront/api/routers/checkout.py
from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool
from sqlalchemy.orm import Session

from storefront.data.database import get_db
from storefront.domain.errors import SignatureVerificationError
from storefront.domain.schemas import CreateCheckoutIn, CheckoutSessionOut, SessionStatusOut
from storefront.services.checkout_service import CheckoutService
from storefront.services.event_ledger import EventLedger
from storefront.services.stripe_gateway import StripeGateway
from storefront.services.webhook_service import WebhookService
from storefront.utils.settings import REDIS_URL
from storefront.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/checkout", tags=["checkout"])


def get_gateway() -> StripeGateway:
    return StripeGateway()


def get_ledger() -> EventLedger | None:
    # empty REDIS_URL turns the early duplicate check off
    return EventLedger() if REDIS_URL else None


@router.post("/create-session", response_model=CheckoutSessionOut)
def create_session(
    payload: CreateCheckoutIn,
    request: Request,
    db: Session = Depends(get_db),
    gateway: StripeGateway = Depends(get_gateway),
):
    svc = CheckoutService(db, gateway)
    return svc.create_session(payload, base_url=str(request.base_url))


@router.get("/session/{stripe_session_id}", response_model=SessionStatusOut)
def get_session(
    stripe_session_id: str,
    db: Session = Depends(get_db),
    gateway: StripeGateway = Depends(get_gateway),
):
    svc = CheckoutService(db, gateway)
    return svc.session_status(stripe_session_id)


@router.post("/webhook")
async def stripe_webhook(
    request: Request,
    db: Session = Depends(get_db),
    gateway: StripeGateway = Depends(get_gateway),
    ledger: EventLedger | None = Depends(get_ledger),
):
    """
    Raw body on purpose: the signature covers the exact bytes Stripe sent.
    400 on a bad signature, 500 on processing errors so Stripe retries.
    """
    payload = await request.body()
    signature = request.headers.get("stripe-signature")
    svc = WebhookService(db, gateway, ledger=ledger)

    try:
        return await run_in_threadpool(svc.handle, payload, signature)
    except SignatureVerificationError as e:
        logger.warning(f"Webhook signature verification failed: {e}")
        return JSONResponse(
            status_code=400,
            content={"success": False, "error": e.title, "message": str(e)},
        )
    except Exception:
        logger.exception("Error processing webhook")
        return JSONResponse(status_code=500, content={"error": "Webhook processing failed"})
