from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from voteapp.webhooks import paystack_ingestor, stripe_ingestor

router = APIRouter(prefix="/api/v1/webhooks", tags=["Webhooks"])

# module voteapp.webhooks.views
@router.post("/stripe", include_in_schema=False)
async def webhook_stripe(request: Request):
    """
    Webhook Stripe (PaymentIntent, litiges, remboursements).
    - Signature: Stripe-Signature + STRIPE_WEBHOOK_SECRET, vérifiée sur le corps brut
    - Réponses: {"received": true} dès que la signature est valide, 400 sinon
    """
    raw_body = await request.body()
    result = await stripe_ingestor.ingest(raw_body, request.headers.get("stripe-signature"))
    return JSONResponse({"received": True, "action": result.get("action")})

@router.post("/paystack", include_in_schema=False)
async def webhook_paystack(request: Request):
    """
    Webhook Paystack (charges mobile money, transferts de retrait).
    - Signature: x-paystack-signature = HMAC SHA-512 du corps brut
    - Réponses: {"received": true} dès que la signature est valide, 400 sinon
    """
    raw_body = await request.body()
    result = await paystack_ingestor.ingest(raw_body, request.headers.get("x-paystack-signature"))
    return JSONResponse({"received": True, "action": result.get("action")})
