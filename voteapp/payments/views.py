from decimal import Decimal
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field, field_validator

from voteapp.payments import service as payments_service
from voteapp.platform import service as platform_service
from voteapp.utils.rate_limit import optional_rate_limit
from voteapp.utils.security import require_user
from voteapp.utils.validators import validate_positive_amount

router = APIRouter(prefix="/api/v1/payments", tags=["Payments API"])


class CreateIntentRequest(BaseModel):
    contestant_id: str = Field(min_length=1)
    amount: Decimal
    currency: Optional[str] = None

    @field_validator("amount", mode="before")
    def amount_decimal(cls, v: Any) -> Decimal:
        return validate_positive_amount(v)


class PaystackInitRequest(BaseModel):
    contestant_id: str = Field(min_length=1)
    amount: Decimal
    mobile_money_network: Optional[str] = None

    @field_validator("amount", mode="before")
    def amount_decimal(cls, v: Any) -> Decimal:
        return validate_positive_amount(v)


# module voteapp.payments.views
@router.get("/settings")
async def payment_settings() -> Dict[str, Any]:
    """Paramètres publics: commission, fournisseurs actifs et clés publiables."""
    return await platform_service.public_settings()

@router.post("/stripe/create-intent", dependencies=[Depends(optional_rate_limit(times=10, seconds=60))])
async def create_stripe_intent(req: CreateIntentRequest, user: dict = Depends(require_user)):
    """
    Crée un paiement 'pending' et son PaymentIntent Stripe.
    - Éligibilité vérifiée avant toute écriture (400 + code de raison)
    - 502 si Stripe refuse ou ne répond pas (le paiement passe 'failed')
    """
    return await payments_service.create_card_intent(user, req.contestant_id, req.amount, req.currency)

@router.post("/paystack/initialize", dependencies=[Depends(optional_rate_limit(times=10, seconds=60))])
async def initialize_paystack(req: PaystackInitRequest, user: dict = Depends(require_user)):
    """Crée un paiement 'pending' et initialise la transaction Paystack (référence = id du paiement)."""
    return await payments_service.initialize_mobile_money(user, req.contestant_id, req.amount, req.mobile_money_network)

@router.get("/verify/{payment_id}")
async def verify_payment(payment_id: str, user: dict = Depends(require_user)):
    """Alternative sans webhook: interroge le fournisseur et finalise le paiement si confirmé."""
    return await payments_service.verify_payment(payment_id, user["id"])

@router.post("/cancel/{payment_id}")
async def cancel_payment(payment_id: str, user: dict = Depends(require_user)):
    return await payments_service.cancel_payment(payment_id, user["id"])

@router.get("/history")
async def payment_history(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    status: Optional[str] = None,
    user: dict = Depends(require_user),
):
    return await payments_service.payment_history(user["id"], page=page, limit=limit, status=status)
