from decimal import Decimal
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse
from fastapi.encoders import jsonable_encoder
from pydantic import BaseModel, field_validator

from voteapp.utils.security import require_approved_organizer, require_organizer
from voteapp.utils.validators import validate_positive_amount
from voteapp.withdrawals import service as withdrawals_service

router = APIRouter(prefix="/api/v1/organizer", tags=["Organizer API"])


class WithdrawalRequest(BaseModel):
    amount: Decimal
    payment_method: str
    payment_details: Dict[str, Any] = {}

    @field_validator("amount", mode="before")
    def amount_decimal(cls, v: Any) -> Decimal:
        return validate_positive_amount(v)


# module voteapp.withdrawals.views
@router.get("/withdrawal-info")
async def withdrawal_info(user: dict = Depends(require_organizer)):
    """Solde retirable (gains figés - retraits complétés - retraits en attente) et méthodes acceptées."""
    return await withdrawals_service.withdrawal_info(user["id"])

@router.get("/withdrawals")
async def list_withdrawals(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    status: Optional[str] = None,
    user: dict = Depends(require_organizer),
):
    return await withdrawals_service.list_withdrawals(user["id"], page=page, limit=limit, status=status)

@router.post("/withdrawals")
async def request_withdrawal(req: WithdrawalRequest, user: dict = Depends(require_approved_organizer)):
    """
    Demande de retrait (organisateur approuvé).
    - 400 InsufficientBalance avec {available, requested} si le solde ne suffit pas
    """
    withdrawal = await withdrawals_service.request_withdrawal(
        user["id"], req.amount, req.payment_method, req.payment_details
    )
    return JSONResponse(status_code=201, content=jsonable_encoder({"withdrawal": withdrawal}))

@router.delete("/withdrawals/{withdrawal_id}")
async def cancel_withdrawal(withdrawal_id: str, user: dict = Depends(require_organizer)):
    await withdrawals_service.cancel_withdrawal(user["id"], withdrawal_id)
    return {"status": "ok", "withdrawal_id": withdrawal_id}
