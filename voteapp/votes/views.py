from decimal import Decimal
from typing import Any

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from fastapi.encoders import jsonable_encoder
from pydantic import BaseModel, Field, field_validator

from voteapp.utils.security import require_user
from voteapp.utils.validators import validate_positive_amount
from voteapp.votes import service as votes_service

router = APIRouter(prefix="/api/v1/votes", tags=["Votes API"])


class CastVoteRequest(BaseModel):
    contestant_id: str = Field(min_length=1)
    payment_id: str = Field(min_length=1)
    amount: Decimal

    @field_validator("amount", mode="before")
    def amount_decimal(cls, v: Any) -> Decimal:
        return validate_positive_amount(v)


# module voteapp.votes.views
@router.post("")
async def cast_vote(req: CastVoteRequest, user: dict = Depends(require_user)):
    """
    Enregistre le vote d'un paiement complété.
    - 201 à la première création, 200 avec already_committed=true si le vote existe déjà
    - 400 si l'événement n'accepte plus de votes, si le paiement n'est pas complété ou ne correspond pas
    """
    result = await votes_service.cast_vote(user["id"], req.contestant_id, req.payment_id, req.amount)
    status_code = 200 if result["already_committed"] else 201
    return JSONResponse(status_code=status_code, content=jsonable_encoder(result))

@router.get("/can-vote/{contestant_id}")
async def can_vote(contestant_id: str, user: dict = Depends(require_user)):
    return await votes_service.can_vote(contestant_id)
