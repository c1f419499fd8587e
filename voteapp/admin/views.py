from dataclasses import asdict
from decimal import Decimal
from typing import Any, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, field_validator

from voteapp.events import lifecycle
from voteapp.platform import service as platform_service
from voteapp.utils.security import require_admin
from voteapp.utils.validators import validate_decimal
from voteapp.votes import reconcile
from voteapp.withdrawals import service as withdrawals_service

router = APIRouter(prefix="/api/v1/admin", tags=["Admin API"])


class SettingsUpdateRequest(BaseModel):
    commission_rate: Optional[Decimal] = None
    stripe_enabled: Optional[bool] = None
    paystack_enabled: Optional[bool] = None

    @field_validator("commission_rate", mode="before")
    def rate_decimal(cls, v: Any) -> Optional[Decimal]:
        return None if v is None else validate_decimal(v)


class ProcessWithdrawalRequest(BaseModel):
    status: str
    notes: Optional[str] = None


# module voteapp.admin.views
@router.get("/settings")
async def get_settings(user: dict = Depends(require_admin)):
    settings = await platform_service.get_settings()
    data = asdict(settings)
    data["commission_rate"] = str(settings.commission_rate)
    return data

@router.put("/settings")
async def update_settings(req: SettingsUpdateRequest, user: dict = Depends(require_admin)):
    """commission_rate dans [0, 1]; n'affecte que les paiements créés ensuite."""
    return await platform_service.update_settings(req.model_dump(exclude_none=True), admin_id=user["id"])

@router.post("/withdrawals/{withdrawal_id}/process")
async def process_withdrawal(withdrawal_id: str, req: ProcessWithdrawalRequest, user: dict = Depends(require_admin)):
    withdrawal = await withdrawals_service.process_withdrawal(withdrawal_id, req.status, req.notes, admin_id=user["id"])
    return {"withdrawal": withdrawal}

@router.post("/events/{event_id}/force-end")
async def force_end_event(event_id: str, user: dict = Depends(require_admin)):
    return await lifecycle.force_end_event(event_id)

@router.post("/reconcile/votes")
async def reconcile_votes(limit: int = Query(default=100, ge=1, le=1000), user: dict = Depends(require_admin)):
    """Crée les votes manquants des paiements complétés (idempotent)."""
    return await reconcile.backfill_missing_votes(limit)
