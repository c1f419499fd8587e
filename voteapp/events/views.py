from decimal import Decimal
from typing import Any, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, field_validator

from voteapp.events import lifecycle
from voteapp.utils.security import require_organizer
from voteapp.utils.validators import validate_positive_amount

router = APIRouter(prefix="/api/v1/events", tags=["Events API"])
contestants_router = APIRouter(prefix="/api/v1/contestants", tags=["Events API"])


class EventUpdateRequest(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    vote_price: Optional[Decimal] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None

    @field_validator("vote_price", mode="before")
    def price_decimal(cls, v: Any) -> Optional[Decimal]:
        return None if v is None else validate_positive_amount(v)


class ContestantUpdateRequest(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    image_url: Optional[str] = None
    display_order: Optional[int] = None

    @field_validator("name", mode="before")
    def name_length(cls, v: Any) -> Optional[str]:
        if v is None:
            return None
        v = str(v).strip()
        if not 2 <= len(v) <= 255:
            raise ValueError("name: 2 à 255 caractères")
        return v

    @field_validator("display_order")
    def order_positive(cls, v: Optional[int]) -> Optional[int]:
        if v is not None and v < 0:
            raise ValueError("display_order doit être >= 0")
        return v


# module voteapp.events.views
@router.put("/{event_id}")
async def update_event(event_id: str, req: EventUpdateRequest, user: dict = Depends(require_organizer)):
    """Prix et dates verrouillés (400 EventLocked) dès que l'événement actif a reçu des votes."""
    return await lifecycle.update_event(event_id, user["id"], req.model_dump(exclude_none=True))

@router.post("/{event_id}/activate")
async def activate_event(event_id: str, user: dict = Depends(require_organizer)):
    return await lifecycle.activate_event(event_id, user["id"])

@router.post("/{event_id}/end")
async def end_event(event_id: str, user: dict = Depends(require_organizer)):
    return await lifecycle.end_event(event_id, user["id"])

@contestants_router.put("/{contestant_id}")
async def update_contestant(contestant_id: str, req: ContestantUpdateRequest, user: dict = Depends(require_organizer)):
    """400 EventLocked dès que le candidat a reçu un vote."""
    return await lifecycle.update_contestant(contestant_id, user["id"], req.model_dump(exclude_none=True))
