"""
Cycle de vie d'un événement: draft -> active -> ended.
- Activation: propriétaire, brouillon, au moins une catégorie, au moins un candidat, fin dans le futur.
- Un événement actif ayant reçu des votes est figé (prix, dates, catégories, candidats).
"""
from datetime import datetime
import logging
from typing import Any, Dict, Optional

from voteapp.errors import EVENT_LOCKED, INVALID_TRANSITION, Forbidden, NotFound, PreconditionFailed, ValidationError
from voteapp.events import repository
from voteapp.votes import repository as votes_repository
from voteapp.payments.currency import money_str, quantize_money
from voteapp.utils.dates import iso, parse_timestamp, utcnow

logger = logging.getLogger(__name__)

DRAFT = "draft"
ACTIVE = "active"
ENDED = "ended"


def _owned(event: Optional[Dict[str, Any]], organizer_id: Optional[str]) -> Dict[str, Any]:
    if not event:
        raise NotFound("Événement introuvable", code="EventNotFound")
    if organizer_id is not None and event.get("organizer_id") != organizer_id:
        raise Forbidden("Vous n'êtes pas l'organisateur de cet événement")
    return event


def assert_event_mutable(event: Dict[str, Any]) -> None:
    """Lève EventLocked si l'événement est actif et a déjà reçu des votes."""
    if event.get("status") == ACTIVE and int(event.get("total_votes") or 0) > 0:
        raise PreconditionFailed("Événement verrouillé: des votes ont déjà été enregistrés", code=EVENT_LOCKED)


def assert_contestant_mutable(contestant: Dict[str, Any]) -> None:
    if int(contestant.get("vote_count") or 0) > 0:
        raise PreconditionFailed("Candidat verrouillé: des votes ont déjà été enregistrés", code=EVENT_LOCKED)


def check_activation(event: Dict[str, Any], now: datetime) -> None:
    if event.get("status") != DRAFT:
        raise PreconditionFailed("Seul un brouillon peut être activé", code=INVALID_TRANSITION)
    categories = event.get("categories") or []
    if not categories:
        raise PreconditionFailed("L'événement doit contenir au moins une catégorie", code="NoCategories")
    if not any(c.get("contestants") for c in categories):
        raise PreconditionFailed("L'événement doit contenir au moins un candidat", code="NoContestants")
    end = parse_timestamp(event.get("end_date"))
    if end is None or end <= now:
        raise PreconditionFailed("La date de fin doit être dans le futur", code="EndDateInPast")


async def _set_status(event: Dict[str, Any], expected: str, target: str) -> Dict[str, Any]:
    updated = await repository.update_event_if_status(
        event["id"], expected, {"status": target, "updated_at": iso(utcnow())}
    )
    if not updated:
        raise PreconditionFailed("Le statut de l'événement a changé entre-temps", code=INVALID_TRANSITION)
    logger.info("events.status id=%s from=%s to=%s", event["id"], expected, target)
    return updated


# module voteapp.events.lifecycle
async def activate_event(event_id: str, organizer_id: str, now: Optional[datetime] = None) -> Dict[str, Any]:
    event = _owned(await repository.get_event_structure(event_id), organizer_id)
    check_activation(event, now or utcnow())
    return await _set_status(event, DRAFT, ACTIVE)


async def end_event(event_id: str, organizer_id: str) -> Dict[str, Any]:
    event = _owned(await repository.get_event(event_id), organizer_id)
    if event.get("status") != ACTIVE:
        raise PreconditionFailed("Seul un événement actif peut être terminé", code=INVALID_TRANSITION)
    return await _set_status(event, ACTIVE, ENDED)


async def force_end_event(event_id: str) -> Dict[str, Any]:
    """Clôture admin, depuis draft ou active."""
    event = _owned(await repository.get_event(event_id), None)
    current = event.get("status")
    if current == ENDED:
        raise PreconditionFailed("Événement déjà terminé", code=INVALID_TRANSITION)
    return await _set_status(event, current, ENDED)


LOCKED_FIELDS = ("vote_price", "start_date", "end_date")
EDITABLE_FIELDS = ("title", "description") + LOCKED_FIELDS


async def update_event(event_id: str, organizer_id: str, changes: Dict[str, Any]) -> Dict[str, Any]:
    """
    Modification par le propriétaire.
    - Prix et dates refusés (EventLocked) dès que l'événement actif a reçu des votes.
    - Un événement terminé n'est plus modifiable.
    """
    event = _owned(await repository.get_event(event_id), organizer_id)
    update = {k: v for k, v in (changes or {}).items() if k in EDITABLE_FIELDS and v is not None}
    if not update:
        raise ValidationError("Aucun champ modifiable fourni", code="EmptyUpdate")
    if event.get("status") == ENDED:
        raise PreconditionFailed("Un événement terminé n'est plus modifiable", code=EVENT_LOCKED)
    if any(k in update for k in LOCKED_FIELDS):
        assert_event_mutable(event)
    if "vote_price" in update:
        price = quantize_money(update["vote_price"])
        if price <= 0:
            raise ValidationError("vote_price doit être strictement positif", code="InvalidAmount")
        update["vote_price"] = money_str(price)
    try:
        start = parse_timestamp(update.get("start_date", event.get("start_date")))
        end = parse_timestamp(update.get("end_date", event.get("end_date")))
    except ValueError:
        raise ValidationError("Format de date invalide (ISO 8601 attendu)", code="InvalidDates")
    if start is not None and end is not None and start >= end:
        raise ValidationError("start_date doit précéder end_date", code="InvalidDates")
    update["updated_at"] = iso(utcnow())
    updated = await repository.update_event(event_id, update)
    logger.info("events.updated id=%s fields=%s", event_id, sorted(k for k in update if k != "updated_at"))
    return updated or {**event, **update}


CONTESTANT_FIELDS = ("name", "description", "image_url", "display_order")


async def update_contestant(contestant_id: str, organizer_id: str, changes: Dict[str, Any]) -> Dict[str, Any]:
    """
    Modification d'un candidat par l'organisateur de son événement.
    - Refusée (EventLocked) dès que le candidat a reçu un vote, y compris si le vote arrive pendant l'écriture.
    """
    contestant = await votes_repository.get_contestant_with_event(contestant_id)
    if not contestant:
        raise NotFound("Candidat introuvable", code="ContestantNotFound")
    _owned((contestant.get("category") or {}).get("event"), organizer_id)
    update = {k: v for k, v in (changes or {}).items() if k in CONTESTANT_FIELDS and v is not None}
    if not update:
        raise ValidationError("Aucun champ modifiable fourni", code="EmptyUpdate")
    assert_contestant_mutable(contestant)
    update["updated_at"] = iso(utcnow())
    updated = await repository.update_contestant_if_unvoted(contestant_id, update)
    if not updated:
        raise PreconditionFailed("Candidat verrouillé: des votes ont déjà été enregistrés", code=EVENT_LOCKED)
    logger.info("events.contestant_updated id=%s fields=%s", contestant_id, sorted(k for k in update if k != "updated_at"))
    return updated
