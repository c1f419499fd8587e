"""
Garde d'éligibilité: vérifie qu'un vote payant peut être initié ou accepté pour un candidat.
Ordre des contrôles (premier échec = raison renvoyée):
  1) candidat / catégorie / événement résolus        -> NotFound
  2) event.status == 'active'                          -> EventNotActive
  3) now >= start_date                                 -> VotingNotStarted
  4) now <= end_date                                   -> VotingEnded
  5) amount == vote_price (comparaison Decimal)        -> AmountMismatch
Aucun effet de bord: appelable avant la création d'un paiement et en pré-vol client.
"""
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Optional

from voteapp.errors import (
    AMOUNT_MISMATCH,
    EVENT_NOT_ACTIVE,
    VOTING_ENDED,
    VOTING_NOT_STARTED,
    NotFound,
    PreconditionFailed,
)
from voteapp.payments.currency import to_decimal
from voteapp.utils.dates import parse_timestamp, utcnow
from voteapp.votes import repository


@dataclass(frozen=True)
class EligibilityContext:
    contestant: Dict[str, Any]
    category: Dict[str, Any]
    event: Dict[str, Any]

    @property
    def vote_price(self) -> Decimal:
        return to_decimal(self.event.get("vote_price"))


async def resolve_contestant(contestant_id: str) -> EligibilityContext:
    contestant = await repository.get_contestant_with_event(contestant_id)
    category = (contestant or {}).get("category") or None
    event = (category or {}).get("event") or None
    if not contestant or not category or not event:
        raise NotFound("Candidat introuvable", code="ContestantNotFound")
    return EligibilityContext(contestant=contestant, category=category, event=event)


def check_window(event: Dict[str, Any], now: datetime) -> None:
    """Contrôles 2 à 4 (statut et fenêtre de vote)."""
    if event.get("status") != "active":
        raise PreconditionFailed("L'événement n'est pas actif", code=EVENT_NOT_ACTIVE)
    start = parse_timestamp(event.get("start_date"))
    end = parse_timestamp(event.get("end_date"))
    if start is not None and now < start:
        raise PreconditionFailed("Le vote n'a pas encore commencé", code=VOTING_NOT_STARTED)
    if end is not None and now > end:
        raise PreconditionFailed("Le vote est terminé", code=VOTING_ENDED)


def check_amount(event: Dict[str, Any], amount: Any) -> None:
    expected = to_decimal(event.get("vote_price"))
    received = to_decimal(amount)
    if received != expected:
        raise PreconditionFailed(
            "Montant de vote invalide",
            code=AMOUNT_MISMATCH,
            extra={"expected": str(expected), "received": str(received)},
        )


async def check_eligibility(
    contestant_id: str,
    amount: Any,
    voter_id: Optional[str] = None,
    now: Optional[datetime] = None,
) -> EligibilityContext:
    """Exécute tous les contrôles et retourne le contexte résolu (candidat, catégorie, événement)."""
    ctx = await resolve_contestant(contestant_id)
    check_window(ctx.event, now or utcnow())
    check_amount(ctx.event, amount)
    return ctx


async def can_vote(contestant_id: str, now: Optional[datetime] = None) -> Dict[str, Any]:
    """
    Pré-vol client: même logique sans lever d'exception métier (le montant n'est pas vérifié).
    NotFound reste propagé (404).
    """
    ctx = await resolve_contestant(contestant_id)
    event = ctx.event
    can, reason, code = True, "Vous pouvez voter pour ce candidat", None
    try:
        check_window(event, now or utcnow())
    except PreconditionFailed as e:
        can, reason, code = False, e.message, e.code
    return {
        "can_vote": can,
        "reason": reason,
        "code": code,
        "event": {
            "id": event.get("id"),
            "status": event.get("status"),
            "vote_price": str(to_decimal(event.get("vote_price"))),
            "start_date": event.get("start_date"),
            "end_date": event.get("end_date"),
        },
        "contestant": {"id": ctx.contestant.get("id"), "name": ctx.contestant.get("name")},
    }
