"""
Création du vote financé par un paiement complété, exactement une fois.

Le vote et les compteurs (contestant.vote_count, event.total_votes, event.total_revenue)
sont écrits par la fonction Postgres commit_vote dans une seule transaction.
La contrainte UNIQUE(votes.payment_id) départage les appels concurrents: le perdant
reçoit ConflictAlreadyCommitted et relit le vote existant.
"""
from dataclasses import dataclass
import logging
from typing import Any, Dict, Optional

from voteapp.errors import (
    PAYMENT_MISMATCH,
    PAYMENT_NOT_COMPLETED,
    ConflictAlreadyCommitted,
    NotFound,
    PersistenceError,
    PreconditionFailed,
)
from voteapp.payments import repository as payments_repository
from voteapp.votes import repository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CommitResult:
    vote: Dict[str, Any]
    already_committed: bool


def _check_payment(
    payment: Optional[Dict[str, Any]],
    expected_voter_id: Optional[str],
    expected_contestant_id: Optional[str],
) -> Dict[str, Any]:
    if not payment:
        raise NotFound("Paiement introuvable", code="PaymentNotFound")
    if payment.get("status") != "completed":
        raise PreconditionFailed("Le paiement n'est pas complété", code=PAYMENT_NOT_COMPLETED)
    if expected_voter_id is not None and payment.get("voter_id") != expected_voter_id:
        raise PreconditionFailed("Ce paiement n'appartient pas à ce votant", code=PAYMENT_MISMATCH)
    if expected_contestant_id is not None and payment.get("contestant_id") != expected_contestant_id:
        raise PreconditionFailed("Ce paiement ne concerne pas ce candidat", code=PAYMENT_MISMATCH)
    return payment


# module voteapp.votes.committer
async def commit(
    payment_id: str,
    expected_voter_id: Optional[str] = None,
    expected_contestant_id: Optional[str] = None,
) -> CommitResult:
    """
    Crée le vote d'un paiement 'completed' (idempotent).
    - Déjà créé (lecture ou violation d'unicité): CommitResult(vote, already_committed=True)
    - Paiement absent: NotFound; non complété: PaymentNotCompleted; votant/candidat différent: PaymentMismatch
    """
    payment = _check_payment(
        await payments_repository.get_payment(payment_id),
        expected_voter_id,
        expected_contestant_id,
    )

    existing = await repository.get_vote_by_payment(payment_id)
    if existing:
        return CommitResult(vote=existing, already_committed=True)

    try:
        vote = await repository.commit_vote_atomic(payment)
    except ConflictAlreadyCommitted:
        existing = await repository.get_vote_by_payment(payment_id)
        if not existing:
            raise PersistenceError("Vote en conflit introuvable après violation d'unicité")
        logger.info("votes.commit already_committed payment_id=%s vote_id=%s", payment_id, existing.get("id"))
        return CommitResult(vote=existing, already_committed=True)

    logger.info(
        "votes.commit created payment_id=%s vote_id=%s contestant_id=%s event_id=%s",
        payment_id, vote.get("id"), payment.get("contestant_id"), payment.get("event_id"),
    )
    return CommitResult(vote=vote, already_committed=False)
