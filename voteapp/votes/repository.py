"""
Accès aux données 'votes' et lecture du contexte candidat -> catégorie -> événement.
- commit_vote_atomic: appelle la fonction Postgres commit_vote (insertion du vote + compteurs
  dans une même transaction). La contrainte UNIQUE(votes.payment_id) arbitre les commits concurrents.
"""
from typing import Any, Dict, List, Optional

import voteapp.infra.supabase_client as supabase_client
from voteapp.errors import ConflictAlreadyCommitted, PersistenceError
from voteapp.infra.db import UNIQUE_VIOLATION, execute, first

CONTESTANT_CONTEXT_COLUMNS = (
    "id, name, vote_count, "
    "category:categories!category_id("
    "id, name, "
    "event:events!event_id(id, title, status, vote_price, currency, organizer_id, start_date, end_date, total_votes)"
    ")"
)

# module voteapp.votes.repository
async def get_contestant_with_event(contestant_id: str) -> Optional[Dict[str, Any]]:
    """Retourne le candidat avec category.event imbriqués, ou None."""
    client = await supabase_client.get_service_supabase()
    rows = await execute(
        client.table("contestants").select(CONTESTANT_CONTEXT_COLUMNS).eq("id", contestant_id).limit(1),
        "votes.get_contestant_with_event",
    )
    return first(rows)

async def get_vote_by_payment(payment_id: str) -> Optional[Dict[str, Any]]:
    client = await supabase_client.get_service_supabase()
    rows = await execute(
        client.table("votes").select("*").eq("payment_id", payment_id).limit(1),
        "votes.get_vote_by_payment",
    )
    return first(rows)

async def commit_vote_atomic(payment: Dict[str, Any]) -> Dict[str, Any]:
    """
    Insère le vote financé par `payment` et incrémente les compteurs (même transaction).
    - Soulève ConflictAlreadyCommitted si un vote référence déjà ce paiement (SQLSTATE 23505).
    """
    client = await supabase_client.get_service_supabase()
    params = {
        "p_payment_id": payment["id"],
        "p_voter_id": payment["voter_id"],
        "p_contestant_id": payment["contestant_id"],
        "p_event_id": payment["event_id"],
        "p_amount": str(payment["amount"]),
    }
    try:
        rows = await execute(client.rpc("commit_vote", params), "votes.commit_vote_atomic")
    except PersistenceError as e:
        if getattr(e, "pg_code", None) == UNIQUE_VIOLATION:
            raise ConflictAlreadyCommitted("Vote déjà enregistré pour ce paiement") from e
        raise
    vote = first(rows)
    if not vote:
        raise PersistenceError("commit_vote n'a retourné aucune ligne")
    return vote

async def list_completed_payments_without_vote(limit: int = 100) -> List[Dict[str, Any]]:
    """Paiements 'completed' sans vote associé (fonction SQL completed_payments_without_vote)."""
    client = await supabase_client.get_service_supabase()
    return await execute(
        client.rpc("completed_payments_without_vote", {"p_limit": int(limit)}),
        "votes.list_completed_payments_without_vote",
    )
