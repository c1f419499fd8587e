"""
Accès aux données pour la feature 'payments' (table payments).
Toutes les écritures passent par le client service-role.
"""
from typing import Any, Dict, Iterable, List, Optional, Tuple

import voteapp.infra.supabase_client as supabase_client
from voteapp.infra.db import execute, execute_with_count, first

PAYMENT_SUMMARY_COLUMNS = (
    "id, amount, platform_fee, organizer_earnings, status, payment_method, currency, created_at, "
    "contestant:contestants!contestant_id(id, name), event:events!event_id(id, title)"
)

# module voteapp.payments.repository
async def insert_payment(row: Dict[str, Any]) -> Dict[str, Any]:
    """Insère une ligne 'payments' et retourne la ligne créée."""
    client = await supabase_client.get_service_supabase()
    rows = await execute(client.table("payments").insert(row), "payments.insert_payment")
    return first(rows) or row

async def get_payment(payment_id: str) -> Optional[Dict[str, Any]]:
    client = await supabase_client.get_service_supabase()
    rows = await execute(
        client.table("payments").select("*").eq("id", payment_id).limit(1),
        "payments.get_payment",
    )
    return first(rows)

async def get_payment_by_intent(payment_intent_id: str) -> Optional[Dict[str, Any]]:
    """Recherche par identifiant PaymentIntent Stripe (corrélation carte)."""
    client = await supabase_client.get_service_supabase()
    rows = await execute(
        client.table("payments").select("*").eq("payment_intent_id", payment_intent_id).limit(1),
        "payments.get_payment_by_intent",
    )
    return first(rows)

async def update_payment(payment_id: str, changes: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """Mise à jour sans condition de statut (réservée aux champs de corrélation/metadata)."""
    client = await supabase_client.get_service_supabase()
    rows = await execute(
        client.table("payments").update(changes).eq("id", payment_id),
        "payments.update_payment",
    )
    return first(rows)

async def update_payment_if_status(
    payment_id: str,
    expected_status: str,
    changes: Dict[str, Any],
) -> Optional[Dict[str, Any]]:
    """
    Compare-and-set: n'écrit que si le statut courant vaut encore expected_status.
    Retourne la ligne mise à jour, ou None si un autre écrivain est passé avant.
    """
    client = await supabase_client.get_service_supabase()
    rows = await execute(
        client.table("payments").update(changes).eq("id", payment_id).eq("status", expected_status),
        "payments.update_payment_if_status",
    )
    return first(rows)

async def list_voter_payments(
    voter_id: str,
    *,
    status: Optional[str] = None,
    offset: int = 0,
    limit: int = 10,
) -> Tuple[List[Dict[str, Any]], int]:
    """Historique paginé des paiements d'un votant (plus récents d'abord)."""
    client = await supabase_client.get_service_supabase()
    query = (
        client.table("payments")
        .select(PAYMENT_SUMMARY_COLUMNS, count="exact")
        .eq("voter_id", voter_id)
        .order("created_at", desc=True)
    )
    if status:
        query = query.eq("status", status)
    query = query.range(offset, offset + limit - 1)
    return await execute_with_count(query, "payments.list_voter_payments")

async def list_completed_earnings(event_ids: Iterable[str]) -> List[Dict[str, Any]]:
    """Montants figés (organizer_earnings) des paiements complétés pour un ensemble d'événements."""
    ids = [str(i) for i in event_ids]
    if not ids:
        return []
    client = await supabase_client.get_service_supabase()
    return await execute(
        client.table("payments")
        .select("id, event_id, organizer_earnings")
        .in_("event_id", ids)
        .eq("status", "completed"),
        "payments.list_completed_earnings",
    )


async def list_voter_completed_amounts(voter_id: str) -> List[Dict[str, Any]]:
    """Montants des paiements complétés d'un votant (résumé d'historique)."""
    client = await supabase_client.get_service_supabase()
    return await execute(
        client.table("payments").select("id, amount").eq("voter_id", voter_id).eq("status", "completed"),
        "payments.list_voter_completed_amounts",
    )
