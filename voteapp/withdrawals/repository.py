"""
Accès aux données 'withdrawals'.
L'id d'un retrait sert aussi de référence de transfert Paystack.
"""
from typing import Any, Dict, Iterable, List, Optional, Tuple

import voteapp.infra.supabase_client as supabase_client
from voteapp.errors import INSUFFICIENT_BALANCE, PersistenceError, PreconditionFailed
from voteapp.infra.db import execute, execute_with_count, first
from voteapp.payments.currency import money_str

# Levé par request_withdrawal (schema.sql) quand le montant dépasse le solde
INSUFFICIENT_BALANCE_SQLSTATE = "WB001"

# module voteapp.withdrawals.repository
async def list_withdrawal_amounts(organizer_id: str, statuses: Iterable[str]) -> List[Dict[str, Any]]:
    client = await supabase_client.get_service_supabase()
    return await execute(
        client.table("withdrawals")
        .select("id, amount, status")
        .eq("organizer_id", organizer_id)
        .in_("status", list(statuses)),
        "withdrawals.list_withdrawal_amounts",
    )

async def list_withdrawals(
    organizer_id: str,
    *,
    status: Optional[str] = None,
    offset: int = 0,
    limit: int = 20,
) -> Tuple[List[Dict[str, Any]], int]:
    client = await supabase_client.get_service_supabase()
    query = (
        client.table("withdrawals")
        .select("*", count="exact")
        .eq("organizer_id", organizer_id)
        .order("created_at", desc=True)
    )
    if status:
        query = query.eq("status", status)
    query = query.range(offset, offset + limit - 1)
    return await execute_with_count(query, "withdrawals.list_withdrawals")

async def get_withdrawal(withdrawal_id: str) -> Optional[Dict[str, Any]]:
    client = await supabase_client.get_service_supabase()
    rows = await execute(
        client.table("withdrawals").select("*").eq("id", withdrawal_id).limit(1),
        "withdrawals.get_withdrawal",
    )
    return first(rows)

async def insert_withdrawal(row: Dict[str, Any]) -> Dict[str, Any]:
    """
    Insère un retrait 'pending' via la fonction Postgres request_withdrawal.
    - Le solde est recalculé sous verrou dans la même transaction que l'insertion.
    - Soulève PreconditionFailed(InsufficientBalance) si le montant dépasse le solde (SQLSTATE WB001).
    """
    client = await supabase_client.get_service_supabase()
    params = {
        "p_id": row["id"],
        "p_organizer_id": row["organizer_id"],
        "p_amount": str(row["amount"]),
        "p_payment_method": row["payment_method"],
        "p_payment_details": row.get("payment_details") or {},
    }
    try:
        rows = await execute(client.rpc("request_withdrawal", params), "withdrawals.insert_withdrawal")
    except PersistenceError as e:
        if getattr(e, "pg_code", None) == INSUFFICIENT_BALANCE_SQLSTATE:
            raise PreconditionFailed(
                "Solde insuffisant",
                code=INSUFFICIENT_BALANCE,
                extra={"available": money_str(getattr(e, "pg_details", None) or 0), "requested": money_str(row["amount"])},
            ) from e
        raise
    withdrawal = first(rows)
    if not withdrawal:
        raise PersistenceError("request_withdrawal n'a retourné aucune ligne")
    return withdrawal

async def update_withdrawal_if_status(
    withdrawal_id: str,
    expected_status: str,
    changes: Dict[str, Any],
) -> Optional[Dict[str, Any]]:
    client = await supabase_client.get_service_supabase()
    rows = await execute(
        client.table("withdrawals").update(changes).eq("id", withdrawal_id).eq("status", expected_status),
        "withdrawals.update_withdrawal_if_status",
    )
    return first(rows)

async def delete_pending_withdrawal(withdrawal_id: str, organizer_id: str) -> Optional[Dict[str, Any]]:
    """Supprime un retrait encore 'pending' de cet organisateur; None si rien n'a été supprimé."""
    client = await supabase_client.get_service_supabase()
    rows = await execute(
        client.table("withdrawals")
        .delete()
        .eq("id", withdrawal_id)
        .eq("organizer_id", organizer_id)
        .eq("status", "pending"),
        "withdrawals.delete_pending_withdrawal",
    )
    return first(rows)
