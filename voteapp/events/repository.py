"""Accès aux données 'events' (statut, structure catégories/candidats)."""
from typing import Any, Dict, List, Optional

import voteapp.infra.supabase_client as supabase_client
from voteapp.infra.db import execute, first

EVENT_STRUCTURE_COLUMNS = (
    "id, organizer_id, title, status, start_date, end_date, total_votes, "
    "categories(id, contestants(id))"
)

# module voteapp.events.repository
async def get_event(event_id: str) -> Optional[Dict[str, Any]]:
    client = await supabase_client.get_service_supabase()
    rows = await execute(
        client.table("events").select("*").eq("id", event_id).limit(1),
        "events.get_event",
    )
    return first(rows)

async def get_event_structure(event_id: str) -> Optional[Dict[str, Any]]:
    """Événement avec ses catégories et les ids de leurs candidats (contrôles d'activation)."""
    client = await supabase_client.get_service_supabase()
    rows = await execute(
        client.table("events").select(EVENT_STRUCTURE_COLUMNS).eq("id", event_id).limit(1),
        "events.get_event_structure",
    )
    return first(rows)

async def list_organizer_event_ids(organizer_id: str) -> List[str]:
    client = await supabase_client.get_service_supabase()
    rows = await execute(
        client.table("events").select("id").eq("organizer_id", organizer_id),
        "events.list_organizer_event_ids",
    )
    return [str(r["id"]) for r in rows if r.get("id")]

async def update_event_if_status(event_id: str, expected_status: str, changes: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """Compare-and-set sur events.status; None si le statut a changé entre-temps."""
    client = await supabase_client.get_service_supabase()
    rows = await execute(
        client.table("events").update(changes).eq("id", event_id).eq("status", expected_status),
        "events.update_event_if_status",
    )
    return first(rows)

async def update_event(event_id: str, changes: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    client = await supabase_client.get_service_supabase()
    rows = await execute(
        client.table("events").update(changes).eq("id", event_id),
        "events.update_event",
    )
    return first(rows)

async def update_contestant_if_unvoted(contestant_id: str, changes: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """Met à jour un candidat tant que vote_count vaut 0; None si un vote est arrivé entre-temps."""
    client = await supabase_client.get_service_supabase()
    rows = await execute(
        client.table("contestants").update(changes).eq("id", contestant_id).eq("vote_count", 0),
        "events.update_contestant_if_unvoted",
    )
    return first(rows)
