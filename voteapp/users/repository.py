"""Accès Supabase Auth et profil applicatif (table users: role, organizer_status)."""
from typing import Any, Dict, Optional

import voteapp.infra.supabase_client as supabase_client
from voteapp.infra.db import execute, first

# module voteapp.users.repository
async def get_user_from_access_token(access_token: str) -> Dict[str, Any]:
    """Récupère et normalise l’utilisateur depuis supabase.auth.get_user(access_token)."""
    client = await supabase_client.get_supabase()
    res = await client.auth.get_user(access_token)
    user = getattr(res, "user", None) or {}
    if not isinstance(user, dict):
        user = {
            "id": getattr(user, "id", None),
            "email": getattr(user, "email", None),
            "user_metadata": getattr(user, "user_metadata", None),
        }
    return user or {}

async def get_user_profile(user_id: str) -> Optional[Dict[str, Any]]:
    client = await supabase_client.get_service_supabase()
    rows = await execute(
        client.table("users").select("id, email, full_name, role, organizer_status").eq("id", user_id).limit(1),
        "users.get_user_profile",
    )
    return first(rows)
