"""
Accès aux données 'platform_settings' (ligne unique).
"""
from typing import Any, Dict, Optional

import voteapp.infra.supabase_client as supabase_client
from voteapp.infra.db import execute, first


async def get_platform_settings() -> Optional[Dict[str, Any]]:
    client = await supabase_client.get_service_supabase()
    rows = await execute(
        client.table("platform_settings").select("*").limit(1),
        "platform.get_platform_settings",
    )
    return first(rows)

async def update_platform_settings(settings_id: str, changes: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    client = await supabase_client.get_service_supabase()
    rows = await execute(
        client.table("platform_settings").update(changes).eq("id", settings_id),
        "platform.update_platform_settings",
    )
    return first(rows)

async def insert_platform_settings(row: Dict[str, Any]) -> Dict[str, Any]:
    client = await supabase_client.get_service_supabase()
    rows = await execute(client.table("platform_settings").insert(row), "platform.insert_platform_settings")
    return first(rows) or row
