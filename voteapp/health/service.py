from urllib.parse import urlparse

from voteapp.config import SUPABASE_URL
from voteapp.errors import PersistenceError
from voteapp.infra.db import execute
import voteapp.infra.supabase_client as supabase_client

CHECKED_TABLES = ("platform_settings", "payments", "votes")


async def _check_table(client, name: str):
    try:
        rows = await execute(client.table(name).select("id").limit(1), f"health.{name}")
        return {"ok": True, "rows": len(rows)}
    except PersistenceError as e:
        return {"ok": False, "error": e.message}


async def health_supabase_info():
    parsed = urlparse(SUPABASE_URL) if SUPABASE_URL else None
    info = {
        "hostname": parsed.hostname if parsed else None,
        "connect_ok": False,
        "error": None,
        "tables": {},
    }
    try:
        client = await supabase_client.get_service_supabase()
    except RuntimeError as e:
        info["error"] = str(e)
        return info
    for t in CHECKED_TABLES:
        info["tables"][t] = await _check_table(client, t)
    info["connect_ok"] = all(t["ok"] for t in info["tables"].values())
    return info
