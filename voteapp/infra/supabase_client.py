"""
Clients Supabase asynchrones (PostgREST + Auth).
- get_service_supabase: client service-role, utilisé pour toutes les écritures du cœur paiement/vote.
- get_supabase: client anon, utilisé pour résoudre les jetons d'accès (auth.get_user).
Les clients sont créés paresseusement puis réutilisés (lecture seule après init).
"""
from typing import Optional
from supabase import acreate_client, AsyncClient
from voteapp.config import SUPABASE_URL, SUPABASE_ANON, SUPABASE_SERVICE_KEY

_supabase: Optional[AsyncClient] = None
_service_supabase: Optional[AsyncClient] = None

async def get_supabase() -> AsyncClient:
    global _supabase
    if _supabase is None:
        _supabase = await acreate_client(SUPABASE_URL, SUPABASE_ANON)
    return _supabase

async def get_service_supabase() -> AsyncClient:
    global _service_supabase
    if not SUPABASE_SERVICE_KEY:
        raise RuntimeError("SUPABASE_SERVICE_KEY manquant pour get_service_supabase()")
    if _service_supabase is None:
        _service_supabase = await acreate_client(SUPABASE_URL, SUPABASE_SERVICE_KEY)
    return _service_supabase

def reset_clients() -> None:
    """Oublie les clients en cache (tests, redémarrage à chaud du lifespan)."""
    global _supabase, _service_supabase
    _supabase = None
    _service_supabase = None
