"""
Exécution des requêtes PostgREST avec traduction d'erreurs.
- Toute erreur de stockage devient PersistenceError (jamais avalée), avec le SQLSTATE Postgres si connu.
- Les repositories décident eux-mêmes du sens d'une violation d'unicité (UNIQUE_VIOLATION).
"""
import logging
from typing import Any, Dict, List, Optional, Tuple

import httpx
from postgrest.exceptions import APIError

from voteapp.errors import PersistenceError

logger = logging.getLogger(__name__)

UNIQUE_VIOLATION = "23505"


async def _run(query: Any, action: str) -> Any:
    try:
        return await query.execute()
    except APIError as e:
        logger.error("db.%s failed code=%s message=%s", action, getattr(e, "code", None), getattr(e, "message", e))
        err = PersistenceError("Erreur de stockage")
        err.pg_code = getattr(e, "code", None)
        err.pg_details = getattr(e, "details", None)
        raise err from e
    except httpx.HTTPError as e:
        logger.error("db.%s transport error: %s", action, e)
        err = PersistenceError("Stockage indisponible")
        err.pg_code = None
        err.pg_details = None
        raise err from e


def _as_rows(data: Any) -> List[Dict[str, Any]]:
    if data is None:
        return []
    if isinstance(data, list):
        return data
    return [data]


async def execute(query: Any, action: str) -> List[Dict[str, Any]]:
    """
    Exécute une requête construite (table/rpc) et retourne toujours une liste de lignes.
    - action: libellé court pour les logs (ex: "payments.get_payment")
    """
    res = await _run(query, action)
    return _as_rows(getattr(res, "data", None))


async def execute_with_count(query: Any, action: str) -> Tuple[List[Dict[str, Any]], int]:
    """Variante pour les requêtes select(..., count="exact") paginées."""
    res = await _run(query, action)
    return _as_rows(getattr(res, "data", None)), int(getattr(res, "count", None) or 0)


def first(rows: List[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    return rows[0] if rows else None
