from typing import Any, Dict

from fastapi import Depends, HTTPException, Request

from voteapp.errors import PersistenceError
from voteapp.users import repository as users_repository

ROLE_ADMIN = "admin"
ROLE_ORGANIZER = "organizer"
ROLE_VOTER = "voter"


def _bearer_token(request: Request) -> str:
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        return auth_header[7:].strip()
    return ""


async def get_current_user(request: Request) -> Dict[str, Any]:
    """
    Résout l'utilisateur à partir du jeton Bearer Supabase.
    - Identité: supabase.auth.get_user(token)
    - Rôle et statut organisateur: ligne 'users' du profil applicatif
    """
    token = _bearer_token(request)
    if not token:
        raise HTTPException(status_code=401, detail="Non authentifié")

    try:
        raw = await users_repository.get_user_from_access_token(token)
    except PersistenceError:
        raise
    except Exception:
        raise HTTPException(status_code=401, detail="Session expirée, veuillez vous connecter")
    uid = raw.get("id")
    if not uid:
        raise HTTPException(status_code=401, detail="Session expirée, veuillez vous connecter")

    profile = await users_repository.get_user_profile(uid) or {}
    return {
        "id": uid,
        "email": raw.get("email") or profile.get("email"),
        "full_name": profile.get("full_name"),
        "role": profile.get("role") or ROLE_VOTER,
        "organizer_status": profile.get("organizer_status"),
        "token": token,
    }


def require_user(user: Dict[str, Any] = Depends(get_current_user)) -> Dict[str, Any]:
    return user


def require_admin(user: Dict[str, Any] = Depends(get_current_user)) -> Dict[str, Any]:
    if user.get("role") != ROLE_ADMIN:
        raise HTTPException(status_code=403, detail="Accès interdit")
    return user


def require_organizer(user: Dict[str, Any] = Depends(get_current_user)) -> Dict[str, Any]:
    if user.get("role") not in (ROLE_ORGANIZER, ROLE_ADMIN):
        raise HTTPException(status_code=403, detail="Accès réservé aux organisateurs")
    return user


def require_approved_organizer(user: Dict[str, Any] = Depends(require_organizer)) -> Dict[str, Any]:
    if user.get("role") == ROLE_ORGANIZER and user.get("organizer_status") != "approved":
        raise HTTPException(status_code=403, detail="Compte organisateur non approuvé")
    return user
