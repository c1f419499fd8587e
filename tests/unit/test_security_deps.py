import pytest
from fastapi import HTTPException
from starlette.requests import Request

from voteapp.utils import security
from voteapp.utils.security import (
    get_current_user,
    require_admin,
    require_approved_organizer,
    require_organizer,
)

from fakes import ADMIN, ORGANIZER, VOTER


def _request(authorization=None):
    headers = [(b"authorization", authorization.encode())] if authorization else []
    return Request({"type": "http", "method": "GET", "path": "/", "headers": headers})


async def test_current_user_from_bearer(monkeypatch):
    async def fake_get_user(token):
        assert token == "tok-123"
        return {"id": "u1", "email": "u1@example.com"}

    async def fake_profile(user_id):
        return {"id": user_id, "full_name": "U1", "role": "organizer", "organizer_status": "approved"}

    monkeypatch.setattr("voteapp.users.repository.get_user_from_access_token", fake_get_user)
    monkeypatch.setattr("voteapp.users.repository.get_user_profile", fake_profile)

    user = await get_current_user(_request("Bearer tok-123"))

    assert user["id"] == "u1"
    assert user["role"] == "organizer"
    assert user["organizer_status"] == "approved"
    assert user["token"] == "tok-123"

async def test_current_user_default_role(monkeypatch):
    async def fake_get_user(token):
        return {"id": "u2", "email": "u2@example.com"}

    async def no_profile(user_id):
        return None

    monkeypatch.setattr("voteapp.users.repository.get_user_from_access_token", fake_get_user)
    monkeypatch.setattr("voteapp.users.repository.get_user_profile", no_profile)

    user = await get_current_user(_request("Bearer tok"))
    assert user["role"] == security.ROLE_VOTER

async def test_current_user_missing_or_invalid_token(monkeypatch):
    with pytest.raises(HTTPException) as exc:
        await get_current_user(_request())
    assert exc.value.status_code == 401

    async def rejected(token):
        raise RuntimeError("invalid JWT")
    monkeypatch.setattr("voteapp.users.repository.get_user_from_access_token", rejected)
    with pytest.raises(HTTPException) as exc:
        await get_current_user(_request("Bearer expired"))
    assert exc.value.status_code == 401

def test_role_guards():
    assert require_admin(ADMIN) is ADMIN
    with pytest.raises(HTTPException) as exc:
        require_admin(VOTER)
    assert exc.value.status_code == 403

    assert require_organizer(ORGANIZER) is ORGANIZER
    assert require_organizer(ADMIN) is ADMIN
    with pytest.raises(HTTPException):
        require_organizer(VOTER)

def test_approved_organizer_guard():
    assert require_approved_organizer(ORGANIZER) is ORGANIZER
    with pytest.raises(HTTPException) as exc:
        require_approved_organizer({**ORGANIZER, "organizer_status": "pending"})
    assert exc.value.status_code == 403
