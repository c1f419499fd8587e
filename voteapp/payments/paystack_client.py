"""
Client HTTP Paystack (mobile money): initialisation et vérification de transaction.
Appels asynchrones via httpx.AsyncClient, bornés par PROVIDER_TIMEOUT_SECONDS.
"""
import hashlib
import hmac
from typing import Any, Dict, Optional

import httpx

from voteapp import config

# module voteapp.payments.paystack_client
def _headers() -> Dict[str, str]:
    return {
        "Authorization": f"Bearer {config.PAYSTACK_SECRET_KEY}",
        "Content-Type": "application/json",
    }

def _client() -> httpx.AsyncClient:
    return httpx.AsyncClient(
        base_url=config.PAYSTACK_BASE_URL,
        headers=_headers(),
        timeout=config.PROVIDER_TIMEOUT_SECONDS,
    )

async def initialize_transaction(payload: Dict[str, Any]) -> Dict[str, Any]:
    """
    POST /transaction/initialize
    - payload: email, amount (unités mineures), currency, reference, callback_url, metadata, channels
    Retour: corps JSON Paystack {"status": bool, "message": str, "data": {...}}
    Soulève httpx.HTTPError (réseau/timeout) ou httpx.HTTPStatusError (4xx/5xx).
    """
    async with _client() as client:
        resp = await client.post("/transaction/initialize", json=payload)
        resp.raise_for_status()
        return resp.json()

async def verify_transaction(reference: str) -> Dict[str, Any]:
    """GET /transaction/verify/{reference} -> corps JSON Paystack."""
    async with _client() as client:
        resp = await client.get(f"/transaction/verify/{reference}")
        resp.raise_for_status()
        return resp.json()

def compute_signature(raw_body: bytes, secret: str) -> str:
    """HMAC SHA-512 hexadécimal du corps JSON tel que reçu."""
    return hmac.new(secret.encode("utf-8"), raw_body, hashlib.sha512).hexdigest()

def signature_matches(raw_body: bytes, signature: Optional[str], secret: str) -> bool:
    """Comparaison à temps constant (hmac.compare_digest)."""
    if not signature or not secret:
        return False
    expected = compute_signature(raw_body, secret)
    return hmac.compare_digest(expected, signature.strip())
