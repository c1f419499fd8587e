"""
Adaptateur Stripe: centralise les appels et la configuration Stripe.
Le SDK Stripe est synchrone: chaque appel réseau est exécuté dans le threadpool Starlette
et borné par PROVIDER_TIMEOUT_SECONDS pour ne jamais bloquer la boucle d'événements.
"""
import asyncio
from typing import Any, Dict, Optional

import stripe
from fastapi.concurrency import run_in_threadpool

from voteapp import config

# module voteapp.payments.stripe_client
def require_stripe():
    """
    Prépare et retourne le module stripe prêt à l’emploi.
    - Configure stripe.api_key via STRIPE_SECRET_KEY si disponible.
    - En absence de clé, les appels Stripe échoueront côté SDK (ex: No API key provided).
    """
    if config.STRIPE_SECRET_KEY:
        stripe.api_key = config.STRIPE_SECRET_KEY
    return stripe

async def _call(fn, *args, **kwargs) -> Any:
    require_stripe()
    return await asyncio.wait_for(
        run_in_threadpool(fn, *args, **kwargs),
        timeout=config.PROVIDER_TIMEOUT_SECONDS,
    )

def _as_dict(obj: Any) -> Dict[str, Any]:
    # StripeObject -> dict récursif (to_dict_recursive avant v13, to_dict ensuite)
    if hasattr(obj, "to_dict_recursive"):
        return obj.to_dict_recursive()
    if hasattr(obj, "to_dict"):
        return obj.to_dict()
    return dict(obj)

async def create_payment_intent(*, amount_minor: int, currency: str, metadata: Dict[str, str]) -> Dict[str, Any]:
    """
    Crée un PaymentIntent multi-moyens (automatic_payment_methods).
    - amount_minor: montant en unités mineures de `currency`
    - metadata: payment_id, voter_id, contestant_id, event_id, ...
    Retour: dict incluant "id" et "client_secret".
    """
    intent = await _call(
        stripe.PaymentIntent.create,
        amount=amount_minor,
        currency=currency,
        automatic_payment_methods={"enabled": True},
        metadata=metadata,
    )
    return _as_dict(intent)

async def retrieve_payment_intent(payment_intent_id: str) -> Dict[str, Any]:
    intent = await _call(stripe.PaymentIntent.retrieve, payment_intent_id)
    return _as_dict(intent)

async def cancel_payment_intent(payment_intent_id: str) -> Dict[str, Any]:
    intent = await _call(stripe.PaymentIntent.cancel, payment_intent_id)
    return _as_dict(intent)

def construct_event(payload: bytes, sig_header: Optional[str], secret: str) -> Dict[str, Any]:
    """
    Valide la signature Stripe sur le corps brut (octets non parsés) et retourne l'événement.
    Soulève stripe.SignatureVerificationError (signature) ou ValueError (payload).
    """
    event = stripe.Webhook.construct_event(payload, sig_header or "", secret)
    return _as_dict(event)
