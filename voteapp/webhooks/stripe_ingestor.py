"""
Ingestion des webhooks Stripe (paiements carte).

Received -> SignatureVerified -> Dispatched -> Handled
- Signature invalide: SignatureInvalid (400), aucune écriture.
- Sinon l'événement est toujours acquitté; une erreur de traitement est journalisée
  et laissée au rejeu Stripe ou à la réconciliation.
"""
import logging
from typing import Any, Dict, Optional

from voteapp import config
from voteapp.errors import AppError
from voteapp.payments import ledger, repository
from voteapp.payments import service as payments_service
from voteapp.payments.metadata import event_object, extract_payment_id
from voteapp.payments.providers import CARD, get_provider
from voteapp.webhooks.events import StripeEventKind

logger = logging.getLogger(__name__)


async def _resolve_payment(intent_id: Optional[str], obj: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """PaymentIntent id d'abord, metadata.payment_id ensuite (intent pas encore attaché)."""
    if intent_id:
        payment = await repository.get_payment_by_intent(intent_id)
        if payment:
            return payment
    payment_id = extract_payment_id(obj)
    if payment_id:
        return await repository.get_payment(payment_id)
    return None


def _audit(event: Dict[str, Any], obj: Dict[str, Any]) -> Dict[str, Any]:
    return {"event_id": event.get("id"), "type": event.get("type"), "object_id": obj.get("id"), "status": obj.get("status")}


async def _on_succeeded(event: Dict[str, Any], obj: Dict[str, Any]) -> Dict[str, Any]:
    payment = await _resolve_payment(obj.get("id"), obj)
    if not payment:
        logger.warning("webhooks.stripe payment not found intent=%s", obj.get("id"))
        return {"action": "ignored", "reason": "payment_not_found"}
    if not payment.get("payment_intent_id") and obj.get("id"):
        await ledger.attach_provider_ref(payment["id"], obj["id"])
    result = await payments_service.apply_success(payment["id"], payload=_audit(event, obj))
    return {"action": "completed", **result}


async def _on_failed(event: Dict[str, Any], obj: Dict[str, Any]) -> Dict[str, Any]:
    payment = await _resolve_payment(obj.get("id"), obj)
    if not payment:
        return {"action": "ignored", "reason": "payment_not_found"}
    error = obj.get("last_payment_error") or {}
    reason = error.get("code") or error.get("message") or obj.get("cancellation_reason") or event.get("type")
    result = await payments_service.apply_failure(payment["id"], str(reason), payload=_audit(event, obj))
    return {"action": "failed", **result}


async def _on_dispute(event: Dict[str, Any], obj: Dict[str, Any]) -> Dict[str, Any]:
    payment = await _resolve_payment(obj.get("payment_intent"), obj)
    if not payment:
        return {"action": "ignored", "reason": "payment_not_found"}
    # Le vote reste en place: un litige ne retire pas de voix
    outcome = await ledger.mark_disputed(payment["id"], obj.get("reason") or "dispute", payload=_audit(event, obj))
    return {"action": "disputed", "payment_id": payment["id"], "outcome": outcome.outcome}


async def _on_refunded(event: Dict[str, Any], obj: Dict[str, Any]) -> Dict[str, Any]:
    payment = await _resolve_payment(obj.get("payment_intent"), obj)
    if not payment:
        return {"action": "ignored", "reason": "payment_not_found"}
    if not obj.get("refunded"):
        logger.info("webhooks.stripe partial refund ignored payment_id=%s", payment["id"])
        return {"action": "ignored", "reason": "partial_refund", "payment_id": payment["id"]}
    outcome = await ledger.mark_refunded(payment["id"], "charge_refunded", payload=_audit(event, obj))
    return {"action": "refunded", "payment_id": payment["id"], "outcome": outcome.outcome}


_HANDLERS = {
    StripeEventKind.PAYMENT_SUCCEEDED: _on_succeeded,
    StripeEventKind.PAYMENT_FAILED: _on_failed,
    StripeEventKind.PAYMENT_CANCELED: _on_failed,
    StripeEventKind.DISPUTE_CREATED: _on_dispute,
    StripeEventKind.CHARGE_REFUNDED: _on_refunded,
}


# module voteapp.webhooks.stripe_ingestor
async def dispatch(event: Dict[str, Any]) -> Dict[str, Any]:
    """Aiguille un événement déjà vérifié. Ne lève jamais."""
    kind = StripeEventKind.parse(event.get("type"))
    handler = _HANDLERS.get(kind)
    if handler is None:
        logger.info("webhooks.stripe unhandled type=%s id=%s", event.get("type"), event.get("id"))
        return {"action": "ignored", "reason": "unhandled_event"}
    try:
        result = await handler(event, event_object(event))
    except Exception:
        logger.exception("webhooks.stripe handler failed type=%s id=%s", event.get("type"), event.get("id"))
        return {"action": "error"}
    logger.info("webhooks.stripe handled type=%s id=%s result=%s", kind.value, event.get("id"), result)
    return result


async def ingest(raw_body: bytes, signature: Optional[str]) -> Dict[str, Any]:
    """Vérifie la signature sur le corps brut puis traite l'événement."""
    try:
        event = get_provider(CARD).verify_webhook(raw_body, signature, config.STRIPE_WEBHOOK_SECRET)
    except AppError as e:
        logger.error("webhooks.stripe rejected code=%s detail=%s", e.code, e.message)
        raise
    return await dispatch(event)
