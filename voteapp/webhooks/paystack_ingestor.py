"""
Ingestion des webhooks Paystack (mobile money et transferts de retrait).
- Signature: HMAC SHA-512 du corps brut avec la clé secrète (en-tête x-paystack-signature).
- charge.success est revérifié auprès de l'API Paystack avant toute écriture.
- Référence de charge = id du paiement; référence de transfert = id du retrait.
"""
import logging
from typing import Any, Dict, Optional

from voteapp import config
from voteapp.errors import AppError
from voteapp.payments import ledger, repository
from voteapp.payments import service as payments_service
from voteapp.payments.currency import to_minor
from voteapp.payments.metadata import event_object, extract_payment_id
from voteapp.payments.providers import MOBILE_MONEY, ProviderStatus, get_provider
from voteapp.webhooks.events import PaystackEventKind
from voteapp.withdrawals import service as withdrawals_service

logger = logging.getLogger(__name__)


async def _resolve_payment(data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    reference = data.get("reference")
    if reference:
        payment = await repository.get_payment(str(reference))
        if payment:
            return payment
    payment_id = extract_payment_id(data)
    if payment_id:
        return await repository.get_payment(payment_id)
    return None


def _audit(event: Dict[str, Any], data: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "event": event.get("event"),
        "paystack_transaction_id": data.get("id"),
        "reference": data.get("reference"),
        "channel": data.get("channel"),
        "gateway_response": data.get("gateway_response"),
    }


async def _on_charge_success(event: Dict[str, Any], data: Dict[str, Any]) -> Dict[str, Any]:
    payment = await _resolve_payment(data)
    if not payment:
        logger.warning("webhooks.paystack payment not found reference=%s", data.get("reference"))
        return {"action": "ignored", "reason": "payment_not_found"}

    provider = get_provider(MOBILE_MONEY)
    reference = payment.get(provider.ref_column) or str(data.get("reference") or payment["id"])
    verified = await provider.retrieve_status(reference)
    if not verified.success or verified.status is not ProviderStatus.SUCCEEDED:
        logger.warning(
            "webhooks.paystack charge not confirmed reference=%s error=%s status=%s",
            reference, verified.error, verified.status,
        )
        return {"action": "ignored", "reason": "not_verified", "payment_id": payment["id"]}

    raw = verified.data.get("raw") or {}
    expected = to_minor(payment["amount"], provider.settlement_currency())
    if raw.get("amount") is not None and int(raw["amount"]) != expected:
        logger.error(
            "webhooks.paystack amount mismatch payment_id=%s expected=%s received=%s",
            payment["id"], expected, raw.get("amount"),
        )
        return {"action": "ignored", "reason": "amount_mismatch", "payment_id": payment["id"]}

    if not payment.get(provider.ref_column):
        await ledger.attach_provider_ref(payment["id"], reference)
    await ledger.attach_transaction_id(payment, raw.get("id") or data.get("id"))
    result = await payments_service.apply_success(payment["id"], payload=_audit(event, data))
    return {"action": "completed", **result}


async def _on_charge_failed(event: Dict[str, Any], data: Dict[str, Any]) -> Dict[str, Any]:
    payment = await _resolve_payment(data)
    if not payment:
        return {"action": "ignored", "reason": "payment_not_found"}
    reason = data.get("gateway_response") or "paystack_charge_failed"
    result = await payments_service.apply_failure(payment["id"], str(reason), payload=_audit(event, data))
    return {"action": "failed", **result}


async def _on_transfer(event: Dict[str, Any], data: Dict[str, Any]) -> Dict[str, Any]:
    reference = data.get("reference")
    if not reference:
        return {"action": "ignored", "reason": "missing_reference"}
    success = PaystackEventKind.parse(event.get("event")) is PaystackEventKind.TRANSFER_SUCCESS
    payload = {
        "event": event.get("event"),
        "transfer_code": data.get("transfer_code"),
        "status": data.get("status"),
        "reason": data.get("reason"),
    }
    updated = await withdrawals_service.apply_transfer_outcome(str(reference), success, payload)
    return {
        "action": "transfer_completed" if success else "transfer_failed",
        "withdrawal_id": str(reference),
        "applied": updated is not None,
    }


_HANDLERS = {
    PaystackEventKind.CHARGE_SUCCESS: _on_charge_success,
    PaystackEventKind.CHARGE_FAILED: _on_charge_failed,
    PaystackEventKind.TRANSFER_SUCCESS: _on_transfer,
    PaystackEventKind.TRANSFER_FAILED: _on_transfer,
    PaystackEventKind.TRANSFER_REVERSED: _on_transfer,
}


# module voteapp.webhooks.paystack_ingestor
async def dispatch(event: Dict[str, Any]) -> Dict[str, Any]:
    """Aiguille un événement déjà vérifié. Ne lève jamais."""
    kind = PaystackEventKind.parse(event.get("event"))
    handler = _HANDLERS.get(kind)
    if handler is None:
        logger.info("webhooks.paystack unhandled event=%s", event.get("event"))
        return {"action": "ignored", "reason": "unhandled_event"}
    try:
        result = await handler(event, event_object(event))
    except Exception:
        logger.exception("webhooks.paystack handler failed event=%s", event.get("event"))
        return {"action": "error"}
    logger.info("webhooks.paystack handled event=%s result=%s", kind.value, result)
    return result


async def ingest(raw_body: bytes, signature: Optional[str]) -> Dict[str, Any]:
    try:
        event = get_provider(MOBILE_MONEY).verify_webhook(raw_body, signature, config.PAYSTACK_SECRET_KEY)
    except AppError as e:
        logger.error("webhooks.paystack rejected code=%s detail=%s", e.code, e.message)
        raise
    return await dispatch(event)
