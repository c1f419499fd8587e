"""
Cas d'usage 'payments': orchestre ledger, fournisseurs, metadata et vote.

apply_success / apply_failure sont le seul chemin de finalisation: les webhooks
et la vérification côté client (verify_payment) les appellent à l'identique.
"""
import logging
from typing import Any, Dict, Optional

from voteapp.errors import AppError, NotFound, ProviderError, ValidationError
from voteapp.payments import ledger, repository
from voteapp.payments.currency import money_str, to_decimal
from voteapp.payments.metadata import build_metadata
from voteapp.payments.providers import (
    CARD,
    MOBILE_MONEY,
    MOBILE_MONEY_NETWORKS,
    ProviderStatus,
    get_provider,
)
from voteapp.votes import committer

logger = logging.getLogger(__name__)

SUMMARY_FIELDS = (
    "id", "status", "amount", "platform_fee", "organizer_earnings", "commission_rate",
    "payment_method", "currency", "voter_id", "contestant_id", "event_id",
    "payment_intent_id", "payment_provider_id", "provider_transaction_id", "created_at", "updated_at",
)


def summarize(payment: Dict[str, Any]) -> Dict[str, Any]:
    return {k: payment.get(k) for k in SUMMARY_FIELDS}


async def _start_intent(
    payment: Dict[str, Any],
    *,
    email: Optional[str] = None,
    options: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """
    Crée l'intent fournisseur pour un paiement 'pending' puis attache la référence.
    - Échec fournisseur: le paiement passe 'failed' (jamais laissé orphelin) et ProviderError est levée.
    """
    provider = get_provider(payment["payment_method"])
    result = await provider.create_intent(
        payment["amount"],
        payment["currency"],
        build_metadata(payment),
        reference=payment["id"],
        email=email,
        options=options,
    )
    if not result.success:
        await ledger.mark_failed(payment["id"], "provider_error", payload={"error": result.error})
        logger.warning("payments.intent failed id=%s method=%s error=%s", payment["id"], provider.method, result.error)
        raise ProviderError(result.error or "Le fournisseur de paiement a refusé la demande")

    await ledger.attach_provider_ref(
        payment["id"],
        result.provider_ref,
        {"method": provider.method, "provider_ref": result.provider_ref, "options": options or {}},
    )
    return result.data


# module voteapp.payments.service
async def create_card_intent(
    voter: Dict[str, Any],
    contestant_id: str,
    amount: Any,
    currency: Optional[str] = None,
) -> Dict[str, Any]:
    """Paiement carte (Stripe PaymentIntent). Retour: client_secret + montants figés."""
    payment = await ledger.create(voter["id"], contestant_id, amount, CARD, currency)
    data = await _start_intent(payment, email=voter.get("email"))
    return {
        "payment_id": payment["id"],
        "client_secret": data.get("client_secret"),
        "payment_intent_id": (data.get("raw") or {}).get("id"),
        "amount": payment["amount"],
        "platform_fee": payment["platform_fee"],
        "organizer_earnings": payment["organizer_earnings"],
        "currency": payment["currency"],
    }


async def initialize_mobile_money(
    voter: Dict[str, Any],
    contestant_id: str,
    amount: Any,
    mobile_money_network: Optional[str] = None,
) -> Dict[str, Any]:
    """Paiement mobile money (Paystack). La référence Paystack est l'id du paiement."""
    network = (mobile_money_network or "").strip().lower() or None
    if network and network not in MOBILE_MONEY_NETWORKS:
        raise ValidationError(f"Réseau mobile money inconnu: {network}", code="InvalidNetwork")
    if not voter.get("email"):
        raise ValidationError("Adresse email requise pour le paiement mobile money", code="EmailRequired")

    payment = await ledger.create(voter["id"], contestant_id, amount, MOBILE_MONEY)
    options = {"mobile_money_network": network} if network else None
    data = await _start_intent(payment, email=voter.get("email"), options=options)
    return {
        "payment_id": payment["id"],
        "authorization_url": data.get("authorization_url"),
        "access_code": data.get("access_code"),
        "reference": data.get("reference"),
        "amount": payment["amount"],
        "currency": payment["currency"],
    }


async def apply_success(payment_id: str, payload: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """
    Paiement confirmé par le fournisseur: pending -> completed puis création du vote.
    - Déjà complété: la création du vote est retentée (idempotente).
    - Un échec de création du vote est journalisé et laissé à la réconciliation.
    """
    outcome = await ledger.mark_completed(payment_id, payload=payload)
    result: Dict[str, Any] = {
        "payment_id": payment_id,
        "outcome": outcome.outcome,
        "status": outcome.payment.get("status"),
        "vote_id": None,
        "already_committed": None,
    }
    if outcome.payment.get("status") != ledger.COMPLETED:
        return result
    try:
        committed = await committer.commit(payment_id)
    except AppError:
        logger.exception("payments.apply_success vote commit failed payment_id=%s", payment_id)
        return result
    result["vote_id"] = committed.vote.get("id")
    result["already_committed"] = committed.already_committed
    return result


async def apply_failure(payment_id: str, reason: str, payload: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    outcome = await ledger.mark_failed(payment_id, reason, payload=payload)
    return {"payment_id": payment_id, "outcome": outcome.outcome, "status": outcome.payment.get("status")}


async def verify_payment(payment_id: str, voter_id: str) -> Dict[str, Any]:
    """
    Vérification côté client (sans webhook): interroge le fournisseur si le paiement est encore 'pending'.
    - Propriétaire uniquement (404 sinon).
    - Erreur fournisseur: le paiement reste 'pending'.
    """
    payment = await repository.get_payment(payment_id)
    if not payment or payment.get("voter_id") != voter_id:
        raise NotFound("Paiement introuvable", code="PaymentNotFound")

    provider_status = None
    if payment.get("status") == ledger.PENDING:
        provider = get_provider(payment.get("payment_method"))
        provider_ref = payment.get(provider.ref_column)
        if provider_ref:
            result = await provider.retrieve_status(provider_ref)
            if not result.success:
                logger.warning("payments.verify provider error id=%s error=%s", payment_id, result.error)
            else:
                provider_status = result.status.value
                if result.status is ProviderStatus.SUCCEEDED:
                    await apply_success(payment_id, payload={"source": "verify", "provider_ref": provider_ref})
                elif result.status is ProviderStatus.FAILED:
                    await apply_failure(payment_id, "provider_reported_failure", payload={"source": "verify"})
            payment = await repository.get_payment(payment_id) or payment

    return {
        "payment": summarize(payment),
        "verified": payment.get("status") == ledger.COMPLETED,
        "provider_status": provider_status,
    }


async def cancel_payment(payment_id: str, voter_id: str) -> Dict[str, Any]:
    outcome = await ledger.cancel(payment_id, voter_id)
    return {
        "payment_id": payment_id,
        "status": outcome.payment.get("status"),
        "canceled": outcome.payment.get("status") == ledger.FAILED,
    }


async def payment_history(
    voter_id: str,
    page: int = 1,
    limit: int = 10,
    status: Optional[str] = None,
) -> Dict[str, Any]:
    """Historique paginé des paiements du votant, avec un résumé des paiements complétés."""
    if page < 1 or limit < 1 or limit > 100:
        raise ValidationError("Pagination invalide (page >= 1, 1 <= limit <= 100)", code="InvalidPagination")
    if status and status not in (ledger.PENDING, ledger.COMPLETED, ledger.FAILED, ledger.REFUNDED, ledger.DISPUTED):
        raise ValidationError(f"Statut inconnu: {status}", code="InvalidStatus")
    rows, total = await repository.list_voter_payments(voter_id, status=status, offset=(page - 1) * limit, limit=limit)
    completed = await repository.list_voter_completed_amounts(voter_id)
    total_spent = sum((to_decimal(r.get("amount")) for r in completed), to_decimal(0))
    return {
        "payments": rows,
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "pages": (total + limit - 1) // limit,
        },
        "summary": {
            "completed_payments": len(completed),
            "total_spent": money_str(total_spent),
        },
    }
