"""
Registre des paiements: seul écrivain de payments.status.

Transitions autorisées:
    pending   -> completed | failed
    completed -> refunded  | disputed
Tout le reste est refusé (jamais de retour en arrière, failed/refunded/disputed sont terminaux).

Chaque écriture de statut est un compare-and-set sur le statut observé
(UPDATE ... WHERE id = ? AND status = <observé>): deux webhooks concurrents,
ou un webhook et une vérification client, ne peuvent pas appliquer deux fois la même transition.
"""
from dataclasses import dataclass
from datetime import datetime
import logging
from typing import Any, Dict, Optional
import uuid

from voteapp import config
from voteapp.errors import (
    PROVIDER_DISABLED,
    NotFound,
    PreconditionFailed,
    ValidationError,
)
from voteapp.payments import repository
from voteapp.payments.commission import split
from voteapp.payments.currency import SUPPORTED_CARD_CURRENCIES, money_str
from voteapp.payments.providers import CARD, PAYMENT_METHODS, get_provider
from voteapp.platform import service as platform_service
from voteapp.utils.dates import iso, utcnow
from voteapp.votes import eligibility

logger = logging.getLogger(__name__)

PENDING = "pending"
COMPLETED = "completed"
FAILED = "failed"
REFUNDED = "refunded"
DISPUTED = "disputed"

TRANSITIONS = {
    PENDING: frozenset({COMPLETED, FAILED}),
    COMPLETED: frozenset({REFUNDED, DISPUTED}),
}

APPLIED = "applied"
NOOP = "noop"
REJECTED = "rejected"

# Tentatives de compare-and-set avant d'abandonner (course perdue = relecture)
_CAS_ATTEMPTS = 3


@dataclass(frozen=True)
class TransitionOutcome:
    payment: Dict[str, Any]
    outcome: str
    previous_status: Optional[str] = None

    @property
    def applied(self) -> bool:
        return self.outcome == APPLIED


def can_transition(current: Optional[str], target: str) -> bool:
    return target in TRANSITIONS.get(current or "", frozenset())


async def get_payment_or_404(payment_id: str) -> Dict[str, Any]:
    payment = await repository.get_payment(payment_id)
    if not payment:
        raise NotFound("Paiement introuvable", code="PaymentNotFound")
    return payment


def _resolve_currency(method: str, requested: Optional[str], event: Dict[str, Any]) -> str:
    if method != CARD:
        # Mobile money: devise de règlement fixe
        return config.PAYSTACK_CURRENCY.lower()
    currency = (requested or event.get("currency") or config.DEFAULT_CURRENCY).lower()
    if currency not in SUPPORTED_CARD_CURRENCIES:
        raise ValidationError(f"Devise non supportée: {currency}", code="UnsupportedCurrency")
    return currency


# module voteapp.payments.ledger
async def create(
    voter_id: str,
    contestant_id: str,
    amount: Any,
    method: str,
    currency: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    """
    Crée un paiement 'pending' après le contrôle d'éligibilité.
    - Le taux de commission courant est figé dans la ligne (commission_rate, platform_fee, organizer_earnings).
    - Aucune ligne n'est écrite si l'éligibilité échoue ou si le moyen de paiement est désactivé.
    - La ligne précède l'appel fournisseur: en cas d'échec de celui-ci, payments.service la passe 'failed'.
    """
    if method not in PAYMENT_METHODS:
        raise ValidationError(f"Moyen de paiement inconnu: {method}", code="UnknownPaymentMethod")
    ctx = await eligibility.check_eligibility(contestant_id, amount, voter_id=voter_id, now=now)
    settings = await platform_service.get_settings()
    if not settings.provider_enabled(method):
        raise PreconditionFailed("Ce moyen de paiement est désactivé", code=PROVIDER_DISABLED)

    fees = split(ctx.vote_price, settings.commission_rate)
    stamp = iso(now or utcnow())
    row = {
        "id": str(uuid.uuid4()),
        "voter_id": voter_id,
        "event_id": ctx.event.get("id"),
        "contestant_id": contestant_id,
        "amount": money_str(fees.amount),
        "platform_fee": money_str(fees.platform_fee),
        "organizer_earnings": money_str(fees.organizer_earnings),
        "commission_rate": str(fees.rate),
        "payment_method": method,
        "currency": _resolve_currency(method, currency, ctx.event),
        "status": PENDING,
        "metadata": {},
        "created_at": stamp,
        "updated_at": stamp,
    }
    payment = await repository.insert_payment(row)
    logger.info(
        "payments.created id=%s method=%s amount=%s fee=%s voter_id=%s contestant_id=%s",
        row["id"], method, row["amount"], row["platform_fee"], voter_id, contestant_id,
    )
    return payment


async def attach_provider_ref(
    payment_id: str,
    provider_ref: str,
    raw_payload: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """
    Enregistre la référence fournisseur (payment_intent_id pour la carte, payment_provider_id sinon).
    - Même valeur déjà présente: aucun effet.
    - Valeur différente déjà présente: ValidationError (un paiement = un intent).
    """
    payment = await get_payment_or_404(payment_id)
    column = get_provider(payment.get("payment_method")).ref_column
    existing = payment.get(column)
    if existing == provider_ref:
        return payment
    if existing:
        logger.error("payments.attach_ref conflict id=%s existing=%s new=%s", payment_id, existing, provider_ref)
        raise ValidationError("Référence fournisseur déjà attachée", code="ProviderRefConflict")
    changes: Dict[str, Any] = {column: provider_ref, "updated_at": iso(utcnow())}
    if raw_payload:
        changes["metadata"] = {**(payment.get("metadata") or {}), "provider_init": raw_payload}
    updated = await repository.update_payment(payment_id, changes)
    return updated or {**payment, **changes}


async def attach_transaction_id(payment: Dict[str, Any], transaction_id: Any) -> Dict[str, Any]:
    """
    Enregistre l'id de transaction du fournisseur (charge Paystack) dans provider_transaction_id.
    payment_provider_id garde la référence utilisée pour la revérification.
    """
    if transaction_id is None or transaction_id == "":
        return payment
    value = str(transaction_id)
    existing = payment.get("provider_transaction_id")
    if existing == value:
        return payment
    if existing:
        logger.warning("payments.attach_transaction conflict id=%s existing=%s new=%s", payment["id"], existing, value)
        return payment
    changes = {"provider_transaction_id": value, "updated_at": iso(utcnow())}
    updated = await repository.update_payment(payment["id"], changes)
    return updated or {**payment, **changes}


async def _transition(
    payment_id: str,
    target: str,
    reason: Optional[str] = None,
    payload: Optional[Dict[str, Any]] = None,
) -> TransitionOutcome:
    payment: Dict[str, Any] = {}
    for _ in range(_CAS_ATTEMPTS):
        payment = await get_payment_or_404(payment_id)
        current = payment.get("status")
        if current == target:
            return TransitionOutcome(payment, NOOP, current)
        if not can_transition(current, target):
            logger.warning(
                "payments.transition rejected id=%s from=%s to=%s reason=%s",
                payment_id, current, target, reason,
            )
            return TransitionOutcome(payment, REJECTED, current)

        changes: Dict[str, Any] = {"status": target, "updated_at": iso(utcnow())}
        if reason or payload:
            meta = dict(payment.get("metadata") or {})
            if reason:
                meta[f"{target}_reason"] = reason
            if payload:
                meta[f"{target}_payload"] = payload
            changes["metadata"] = meta
        updated = await repository.update_payment_if_status(payment_id, current, changes)
        if updated:
            logger.info("payments.transition applied id=%s from=%s to=%s reason=%s", payment_id, current, target, reason)
            return TransitionOutcome(updated, APPLIED, current)
        # Un autre écrivain a changé le statut entre la lecture et l'écriture
        logger.info("payments.transition lost race id=%s from=%s to=%s", payment_id, current, target)

    payment = await get_payment_or_404(payment_id)
    current = payment.get("status")
    return TransitionOutcome(payment, NOOP if current == target else REJECTED, current)


async def mark_completed(payment_id: str, payload: Optional[Dict[str, Any]] = None) -> TransitionOutcome:
    return await _transition(payment_id, COMPLETED, payload=payload)


async def mark_failed(payment_id: str, reason: str, payload: Optional[Dict[str, Any]] = None) -> TransitionOutcome:
    return await _transition(payment_id, FAILED, reason=reason, payload=payload)


async def mark_disputed(payment_id: str, reason: str, payload: Optional[Dict[str, Any]] = None) -> TransitionOutcome:
    """Litige: le vote déjà créé n'est pas touché."""
    return await _transition(payment_id, DISPUTED, reason=reason, payload=payload)


async def mark_refunded(payment_id: str, reason: str, payload: Optional[Dict[str, Any]] = None) -> TransitionOutcome:
    return await _transition(payment_id, REFUNDED, reason=reason, payload=payload)


async def cancel(payment_id: str, voter_id: str) -> TransitionOutcome:
    """
    Annulation par le votant propriétaire, uniquement tant que le paiement est 'pending'.
    - L'annulation fournisseur est best-effort: un échec est journalisé et ne bloque pas.
    - Si le paiement a été complété entre-temps, le compare-and-set refuse l'écriture.
    """
    payment = await repository.get_payment(payment_id)
    if not payment or payment.get("voter_id") != voter_id or payment.get("status") != PENDING:
        raise NotFound("Paiement introuvable ou non annulable", code="PaymentNotFound")

    provider = get_provider(payment.get("payment_method"))
    provider_ref = payment.get(provider.ref_column)
    if provider_ref:
        result = await provider.cancel(provider_ref)
        if not result.success:
            logger.warning("payments.cancel provider failed id=%s ref=%s error=%s", payment_id, provider_ref, result.error)

    outcome = await mark_failed(payment_id, "canceled_by_voter")
    logger.info("payments.cancel id=%s voter_id=%s outcome=%s", payment_id, voter_id, outcome.outcome)
    return outcome
