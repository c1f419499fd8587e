"""
Retraits organisateur.

Solde disponible = Σ organizer_earnings (figés) des paiements complétés des événements de l'organisateur
                 - Σ retraits complétés
                 - Σ retraits en attente (pending + processing)
Le taux de commission courant n'intervient jamais: seuls les montants figés à la création comptent.

Transitions d'un retrait:
    pending    -> processing | completed | failed
    processing -> completed  | failed
"""
from dataclasses import dataclass
from decimal import Decimal
import logging
from typing import Any, Dict, Optional
import uuid

from voteapp import config
from voteapp.errors import INSUFFICIENT_BALANCE, INVALID_TRANSITION, NotFound, PreconditionFailed, ValidationError
from voteapp.events import repository as events_repository
from voteapp.payments import repository as payments_repository
from voteapp.payments.currency import money_str, quantize_money, to_decimal
from voteapp.payments.providers import MOBILE_MONEY_NETWORKS
from voteapp.utils.dates import iso, utcnow
from voteapp.withdrawals import repository

logger = logging.getLogger(__name__)

PENDING = "pending"
PROCESSING = "processing"
COMPLETED = "completed"
FAILED = "failed"

TRANSITIONS = {
    PENDING: frozenset({PROCESSING, COMPLETED, FAILED}),
    PROCESSING: frozenset({COMPLETED, FAILED}),
}

WITHDRAWAL_METHODS = ("bank_transfer", "mobile_money", "paystack")

REQUIRED_DETAILS = {
    "bank_transfer": ("account_number", "bank_name", "account_name"),
    "mobile_money": ("mobile_number", "network"),
}


@dataclass(frozen=True)
class Balance:
    total_earnings: Decimal
    total_withdrawn: Decimal
    pending_withdrawals: Decimal

    @property
    def available(self) -> Decimal:
        return max(Decimal("0.00"), self.total_earnings - self.total_withdrawn - self.pending_withdrawals)

    def to_dict(self) -> Dict[str, str]:
        return {
            "total_earnings": money_str(self.total_earnings),
            "total_withdrawn": money_str(self.total_withdrawn),
            "pending_withdrawals": money_str(self.pending_withdrawals),
            "available": money_str(self.available),
        }


def _sum(rows, field: str) -> Decimal:
    return quantize_money(sum((to_decimal(r.get(field) or 0) for r in rows), Decimal("0")))


# module voteapp.withdrawals.service
async def compute_balance(organizer_id: str) -> Balance:
    event_ids = await events_repository.list_organizer_event_ids(organizer_id)
    earnings = await payments_repository.list_completed_earnings(event_ids)
    withdrawals = await repository.list_withdrawal_amounts(organizer_id, (COMPLETED, PENDING, PROCESSING))
    return Balance(
        total_earnings=_sum(earnings, "organizer_earnings"),
        total_withdrawn=_sum([w for w in withdrawals if w.get("status") == COMPLETED], "amount"),
        pending_withdrawals=_sum([w for w in withdrawals if w.get("status") in (PENDING, PROCESSING)], "amount"),
    )


def validate_details(method: str, details: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    if method not in WITHDRAWAL_METHODS:
        raise ValidationError(f"Méthode de retrait inconnue: {method}", code="InvalidWithdrawalMethod")
    if details is not None and not isinstance(details, dict):
        raise ValidationError("payment_details doit être un objet", code="InvalidPaymentDetails")
    cleaned = {k: (v.strip() if isinstance(v, str) else v) for k, v in (details or {}).items()}
    missing = [f for f in REQUIRED_DETAILS.get(method, ()) if not cleaned.get(f)]
    if missing:
        raise ValidationError(
            f"Champs requis pour {method}: {', '.join(missing)}",
            code="InvalidPaymentDetails",
            extra={"missing": missing},
        )
    network = cleaned.get("network")
    if network is not None:
        network = str(network).lower()
        if network not in MOBILE_MONEY_NETWORKS:
            raise ValidationError(f"Réseau mobile money inconnu: {network}", code="InvalidNetwork")
        cleaned["network"] = network
    return cleaned


async def request_withdrawal(
    organizer_id: str,
    amount: Any,
    method: str,
    details: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """
    Demande de retrait (organisateur approuvé, contrôlé par la dépendance HTTP).
    - amount >= MIN_WITHDRAWAL_AMOUNT et <= solde disponible, sinon aucune ligne écrite.
    - Le contrôle local donne une réponse rapide; request_withdrawal (SQL) refait le calcul
      sous verrou et fait foi quand deux demandes se croisent.
    """
    value = quantize_money(amount)
    if value < config.MIN_WITHDRAWAL_AMOUNT:
        raise ValidationError(
            f"Montant minimum de retrait: {money_str(config.MIN_WITHDRAWAL_AMOUNT)}",
            code="AmountTooLow",
        )
    cleaned = validate_details(method, details)

    balance = await compute_balance(organizer_id)
    if value > balance.available:
        raise PreconditionFailed(
            "Solde insuffisant",
            code=INSUFFICIENT_BALANCE,
            extra={"available": money_str(balance.available), "requested": money_str(value)},
        )

    now = iso(utcnow())
    row = {
        "id": str(uuid.uuid4()),
        "organizer_id": organizer_id,
        "amount": money_str(value),
        "payment_method": method,
        "payment_details": {**cleaned, "requested_at": now},
        "status": PENDING,
        "created_at": now,
    }
    withdrawal = await repository.insert_withdrawal(row)
    logger.info("withdrawals.requested id=%s organizer_id=%s amount=%s method=%s", row["id"], organizer_id, row["amount"], method)
    return withdrawal


async def list_withdrawals(organizer_id: str, page: int = 1, limit: int = 20, status: Optional[str] = None) -> Dict[str, Any]:
    if page < 1 or limit < 1 or limit > 100:
        raise ValidationError("Pagination invalide (page >= 1, 1 <= limit <= 100)", code="InvalidPagination")
    rows, total = await repository.list_withdrawals(organizer_id, status=status, offset=(page - 1) * limit, limit=limit)
    return {
        "withdrawals": rows,
        "pagination": {"page": page, "limit": limit, "total": total, "pages": (total + limit - 1) // limit},
    }


async def withdrawal_info(organizer_id: str) -> Dict[str, Any]:
    balance = await compute_balance(organizer_id)
    return {
        "balance": balance.to_dict(),
        "minimum_amount": money_str(config.MIN_WITHDRAWAL_AMOUNT),
        "methods": list(WITHDRAWAL_METHODS),
        "mobile_money_networks": list(MOBILE_MONEY_NETWORKS),
    }


async def cancel_withdrawal(organizer_id: str, withdrawal_id: str) -> Dict[str, Any]:
    deleted = await repository.delete_pending_withdrawal(withdrawal_id, organizer_id)
    if not deleted:
        raise NotFound("Retrait en attente introuvable", code="WithdrawalNotFound")
    logger.info("withdrawals.canceled id=%s organizer_id=%s", withdrawal_id, organizer_id)
    return deleted


async def _transition(
    withdrawal_id: str,
    target: str,
    changes: Dict[str, Any],
    *,
    strict: bool,
) -> Optional[Dict[str, Any]]:
    withdrawal = await repository.get_withdrawal(withdrawal_id)
    if not withdrawal:
        raise NotFound("Retrait introuvable", code="WithdrawalNotFound")
    current = withdrawal.get("status")
    if target not in TRANSITIONS.get(current, frozenset()):
        if strict:
            raise PreconditionFailed(
                f"Transition de retrait interdite: {current} -> {target}",
                code=INVALID_TRANSITION,
            )
        logger.info("withdrawals.transition ignored id=%s from=%s to=%s", withdrawal_id, current, target)
        return None
    update = {"status": target, **changes}
    if target in (COMPLETED, FAILED):
        update["processed_at"] = iso(utcnow())
    updated = await repository.update_withdrawal_if_status(withdrawal_id, current, update)
    if not updated:
        if strict:
            raise PreconditionFailed("Le retrait a été modifié entre-temps", code=INVALID_TRANSITION)
        logger.info("withdrawals.transition lost race id=%s from=%s to=%s", withdrawal_id, current, target)
        return None
    logger.info("withdrawals.transition id=%s from=%s to=%s", withdrawal_id, current, target)
    return updated


async def process_withdrawal(
    withdrawal_id: str,
    status: str,
    notes: Optional[str] = None,
    admin_id: Optional[str] = None,
) -> Dict[str, Any]:
    """Traitement admin: transition explicite, refusée (400) si interdite."""
    if status not in (PROCESSING, COMPLETED, FAILED):
        raise ValidationError(f"Statut de retrait invalide: {status}", code="InvalidStatus")
    changes: Dict[str, Any] = {"processed_by": admin_id}
    if notes:
        changes["admin_notes"] = notes
    return await _transition(withdrawal_id, status, changes, strict=True)


async def apply_transfer_outcome(reference: str, success: bool, payload: Optional[Dict[str, Any]] = None) -> Optional[Dict[str, Any]]:
    """
    Résultat d'un transfert Paystack (référence = id du retrait).
    - États terminaux ignorés (webhook rejoué ou hors ordre).
    - Échec/annulation reçu après un retrait 'completed': statut inchangé, warning pour
      régularisation manuelle (les fonds reviennent chez Paystack, pas dans le solde).
    """
    target = COMPLETED if success else FAILED
    withdrawal = await repository.get_withdrawal(reference)
    if not withdrawal:
        logger.warning("withdrawals.transfer unknown reference=%s", reference)
        return None
    if not success and withdrawal.get("status") == COMPLETED:
        logger.warning(
            "withdrawals.transfer reversed after completion id=%s organizer_id=%s amount=%s event=%s",
            reference,
            withdrawal.get("organizer_id"),
            withdrawal.get("amount"),
            (payload or {}).get("event"),
        )
        return None
    changes: Dict[str, Any] = {}
    if payload:
        changes["payment_details"] = {**(withdrawal.get("payment_details") or {}), "transfer": payload}
    return await _transition(reference, target, changes, strict=False)
