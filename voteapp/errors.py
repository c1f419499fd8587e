"""
Taxonomie d'erreurs du cœur paiement/vote.
Chaque erreur porte un message court (exposé au client) et un code machine stable.
Le mapping HTTP est fait dans voteapp.app_setup.exceptions.
"""
from typing import Any, Dict, Optional


class AppError(Exception):
    status_code = 500
    default_code = "internal_error"

    def __init__(self, message: str, code: Optional[str] = None, extra: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        self.extra = extra or {}

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"detail": self.message, "code": self.code}
        body.update(self.extra)
        return body


class ValidationError(AppError):
    """Entrée mal formée: faute de l'appelant, pas de nouvel essai."""
    status_code = 400
    default_code = "ValidationError"


class PreconditionFailed(AppError):
    """État métier incompatible (éligibilité, transition, solde): l'appelant doit revérifier."""
    status_code = 400
    default_code = "PreconditionFailed"


class NotFound(AppError):
    status_code = 404
    default_code = "NotFound"


class Forbidden(AppError):
    status_code = 403
    default_code = "Forbidden"


class ProviderError(AppError):
    """Échec côté Stripe/Paystack: réessayable, le paiement local reste tel quel."""
    status_code = 502
    default_code = "ProviderError"


class SignatureInvalid(AppError):
    """Signature webhook invalide: jamais réessayé automatiquement."""
    status_code = 400
    default_code = "SignatureInvalid"


class ConflictAlreadyCommitted(AppError):
    """Contrainte d'unicité votes.payment_id violée: signal d'idempotence, traité comme un succès."""
    status_code = 200
    default_code = "AlreadyCommitted"


class PersistenceError(AppError):
    """Échec du stockage (Supabase/PostgREST): jamais avalé silencieusement."""
    status_code = 500
    default_code = "PersistenceError"


# Codes de raison des préconditions
EVENT_NOT_ACTIVE = "EventNotActive"
VOTING_NOT_STARTED = "VotingNotStarted"
VOTING_ENDED = "VotingEnded"
AMOUNT_MISMATCH = "AmountMismatch"
PAYMENT_NOT_COMPLETED = "PaymentNotCompleted"
PAYMENT_MISMATCH = "PaymentMismatch"
PROVIDER_DISABLED = "ProviderDisabled"
EVENT_LOCKED = "EventLocked"
INVALID_TRANSITION = "InvalidTransition"
INSUFFICIENT_BALANCE = "InsufficientBalance"
