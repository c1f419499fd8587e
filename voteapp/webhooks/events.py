"""Types d'événements webhook traités, par fournisseur. Tout le reste tombe dans UNKNOWN."""
from enum import Enum


class StripeEventKind(str, Enum):
    PAYMENT_SUCCEEDED = "payment_intent.succeeded"
    PAYMENT_FAILED = "payment_intent.payment_failed"
    PAYMENT_CANCELED = "payment_intent.canceled"
    DISPUTE_CREATED = "charge.dispute.created"
    CHARGE_REFUNDED = "charge.refunded"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, value) -> "StripeEventKind":
        try:
            return cls(value)
        except ValueError:
            return cls.UNKNOWN


class PaystackEventKind(str, Enum):
    CHARGE_SUCCESS = "charge.success"
    CHARGE_FAILED = "charge.failed"
    TRANSFER_SUCCESS = "transfer.success"
    TRANSFER_FAILED = "transfer.failed"
    TRANSFER_REVERSED = "transfer.reversed"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, value) -> "PaystackEventKind":
        try:
            return cls(value)
        except ValueError:
            return cls.UNKNOWN
