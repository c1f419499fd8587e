"""
Module 'payments' (feature-first): point d'entrée public.
Réunit montants/devises, commission, métadonnées fournisseur et adaptateurs Stripe/Paystack.
Le registre (ledger) et les cas d'usage (service) s'importent depuis leurs modules.
"""

from .currency import to_decimal, to_minor, from_minor, is_zero_decimal, money_str, quantize_money
from .commission import FeeSplit, split
from .metadata import build_metadata, event_object, extract_payment_id
from .providers import (
    CARD,
    MOBILE_MONEY,
    PAYMENT_METHODS,
    CardProvider,
    MobileMoneyProvider,
    ProviderAdapter,
    ProviderResult,
    ProviderStatus,
    get_provider,
)

__all__ = [
    # currency
    "to_decimal",
    "to_minor",
    "from_minor",
    "is_zero_decimal",
    "money_str",
    "quantize_money",
    # commission
    "FeeSplit",
    "split",
    # metadata
    "build_metadata",
    "event_object",
    "extract_payment_id",
    # providers
    "CARD",
    "MOBILE_MONEY",
    "PAYMENT_METHODS",
    "CardProvider",
    "MobileMoneyProvider",
    "ProviderAdapter",
    "ProviderResult",
    "ProviderStatus",
    "get_provider",
]
