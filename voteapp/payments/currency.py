"""
Conversion montants décimaux <-> unités mineures des fournisseurs.
Une seule politique d'arrondi (ROUND_HALF_UP sur la valeur mise à l'échelle) pour Stripe et Paystack.
"""
from decimal import Decimal, ROUND_HALF_UP, InvalidOperation
from typing import Any

from voteapp.errors import ValidationError

# module voteapp.payments.currency
ZERO_DECIMAL_CURRENCIES = frozenset({
    "BIF", "CLP", "DJF", "GNF", "JPY", "KMF", "KRW", "MGA",
    "PYG", "RWF", "UGX", "VND", "VUV", "XAF", "XOF", "XPF",
})

SUPPORTED_CARD_CURRENCIES = ("usd", "eur", "gbp", "cad", "aud", "jpy", "sgd", "chf", "nok", "sek", "dkk")

CENT = Decimal("0.01")
UNIT = Decimal("1")


def to_decimal(value: Any) -> Decimal:
    """
    Convertit une valeur issue du JSON/de la BD (str, int, float, Decimal) en Decimal.
    - Passe par str() pour éviter la dérive des flottants binaires (0.1 -> '0.1').
    - Soulève ValidationError si la valeur n'est pas un nombre fini.
    """
    if isinstance(value, Decimal):
        result = value
    else:
        try:
            result = Decimal(str(value).strip())
        except (InvalidOperation, ValueError):
            raise ValidationError(f"Montant invalide: {value!r}", code="InvalidAmount")
    if not result.is_finite():
        raise ValidationError(f"Montant invalide: {value!r}", code="InvalidAmount")
    return result


def is_zero_decimal(currency: str) -> bool:
    return (currency or "").upper() in ZERO_DECIMAL_CURRENCIES


def _exponent(currency: str) -> Decimal:
    return UNIT if is_zero_decimal(currency) else CENT


def to_minor(amount: Any, currency: str) -> int:
    """
    Montant en unités majeures -> entier en unités mineures.
    - Devises sans décimales: round(amount)
    - Autres: round(amount * 100)
    """
    value = to_decimal(amount)
    scaled = value if is_zero_decimal(currency) else value * 100
    return int(scaled.quantize(UNIT, rounding=ROUND_HALF_UP))


def from_minor(minor: int, currency: str) -> Decimal:
    """Inverse exact de to_minor pour les montants représentables à la précision de la devise."""
    value = Decimal(int(minor))
    if not is_zero_decimal(currency):
        value = value / 100
    return value.quantize(_exponent(currency), rounding=ROUND_HALF_UP)


def quantize_money(amount: Any) -> Decimal:
    """Arrondit au centime (ROUND_HALF_UP); utilisé pour stocker les montants en numeric(10,2)."""
    return to_decimal(amount).quantize(CENT, rounding=ROUND_HALF_UP)


def money_str(amount: Any) -> str:
    """Représentation texte stable pour l'écriture en base ('5.00')."""
    return f"{quantize_money(amount):.2f}"
