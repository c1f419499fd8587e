"""
Calcul de la commission plateforme et des gains organisateur.
Les gains sont toujours le reste (amount - fee) pour garantir fee + earnings == amount.
"""
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Any

from .currency import CENT, to_decimal


@dataclass(frozen=True)
class FeeSplit:
    amount: Decimal
    rate: Decimal
    platform_fee: Decimal
    organizer_earnings: Decimal


def split(amount: Any, rate: Any) -> FeeSplit:
    """
    Répartit un montant selon le taux de commission.
    - platform_fee = round2(amount * rate), arrondi ROUND_HALF_UP
    - organizer_earnings = amount - platform_fee (jamais calculé indépendamment)
    La validation de l'intervalle [0, 1] du taux appartient à l'écriture des paramètres.
    """
    value = to_decimal(amount)
    r = to_decimal(rate)
    fee = (value * r).quantize(CENT, rounding=ROUND_HALF_UP)
    return FeeSplit(amount=value, rate=r, platform_fee=fee, organizer_earnings=value - fee)
