from decimal import Decimal, InvalidOperation
from typing import Any


def validate_positive_amount(v: Any) -> Decimal:
    # str() d'abord: 5.1 (float JSON) doit donner Decimal('5.1')
    try:
        value = Decimal(str(v).strip())
    except (InvalidOperation, ValueError):
        raise ValueError('Montant invalide')
    if not value.is_finite() or value <= 0:
        raise ValueError('Le montant doit être strictement positif')
    return value


def validate_decimal(v: Any) -> Decimal:
    try:
        value = Decimal(str(v).strip())
    except (InvalidOperation, ValueError):
        raise ValueError('Nombre décimal invalide')
    if not value.is_finite():
        raise ValueError('Nombre décimal invalide')
    return value
