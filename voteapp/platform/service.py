"""
Paramètres plateforme: taux de commission et activation des fournisseurs.
- Lus au moment de la création d'un paiement uniquement; le paiement fige sa propre copie.
- Le taux est validé ici (intervalle [0, 1]), pas dans le calcul de commission.
"""
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, Optional
import logging

from voteapp import config
from voteapp.errors import ValidationError
from voteapp.payments.currency import to_decimal
from voteapp.platform import repository
from voteapp.utils.dates import iso, utcnow

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PlatformSettings:
    commission_rate: Decimal
    stripe_enabled: bool
    paystack_enabled: bool
    id: Optional[str] = None

    def provider_enabled(self, method: str) -> bool:
        if method == "card":
            return self.stripe_enabled
        if method == "mobile_money":
            return self.paystack_enabled
        return False


def _from_row(row: Optional[Dict[str, Any]]) -> PlatformSettings:
    if not row:
        return PlatformSettings(
            commission_rate=config.DEFAULT_COMMISSION_RATE,
            stripe_enabled=True,
            paystack_enabled=True,
        )
    rate = row.get("commission_rate")
    return PlatformSettings(
        commission_rate=to_decimal(rate) if rate is not None else config.DEFAULT_COMMISSION_RATE,
        stripe_enabled=bool(row.get("stripe_enabled", True)),
        paystack_enabled=bool(row.get("paystack_enabled", True)),
        id=row.get("id"),
    )


async def get_settings() -> PlatformSettings:
    """Instantané courant des paramètres (valeurs par défaut de la config si la ligne manque)."""
    row = await repository.get_platform_settings()
    return _from_row(row)


async def public_settings() -> Dict[str, Any]:
    """Vue publique: clés publiables exposées seulement pour les fournisseurs actifs."""
    settings = await get_settings()
    return {
        "commission_rate": str(settings.commission_rate),
        "stripe_enabled": settings.stripe_enabled,
        "paystack_enabled": settings.paystack_enabled,
        "stripe_publishable_key": config.STRIPE_PUBLISHABLE_KEY if settings.stripe_enabled else None,
        "paystack_public_key": config.PAYSTACK_PUBLIC_KEY if settings.paystack_enabled else None,
        "paystack_currency": config.PAYSTACK_CURRENCY,
    }


def validate_commission_rate(value: Any) -> Decimal:
    rate = to_decimal(value)
    if rate < 0 or rate > 1:
        raise ValidationError("commission_rate doit être compris entre 0 et 1", code="InvalidCommissionRate")
    return rate


async def update_settings(changes: Dict[str, Any], admin_id: str) -> Dict[str, Any]:
    """
    Mise à jour admin des paramètres.
    - commission_rate validé dans [0, 1]; n'affecte jamais les paiements déjà créés.
    - stripe_enabled / paystack_enabled: booléens.
    """
    update: Dict[str, Any] = {}
    if changes.get("commission_rate") is not None:
        update["commission_rate"] = str(validate_commission_rate(changes["commission_rate"]))
    for flag in ("stripe_enabled", "paystack_enabled"):
        if changes.get(flag) is not None:
            if not isinstance(changes[flag], bool):
                raise ValidationError(f"{flag} doit être un booléen", code="InvalidFlag")
            update[flag] = changes[flag]
    if not update:
        raise ValidationError("Aucun paramètre à mettre à jour", code="EmptyUpdate")
    update["updated_by"] = admin_id
    update["updated_at"] = iso(utcnow())

    current = await repository.get_platform_settings()
    if current:
        row = await repository.update_platform_settings(current["id"], update)
    else:
        row = await repository.insert_platform_settings(update)
    logger.info("platform.settings updated by=%s fields=%s", admin_id, sorted(k for k in update if k not in ("updated_by", "updated_at")))
    return row or update
