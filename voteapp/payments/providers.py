"""
Interface fournisseur de paiement et ses deux implémentations (carte: Stripe, mobile money: Paystack).

Les deux fournisseurs divergent volontairement:
- Stripe: corrélation par PaymentIntent id, montant dans la devise d'affichage demandée.
- Paystack: corrélation par référence = id du paiement local, montant toujours converti
  dans la devise de règlement fixe (PAYSTACK_CURRENCY), quelle que soit la devise de l'événement.

Les erreurs fournisseur ne traversent pas cette couche: elles deviennent ProviderResult(success=False).
Seule la vérification de webhook lève (SignatureInvalid).
"""
from abc import ABC, abstractmethod
import asyncio
from enum import Enum
import json
import logging
from typing import Any, Dict, Optional

import httpx
import stripe

from voteapp import config
from voteapp.errors import SignatureInvalid, ValidationError
from voteapp.payments import paystack_client, stripe_client
from voteapp.payments.currency import to_minor

logger = logging.getLogger(__name__)

CARD = "card"
MOBILE_MONEY = "mobile_money"
PAYMENT_METHODS = (CARD, MOBILE_MONEY)

MOBILE_MONEY_NETWORKS = ("mtn", "airtel", "vodafone")


class ProviderStatus(str, Enum):
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    PENDING = "pending"


class ProviderResult:
    def __init__(
        self,
        success: bool,
        provider_ref: Optional[str] = None,
        data: Optional[Dict[str, Any]] = None,
        status: Optional[ProviderStatus] = None,
        error: Optional[str] = None,
    ):
        self.success = success
        self.provider_ref = provider_ref
        self.data = data or {}
        self.status = status
        self.error = error

    @classmethod
    def failure(cls, error: str) -> "ProviderResult":
        return cls(False, error=error)

    def __repr__(self) -> str:
        return f"ProviderResult(success={self.success}, ref={self.provider_ref!r}, status={self.status}, error={self.error!r})"


class ProviderAdapter(ABC):
    method: str = ""
    # Colonne de payments recevant la référence fournisseur
    ref_column: str = "payment_provider_id"

    @abstractmethod
    async def create_intent(
        self,
        amount: Any,
        currency: str,
        metadata: Dict[str, str],
        *,
        reference: str,
        email: Optional[str] = None,
        options: Optional[Dict[str, Any]] = None,
    ) -> ProviderResult:
        ...

    @abstractmethod
    async def retrieve_status(self, provider_ref: str) -> ProviderResult:
        ...

    @abstractmethod
    async def cancel(self, provider_ref: str) -> ProviderResult:
        ...

    @abstractmethod
    def verify_webhook(self, raw_body: bytes, signature: Optional[str], secret: str) -> Dict[str, Any]:
        ...


class CardProvider(ProviderAdapter):
    method = CARD
    ref_column = "payment_intent_id"

    async def create_intent(self, amount, currency, metadata, *, reference, email=None, options=None):
        currency = (currency or config.DEFAULT_CURRENCY).lower()
        try:
            intent = await stripe_client.create_payment_intent(
                amount_minor=to_minor(amount, currency),
                currency=currency,
                metadata=metadata,
            )
        except asyncio.TimeoutError:
            logger.warning("stripe.create_intent timeout reference=%s", reference)
            return ProviderResult.failure("Délai dépassé chez le fournisseur de paiement")
        except stripe.StripeError as e:
            logger.warning("stripe.create_intent failed reference=%s error=%s", reference, e)
            return ProviderResult.failure(getattr(e, "user_message", None) or str(e))
        return ProviderResult(
            True,
            provider_ref=intent.get("id"),
            data={"client_secret": intent.get("client_secret"), "raw": intent},
            status=ProviderStatus.PENDING,
        )

    @staticmethod
    def map_status(intent_status: Optional[str]) -> ProviderStatus:
        if intent_status == "succeeded":
            return ProviderStatus.SUCCEEDED
        if intent_status == "canceled":
            return ProviderStatus.FAILED
        # requires_payment_method après un échec reste réessayable côté client
        return ProviderStatus.PENDING

    async def retrieve_status(self, provider_ref):
        try:
            intent = await stripe_client.retrieve_payment_intent(provider_ref)
        except asyncio.TimeoutError:
            return ProviderResult.failure("Délai dépassé chez le fournisseur de paiement")
        except stripe.StripeError as e:
            logger.warning("stripe.retrieve failed ref=%s error=%s", provider_ref, e)
            return ProviderResult.failure(str(e))
        return ProviderResult(True, provider_ref=provider_ref, data={"raw": intent}, status=self.map_status(intent.get("status")))

    async def cancel(self, provider_ref):
        try:
            intent = await stripe_client.cancel_payment_intent(provider_ref)
        except asyncio.TimeoutError:
            return ProviderResult.failure("Délai dépassé chez le fournisseur de paiement")
        except stripe.StripeError as e:
            return ProviderResult.failure(str(e))
        return ProviderResult(True, provider_ref=provider_ref, data={"raw": intent}, status=ProviderStatus.FAILED)

    def verify_webhook(self, raw_body, signature, secret):
        if not signature or not secret:
            raise SignatureInvalid("Signature ou secret webhook manquant")
        try:
            return stripe_client.construct_event(raw_body, signature, secret)
        except stripe.SignatureVerificationError as e:
            raise SignatureInvalid("Signature webhook invalide") from e
        except ValueError as e:
            raise ValidationError("Payload webhook invalide", code="InvalidPayload") from e


class MobileMoneyProvider(ProviderAdapter):
    method = MOBILE_MONEY
    ref_column = "payment_provider_id"

    def settlement_currency(self) -> str:
        return config.PAYSTACK_CURRENCY

    async def create_intent(self, amount, currency, metadata, *, reference, email=None, options=None):
        # La devise d'affichage est ignorée: Paystack règle toujours dans PAYSTACK_CURRENCY
        settlement = self.settlement_currency()
        network = (options or {}).get("mobile_money_network")
        payload = {
            "email": email,
            "amount": to_minor(amount, settlement),
            "currency": settlement,
            "reference": reference,
            "callback_url": f"{config.FRONTEND_URL}{config.PAYSTACK_CALLBACK_PATH}",
            "metadata": dict(metadata, mobile_money_network=network) if network else dict(metadata),
            "channels": ["mobile_money"] if network else ["card", "mobile_money"],
        }
        try:
            body = await paystack_client.initialize_transaction(payload)
        except httpx.TimeoutException:
            logger.warning("paystack.initialize timeout reference=%s", reference)
            return ProviderResult.failure("Délai dépassé chez le fournisseur de paiement")
        except httpx.HTTPError as e:
            logger.warning("paystack.initialize failed reference=%s error=%s", reference, e)
            return ProviderResult.failure(str(e))
        data = body.get("data") or {}
        if not body.get("status"):
            return ProviderResult.failure(body.get("message") or "Initialisation Paystack refusée")
        return ProviderResult(
            True,
            provider_ref=data.get("reference") or reference,
            data={
                "authorization_url": data.get("authorization_url"),
                "access_code": data.get("access_code"),
                "reference": data.get("reference") or reference,
                "raw": data,
            },
            status=ProviderStatus.PENDING,
        )

    @staticmethod
    def map_status(tx_status: Optional[str]) -> ProviderStatus:
        if tx_status == "success":
            return ProviderStatus.SUCCEEDED
        if tx_status in ("failed", "abandoned", "reversed"):
            return ProviderStatus.FAILED
        return ProviderStatus.PENDING

    async def retrieve_status(self, provider_ref):
        try:
            body = await paystack_client.verify_transaction(provider_ref)
        except httpx.TimeoutException:
            return ProviderResult.failure("Délai dépassé chez le fournisseur de paiement")
        except httpx.HTTPError as e:
            logger.warning("paystack.verify failed ref=%s error=%s", provider_ref, e)
            return ProviderResult.failure(str(e))
        data = body.get("data") or {}
        if not body.get("status"):
            return ProviderResult.failure(body.get("message") or "Vérification Paystack refusée")
        return ProviderResult(True, provider_ref=provider_ref, data={"raw": data}, status=self.map_status(data.get("status")))

    async def cancel(self, provider_ref):
        # Paystack n'expose pas d'annulation de transaction: l'état local fait foi
        return ProviderResult(True, provider_ref=provider_ref, status=ProviderStatus.FAILED)

    def verify_webhook(self, raw_body, signature, secret):
        if not paystack_client.signature_matches(raw_body, signature, secret):
            raise SignatureInvalid("Signature webhook invalide")
        try:
            event = json.loads(raw_body.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise ValidationError("Payload webhook invalide", code="InvalidPayload") from e
        if not isinstance(event, dict):
            raise ValidationError("Payload webhook invalide", code="InvalidPayload")
        return event


_PROVIDERS: Dict[str, ProviderAdapter] = {
    CARD: CardProvider(),
    MOBILE_MONEY: MobileMoneyProvider(),
}


def get_provider(method: str) -> ProviderAdapter:
    try:
        return _PROVIDERS[method]
    except KeyError:
        raise ValidationError(f"Moyen de paiement inconnu: {method}", code="UnknownPaymentMethod")
