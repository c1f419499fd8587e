"""
Métadonnées de corrélation envoyées aux fournisseurs et relues dans les webhooks.
"""
from typing import Any, Dict, Optional

# module voteapp.payments.metadata
def build_metadata(payment: Dict[str, Any]) -> Dict[str, str]:
    """
    Métadonnées attachées à l'intent fournisseur (valeurs str, contrainte Stripe).
    - payment_id sert de clé de secours si la référence fournisseur n'a pas encore été attachée.
    """
    meta = {
        "payment_id": payment.get("id"),
        "voter_id": payment.get("voter_id"),
        "contestant_id": payment.get("contestant_id"),
        "event_id": payment.get("event_id"),
        "amount": payment.get("amount"),
        "platform_fee": payment.get("platform_fee"),
        "organizer_earnings": payment.get("organizer_earnings"),
    }
    return {k: str(v) for k, v in meta.items() if v is not None}

def event_object(event: Dict[str, Any]) -> Dict[str, Any]:
    """Objet métier d'un événement Stripe (data.object) ou Paystack (data)."""
    data = (event or {}).get("data") if isinstance(event, dict) else None
    if not isinstance(data, dict):
        return {}
    obj = data.get("object")
    return obj if isinstance(obj, dict) else data

def extract_payment_id(obj: Dict[str, Any]) -> Optional[str]:
    """
    Lit metadata.payment_id d'un objet fournisseur.
    - Paystack peut renvoyer metadata sous forme de chaîne vide: tolérée.
    """
    meta = (obj or {}).get("metadata")
    if not isinstance(meta, dict):
        return None
    value = meta.get("payment_id")
    return str(value) if value else None
