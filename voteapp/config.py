# voteapp.config
from decimal import Decimal
from pathlib import Path
import os
from dotenv import load_dotenv

# Calculer le chemin du projet puis charger .env de manière explicite
BASE_DIR = Path(__file__).resolve().parent.parent
ENV_PATH = BASE_DIR / ".env"
load_dotenv(dotenv_path=ENV_PATH, override=False)

"""
Configuration centrale du backend de vote payant.

- Charge le fichier .env à la racine du projet (BASE_DIR/.env), une seule fois au démarrage
- Normalise et expose les secrets/URLs (Supabase, Stripe, Paystack)
- Expose les paramètres métier par défaut (commission, devise, délais fournisseurs)
- La rotation d'un secret exige un redémarrage du processus (pas de rechargement à chaud)
"""

def _clean_env(v: str) -> str:
    """
    Nettoie une valeur d'environnement:
    - supprime les espaces et guillemets (simples, doubles) et backticks
    - retourne toujours une chaîne (jamais None)
    """
    return (v or "").strip().strip("'").strip('"').strip("`")

def _decimal_env(name: str, default: str) -> Decimal:
    raw = _clean_env(os.getenv(name) or "") or default
    return Decimal(raw)

# Supabase: URL et clés (anon pour l'auth, service pour les écritures serveur)
SUPABASE_URL = _clean_env(os.getenv("SUPABASE_URL") or "")
SUPABASE_ANON = _clean_env(os.getenv("SUPABASE_ANON_KEY") or os.getenv("SUPABASE_KEY") or "")
SUPABASE_SERVICE_KEY = _clean_env(os.getenv("SUPABASE_SERVICE_KEY") or "")

if SUPABASE_URL and not SUPABASE_URL.startswith("http"):
    SUPABASE_URL = "https://" + SUPABASE_URL
if SUPABASE_URL.endswith("/"):
    SUPABASE_URL = SUPABASE_URL.rstrip("/")

# CORS / hôtes autorisés
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]
ALLOWED_HOSTS = [h.strip() for h in os.getenv("ALLOWED_HOSTS", "localhost,127.0.0.1,testserver").split(",") if h.strip()]
COOKIE_SECURE = (os.getenv("COOKIE_SECURE", "false").lower() == "true")

# Stripe (paiement carte): clés publiques/privées et secret webhook
STRIPE_PUBLISHABLE_KEY = _clean_env(os.getenv("STRIPE_PUBLISHABLE_KEY") or os.getenv("STRIPE_PUBLIC_KEY") or "")
STRIPE_SECRET_KEY = _clean_env(os.getenv("STRIPE_SECRET_KEY") or "")
STRIPE_WEBHOOK_SECRET = _clean_env(os.getenv("STRIPE_WEBHOOK_SECRET") or "")

# Paystack (mobile money): la clé secrète signe aussi les webhooks (HMAC SHA-512)
PAYSTACK_PUBLIC_KEY = _clean_env(os.getenv("PAYSTACK_PUBLIC_KEY") or "")
PAYSTACK_SECRET_KEY = _clean_env(os.getenv("PAYSTACK_SECRET_KEY") or "")
PAYSTACK_BASE_URL = _clean_env(os.getenv("PAYSTACK_BASE_URL") or "https://api.paystack.co").rstrip("/")
# Devise de règlement fixe côté Paystack, indépendante de la devise d'affichage de l'événement
PAYSTACK_CURRENCY = _clean_env(os.getenv("PAYSTACK_CURRENCY") or "GHS").upper()

# Devise d'affichage par défaut pour Stripe
DEFAULT_CURRENCY = _clean_env(os.getenv("DEFAULT_CURRENCY") or "usd").lower()

# Paramètres métier
DEFAULT_COMMISSION_RATE = _decimal_env("DEFAULT_COMMISSION_RATE", "0.05")
MIN_WITHDRAWAL_AMOUNT = _decimal_env("MIN_WITHDRAWAL_AMOUNT", "1.00")
PROVIDER_TIMEOUT_SECONDS = float(_clean_env(os.getenv("PROVIDER_TIMEOUT_SECONDS") or "") or 30)

# URL du front (callback Paystack, redirections)
FRONTEND_URL = _clean_env(os.getenv("FRONTEND_URL") or "http://localhost:3000").rstrip("/")
PAYSTACK_CALLBACK_PATH = os.getenv("PAYSTACK_CALLBACK_PATH", "/payment/success")
