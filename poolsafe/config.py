# poolsafe.config
from pathlib import Path
import os
from dotenv import load_dotenv

# Calculer le chemin du projet puis charger .env de manière explicite
BASE_DIR = Path(__file__).resolve().parent.parent
ENV_PATH = BASE_DIR / ".env"
load_dotenv(dotenv_path=ENV_PATH, override=False)

TEMPLATES_DIR = Path(__file__).resolve().parent / "notifications" / "templates"

"""
Configuration centrale du backend.

- Charge le fichier .env à la racine du projet (BASE_DIR/.env)
- Normalise et expose les secrets (Stripe, SendGrid), CORS/hosts
- Expose les réglages du flux de paiement (devise, fenêtre de nettoyage des intents)
"""

def _clean_env(v: str) -> str:
    """
    Nettoie une valeur d'environnement:
    - supprime les espaces et guillemets (simples, doubles) et backticks
    - retourne toujours une chaîne (jamais None)
    """
    return (v or "").strip().strip("'").strip('"').strip("`")

def _int_env(name: str, default: int) -> int:
    try:
        return int(_clean_env(os.getenv(name, "")) or default)
    except ValueError:
        return default

# Stripe: clés secrète/publique et secret de signature webhook
STRIPE_SECRET_KEY = _clean_env(os.getenv("STRIPE_SECRET_KEY") or "")
STRIPE_PUBLIC_KEY = _clean_env(
    os.getenv("STRIPE_PUBLIC_KEY") or os.getenv("NEXT_PUBLIC_STRIPE_PUBLISHABLE_KEY") or ""
)
STRIPE_WEBHOOK_SECRET = _clean_env(os.getenv("STRIPE_WEBHOOK_SECRET") or "")

# Paiement: devise et durée au-delà de laquelle un intent non finalisé est annulé
CURRENCY = _clean_env(os.getenv("CURRENCY") or "aud").lower()
STALE_INTENT_MINUTES = _int_env("STALE_INTENT_MINUTES", 30)

# SendGrid: clé API et expéditeur vérifié
SENDGRID_API_KEY = _clean_env(os.getenv("SENDGRID_API_KEY") or "")
SENDGRID_API_URL = _clean_env(os.getenv("SENDGRID_API_URL") or "https://api.sendgrid.com/v3/mail/send")
BUSINESS_EMAIL = _clean_env(os.getenv("BUSINESS_EMAIL") or "info@poolcompliancesa.com.au")
VERIFIED_SENDER = _clean_env(os.getenv("VERIFIED_SENDER") or BUSINESS_EMAIL)
BUSINESS_NAME = os.getenv("BUSINESS_NAME", "Pool Compliance SA")

# Timeout des appels HTTP sortants (SendGrid, API intents)
HTTP_TIMEOUT_SECONDS = float(_clean_env(os.getenv("HTTP_TIMEOUT_SECONDS") or "10") or 10)

# Redis: registre des événements webhook déjà traités (vide => mémoire locale)
EVENT_LEDGER_REDIS_URL = _clean_env(os.getenv("EVENT_LEDGER_REDIS_URL") or "")
EVENT_LEDGER_TTL_SECONDS = _int_env("EVENT_LEDGER_TTL_SECONDS", 7 * 24 * 3600)

# Cookies/ Sécurité
COOKIE_SECURE = (os.getenv("COOKIE_SECURE", "false").lower() == "true")

# CORS ouvert par défaut (le formulaire de paiement appelle l'API depuis le site)
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]
ALLOWED_HOSTS = [h.strip() for h in os.getenv("ALLOWED_HOSTS", "localhost,127.0.0.1,testserver").split(",") if h.strip()]

BASE_URL = _clean_env(os.getenv("BASE_URL") or "http://localhost:8000")
