# salonbook.config
from pathlib import Path
import os
from dotenv import load_dotenv

# Calculer le chemin du projet puis charger .env de manière explicite
BASE_DIR = Path(__file__).resolve().parent.parent
ENV_PATH = BASE_DIR / ".env"
load_dotenv(dotenv_path=ENV_PATH, override=True)

"""
Configuration centrale du backend de réservation.

- Charge le fichier .env à la racine du projet (BASE_DIR/.env)
- Normalise et expose les secrets/URLs (Supabase, Stripe), sécurité cookies, CORS/hosts
- Paramètres du checkout: taxe, mode de frais, créneaux, retries, mode démo paiement
- Le pourcentage de frais de réservation n'est PAS lu ici: il vient de la table
  system_configs (voir salonbook.platform_config) et n'a pas de valeur par défaut.
"""

def _clean_env(v: str) -> str:
    """
    Nettoie une valeur d'environnement:
    - supprime les espaces et guillemets (simples, doubles) et backticks
    - retourne toujours une chaîne (jamais None)
    """
    return (v or "").strip().strip("'").strip('"').strip("`")

def _env_flag(name: str, default: str = "false") -> bool:
    return _clean_env(os.getenv(name, default)).lower() in ("1", "true", "yes")

# Supabase: URLs et clés (anon/service)
# - URL sans schéma: préfixée en https://, slash final retiré
SUPABASE_URL = _clean_env(os.getenv("SUPABASE_URL") or "")
SUPABASE_ANON = _clean_env(os.getenv("SUPABASE_ANON_KEY") or os.getenv("SUPABASE_KEY") or "")
SUPABASE_SERVICE_KEY = _clean_env(os.getenv("SUPABASE_SERVICE_KEY") or "")

if SUPABASE_URL and not SUPABASE_URL.startswith("http"):
    SUPABASE_URL = "https://" + SUPABASE_URL
if SUPABASE_URL.endswith("/"):
    SUPABASE_URL = SUPABASE_URL.rstrip("/")

# Cookies / hôtes
COOKIE_SECURE = _env_flag("COOKIE_SECURE")
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]
ALLOWED_HOSTS = [h.strip() for h in os.getenv("ALLOWED_HOSTS", "localhost,127.0.0.1,testserver").split(",") if h.strip()]

# Redirections côté navigateur (login requis, contexte manquant)
LOGIN_PATH = os.getenv("LOGIN_PATH", "/login")
HOME_PATH = os.getenv("HOME_PATH", "/")

# Stripe: clés publiques/privées et secret webhook
STRIPE_PUBLIC_KEY = _clean_env(os.getenv("STRIPE_PUBLIC_KEY") or "")
STRIPE_SECRET_KEY = _clean_env(os.getenv("STRIPE_SECRET_KEY") or "")
STRIPE_WEBHOOK_SECRET = _clean_env(os.getenv("STRIPE_WEBHOOK_SECRET") or "")

# Mode démo: succès de paiement simulé après un délai, sans vérification.
# Jamais actif par défaut.
PAYMENT_DEMO_MODE = _env_flag("PAYMENT_DEMO_MODE")
PAYMENT_DEMO_DELAY_SECONDS = float(os.getenv("PAYMENT_DEMO_DELAY_SECONDS", "1.5"))

# Tarification
CURRENCY = _clean_env(os.getenv("CURRENCY") or "inr").lower()
TAX_RATE_PERCENT = _clean_env(os.getenv("TAX_RATE_PERCENT") or "18")
# deduct: reste à payer au salon = total services - frais ; additive: frais en sus
FEE_MODE = _clean_env(os.getenv("FEE_MODE") or "deduct").lower()

# Créneaux
DEFAULT_ADVANCE_BOOKING_DAYS = int(os.getenv("DEFAULT_ADVANCE_BOOKING_DAYS", "21"))
SLOT_START_TIME = os.getenv("SLOT_START_TIME", "14:30")
SLOT_END_TIME = os.getenv("SLOT_END_TIME", "20:15")
SLOT_INTERVAL_MINUTES = int(os.getenv("SLOT_INTERVAL_MINUTES", "15"))
MAX_SELECTED_TIMES = int(os.getenv("MAX_SELECTED_TIMES", "3"))

# Cache des configs plateforme (system_configs)
PLATFORM_CONFIG_TTL_SECONDS = int(os.getenv("PLATFORM_CONFIG_TTL_SECONDS", "300"))

# Création de réservation: tentatives bornées avec backoff exponentiel
BOOKING_RETRY_ATTEMPTS = int(os.getenv("BOOKING_RETRY_ATTEMPTS", "3"))
BOOKING_RETRY_BACKOFF_SECONDS = float(os.getenv("BOOKING_RETRY_BACKOFF_SECONDS", "0.5"))

