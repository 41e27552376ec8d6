import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./barbersmart.db")

# Security - CRITICAL: No default secret key in production
SECRET_KEY = os.getenv("SECRET_KEY")
if not SECRET_KEY:
    import warnings

    warnings.warn(
        "SECRET_KEY not set! Using insecure default - DO NOT USE IN PRODUCTION", RuntimeWarning, stacklevel=2
    )
    SECRET_KEY = "INSECURE-DEV-KEY-CHANGE-IN-PRODUCTION"  # noqa: S105 - Dev fallback only

JWT_ALGORITHM = "HS256"
JWT_EXPIRATION_MINUTES = int(os.getenv("JWT_EXPIRATION_MINUTES", "1440"))

# Fernet key for provider credentials at rest
# (generate with: python -c "from cryptography.fernet import Fernet; print(Fernet.generate_key().decode())")
CREDENTIALS_ENCRYPTION_KEY = os.getenv("CREDENTIALS_ENCRYPTION_KEY")

# Frontend base URL for payment redirects
FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:5173")

# Payment gateway webhooks (verification is skipped when unset)
STRIPE_WEBHOOK_SECRET = os.getenv("STRIPE_WEBHOOK_SECRET")
MERCADOPAGO_WEBHOOK_SECRET = os.getenv("MERCADOPAGO_WEBHOOK_SECRET")
ASAAS_WEBHOOK_TOKEN = os.getenv("ASAAS_WEBHOOK_TOKEN")

# Tenant hostnames
MAIN_DOMAINS = [
    d.strip().lower()
    for d in os.getenv("MAIN_DOMAINS", "barbersmart.app,barbersmart.com.br").split(",")
    if d.strip()
]
IGNORED_DOMAINS = [
    d.strip().lower()
    for d in os.getenv("IGNORED_DOMAINS", "localhost,127.0.0.1").split(",")
    if d.strip()
]
DEFAULT_SYSTEM_NAME = os.getenv("DEFAULT_SYSTEM_NAME", "BarberSmart")

# Appointment dates and times are stored in the shops' local time
BUSINESS_TIMEZONE = os.getenv("BUSINESS_TIMEZONE", "America/Sao_Paulo")

# Custom domain verification
CUSTOM_DOMAIN_EXPECTED_IP = os.getenv("CUSTOM_DOMAIN_EXPECTED_IP", "185.158.133.1")
CUSTOM_DOMAIN_TXT_PREFIX = os.getenv("CUSTOM_DOMAIN_TXT_PREFIX", "_barbersmart")

# Cloudflare R2 Configuration
R2_ACCOUNT_ID = os.getenv("R2_ACCOUNT_ID")
R2_ACCESS_KEY_ID = os.getenv("R2_ACCESS_KEY_ID")
R2_SECRET_ACCESS_KEY = os.getenv("R2_SECRET_ACCESS_KEY")
R2_BUCKET_NAME = os.getenv("R2_BUCKET_NAME", "barbersmart")
R2_PUBLIC_URL = os.getenv("R2_PUBLIC_URL", "")

# Branding image generation
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY")
OPENAI_IMAGE_MODEL = os.getenv("OPENAI_IMAGE_MODEL", "gpt-image-1")

# WhatsApp (Meta Cloud API) - per-unit Evolution configs live in the database
WHATSAPP_ACCESS_TOKEN = os.getenv("WHATSAPP_ACCESS_TOKEN")
WHATSAPP_PHONE_NUMBER_ID = os.getenv("WHATSAPP_PHONE_NUMBER_ID")
WHATSAPP_GRAPH_VERSION = os.getenv("WHATSAPP_GRAPH_VERSION", "v18.0")

# Public landing cache TTL (seconds)
PUBLIC_CACHE_TTL = int(os.getenv("PUBLIC_CACHE_TTL", "300"))

# CORS
CORS_ORIGINS = [
    o.strip() for o in os.getenv("CORS_ORIGINS", FRONTEND_URL).split(",") if o.strip()
]
