import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

# Relational store; unset means the in-memory store is used
DATABASE_URL = os.getenv("DATABASE_URL")

# "development" or "production" - production enables secure cookies
APP_ENV = os.getenv("APP_ENV", "development").lower()

# Single operator secret for the admin dashboard (no per-admin accounts)
ADMIN_PASSWORD = os.getenv("ADMIN_PASSWORD")

# Stripe Configuration
STRIPE_SECRET_KEY = os.getenv("STRIPE_SECRET_KEY")
STRIPE_WEBHOOK_SECRET = os.getenv("STRIPE_WEBHOOK_SECRET")
STRIPE_CURRENCY = os.getenv("STRIPE_CURRENCY", "usd")

# Public base URL used for checkout success/cancel redirects
BASE_URL = os.getenv("BASE_URL", f"http://localhost:{os.getenv('PORT', '5000')}")

ALLOWED_ORIGINS = os.getenv(
    "ALLOWED_ORIGINS",
    "http://localhost:5000,http://localhost:5173",
).split(",")

# Money amounts are whole dollars
DEFAULT_DEPOSIT_AMOUNT = int(os.getenv("DEFAULT_DEPOSIT_AMOUNT", "100"))
LATE_CHANGE_FEE = int(os.getenv("LATE_CHANGE_FEE", "50"))
TAX_RATE = float(os.getenv("TAX_RATE", "0.09"))

# Hours of notice needed for a free reschedule or cancellation
FREE_CHANGE_WINDOW_HOURS = int(os.getenv("FREE_CHANGE_WINDOW_HOURS", "24"))
URGENT_RESPONSE_HOURS = int(os.getenv("URGENT_RESPONSE_HOURS", "3"))

VERIFICATION_CODE_TTL_MINUTES = int(os.getenv("VERIFICATION_CODE_TTL_MINUTES", "15"))
ADMIN_SESSION_HOURS = int(os.getenv("ADMIN_SESSION_HOURS", "24"))
PROVIDER_SESSION_DAYS = int(os.getenv("PROVIDER_SESSION_DAYS", "7"))
CUSTOMER_SESSION_DAYS = int(os.getenv("CUSTOMER_SESSION_DAYS", "7"))


def is_production() -> bool:
    return APP_ENV == "production"
