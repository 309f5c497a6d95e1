import os

from dotenv import load_dotenv

BASE_DIR = os.path.abspath(os.path.dirname(__file__))

load_dotenv(os.path.join(BASE_DIR, ".env"))


def _csv(value: str):
    return tuple(part.strip() for part in value.split(",") if part.strip())


class Config:
    # Secrets
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-only-change-me")
    ENV_NAME = os.getenv("APP_ENV", "development")

    # SQLite database file stored next to the app as consultbook.db
    SQLALCHEMY_DATABASE_URI = os.getenv(
        "DATABASE_URL",
        "sqlite:///" + os.path.join(BASE_DIR, "consultbook.db")
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    # Create tables on startup instead of `flask db upgrade` (local sqlite only)
    AUTO_CREATE_TABLES = os.getenv("AUTO_CREATE_TABLES", "false").lower() == "true"

    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    # Stripe
    STRIPE_SECRET_KEY = os.getenv("STRIPE_SECRET_KEY")
    STRIPE_PUBLISHABLE_KEY = os.getenv("STRIPE_PUBLISHABLE_KEY")
    STRIPE_WEBHOOK_SECRET = os.getenv("STRIPE_WEBHOOK_SECRET")

    # Pricing (cents)
    CONSULTATION_PRICE_CENTS = int(os.getenv("CONSULTATION_PRICE_CENTS", "15000"))
    CURRENCY = os.getenv("CURRENCY", "eur")

    # Booking calendar
    TIMEZONE = os.getenv("TIMEZONE", "Europe/Rome")
    BUSINESS_HOURS = _csv(os.getenv("BUSINESS_HOURS", "09:00,10:30,14:00,15:30,17:00"))
    BOOKING_HORIZON_DAYS = int(os.getenv("BOOKING_HORIZON_DAYS", "30"))
    SAME_DAY_CUTOFF = os.getenv("SAME_DAY_CUTOFF", "17:00")  # no same-day bookings after this

    # Booking sheet (Google Sheets); reader and writer share the status literal
    GOOGLE_SPREADSHEET_ID = os.getenv("GOOGLE_SPREADSHEET_ID")
    GOOGLE_SHEET_RANGE = os.getenv("GOOGLE_SHEET_RANGE", "Prenotazioni!A:K")
    CONFIRMED_STATUS = os.getenv("CONFIRMED_STATUS", "Confermata")
    ROW_STORE_TIMEOUT_SECONDS = float(os.getenv("ROW_STORE_TIMEOUT_SECONDS", "10"))

    # Google OAuth (refresh token of the business account) + Calendar
    GOOGLE_CLIENT_ID = os.getenv("GOOGLE_CLIENT_ID")
    GOOGLE_CLIENT_SECRET = os.getenv("GOOGLE_CLIENT_SECRET")
    GOOGLE_REFRESH_TOKEN = os.getenv("GOOGLE_REFRESH_TOKEN")
    GOOGLE_CALENDAR_ID = os.getenv("GOOGLE_CALENDAR_ID")

    # Email (SMTP)
    SMTP_HOST = os.getenv("SMTP_HOST")
    SMTP_PORT = int(os.getenv("SMTP_PORT", "587"))
    SMTP_USERNAME = os.getenv("SMTP_USERNAME")
    SMTP_PASSWORD = os.getenv("SMTP_PASSWORD")
    SMTP_FROM_EMAIL = os.getenv("SMTP_FROM_EMAIL")
    SMTP_FROM_NAME = os.getenv("SMTP_FROM_NAME", "Valentin Procida")
    SMTP_USE_TLS = os.getenv("SMTP_USE_TLS", "true").lower() == "true"
    ADMIN_EMAIL = os.getenv("ADMIN_EMAIL")

    # Admin API (discount stats / code management); disabled when unset
    ADMIN_API_TOKEN = os.getenv("ADMIN_API_TOKEN")

    # Discount code expiry sweep, 0 disables the background thread
    CODE_SWEEP_INTERVAL_SECONDS = int(os.getenv("CODE_SWEEP_INTERVAL_SECONDS", "3600"))

    # Basic app settings
    DEBUG = False
