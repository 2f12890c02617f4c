import os
from pathlib import Path

JWT_SECRET = os.getenv("JWT_SECRET", "")
ACCESS_TOKEN_TTL_MINUTES = int(os.getenv("ACCESS_TOKEN_TTL_MINUTES", str(7 * 24 * 60)))
ACTIVATION_TOKEN_TTL_HOURS = int(os.getenv("ACTIVATION_TOKEN_TTL_HOURS", "24"))
DEV_MODE = os.getenv("DEV_MODE", "false").lower() == "true"

APP_URL = os.getenv("APP_URL", "").rstrip("/")

SMTP_HOST = os.getenv("SMTP_HOST", "")
SMTP_PORT = int(os.getenv("SMTP_PORT", "587"))
SMTP_USER = os.getenv("SMTP_USER", "")
SMTP_PASSWORD = os.getenv("SMTP_PASSWORD", "")
EMAIL_FROM = os.getenv("EMAIL_FROM", "") or SMTP_USER

_default_storage = Path(__file__).resolve().parents[1] / "storage"
STORAGE_DIR = Path(os.getenv("STORAGE_DIR", str(_default_storage)))
VERIFICATION_BUCKET = os.getenv("VERIFICATION_BUCKET", "verification-files")
SIGNED_URL_TTL_SECONDS = int(os.getenv("SIGNED_URL_TTL_SECONDS", "3600"))

VERIFICATION_MAX_FILE_MB = int(os.getenv("VERIFICATION_MAX_FILE_MB", "5"))
VERIFICATION_ALLOWED_MIME_TYPES = [
    t.strip().lower()
    for t in os.getenv(
        "VERIFICATION_ALLOWED_MIME_TYPES",
        "image/jpeg,image/png,image/jpg,application/pdf",
    ).split(",")
    if t.strip()
]

ANONYMOUS_NAME_MAX_ATTEMPTS = int(os.getenv("ANONYMOUS_NAME_MAX_ATTEMPTS", "10"))

CORS_ALLOWED_ORIGINS = [
    o.strip()
    for o in os.getenv("CORS_ALLOWED_ORIGINS", "http://localhost:3000,http://127.0.0.1:3000").split(",")
    if o.strip()
]

# Checked at startup; secrets never fall back to a default.
REQUIRED_SETTINGS = ("DATABASE_URL", "JWT_SECRET", "APP_URL", "SMTP_HOST", "SMTP_USER", "SMTP_PASSWORD")


def missing_required_settings() -> list[str]:
    return [name for name in REQUIRED_SETTINGS if not os.getenv(name, "").strip()]
