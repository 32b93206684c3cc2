"""
YelpCamp - Centralized Configuration
Read once from the environment; collaborators are built from these values in main.py
"""
import os
import logging
from dotenv import load_dotenv
from datetime import datetime
from pathlib import Path
from typing import List
import pytz

logger = logging.getLogger(__name__)

load_dotenv()

BASE_DIR = Path(__file__).resolve().parent

# === Environment ===
APP_ENV = os.getenv("APP_ENV", "development")
IS_PRODUCTION = APP_ENV == "production"
HOST = os.getenv("HOST", "127.0.0.1")
PORT = int(os.getenv("PORT", "3000"))

# === Database & Redis ===
DATABASE_URL = os.getenv("DATABASE_URL", "")  # empty -> in-memory store
DB_POOL_MIN, DB_POOL_MAX = int(os.getenv("DB_POOL_MIN", "2")), int(os.getenv("DB_POOL_MAX", "10"))
REDIS_URL = os.getenv("REDIS_URL", "")  # empty -> in-memory sessions

# === Sessions ===
SECRET = os.getenv("SECRET", "")
DEV_SECRET = "thisshouldbeabettersecret!"
SESSION_COOKIE = os.getenv("SESSION_COOKIE", "session")
SESSION_MAX_AGE = int(os.getenv("SESSION_MAX_AGE", str(7 * 24 * 60 * 60)))
SESSION_TOUCH_AFTER = int(os.getenv("SESSION_TOUCH_AFTER", str(24 * 60 * 60)))
SESSION_HTTPS_ONLY = os.getenv("SESSION_HTTPS_ONLY", "true" if IS_PRODUCTION else "false").lower() == "true"

# === Image storage ===
CLOUDINARY_CLOUD_NAME = os.getenv("CLOUDINARY_CLOUD_NAME", "")
CLOUDINARY_KEY = os.getenv("CLOUDINARY_KEY", "")
CLOUDINARY_SECRET = os.getenv("CLOUDINARY_SECRET", "")
CLOUDINARY_FOLDER = os.getenv("CLOUDINARY_FOLDER", "YelpCamp")
UPLOADS_DIR = Path(os.getenv("UPLOADS_DIR", str(BASE_DIR / "uploads")))
ALLOWED_IMAGE_FORMATS = [x.strip().lower() for x in os.getenv("ALLOWED_IMAGE_FORMATS", "jpeg,jpg,png").split(",") if x.strip()]
MAX_UPLOAD_FILES = int(os.getenv("MAX_UPLOAD_FILES", "10"))

# === Monitoring ===
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# === Timezone ===
TIMEZONE = pytz.timezone(os.getenv("TIMEZONE", "UTC"))


def get_now() -> datetime:
    """Get current time in configured timezone."""
    return datetime.now(TIMEZONE)


def cloudinary_configured() -> bool:
    return bool(CLOUDINARY_CLOUD_NAME and CLOUDINARY_KEY and CLOUDINARY_SECRET)


def session_secret() -> str:
    return SECRET or DEV_SECRET


def validate_config() -> List[str]:
    """Validate critical settings on startup. Returns list of errors."""
    errors = []

    if IS_PRODUCTION and not SECRET:
        errors.append("SECRET must be set in production")
    if IS_PRODUCTION and not DATABASE_URL:
        errors.append("DATABASE_URL must be set in production")
    if SESSION_TOUCH_AFTER >= SESSION_MAX_AGE:
        errors.append("SESSION_TOUCH_AFTER must be smaller than SESSION_MAX_AGE")

    # Warnings (non-blocking)
    if not SECRET:
        print("⚠️  WARNING: SECRET is not set. Using the development session secret.")
    if not REDIS_URL:
        print("⚠️  WARNING: REDIS_URL is not set. Sessions are kept in process memory.")
    if not cloudinary_configured():
        print(f"⚠️  WARNING: Cloudinary is not configured. Images are stored in {UPLOADS_DIR}.")

    return errors
