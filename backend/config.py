"""
Lead Pool - shared configuration and helpers
"""

import os
from datetime import datetime, timezone
from motor.motor_asyncio import AsyncIOMotorClient
from dotenv import load_dotenv
from pathlib import Path

# Load .env
ROOT_DIR = Path(__file__).parent
load_dotenv(ROOT_DIR / '.env')

# MongoDB
MONGO_URL = os.environ.get('MONGO_URL', 'mongodb://localhost:27017')
DB_NAME = os.environ.get('DB_NAME', 'lead_pool')

client = AsyncIOMotorClient(MONGO_URL)
db = client[DB_NAME]

# Scheduler (defaults to 6:30 AM Central)
DISTRIBUTION_TIMEZONE = os.environ.get('DISTRIBUTION_TIMEZONE', 'America/Chicago')
DISTRIBUTION_CRON_HOUR = int(os.environ.get('DISTRIBUTION_CRON_HOUR', '6'))
DISTRIBUTION_CRON_MINUTE = int(os.environ.get('DISTRIBUTION_CRON_MINUTE', '30'))

# Distribution engine
CLAIM_RETRY_ATTEMPTS = int(os.environ.get('CLAIM_RETRY_ATTEMPTS', '3'))
CLAIM_RETRY_DELAY_SECONDS = float(os.environ.get('CLAIM_RETRY_DELAY_SECONDS', '0.2'))
LOCK_STALE_SECONDS = int(os.environ.get('LOCK_STALE_SECONDS', '900'))
DEFAULT_INTERVAL_HOURS = int(os.environ.get('DEFAULT_INTERVAL_HOURS', '24'))

# Rotation of company-held platform leads
COPY_EXPIRY_SHORT_HOURS = int(os.environ.get('COPY_EXPIRY_SHORT_HOURS', '24'))
COPY_EXPIRY_LONG_DAYS = int(os.environ.get('COPY_EXPIRY_LONG_DAYS', '7'))

CORS_ORIGINS = os.environ.get('CORS_ORIGINS', '*').split(',')


# ==================== HELPERS ====================

def get_db():
    """FastAPI dependency - current MongoDB database"""
    return db


def now_iso() -> str:
    """Current UTC date/time as ISO string"""
    return datetime.now(timezone.utc).isoformat()


def day_start_iso(now: datetime = None) -> str:
    """Midnight (UTC) of the current day as ISO string"""
    now = now or datetime.now(timezone.utc)
    return now.replace(hour=0, minute=0, second=0, microsecond=0).isoformat()


def parse_iso(value) -> datetime:
    """
    Parse an ISO date stored in the database.
    Returns None when the value is missing or unreadable.
    """
    if not value or not isinstance(value, str):
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    # No timezone: assume UTC
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def normalize_phone(phone) -> str:
    """
    Normalize a US phone number: digits only, leading country code 1 removed.

    "+1 (312) 555-0142" -> "3125550142"
    Returns "" when there are no digits.
    """
    if not phone or not isinstance(phone, str):
        return ""

    digits = ''.join(filter(str.isdigit, phone))

    # 1XXXXXXXXXX (11 digits) -> XXXXXXXXXX
    if len(digits) == 11 and digits.startswith("1"):
        digits = digits[1:]

    return digits
