import os
from dotenv import load_dotenv

load_dotenv()


def _int(name: str, default: int) -> int:
    return int(os.getenv(name, default))


def _float(name: str, default: float) -> float:
    return float(os.getenv(name, default))


class Config:
    """Application settings loaded from the environment"""

    SQLALCHEMY_DATABASE_URI = os.getenv('DATABASE_URL', 'sqlite:///swipematch.db')
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    REDIS_URL = os.getenv('REDIS_URL', 'redis://localhost:6379/0')

    JWT_SECRET = os.getenv('JWT_SECRET')
    JWT_AUDIENCE = os.getenv('JWT_AUDIENCE')

    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')

    # Matching
    MAX_DAILY_LIKES = _int('MAX_DAILY_LIKES', 100)
    DAILY_RESET_UTC_OFFSET_HOURS = _int('DAILY_RESET_UTC_OFFSET_HOURS', 0)

    # Rate limiting
    RATE_LIMIT_REQUESTS_PER_WINDOW = _int('RATE_LIMIT_REQUESTS_PER_WINDOW', 30)
    RATE_LIMIT_WINDOW_SECONDS = _int('RATE_LIMIT_WINDOW_SECONDS', 60)
    RATE_LIMIT_BAN_THRESHOLD = _int('RATE_LIMIT_BAN_THRESHOLD', 1000)
    RATE_LIMIT_BACKEND = os.getenv('RATE_LIMIT_BACKEND', 'shared')  # 'shared' or 'memory'

    # Pair locks (seconds)
    LOCK_HOLD_TIMEOUT_SECONDS = _float('LOCK_HOLD_TIMEOUT_SECONDS', 10)
    LOCK_WAIT_TIMEOUT_SECONDS = _float('LOCK_WAIT_TIMEOUT_SECONDS', 5)
    LOCK_POLL_INTERVAL_SECONDS = _float('LOCK_POLL_INTERVAL_SECONDS', 0.05)

    # Cache TTLs (seconds)
    SWIPE_CACHE_TTL_SECONDS = _int('SWIPE_CACHE_TTL_SECONDS', 7 * 24 * 3600)
    LIKE_CACHE_TTL_SECONDS = _int('LIKE_CACHE_TTL_SECONDS', 30 * 24 * 3600)
    STATS_CACHE_TTL_SECONDS = _int('STATS_CACHE_TTL_SECONDS', 300)

    # Notifications
    NOTIFICATIONS_BACKEND = os.getenv('NOTIFICATIONS_BACKEND', 'log')  # 'log' or 'email'
    RESEND_API_KEY = os.getenv('RESEND_API_KEY')
    RESEND_FROM_EMAIL = os.getenv('RESEND_FROM_EMAIL', 'noreply@swipematch.local')
