import os
from datetime import timedelta


def normalize_database_url(raw_url: str) -> str:
    if raw_url.startswith("postgres://"):
        return raw_url.replace("postgres://", "postgresql://", 1)
    return raw_url


class BaseConfig:
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-unsafe-key")
    SQLALCHEMY_DATABASE_URI = normalize_database_url(
        os.getenv("DATABASE_URL", "sqlite:///instance/tourdesk.db")
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {
        "pool_pre_ping": True,
        "pool_recycle": 300,
    }
    CACHE_TYPE = os.getenv("CACHE_TYPE", "SimpleCache")
    CACHE_DEFAULT_TIMEOUT = int(os.getenv("CACHE_DEFAULT_TIMEOUT", "120"))
    RATELIMIT_STORAGE_URI = os.getenv("RATELIMIT_STORAGE_URI", "memory://")
    RATELIMIT_DEFAULT = os.getenv("RATELIMIT_DEFAULT", "500 per day;120 per hour")

    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = "Lax"
    SESSION_COOKIE_SECURE = os.getenv("SESSION_COOKIE_SECURE", "false").lower() == "true"
    PERMANENT_SESSION_LIFETIME = timedelta(days=int(os.getenv("SESSION_DAYS", "7")))
    REMEMBER_COOKIE_HTTPONLY = True

    SENTRY_DSN = os.getenv("SENTRY_DSN")

    BUSINESS_TIMEZONE = os.getenv("BUSINESS_TIMEZONE", "America/Los_Angeles")
    CURRENCY = os.getenv("CURRENCY", "usd")
    DEFAULT_TAX_RATE = os.getenv("DEFAULT_TAX_RATE", "8.9")
    DEFAULT_DEPOSIT_PERCENTAGE = os.getenv("DEFAULT_DEPOSIT_PERCENTAGE", "50")
    DEFAULT_GRATUITY_PERCENTAGE = os.getenv("DEFAULT_GRATUITY_PERCENTAGE", "0")
    DRIVER_DAILY_HOURS_CAP = os.getenv("DRIVER_DAILY_HOURS_CAP", "10")
    DRIVER_WEEKLY_HOURS_CAP = os.getenv("DRIVER_WEEKLY_HOURS_CAP", "60")
    FINAL_PAYMENT_WINDOW_HOURS = int(os.getenv("FINAL_PAYMENT_WINDOW_HOURS", "48"))
    PROPOSAL_VALID_DAYS = int(os.getenv("PROPOSAL_VALID_DAYS", "30"))
    MAX_PARTY_SIZE = int(os.getenv("MAX_PARTY_SIZE", "50"))
    VENUE_CACHE_TIMEOUT = int(os.getenv("VENUE_CACHE_TIMEOUT", "300"))
    DEFAULT_TOUR_START = os.getenv("DEFAULT_TOUR_START", "10:00")
    DEFAULT_TOUR_END = os.getenv("DEFAULT_TOUR_END", "16:00")


class DevelopmentConfig(BaseConfig):
    DEBUG = True
    SESSION_COOKIE_SECURE = False


class ProductionConfig(BaseConfig):
    DEBUG = False
    TESTING = False
    SESSION_COOKIE_SECURE = True


class TestingConfig(BaseConfig):
    TESTING = True
    WTF_CSRF_ENABLED = False
    RATELIMIT_ENABLED = False
    CACHE_TYPE = "NullCache"
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    SQLALCHEMY_ENGINE_OPTIONS = {}
    BCRYPT_LOG_ROUNDS = 4


config_by_env = {
    "development": DevelopmentConfig,
    "production": ProductionConfig,
    "testing": TestingConfig,
}
