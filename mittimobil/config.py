import os


def normalize_database_url(raw_url: str) -> str:
    if raw_url.startswith("postgres://"):
        return raw_url.replace("postgres://", "postgresql://", 1)
    return raw_url


class BaseConfig:
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-unsafe-key")
    SQLALCHEMY_DATABASE_URI = normalize_database_url(
        os.getenv("DATABASE_URL", "sqlite:///instance/mittimobil.db")
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {
        "pool_pre_ping": True,
        "pool_recycle": 300,
    }
    AUTH_TOKEN_MAX_AGE_DAYS = int(os.getenv("AUTH_TOKEN_MAX_AGE_DAYS", "30"))

    CACHE_TYPE = os.getenv("CACHE_TYPE", "SimpleCache")
    CACHE_DEFAULT_TIMEOUT = int(os.getenv("CACHE_DEFAULT_TIMEOUT", "120"))
    RATELIMIT_STORAGE_URI = os.getenv("RATELIMIT_STORAGE_URI", "memory://")
    RATELIMIT_DEFAULT = os.getenv("RATELIMIT_DEFAULT", "200 per day;80 per hour")

    MAX_CONTENT_LENGTH = int(os.getenv("MAX_UPLOAD_MB", "5")) * 1024 * 1024
    UPLOAD_DIR = os.getenv("UPLOAD_DIR", "static/uploads")

    GEOCODER_URL = os.getenv("GEOCODER_URL", "https://nominatim.openstreetmap.org")
    GEOCODER_USER_AGENT = os.getenv(
        "GEOCODER_USER_AGENT", "MittiMobil/1.0 (Agricultural Equipment Sharing Platform)"
    )
    GEOCODER_TIMEOUT = float(os.getenv("GEOCODER_TIMEOUT", "8"))
    GEOCODER_COUNTRY_CODES = os.getenv("GEOCODER_COUNTRY_CODES", "in")
    GEOCODER_BATCH_DELAY = float(os.getenv("GEOCODER_BATCH_DELAY", "1"))

    # Used when neither the geocoder nor the owner's profile yields a location.
    DEFAULT_LONGITUDE = float(os.getenv("DEFAULT_LONGITUDE", "72.8777"))
    DEFAULT_LATITUDE = float(os.getenv("DEFAULT_LATITUDE", "19.0760"))

    DISCOVERY_LIMIT = int(os.getenv("DISCOVERY_LIMIT", "50"))
    DEFAULT_SEARCH_RADIUS_KM = float(os.getenv("DEFAULT_SEARCH_RADIUS_KM", "50"))
    NEARBY_RADIUS_KM = float(os.getenv("NEARBY_RADIUS_KM", "10"))

    SENTRY_DSN = os.getenv("SENTRY_DSN")


class DevelopmentConfig(BaseConfig):
    DEBUG = True


class ProductionConfig(BaseConfig):
    DEBUG = False
    TESTING = False


class TestingConfig(BaseConfig):
    TESTING = True
    SECRET_KEY = "testing-secret"
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    SQLALCHEMY_ENGINE_OPTIONS = {}
    CACHE_TYPE = "NullCache"
    RATELIMIT_ENABLED = False
    SENTRY_DSN = None
    BCRYPT_LOG_ROUNDS = 4
    GEOCODER_BATCH_DELAY = 0


config_by_env = {
    "development": DevelopmentConfig,
    "production": ProductionConfig,
    "testing": TestingConfig,
}
