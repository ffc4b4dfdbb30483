import os
from datetime import timedelta


def _env_list(name, default=""):
    return [item.strip() for item in os.environ.get(name, default).split(",") if item.strip()]


class Config:
    # Secret key for sessions / JWT
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret")

    # Database connection
    SQLALCHEMY_DATABASE_URI = os.environ.get("DATABASE_URL", "sqlite:///pgledger.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # JWT Configuration
    JWT_SECRET_KEY = os.environ.get("JWT_SECRET_KEY", SECRET_KEY)
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(seconds=int(os.environ.get("SESSION_LIFETIME", 28800)))  # 8 hours

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
    CORS_ALLOWED_ORIGINS = _env_list("CORS_ALLOWED_ORIGINS", "http://localhost:5173,http://127.0.0.1:5173")
    API_PREFIX = "/api"

    # Ledger
    APP_NAME = os.environ.get("APP_NAME", "PG Management System")
    LEDGER_TIMEZONE = os.environ.get("LEDGER_TIMEZONE", "Asia/Kolkata")
    LEDGER_DEFAULT_RENT = os.environ.get("LEDGER_DEFAULT_RENT", "5000.00")
    LEDGER_TRACKING_START = os.environ.get("LEDGER_TRACKING_START", "2025-09")
    LEDGER_URGENCY_THRESHOLDS = [int(d) for d in _env_list("LEDGER_URGENCY_THRESHOLDS", "1,8,31,61")]


class ProductionConfig(Config):
    REQUIRED = ("SECRET_KEY", "DATABASE_URL")

    def __init__(self):
        for name in self.REQUIRED:
            if not os.environ.get(name):
                raise ValueError(f"{name} environment variable must be set")


class TestingConfig(Config):
    TESTING = True
    SECRET_KEY = "test-secret"
    JWT_SECRET_KEY = "test-jwt-secret-key-with-enough-length"
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    LOG_LEVEL = "WARNING"
    LEDGER_TRACKING_START = "2024-01"
