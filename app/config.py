import os

from dotenv import load_dotenv

load_dotenv()


class Config:
    def __init__(self):
        # Veeqo inventory API
        self.VEEQO_STORE = os.environ.get("VEEQO_STORE", "").rstrip("/")
        self.VEEQO_ACCESS_TOKEN = os.environ.get("VEEQO_ACCESS_TOKEN", "")

        # 0 means no deadline on upstream requests
        self.REQUEST_TIMEOUT = float(os.environ.get("REQUEST_TIMEOUT", "0"))

        # Cache configuration
        self.CACHE_TTL_MINUTES = float(os.environ.get("CACHE_TTL_MINUTES", "240"))
        self.STALE_CHECK_INTERVAL = float(os.environ.get("STALE_CHECK_INTERVAL", "60"))

        # HTTP
        self.PORT = int(os.environ.get("PORT", "5000"))
        self.CORS_ORIGINS = [
            origin.strip()
            for origin in os.environ.get("CORS_ORIGINS", "http://localhost:3000").split(",")
            if origin.strip()
        ]

        # Error tracking
        self.SENTRY_DSN = os.environ.get("SENTRY_DSN", "")
        self.ENVIRONMENT = os.environ.get("ENVIRONMENT", "development")

        # Logging
        self.LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    @property
    def has_veeqo(self) -> bool:
        return bool(self.VEEQO_STORE and self.VEEQO_ACCESS_TOKEN)

    @property
    def has_sentry(self) -> bool:
        return bool(self.SENTRY_DSN)


# Create an instance
config = Config()
