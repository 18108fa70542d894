import os
import sys
from urllib.parse import urlparse
from dotenv import load_dotenv
from fastapi.security import OAuth2PasswordBearer
from typing import Any, Dict, List, Tuple, Type

load_dotenv()

class ConfigError(Exception):
    """Missing or malformed environment setting"""
    pass

# name -> (default, type); a None default marks the setting as required
DATABASE_SETTINGS: Dict[str, Tuple[Any, Type]] = {
    "DATABASE_URL": (None, str),
    "DATABASE_NAME": (None, str),
    "DB_MAX_POOL_SIZE": (10, int),
    "DB_MAX_RECONNECT_ATTEMPTS": (5, int),
    "DB_RECONNECT_DELAY": (5, int),  # seconds
    "DB_SERVER_SELECTION_TIMEOUT_MS": (5000, int),
    "DB_CONNECT_TIMEOUT_MS": (5000, int),
    # multi-document transactions need a replica set
    "DB_USE_TRANSACTIONS": (False, bool),
}

AUTH_SETTINGS: Dict[str, Tuple[Any, Type]] = {
    "JWT_SECRET_KEY": (None, str),
    "JWT_ALGORITHM": ("HS256", str),
}

MEDIA_SETTINGS: Dict[str, Tuple[Any, Type]] = {
    "MINIO_USERNAME": (None, str),
    "MINIO_PASSWORD": (None, str),
    "MINIO_SERVER": (None, str),
    "MINIO_BUCKET": (None, str),
    # both derived from MINIO_SERVER when left empty
    "MEDIA_PUBLIC_URL": ("", str),
    "MEDIA_TRUSTED_HOSTS": ("", str),
    "MEDIA_UPLOAD_CONCURRENCY": (3, int),
}

MESSAGING_SETTINGS: Dict[str, Tuple[Any, Type]] = {
    "PROFILE_CACHE_TTL_SECONDS": (300, int),
    "MESSAGE_HISTORY_LIMIT": (50, int),
    "HEALTH_SAMPLE_SIZE": (10, int),
    "CLEANUP_INTERVAL_SECONDS": (0, int),  # 0 disables the background loop
    "CONVERSATION_POLL_SECONDS": (10, int),
}

class Settings:
    SECTIONS = (DATABASE_SETTINGS, AUTH_SETTINGS, MEDIA_SETTINGS, MESSAGING_SETTINGS)

    def __init__(self, environ=None):
        self.environ = os.environ if environ is None else environ
        self.values: Dict[str, Any] = {}
        self._load_config()

    @staticmethod
    def _convert(key: str, raw: str, type_: Type) -> Any:
        if type_ == bool:
            return raw.strip().lower() in ('true', '1', 'yes')
        try:
            return type_(raw)
        except ValueError as e:
            raise ConfigError(f"{key} must be of type {type_.__name__}: {e}")

    def _load_config(self):
        missing: List[str] = []
        for section in self.SECTIONS:
            for key, (default_value, type_) in section.items():
                raw = self.environ.get(key)
                if raw is None or raw == "":
                    if default_value is None:
                        missing.append(key)
                    else:
                        self.values[key] = default_value
                    continue
                self.values[key] = self._convert(key, raw, type_)

        if missing:
            raise ConfigError(f"Missing required environment variables: {', '.join(missing)}")
        self._derive_media_settings()

    def _derive_media_settings(self):
        public_url = self.values["MEDIA_PUBLIC_URL"]
        if not public_url:
            server = self.values["MINIO_SERVER"]
            public_url = server if server.startswith(("http://", "https://")) else f"https://{server}"
        self.values["MEDIA_PUBLIC_URL"] = public_url.rstrip('/')

        trusted = [h.strip().lower() for h in self.values["MEDIA_TRUSTED_HOSTS"].split(',') if h.strip()]
        if not trusted:
            trusted = [urlparse(self.values["MEDIA_PUBLIC_URL"]).netloc.lower()]
        self.values["MEDIA_TRUSTED_HOSTS"] = trusted

        for key in ("MEDIA_UPLOAD_CONCURRENCY", "HEALTH_SAMPLE_SIZE", "MESSAGE_HISTORY_LIMIT"):
            if self.values[key] < 1:
                raise ConfigError(f"{key} must be at least 1")

    def __getattr__(self, name):
        values = self.__dict__.get("values", {})
        if name in values:
            return values[name]
        raise AttributeError(f"'{self.__class__.__name__}' object has no attribute '{name}'")

try:
    settings = Settings()
except ConfigError as e:
    print(f"Configuration Error: {e}")
    sys.exit(1)

# Tokens are issued by the main platform's auth service
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="auth/token")

DATABASE_URL = settings.DATABASE_URL
DATABASE_NAME = settings.DATABASE_NAME
DB_MAX_POOL_SIZE = settings.DB_MAX_POOL_SIZE
DB_MAX_RECONNECT_ATTEMPTS = settings.DB_MAX_RECONNECT_ATTEMPTS
DB_RECONNECT_DELAY = settings.DB_RECONNECT_DELAY
DB_SERVER_SELECTION_TIMEOUT_MS = settings.DB_SERVER_SELECTION_TIMEOUT_MS
DB_CONNECT_TIMEOUT_MS = settings.DB_CONNECT_TIMEOUT_MS
DB_USE_TRANSACTIONS = settings.DB_USE_TRANSACTIONS

JWT_SECRET_KEY = settings.JWT_SECRET_KEY
JWT_ALGORITHM = settings.JWT_ALGORITHM

MINIO_USERNAME = settings.MINIO_USERNAME
MINIO_PASSWORD = settings.MINIO_PASSWORD
MINIO_SERVER = settings.MINIO_SERVER
MINIO_BUCKET = settings.MINIO_BUCKET
MEDIA_PUBLIC_URL = settings.MEDIA_PUBLIC_URL
MEDIA_TRUSTED_HOSTS = settings.MEDIA_TRUSTED_HOSTS
MEDIA_UPLOAD_CONCURRENCY = settings.MEDIA_UPLOAD_CONCURRENCY

PROFILE_CACHE_TTL_SECONDS = settings.PROFILE_CACHE_TTL_SECONDS
MESSAGE_HISTORY_LIMIT = settings.MESSAGE_HISTORY_LIMIT
HEALTH_SAMPLE_SIZE = settings.HEALTH_SAMPLE_SIZE
CLEANUP_INTERVAL_SECONDS = settings.CLEANUP_INTERVAL_SECONDS
CONVERSATION_POLL_SECONDS = settings.CONVERSATION_POLL_SECONDS
