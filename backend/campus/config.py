"""Application settings and validation."""

import os
from pathlib import Path

BASE = Path(__file__).resolve().parent.parent


class Settings:
    ENV: str
    DATABASE_URL: str
    JWT_SECRET: str
    JWT_ALGORITHM: str
    JWT_ACCESS_EXPIRE_HOURS: int
    JWT_REFRESH_EXPIRE_DAYS: int
    THROTTLE_LIMIT: int
    THROTTLE_TTL_SECONDS: int
    AUTH_RATE_LIMIT_PER_MIN: int
    MAX_UPLOAD_BYTES: int
    CORS_ORIGIN: str
    LOG_LEVEL: str
    ALLOW_INSECURE_JWT: bool

    def __init__(self):
        self.ENV = os.getenv("ENV", "dev").lower()
        self.DATABASE_URL = os.getenv("DATABASE_URL", f"sqlite:///{BASE / 'campus.db'}")
        self.JWT_SECRET = os.getenv("JWT_SECRET", "change_me_for_prod")
        self.JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
        self.JWT_ACCESS_EXPIRE_HOURS = int(os.getenv("JWT_ACCESS_EXPIRE_HOURS", "24"))
        self.JWT_REFRESH_EXPIRE_DAYS = int(os.getenv("JWT_REFRESH_EXPIRE_DAYS", "7"))
        self.THROTTLE_LIMIT = int(os.getenv("THROTTLE_LIMIT", "100"))
        self.THROTTLE_TTL_SECONDS = int(os.getenv("THROTTLE_TTL_SECONDS", "60"))
        self.AUTH_RATE_LIMIT_PER_MIN = int(os.getenv("AUTH_RATE_LIMIT_PER_MIN", "20"))
        self.MAX_UPLOAD_BYTES = int(os.getenv("MAX_UPLOAD_BYTES", str(2 * 1024 * 1024)))  # 2 MB default
        self.CORS_ORIGIN = os.getenv("CORS_ORIGIN", "*")
        self.LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
        self.ALLOW_INSECURE_JWT = os.getenv("ALLOW_INSECURE_JWT", "false").lower() == "true"
        self._validate()

    @property
    def is_production(self) -> bool:
        return self.ENV == "production"

    def _validate(self):
        if self.ENV not in ("dev", "test") and not self.ALLOW_INSECURE_JWT and self.JWT_SECRET == "change_me_for_prod":
            raise RuntimeError("JWT_SECRET must be set to a non-default value in non-dev environments")
        if self.JWT_ALGORITHM not in ("HS256", "HS384", "HS512"):
            raise RuntimeError(f"unsupported JWT_ALGORITHM: {self.JWT_ALGORITHM}")


settings = Settings()
