import os
from dataclasses import dataclass, field
from typing import List


def _split_csv(value: str) -> List[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


@dataclass
class Settings:
    SECRET_KEY: str = os.getenv("JWT_SECRET", "dev_secret")
    ALGORITHM: str = os.getenv("ALGORITHM", "HS256")
    ACCESS_TOKEN_EXPIRE_MINUTES: int = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", str(7 * 24 * 60)))
    DB_PATH: str = os.getenv("DB_PATH", "./db.sqlite")

    PORT: int = int(os.getenv("PORT", "3000"))
    PUBLIC_URL: str = os.getenv("PUBLIC_URL", f"http://localhost:{os.getenv('PORT', '3000')}")
    CORS_ORIGINS: List[str] = field(default_factory=lambda: _split_csv(os.getenv("CORS_ORIGINS", "*")))
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    PIXUP_API_URL: str = os.getenv("PIXUP_API_URL", "https://api.pixup.com.br/sandbox")
    PIXUP_CLIENT_ID: str = os.getenv("PIXUP_CLIENT_ID", "")
    PIXUP_CLIENT_SECRET: str = os.getenv("PIXUP_CLIENT_SECRET", "")
    PIXUP_TIMEOUT_SECONDS: float = float(os.getenv("PIXUP_TIMEOUT_SECONDS", "10"))

    # amounts in cents
    MIN_STAKE_CENTS: int = int(os.getenv("MIN_STAKE_CENTS", "1000"))
    PLATFORM_FEE_CENTS: int = int(os.getenv("PLATFORM_FEE_CENTS", "100"))
    WITHDRAW_FEE_PERCENT: int = int(os.getenv("WITHDRAW_FEE_PERCENT", "3"))

    @property
    def pixup_configured(self) -> bool:
        return bool(self.PIXUP_CLIENT_ID and self.PIXUP_CLIENT_SECRET)

    @property
    def webhook_url(self) -> str:
        return f"{self.PUBLIC_URL.rstrip('/')}/api/pixup/webhook"

settings = Settings()
