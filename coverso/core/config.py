import logging

from pydantic_settings import BaseSettings
from pydantic import ConfigDict
from typing import Optional

class Settings(BaseSettings):
    # Environment
    ENV: str = "development"
    CONFIG_STRICT: bool = False

    # Generation (Groq)
    GROQ_API_KEY: Optional[str] = None
    GROQ_MODEL: str = "llama-3.1-8b-instant"

    # Identity provider (JWT)
    AUTH_JWT_SECRET: Optional[str] = None
    AUTH_JWKS_URL: Optional[str] = None  # RS256 tokens, e.g. securetoken JWKS
    AUTH_JWT_ISSUER: Optional[str] = None
    AUTH_JWT_AUDIENCE: Optional[str] = None

    # Database
    DATABASE_URL: Optional[str] = None
    TEST_DATABASE_URL: Optional[str] = None

    # Stripe
    STRIPE_SECRET_KEY: Optional[str] = None
    STRIPE_API_VERSION: str = "2024-06-20"
    STRIPE_PRICE_JOB_SEEKER: Optional[str] = None
    STRIPE_PRICE_CAREER_PRO: Optional[str] = None
    STRIPE_PRICE_EXECUTIVE: Optional[str] = None

    # App URLs
    APP_URL: str = "http://localhost:3000"
    CORS_ORIGINS: str = "http://localhost:3000"  # comma-separated

    # Metering
    USAGE_WINDOW_DAYS: Optional[int] = None  # None = lifetime document count
    ENFORCE_GENERATION_QUOTA: bool = True

    model_config = ConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )
settings = Settings()


def validate_config(strict: Optional[bool] = None, settings_obj: Optional[Settings] = None, logger: Optional[logging.Logger] = None) -> bool:
    """Validate required configuration.

    In strict mode raise RuntimeError; otherwise emit warnings only.
    Secrets are not logged, only missing keys.
    """
    cfg = settings_obj or settings
    log = logger or logging.getLogger("coverso")
    strict_mode = strict if strict is not None else getattr(cfg, "CONFIG_STRICT", False)

    required_keys = [
        "DATABASE_URL",
        "GROQ_API_KEY",
        "STRIPE_SECRET_KEY",
    ]

    missing = [key for key in required_keys if not getattr(cfg, key, None)]
    if not (getattr(cfg, "AUTH_JWT_SECRET", None) or getattr(cfg, "AUTH_JWKS_URL", None)):
        missing.append("AUTH_JWT_SECRET|AUTH_JWKS_URL")
    if missing:
        message = f"Missing required configuration: {', '.join(missing)}"
        if strict_mode:
            raise RuntimeError(message)
        log.warning(message)

    return True


def cors_origins(cfg: Optional[Settings] = None) -> list[str]:
    raw = (cfg or settings).CORS_ORIGINS or ""
    return [origin.strip() for origin in raw.split(",") if origin.strip()]
