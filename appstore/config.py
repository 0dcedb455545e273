import logging
import warnings

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Environment
    environment: str = "development"  # development | test | production

    # Server
    appstore_host: str = "0.0.0.0"
    appstore_port: int = 8000

    # Database (sqlite for local dev, postgresql+asyncpg for production)
    database_url: str = "sqlite+aiosqlite:///./appstore.db"

    # Auth (tokens are issued by the identity provider; we only verify them)
    jwt_secret_key: str = "dev-secret-change-in-production"
    jwt_algorithm: str = "HS256"
    jwt_expire_hours: int = 24 * 7  # 7 days
    moderator_user_ids: str = ""  # Comma-separated user IDs with moderation rights

    # Developer onboarding
    allow_resubmission_after_rejection: bool = False

    # CORS
    cors_origins: str = "http://localhost:5173,http://localhost:3000"

    # Logging
    log_level: str = "INFO"

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}


settings = Settings()

_logger = logging.getLogger("appstore.config")
_INSECURE_SECRETS = {
    "dev-secret-change-in-production",
    "change-me-to-a-random-string",
}


def moderator_ids(cfg: Settings | None = None) -> set[str]:
    cfg = cfg or settings
    return {value.strip() for value in cfg.moderator_user_ids.split(",") if value.strip()}


def validate_security_posture(cfg: Settings) -> None:
    is_prod = cfg.environment.lower() in {"production", "prod"}

    if cfg.jwt_secret_key in _INSECURE_SECRETS:
        if is_prod:
            raise RuntimeError(
                "FATAL: JWT_SECRET_KEY is set to an insecure default. "
                "Set a strong random secret via the JWT_SECRET_KEY environment variable before deploying to production."
            )
        warnings.warn(
            "JWT_SECRET_KEY is set to the default insecure value. "
            "Set a strong random secret via the JWT_SECRET_KEY environment variable for production.",
            stacklevel=1,
        )

    if cfg.cors_origins == "*":
        if is_prod:
            raise RuntimeError(
                "FATAL: CORS_ORIGINS cannot be '*' in production. "
                "Set explicit trusted origins via the CORS_ORIGINS environment variable."
            )
        _logger.warning(
            "CORS_ORIGINS is set to '*' (allow all). "
            "Configure specific origins for production via the CORS_ORIGINS environment variable."
        )
