from pydantic import BaseModel
from functools import lru_cache
import os


class Settings(BaseModel):
    app_name: str = "GitDesk"
    database_url: str = "sqlite+aiosqlite:///./gitdesk.db"
    database_echo: bool = False
    cors_origins: list[str] = ["http://localhost:5173"]
    log_level: str = "INFO"

    # Working copies live under workspace_root/<user_id>/<repository_id>
    workspace_root: str = "./repositories"
    # Seconds to wait for another request on the same working copy
    lock_timeout: float = 60.0
    # Per-commit diff stats walk every changed blob; disable for huge repos
    compute_change_stats: bool = True
    commit_email_domain: str = "gitdesk.local"

    jwt_secret: str = "gitdesk-dev-secret-change-in-production"
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 60 * 24

    max_upload_bytes: int = 10 * 1024 * 1024
    max_upload_files: int = 10


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@lru_cache
def get_settings() -> Settings:
    defaults = Settings()
    cors = os.getenv("CORS_ORIGINS")
    return Settings(
        database_url=os.getenv("DATABASE_URL", defaults.database_url),
        database_echo=_env_bool("DATABASE_ECHO", defaults.database_echo),
        cors_origins=[o.strip() for o in cors.split(",") if o.strip()] if cors else defaults.cors_origins,
        log_level=os.getenv("LOG_LEVEL", defaults.log_level),
        workspace_root=os.getenv("WORKSPACE_ROOT", defaults.workspace_root),
        lock_timeout=float(os.getenv("LOCK_TIMEOUT", defaults.lock_timeout)),
        compute_change_stats=_env_bool("COMPUTE_CHANGE_STATS", defaults.compute_change_stats),
        commit_email_domain=os.getenv("COMMIT_EMAIL_DOMAIN", defaults.commit_email_domain),
        jwt_secret=os.getenv("JWT_SECRET", defaults.jwt_secret),
        jwt_algorithm=os.getenv("JWT_ALGORITHM", defaults.jwt_algorithm),
        access_token_expire_minutes=int(
            os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", defaults.access_token_expire_minutes)
        ),
        max_upload_bytes=int(os.getenv("MAX_UPLOAD_BYTES", defaults.max_upload_bytes)),
        max_upload_files=int(os.getenv("MAX_UPLOAD_FILES", defaults.max_upload_files)),
    )
