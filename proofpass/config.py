from pydantic_settings import BaseSettings, SettingsConfigDict

from proofpass.models.event import AttendanceStatus


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    APP_NAME: str = "ProofPass"
    SECRET_KEY: str = "proofpass-secret-key-change-in-production"
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24 * 7
    AUTH_COOKIE_NAME: str = "token"
    SESSION_COOKIE_SECURE: bool = False
    SESSION_COOKIE_SAMESITE: str = "lax"

    STORAGE_BACKEND: str = "memory"  # memory|sql
    DATABASE_URL: str = "sqlite:///proofpass.db"

    ISSUER_BACKEND: str = "mock"  # mock|ledger
    LEDGER_API_URL: str = "http://localhost:8545"
    LEDGER_API_TOKEN: str = ""
    PINNING_API_URL: str = "https://api.pinata.cloud"
    PINNING_API_TOKEN: str = ""
    ISSUER_TIMEOUT_SECONDS: float = 30.0

    DEFAULT_ATTENDANCE_STATUS: AttendanceStatus = AttendanceStatus.CLOSED
    CLEAR_ATTENDANCE_STARTED_ON_CLOSE: bool = True
    PROVISION_COLLECTIONS: bool = True

    ALLOWED_IMAGE_EXTS: set[str] = {"png", "jpg", "jpeg", "webp"}
    MAX_BADGE_IMAGE_BYTES: int = 4 * 1024 * 1024  # 4 MB
    BADGE_IMAGE_SIZE: int = 512

    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = False


settings = Settings()
