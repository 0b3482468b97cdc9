"""
Application configuration using Pydantic Settings.

All configuration is loaded from environment variables, with an optional .env file
as a fallback. The .env file is gitignored; secrets never live in source code.

Pydantic Settings automatically:
  1. Reads from environment variables (highest priority)
  2. Falls back to .env file values
  3. Uses defaults defined here (lowest priority)

Usage:
    from ledger_api.config import settings
    print(settings.ENCRYPTION_KEY)
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Central configuration for the Ledger API.

    Required fields (no defaults) MUST be set in .env or environment:
      - SECRET_KEY: Used to verify JWT tokens issued by the auth service
      - ENCRYPTION_KEY: Secret the transaction amount cipher key is derived from
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # --- Application ---
    APP_NAME: str = "Profit-Lost Ledger API"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = False

    # --- Database ---
    # SQLite for local use; swap to a PostgreSQL (asyncpg) URL in production
    DATABASE_URL: str = "sqlite+aiosqlite:///./ledger.db"

    # --- Authentication ---
    # REQUIRED: no default
    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 30

    # --- Amount Encryption ---
    # REQUIRED: any string. It is used as the AES-256 key when it is exactly
    # 32 bytes long, otherwise its SHA-256 digest is. Changing it makes every
    # stored amount undecryptable.
    ENCRYPTION_KEY: str

    # When False, stored amounts without the "iv:cipher" delimiter are treated
    # as legacy plaintext and returned unchanged. When True they are rejected.
    STRICT_DECRYPTION: bool = False

    # --- Logging ---
    LOG_LEVEL: str = "INFO"
    # JSON lines for production, human-readable console output otherwise
    LOG_JSON: bool = True

    # --- CORS ---
    # Origins allowed to make cross-origin requests (frontend URLs)
    ALLOWED_ORIGINS: list[str] = ["http://localhost:5173"]


# Singleton: import this instance everywhere instead of creating new Settings()
settings = Settings()
