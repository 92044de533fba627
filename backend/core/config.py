"""
Server inventory: Configuration settings.

Loads from environment variables with sensible defaults.
"""

from typing import Optional
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    # Storage backend: "memory" (ephemeral, process-local) or "database"
    storage_backend: str = "memory"

    # Database (only used by the database backend)
    database_url: str = "sqlite:///./inventory.db"

    # Server
    host: str = "0.0.0.0"
    port: int = 8000
    debug: bool = False
    log_level: str = "INFO"

    # Identifier generation: SRV-<year>-<seq>
    server_id_prefix: str = "SRV"
    server_id_width: int = 3

    # Upper bound for a single batch-create request
    batch_max_quantity: int = 10

    # Encryption key for stored credentials (server / VM passwords)
    # Generate with: python -c "from cryptography.fernet import Fernet; print(Fernet.generate_key().decode())"
    encryption_key: Optional[str] = None

    # First-run data: admin user, default locations and server models
    seed_defaults: bool = True
    default_admin_password: str = "admin123"

    # Frontend - comma-separated list in .env, e.g. CORS_ORIGINS=http://localhost:3000
    cors_origins: str = ""

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


settings = Settings()
