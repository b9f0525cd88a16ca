from pydantic_settings import BaseSettings, SettingsConfigDict
from decimal import Decimal
from uuid import UUID
from pydantic import field_validator

class Settings(BaseSettings):
    # Local embedded store (replicated by the external sync process)
    DATABASE_URL: str = 'sqlite+aiosqlite:///./ledger.db'
    DATABASE_ECHO: bool = False

    # JWT settings (tokens are issued elsewhere, we only read the actor from them)
    APP_SECRET_STRING: str = 'your-super-secret-key-here-change-in-production-2024'
    ALGORITHM: str = 'HS256'

    # Offline installs run as a single tenant
    DEFAULT_TENANT_ID: UUID = UUID('00000000-0000-0000-0000-000000000001')
    ANONYMOUS_USER_NAME: str = 'Unknown User'

    # Ledger
    BALANCE_EPSILON: Decimal = Decimal('0.01')

    # Pagination
    DEFAULT_PAGE_SIZE: int = 20
    MAX_PAGE_SIZE: int = 100

    # Environment
    ENVIRONMENT: str = "development"
    DEBUG: bool = True

    @property
    def database_url(self) -> str:
        return self.DATABASE_URL

    model_config = SettingsConfigDict(
        extra="allow",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True
    )

    @field_validator("DEBUG", mode="before")
    @classmethod
    def parse_debug(cls, v):
        if isinstance(v, str):
            return v.lower().strip('"').strip("'") in ("true", "1", "yes", "on")
        return bool(v)

    @field_validator("DATABASE_ECHO", mode="before")
    @classmethod
    def parse_echo(cls, v):
        if isinstance(v, str):
            return v.lower().strip('"').strip("'") in ("true", "1", "yes", "on")
        return bool(v)

    @field_validator("DEFAULT_TENANT_ID", mode="before")
    @classmethod
    def parse_tenant(cls, v):
        if isinstance(v, str):
            return UUID(v.strip('"').strip("'"))
        return v

settings = Settings()
