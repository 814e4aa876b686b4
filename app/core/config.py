from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional
from pydantic import field_validator

class Settings(BaseSettings):
    # Database settings
    POSTGRES_USER: str = 'fruteria_user'
    POSTGRES_PASSWORD: str = 'fruteria_pass'
    POSTGRES_DB: str = 'fruteria_db'
    POSTGRES_HOST: str = 'postgres'
    POSTGRES_PORT: int = 5432

    # Full URL override (tests use "sqlite://")
    DATABASE_URL: Optional[str] = None

    # Pagination
    DEFAULT_PAGE_SIZE: int = 20
    MAX_PAGE_SIZE: int = 100

    # Ledger rules
    DEFAULT_STOCK_MINIMO: int = 10
    DEFAULT_USER_NAME: str = 'Sistema'
    INVOICE_DELETE_POLICY: str = 'block'  # block | cascade

    # Environment
    ENVIRONMENT: str = "development"
    DEBUG: bool = True

    @property
    def database_url(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return (
            f"postgresql+psycopg2://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
            f"@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        )

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")

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

    @field_validator("INVOICE_DELETE_POLICY", mode="before")
    @classmethod
    def parse_delete_policy(cls, v):
        value = str(v).lower().strip('"').strip("'")
        if value not in ("block", "cascade"):
            raise ValueError("INVOICE_DELETE_POLICY debe ser 'block' o 'cascade'")
        return value

settings = Settings()
