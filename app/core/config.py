from typing import Optional
from pydantic import Field, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
    )
    url: Optional[str] = Field(default=None, alias="DATABASE_URL")
    host: Optional[str] = Field(default=None, alias="POSTGRES_HOST")
    port: int = Field(default=5432, alias="POSTGRES_DB_PORT")
    db_name: Optional[str] = Field(default=None, alias="POSTGRES_DB_NAME")
    user: Optional[str] = Field(default=None, alias="POSTGRES_DB_USER")
    password: Optional[str] = Field(default=None, alias="POSTGRES_DB_PASSWORD")

    @computed_field
    def connection_string(self) -> str:
        if self.url:
            return self.url
        if self.host and self.db_name:
            return (
                f"postgresql+asyncpg://{self.user}:{self.password}"
                f"@{self.host}:{self.port}/{self.db_name}"
            )
        return "sqlite+aiosqlite:///./studydocs.db"


class AppSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
    )
    name: str = Field(default="studydocs", alias="APP_NAME")
    version: str = Field(default="v1", alias="API_VERSION")
    port: int = Field(default=9000, alias="APP_PORT")
    mode: str = Field(default="prod", alias="MODE")
    jwt_secret: str = Field(default="dev-only-secret-change-me-in-production", alias="JWT_SECRET")
    jwt_lifetime_seconds: int = Field(default=3600, alias="JWT_LIFETIME_SECONDS")
    cors_origins: list[str] = Field(
        default=["http://localhost:3000", "http://localhost:5173"],
        alias="CORS_ORIGINS",
    )

    @computed_field
    def is_production(self) -> bool:
        return self.mode != "dev"


class GenerationSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
    )
    gemini_api_key: Optional[str] = Field(default=None, alias="GEMINI_API_KEY")
    model_name: str = Field(default="gemini-1.5-flash", alias="GEMINI_MODEL")
    timeout_seconds: float = Field(default=60.0, alias="GENERATION_TIMEOUT_SECONDS")
    min_cards: int = Field(default=5, ge=5, alias="MIN_FLASH_CARDS")


class UploadSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
    )
    max_bytes: int = Field(default=20 * 1024 * 1024, alias="MAX_UPLOAD_BYTES")


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
    )

    app: AppSettings = Field(default_factory=lambda: AppSettings())
    database: DatabaseSettings = Field(default_factory=lambda: DatabaseSettings())
    generation: GenerationSettings = Field(default_factory=lambda: GenerationSettings())
    upload: UploadSettings = Field(default_factory=lambda: UploadSettings())


settings = Settings()
