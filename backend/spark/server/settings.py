"""Server configuration via environment variables."""

from typing import TYPE_CHECKING

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from shared.validators import CorsEnvSettingsSource, parse_cors_origins

if TYPE_CHECKING:
    from pydantic_settings.sources.base import PydanticBaseSettingsSource


class SparkServerSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="SPARK_")

    max_rooms: int = Field(default=500, ge=1)
    log_dir: str = Field(default="backend/logs/spark", min_length=1)
    cors_origins: list[str] = ["http://localhost:3000"]
    room_ttl_seconds: int = Field(default=3600, ge=60)  # idle rooms are reaped, min 60s
    questions_path: str | None = None  # overrides the bundled catalog

    @field_validator("cors_origins", mode="before")
    @classmethod
    def validate_cors_origins(cls, v: str | list[str]) -> list[str]:
        return parse_cors_origins(v)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,  # noqa: ARG003
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return init_settings, CorsEnvSettingsSource(settings_cls), dotenv_settings, file_secret_settings
