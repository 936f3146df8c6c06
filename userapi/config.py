from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    app_name: str = Field(default="user-service", alias="APP_NAME")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    host: str = Field(default="0.0.0.0", alias="HOST")
    port: int = Field(default=3000, alias="PORT")

    seed_users: bool = Field(default=True, alias="SEED_USERS")
    default_page_limit: int = Field(default=10, ge=1, alias="DEFAULT_PAGE_LIMIT")

    collect_default_metrics: bool = Field(default=True, alias="COLLECT_DEFAULT_METRICS")
    enable_metrics_endpoint: bool = Field(default=True, alias="ENABLE_METRICS_ENDPOINT")

    @property
    def default_labels(self) -> dict[str, str]:
        return {"app": self.app_name}


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
