from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_USER_API_KEY = "sr-user-dev-key"
DEFAULT_ADMIN_API_KEY = "sr-admin-dev-key"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_prefix="SR_", extra="ignore")

    app_name: str = "Skill Router"
    env: str = "dev"
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    log_level: str = "INFO"

    database_url: str = "sqlite+pysqlite:///./skillrouter.db"

    default_skill_timeout_ms: int = Field(default=10_000, ge=1)
    history_default_limit: int = Field(default=20, ge=1)
    history_max_limit: int = Field(default=100, ge=1)

    auth_enabled: bool = True
    user_api_key: str = DEFAULT_USER_API_KEY
    admin_api_key: str = DEFAULT_ADMIN_API_KEY
    user_actor_id: str = "user-001"
    admin_actor_id: str = "admin-001"

    @property
    def debug_errors(self) -> bool:
        return self.env.lower() == "dev"

    def model_post_init(self, __context) -> None:
        if self.env.lower() == "dev":
            return

        insecure_items: list[str] = []
        if self.user_api_key == DEFAULT_USER_API_KEY:
            insecure_items.append("SR_USER_API_KEY")
        if self.admin_api_key == DEFAULT_ADMIN_API_KEY:
            insecure_items.append("SR_ADMIN_API_KEY")

        if insecure_items:
            raise ValueError(
                "insecure default secrets are not allowed outside dev mode; set env vars: "
                + ", ".join(sorted(insecure_items))
            )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
