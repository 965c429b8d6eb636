from functools import lru_cache
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration loaded from env vars and local env file."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    app_env: str = Field(default="local", alias="APP_ENV")
    log_level: str | None = Field(default=None, alias="LOG_LEVEL")

    openai_api_key: str | None = Field(default=None, alias="OPENAI_API_KEY")
    openai_timeout_seconds: float = Field(default=60.0, alias="OPENAI_TIMEOUT_SECONDS")
    openai_assistant_id: str | None = Field(default=None, alias="OPENAI_ASSISTANT_ID")

    stream_api_key: str | None = Field(default=None, alias="STREAM_API_KEY")
    stream_api_secret: str | None = Field(default=None, alias="STREAM_API_SECRET")

    tavily_api_key: str | None = Field(default=None, alias="TAVILY_API_KEY")
    web_search_url: str = Field(default="https://api.tavily.com/search", alias="WEB_SEARCH_URL")
    web_search_max_results: int = Field(default=5, alias="WEB_SEARCH_MAX_RESULTS")
    web_search_depth: str = Field(default="advanced", alias="WEB_SEARCH_DEPTH")
    web_search_timeout_seconds: float = Field(default=30.0, alias="WEB_SEARCH_TIMEOUT_SECONDS")

    stream_flush_interval_ms: int = Field(default=1000, alias="STREAM_FLUSH_INTERVAL_MS")

    @property
    def effective_log_level(self) -> str:
        if self.log_level:
            return self.log_level.upper()
        return "DEBUG" if self.app_env.lower() == "local" else "INFO"

    @property
    def flush_interval_seconds(self) -> float:
        return self.stream_flush_interval_ms / 1000

    def require_stream_credentials(self) -> tuple[str, str]:
        """Return chat-platform credentials, failing loudly when either is missing."""

        if not self.stream_api_key:
            raise ValueError("Missing required environment variable: STREAM_API_KEY")
        if not self.stream_api_secret:
            raise ValueError("Missing required environment variable: STREAM_API_SECRET")
        return self.stream_api_key, self.stream_api_secret


@lru_cache
def get_settings() -> Settings:
    return Settings()
