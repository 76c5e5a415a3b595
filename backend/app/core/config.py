from pydantic_settings import BaseSettings, SettingsConfigDict
import urllib.parse
from typing import Optional


class Settings(BaseSettings):
    PROJECT_NAME: str = "Productivity Dashboard"
    API_PREFIX: str = "/api"

    # Leave unset to run on the in-memory store
    DATABASE_URL: Optional[str] = None

    GROQ_API_KEY: Optional[str] = None
    GROQ_MODEL: str = "llama-3.3-70b-versatile"
    SUGGESTION_TIMEOUT_SECONDS: float = 20.0

    JWT_SECRET: str = "change-me-in-production"
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60
    REFRESH_TOKEN_EXPIRE_DAYS: int = 7

    BACKEND_CORS_ORIGINS: list[str] = ["http://localhost:3000", "http://localhost:3001"]
    RATE_LIMIT_ENABLED: bool = True
    LLM_RATE_LIMIT: str = "30 per 15 minutes"
    AUTH_RATE_LIMIT: str = "10/minute"
    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True, extra="ignore")

    @property
    def database_configured(self) -> bool:
        return bool(self.DATABASE_URL) and "username:password" not in self.DATABASE_URL

    @property
    def llm_configured(self) -> bool:
        return bool(self.GROQ_API_KEY) and "your-" not in self.GROQ_API_KEY

    @property
    def async_database_url(self) -> str:
        if not self.DATABASE_URL:
            raise RuntimeError("DATABASE_URL is not configured")

        if "sqlite" in self.DATABASE_URL:
            return self.DATABASE_URL

        url = self.DATABASE_URL.replace("postgresql://", "postgresql+asyncpg://")
        try:
            parsed = urllib.parse.urlparse(url)
            query_params = urllib.parse.parse_qs(parsed.query)
            params_to_remove = ['sslmode', 'channel_binding']
            for param in params_to_remove:
                if param in query_params:
                    del query_params[param]
            new_query = urllib.parse.urlencode(query_params, doseq=True)
            url = urllib.parse.urlunparse(parsed._replace(query=new_query))
        except ValueError:
            url = url.replace("?sslmode=require", "").replace("&sslmode=require", "")
            url = url.replace("?channel_binding=require", "").replace("&channel_binding=require", "")

        return url


settings = Settings()
