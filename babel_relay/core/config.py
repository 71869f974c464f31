"""
Application Configuration
从环境变量加载配置
"""

from functools import lru_cache

from pydantic import model_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings"""

    # Environment
    ENVIRONMENT: str = "development"

    @model_validator(mode="after")
    def validate_production_settings(self) -> "Settings":
        """Ensure critical settings are configured in production"""
        if self.ENVIRONMENT == "production":
            if self.TRANSLATOR_PROVIDER == "identity":
                raise ValueError(
                    "Identity translator is not allowed in production! "
                    "Set TRANSLATOR_PROVIDER=llm and LLM_API_KEY via environment variables."
                )
            if self.TRANSLATOR_PROVIDER == "llm" and not self.LLM_API_KEY:
                raise ValueError("LLM_API_KEY must be set in production.")
        return self

    DEBUG: bool = True
    LOG_LEVEL: str = "DEBUG"  # DEBUG, INFO, WARNING, ERROR

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 8080

    # CORS
    CORS_ORIGINS: list[str] = [
        "http://localhost:5173",
        "http://localhost:3000",
        "http://127.0.0.1:5173",
    ]

    # Translation
    TRANSLATOR_PROVIDER: str = "identity"  # identity, llm
    TRANSLATION_TIMEOUT: float = 15.0  # seconds, per recipient
    TRANSLATION_SKIP_SAME_LANGUAGE: bool = True

    # LLM (OpenAI compatible)
    LLM_API_KEY: str = ""
    LLM_BASE_URL: str = "https://api.openai.com/v1"
    LLM_MODEL: str = "gpt-4o-mini"

    class Config:
        env_file = ".env"
        case_sensitive = True


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()


settings = get_settings()
