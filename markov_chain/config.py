"""
Markov Chain Service Configuration
"""

from typing import Literal
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # ===== Service =====
    SERVICE_NAME: str = Field(default="markov-chain-service", env="SERVICE_NAME")  # type: ignore
    SERVICE_VERSION: str = Field(default="0.1.0", env="SERVICE_VERSION")  # type: ignore
    HOST: str = Field(default="0.0.0.0", env="HOST")  # type: ignore
    PORT: int = Field(default=8000, env="PORT")  # type: ignore
    LOG_LEVEL: str = Field(default="info", env="LOG_LEVEL")  # type: ignore
    DEBUG: bool = Field(default=False, env="DEBUG")  # type: ignore

    # ===== Chain Defaults =====
    CHAIN_ORDER: int = Field(default=1, ge=1, env="CHAIN_ORDER")  # type: ignore
    DEFAULT_PARAGRAPHS: int = Field(default=1, ge=0, env="DEFAULT_PARAGRAPHS")  # type: ignore
    DEFAULT_SENTENCES: int = Field(default=5, ge=0, env="DEFAULT_SENTENCES")  # type: ignore

    # ===== Persistence =====
    DEFAULT_FORMAT: Literal["json", "yaml", "pickle"] = Field(
        default="json", env="DEFAULT_FORMAT"  # type: ignore
    )

    # >>> pydantic v2 settings config <<<
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )


settings = Settings()
