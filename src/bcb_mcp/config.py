"""Configuration management for BCB Payments MCP Server."""

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings
from typing import List


class Settings(BaseSettings):
    """Application settings loaded from environment variables or .env file."""

    # Remote OData service
    api_base_url: str = "https://olinda.bcb.gov.br/olinda/servico/MPV_DadosAbertos/versao/v1/odata"
    request_timeout_seconds: float = 30.0

    # MCP Server Configuration
    server_host: str = "0.0.0.0"
    server_port: int = Field(3000, validation_alias=AliasChoices("server_port", "port"))
    server_reload: bool = False
    transport: str = "auto"  # auto | stdio | http
    public_base_url: str | None = None  # e.g. https://mcp.example.com, used in the SSE endpoint event

    # HTTP surface
    cors_allow_origins: str = "*"  # Comma-separated
    sse_ping_interval_seconds: int = 15
    session_queue_size: int = 1000

    # Authentication of gateway callers (empty = disabled)
    api_keys: str = ""  # Comma-separated

    # Logging
    log_level: str = "INFO"
    log_dir: str | None = None

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False
        extra = "ignore"

    @property
    def api_keys_list(self) -> List[str]:
        """Return API keys as a list."""
        return [key.strip() for key in self.api_keys.split(",") if key.strip()]

    @property
    def cors_origins_list(self) -> List[str]:
        """Return allowed CORS origins as a list."""
        return [origin.strip() for origin in self.cors_allow_origins.split(",") if origin.strip()]


# Global settings instance
settings = Settings()
