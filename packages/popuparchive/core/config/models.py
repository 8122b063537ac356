"""Configuration models for the Pop Up Archive SDK."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from popuparchive.core.api.http.config import ClientConfig


class OAuthSettings(BaseModel):
    """OAuth client registration and an optional pre-issued token."""

    model_config = ConfigDict(extra="forbid")

    client_id: str | None = Field(default=None, description="OAuth client id")
    client_secret: str | None = Field(default=None, repr=False, description="OAuth client secret")
    redirect_uri: str | None = Field(default=None, description="OAuth redirect URI")
    access_token: str | None = Field(
        default=None, repr=False, description="Token obtained out-of-band"
    )


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field(default="INFO", pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$")
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    structured: bool = False
    filename: str | None = None


class AppConfig(BaseModel):
    """Application-level configuration for SDK callers."""

    model_config = ConfigDict(extra="ignore")  # Forward compatibility

    oauth: OAuthSettings = Field(default_factory=OAuthSettings)
    http: ClientConfig = Field(default_factory=ClientConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
