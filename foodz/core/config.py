"""
Application Configuration Module

Centralizes all configuration using environment variables with Pydantic Settings.
Supports two modes:
    - DEVELOPMENT: Uses in-memory mock collaborators (no Firebase project needed)
    - PRODUCTION: Uses the real Firebase backend (Auth, Firestore, Storage)

The ENV_MODE variable controls which collaborators are instantiated
throughout the application, so the same order pipeline runs against the
mock store locally and against Firestore in deployment.

Usage:
    from foodz.core.config import get_settings

    settings = get_settings()
    if settings.is_development:
        # Use mock collaborators
    else:
        # Use Firebase

Version: 1.0.0
"""

import logging
import sys
from enum import Enum
from typing import Optional
from functools import lru_cache
from urllib.parse import quote

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class EnvironmentMode(str, Enum):
    """
    Application environment modes.

    Attributes:
        DEVELOPMENT: Local testing with mock collaborators
        PRODUCTION: Live environment backed by Firebase
        STAGING: Pre-production testing against a staging Firebase project
    """
    DEVELOPMENT = "development"
    PRODUCTION = "production"
    STAGING = "staging"


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings can be overridden via environment variables or .env file.
    Service account files and API keys should NEVER be committed to version control.

    Attributes:
        env_mode: Current environment (development/production/staging)
        debug: Enable verbose logging and error details

        # API Configuration
        api_host: Host to bind the API server
        api_port: Port for the API server
        app_base_url: Public URL used for share links

        # Firebase (Required in production)
        firebase_project_id: Firebase / Google Cloud project id
        firebase_credentials_path: Service account JSON file
        firebase_web_api_key: Web API key for password sign-in
        firebase_storage_bucket: Bucket holding restaurant images

        # Sharing
        qr_code_endpoint: External QR image endpoint, `{url}` is substituted
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ==========================================================================
    # ENVIRONMENT
    # ==========================================================================

    env_mode: EnvironmentMode = Field(
        default=EnvironmentMode.DEVELOPMENT,
        description="Application environment mode"
    )
    debug: bool = Field(
        default=False,
        description="Enable debug mode with verbose logging"
    )

    # ==========================================================================
    # APPLICATION
    # ==========================================================================

    app_name: str = Field(
        default="Foodz Restaurant Ordering",
        description="Application display name"
    )
    app_version: str = Field(
        default="1.0.0",
        description="Application version"
    )
    api_host: str = Field(
        default="0.0.0.0",
        description="API server host"
    )
    api_port: int = Field(
        default=8001,
        description="API server port"
    )
    app_base_url: str = Field(
        default="http://localhost:8080",
        description="Public base URL of the ordering frontend"
    )
    cors_origins: str = Field(
        default="*",
        description="Comma-separated list of allowed CORS origins"
    )

    # ==========================================================================
    # FIREBASE
    # ==========================================================================

    firebase_project_id: Optional[str] = Field(
        default=None,
        description="Firebase project id"
    )
    firebase_credentials_path: Optional[str] = Field(
        default=None,
        description="Path to the service account JSON file"
    )
    firebase_web_api_key: Optional[str] = Field(
        default=None,
        description="Firebase Web API key (Identity Toolkit sign-in)"
    )
    firebase_storage_bucket: Optional[str] = Field(
        default=None,
        description="Cloud Storage bucket (e.g. my-app.appspot.com)"
    )
    auth_request_timeout: float = Field(
        default=10.0,
        description="Seconds before an Identity Toolkit request times out"
    )

    # ==========================================================================
    # SHARING
    # ==========================================================================

    qr_code_endpoint: str = Field(
        default="https://chart.googleapis.com/chart?cht=qr&chs=300x300&chl={url}&choe=UTF-8",
        description="QR image endpoint; {url} is replaced by the encoded share link"
    )

    # ==========================================================================
    # VALIDATORS
    # ==========================================================================

    @field_validator("env_mode", mode="before")
    @classmethod
    def validate_env_mode(cls, v: str) -> EnvironmentMode:
        """Convert string to EnvironmentMode enum."""
        if isinstance(v, EnvironmentMode):
            return v
        try:
            return EnvironmentMode(v.lower())
        except ValueError:
            valid = [e.value for e in EnvironmentMode]
            raise ValueError(f"Invalid env_mode. Must be one of: {valid}")

    # ==========================================================================
    # COMPUTED PROPERTIES
    # ==========================================================================

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.env_mode == EnvironmentMode.DEVELOPMENT

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.env_mode == EnvironmentMode.PRODUCTION

    @property
    def is_staging(self) -> bool:
        """Check if running in staging mode."""
        return self.env_mode == EnvironmentMode.STAGING

    @property
    def use_real_services(self) -> bool:
        """Check if the real Firebase collaborators should be used."""
        return self.env_mode in (EnvironmentMode.PRODUCTION, EnvironmentMode.STAGING)

    @property
    def cors_origins_list(self) -> list[str]:
        """Get allowed CORS origins as a list."""
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    def qr_code_url(self, share_url: str) -> str:
        """Build the QR image URL for a share link."""
        return self.qr_code_endpoint.format(url=quote(share_url, safe=""))

    # ==========================================================================
    # VALIDATION METHODS
    # ==========================================================================

    def validate_production_config(self) -> list[str]:
        """
        Validate that all required production settings are configured.

        Returns:
            List of missing configuration keys (empty if all present)
        """
        missing = []

        if self.use_real_services:
            if not self.firebase_project_id:
                missing.append("FIREBASE_PROJECT_ID")
            if not self.firebase_web_api_key:
                missing.append("FIREBASE_WEB_API_KEY")
            if not self.firebase_storage_bucket:
                missing.append("FIREBASE_STORAGE_BUCKET")

        return missing


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached application settings.

    Settings are loaded only once so every collaborator factory sees the
    same configuration for the lifetime of the process.

    Returns:
        Settings: Configured application settings

    Example:
        >>> settings = get_settings()
        >>> print(settings.env_mode)
        EnvironmentMode.DEVELOPMENT
    """
    return Settings()


# =============================================================================
# LOGGING CONFIGURATION
# =============================================================================

def setup_logging(level: int = logging.INFO) -> logging.Logger:
    """
    Configure application-wide logging.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR)

    Returns:
        Configured root logger
    """
    settings = get_settings()

    if settings.debug:
        level = logging.DEBUG

    log_format = "%(asctime)s │ %(levelname)-8s │ %(name)-25s │ %(message)s"
    date_format = "%Y-%m-%d %H:%M:%S"

    logging.basicConfig(
        level=level,
        format=log_format,
        datefmt=date_format,
        handlers=[logging.StreamHandler(sys.stdout)],
    )

    # Reduce noise from third-party libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("google").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)

    return logging.getLogger("foodz")
