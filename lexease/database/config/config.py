"""
Configuration: Pydantic v2 Settings (env / .env)
================================================

Purpose
-------
Centralized, strongly-typed application configuration using:
- Pydantic v2 `BaseSettings` for environment-driven values
- `pydantic-settings` v2 for `.env` loading and model config

Load Order & Behavior
---------------------
- Values are read from the environment; if not present, `.env` is used.
- Every field has a default suited to local development (SQLite, static
  template catalog). Production deployments override them through the
  environment.
- `extra="ignore"`: unknown env vars are ignored (not an error).

Usage
-----
from lexease.database.config.config import settings

db_driver = settings.DB_DRIVER_NAME
openai_model = settings.OPEN_AI_MODEL

Security
--------
- Never commit secrets or the `.env` file to source control.
- `SECRET_KEY` must be overridden outside of local development.
"""

from typing import Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application configuration settings loaded from environment variables
    or a `.env` file. Provides strongly typed access to environment values.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # LLM
    API_KEY: str = Field("", description="OpenAI API key used by the chat model.")
    OPEN_AI_MODEL: str = Field("gpt-4o-mini", description="OpenAI chat model name.")
    LLM_TEMPERATURE: float = Field(0.2, description="Sampling temperature for analysis and Q&A calls.")
    LLM_TIMEOUT_SECONDS: float = Field(120.0, description="Per-request timeout handed to the chat client.")
    OCR_ENABLED: bool = Field(True, description="Send images and text-less PDFs to the model for transcription.")

    # HTTP
    FRONTEND_URL: str = Field("http://localhost:3000", description="Allowed CORS origin of the frontend.")
    MAX_UPLOAD_BYTES: int = Field(16 * 1024 * 1024, description="Largest accepted upload, in bytes.")

    # Database
    DB_DRIVER_NAME: str = Field("sqlite", description="SQLAlchemy driver (e.g., `postgresql+psycopg2`, `sqlite`).")
    DB_USERNAME: Optional[str] = Field(None, description="Database username credential.")
    DB_PASSWORD: Optional[str] = Field(None, description="Database password credential.")
    DB_HOST: Optional[str] = Field(None, description="Hostname or IP address of the database server.")
    DB_PORT: Optional[int] = Field(None, description="Port of the database server.")
    DB_DATABASE_NAME: str = Field("lexease.db", description="Database name, or file path for SQLite.")
    INIT_MODE: str = Field("runtime", description="`runtime` creates missing tables during app startup.")

    # Auth
    SECRET_KEY: str = Field("change-me", description="Key used to verify signed access tokens.")
    ALGORITHM: str = Field("HS256", description="JWT signing algorithm.")
    ACCESS_TOKEN_EXPIRE_MINUTES: int = Field(60, description="Lifetime of issued access tokens, in minutes.")

    # Drafting templates
    TEMPLATE_SOURCE: Literal["static", "s3"] = Field("static", description="Where drafting templates are looked up.")
    AWS_ACCESS_KEY: Optional[str] = Field(None, description="AWS access key ID.")
    AWS_SECRET_KEY: Optional[str] = Field(None, description="AWS secret access key.")
    REGION: str = Field("eu-central-1", description="AWS region name.")
    BUCKET_NAME: str = Field("legal-drafts", description="Bucket holding `{language}/{Document_Type}.{ext}` templates.")

    LOG_LEVEL: str = Field("INFO", description="Root logging level.")


settings = Settings()
"""Defines a Settings object that contains the contents of the environment / `.env` file"""
