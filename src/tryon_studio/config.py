from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError, field_validator


class GeminiConfig(BaseModel):
    """Settings required to call the Gemini image generation endpoint."""

    api_key: str = Field(..., min_length=1, description="Gemini API key")
    model: str = Field(
        default="gemini-2.5-flash-image-preview",
        description="Gemini model that accepts images and returns image parts",
    )
    api_url: str = Field(
        default="https://generativelanguage.googleapis.com/v1beta",
        description="Base URL of the Generative Language API",
    )
    timeout_seconds: float = Field(
        default=120.0,
        ge=1.0,
        le=600.0,
        description="Total timeout applied to a single generation request",
    )


class OutputConfig(BaseModel):
    """Where the command line front end writes rendered results."""

    root_dir: Path = Field(default_factory=lambda: Path("output"))


class AppConfig(BaseModel):
    """Top-level configuration consumed by the command line front end."""

    gemini: GeminiConfig
    output: OutputConfig = Field(default_factory=OutputConfig)
    log_level: str = Field(default="INFO", description="Root logging level")

    @field_validator("log_level")
    @classmethod
    def _normalize_level(cls, value: str) -> str:
        level = value.strip().upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {value}")
        return level


def _float_from_env(value: Optional[str], default: float) -> float:
    if value is None:
        return default
    try:
        return float(value)
    except ValueError as exc:
        raise RuntimeError(f"Invalid float value: {value}") from exc


def load_config(dotenv_path: str | Path | None = None) -> AppConfig:
    """
    Load configuration from environment variables (optionally seeded by a .env file).

    Parameters
    ----------
    dotenv_path:
        Optional override for the .env file location. Defaults to ``.env`` in the
        working directory.

    Raises
    ------
    RuntimeError
        If required configuration values are missing or invalid.
    """
    env_path = Path(dotenv_path) if dotenv_path else Path(".env")
    if env_path.exists():
        load_dotenv(env_path)

    data = {
        "gemini": {
            "api_key": os.getenv("GEMINI_API_KEY"),
            "model": os.getenv("GEMINI_MODEL", "gemini-2.5-flash-image-preview"),
            "api_url": os.getenv(
                "GEMINI_API_URL", "https://generativelanguage.googleapis.com/v1beta"
            ),
            "timeout_seconds": _float_from_env(os.getenv("GEMINI_TIMEOUT_SECONDS"), 120.0),
        },
        "output": {
            "root_dir": Path(os.getenv("OUTPUT_ROOT_DIR", "output")),
        },
        "log_level": os.getenv("TRYON_LOG_LEVEL", "INFO"),
    }

    try:
        return AppConfig.model_validate(data)
    except ValidationError as exc:
        invalid = {"/".join(str(part) for part in err["loc"]) for err in exc.errors()}
        invalid_str = ", ".join(sorted(invalid))
        raise RuntimeError(f"Missing configuration values: {invalid_str}") from exc
