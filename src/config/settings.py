# src/config/settings.py — v1
"""Typed configuration loaded from .env via pydantic-settings.

Single source of truth for tool locations, tool options, build state and
logging. Environment variables use the FILABUILD_ prefix
(e.g. FILABUILD_TOOLS_DIR).
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ConfigurationError(Exception):
    """Raised when configuration is internally inconsistent."""


class Settings(BaseSettings):
    """Application settings loaded from .env file."""

    model_config = SettingsConfigDict(
        env_prefix="FILABUILD_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # === Tools ===
    tools_dir: Path = Path("out/release/filament")
    matc_path: Path | None = None
    cmgen_path: Path | None = None
    filamesh_path: Path | None = None
    tool_timeout_seconds: float | None = None

    # === Tool options ===
    material_profile: Literal["mobile", "desktop", "all"] = "mobile"
    ibl_format: Literal["rgbm", "rgb32f", "png", "hdr", "exr", "psd", "ktx", "dds"] = "rgbm"
    ibl_blur: float = 0.08

    # === Build state ===
    state_dir: Path = Path(".filabuild/state")
    max_workers: int = 1

    # === Logging ===
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["json", "text"] = "text"
    log_file: Path | None = None
    log_rotation: str = "10MB"
    log_retention: int = 5

    # --- Validators ---

    @field_validator("max_workers")
    @classmethod
    def validate_max_workers(cls, v: int) -> int:  # noqa: N805
        if v < 1:
            raise ValueError("max_workers must be >= 1")
        return v

    @field_validator("ibl_blur")
    @classmethod
    def validate_ibl_blur(cls, v: float) -> float:  # noqa: N805
        if not 0.0 < v <= 1.0:
            raise ValueError("ibl_blur must be in (0, 1]")
        return v

    @model_validator(mode="after")
    def validate_config_consistency(self) -> Settings:
        """Validate cross-field consistency rules."""
        errors: list[str] = []

        if self.tool_timeout_seconds is not None and self.tool_timeout_seconds <= 0:
            errors.append("TOOL_TIMEOUT_SECONDS must be > 0 when set")

        if self.log_retention < 0:
            errors.append("LOG_RETENTION must be >= 0")

        if errors:
            raise ConfigurationError("; ".join(errors))

        return self

    # --- Helpers ---

    def tool_path(self, tool_name: str) -> Path:
        """Resolve a tool binary: explicit override, else <tools_dir>/bin/<tool>."""
        override = getattr(self, f"{tool_name}_path", None)
        if override is not None:
            return Path(override).expanduser()
        return Path(self.tools_dir).expanduser() / "bin" / tool_name


def load_settings(**overrides: object) -> Settings:
    """Load settings from .env with optional overrides.

    Args:
        **overrides: Field-level overrides (for testing or CLI flags).

    Returns:
        Validated Settings instance.

    Raises:
        ConfigurationError: If configuration is internally inconsistent.
    """
    return Settings(**overrides)  # type: ignore[arg-type]
