"""SheetPilot — Engine configuration.

Configuration is loaded from (in order of increasing priority):
    1. Built-in defaults (this file)
    2. Environment variables prefixed with SHEETPILOT_
       (nested keys use ``__``, e.g. ``SHEETPILOT_ENGINE__SESSION_TIMEOUT_SECONDS``)
    3. User config:   ~/.sheetpilot/config.yaml
    4. An explicit config file passed to ``Settings.load()``

File values are passed as init arguments, so a section present in a file
replaces the environment value for that section.

Call ``Settings.load()`` once at startup, or use ``get_settings()``.
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated, Literal

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from sheetpilot.protocol.models import CompletionPolicy

# ---------------------------------------------------------------------------
# Sub-configuration blocks
# ---------------------------------------------------------------------------


class EngineConfig(BaseModel):
    completion_policy: CompletionPolicy = CompletionPolicy.CONTINUE_ON_FAILURE
    session_timeout_seconds: Annotated[float, Field(gt=0)] | None = Field(
        default=None,
        description=(
            "Stop dispatching new actions once a batch has run this long. "
            "An action already in flight is never interrupted."
        ),
    )
    sparkline_soft_limit: Annotated[int, Field(ge=1, le=100_000)] = Field(
        default=100,
        description="Sparklines per sheet above which a warning is attached to the outcome.",
    )
    max_image_bytes: Annotated[int, Field(ge=1024)] = Field(
        default=5 * 1024 * 1024,
        description="Largest decoded image payload accepted by insertImage.",
    )


class DocumentConfig(BaseModel):
    api_level: str = Field(
        default="1.18",
        description="API requirement-set level reported by the in-memory document.",
    )
    default_sheet: str = "Sheet1"

    @field_validator("api_level")
    @classmethod
    def check_api_level(cls, v: str) -> str:
        from packaging.version import InvalidVersion, Version

        try:
            Version(v)
        except InvalidVersion as exc:
            raise ValueError(f"api_level must look like '1.8', got {v!r}") from exc
        return v


class DiagnosticsConfig(BaseModel):
    max_entries: Annotated[int, Field(ge=1, le=10_000)] = 100
    debug: bool = False


class LoggingConfig(BaseModel):
    level: Literal["debug", "info", "warning", "error", "critical"] = "warning"
    format: Literal["json", "console"] = "console"
    file: Path | None = None


# ---------------------------------------------------------------------------
# Root settings
# ---------------------------------------------------------------------------


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="SHEETPILOT_",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    engine: EngineConfig = Field(default_factory=EngineConfig)
    document: DocumentConfig = Field(default_factory=DocumentConfig)
    diagnostics: DiagnosticsConfig = Field(default_factory=DiagnosticsConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @classmethod
    def load(cls, config_file: Path | None = None) -> "Settings":
        """Load settings from file + environment variables."""
        data: dict[str, object] = {}

        candidates = [Path.home() / ".sheetpilot" / "config.yaml"]
        if config_file:
            candidates.append(config_file)

        for path in candidates:
            if path.exists():
                import yaml

                with path.open() as f:
                    loaded = yaml.safe_load(f) or {}
                    data.update(loaded)

        return cls(**data)


_settings: Settings | None = None


def get_settings() -> Settings:
    global _settings
    if _settings is None:
        _settings = Settings.load()
    return _settings


def override_settings(settings: Settings | None) -> None:
    """Replace the module-level singleton. Used in tests."""
    global _settings
    _settings = settings
