"""Configuration management.

Loads from TOML config files + environment variables.
Uses pydantic-settings for validation and env var overriding.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings

from .errors import ConfigError

if TYPE_CHECKING:
    from plan_ledger.domain.lifecycle import LifecyclePolicy


# ---------------------------------------------------------------------------
# Sub-configs
# ---------------------------------------------------------------------------

class LifecycleConfig(BaseModel):
    allow_retire_unlaunched: bool = True  # NotLaunched -> Retired(at, at)
    allow_relaunch_retired: bool = True  # Retired -> Launched(at)
    inclusive_bounds: bool = True  # at == now counts as active

    def to_policy(self) -> LifecyclePolicy:
        from plan_ledger.domain.lifecycle import LifecyclePolicy

        return LifecyclePolicy(
            allow_retire_unlaunched=self.allow_retire_unlaunched,
            allow_relaunch_retired=self.allow_relaunch_retired,
            inclusive_bounds=self.inclusive_bounds,
        )


class BusConfig(BaseModel):
    record_history: bool = True
    event_log_enabled: bool = True


class ObservabilityConfig(BaseModel):
    log_level: str = "INFO"
    log_format: str = "console"  # "json" or "console"


# ---------------------------------------------------------------------------
# Top-level settings
# ---------------------------------------------------------------------------

class Settings(BaseSettings):
    """Top-level application settings.

    Loaded from TOML config files, overridden by environment variables.
    """

    lifecycle: LifecycleConfig = Field(default_factory=LifecycleConfig)
    bus: BusConfig = Field(default_factory=BusConfig)
    observability: ObservabilityConfig = Field(default_factory=ObservabilityConfig)

    model_config = {"env_prefix": "PLAN_LEDGER_", "env_nested_delimiter": "__"}


def load_settings(
    config_path: str | Path | None = None,
    overrides: dict[str, Any] | None = None,
) -> Settings:
    """Load settings from TOML file + env vars.

    Args:
        config_path: Path to TOML config file (optional).
        overrides: Dict of overrides to apply on top.

    Raises:
        ConfigError: If ``config_path`` is given but missing or unparsable.
    """
    data: dict[str, Any] = {}

    if config_path:
        path = Path(config_path)
        if not path.exists():
            raise ConfigError(f"Config file not found: {path}")

        import tomli

        try:
            with open(path, "rb") as f:
                data = tomli.load(f)
        except tomli.TOMLDecodeError as exc:
            raise ConfigError(f"Invalid TOML in {path}: {exc}") from exc

    if overrides:
        data.update(overrides)

    return Settings(**data)
