from pathlib import Path
from typing import Any, Literal

from pydantic import Field, field_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from lingocards.domain.constants import (
    DEFAULT_DAILY_GOAL,
    SECONDS_PER_CARD,
    STATS_WINDOW_DAYS,
)

from .daily_goal import validate_goal


class AppConfig(BaseSettings):
    """
    Configuration model for lingocards.
    Supports loading from:
    1. Environment variables (LINGOCARDS_*)
    2. Config file (~/.config/lingocards/config.toml)
    3. Manual overrides (CLI)
    """

    model_config = SettingsConfigDict(
        env_prefix="LINGOCARDS_",
        extra="ignore",
    )

    # Storage
    backend: Literal["sqlite", "memory"] = "sqlite"
    db_path: Path = Field(
        default_factory=lambda: Path.home() / ".local/share/lingocards/lingocards.db"
    )
    log_dir: Path = Field(default_factory=lambda: Path.home() / ".config/lingocards/logs")

    # Study
    daily_goal: int = DEFAULT_DAILY_GOAL
    rating_buttons: Literal["four", "two"] = "four"
    shuffle_seed: int | None = None

    # Statistics
    seconds_per_card: int = SECONDS_PER_CARD
    stats_window_days: int = STATS_WINDOW_DAYS

    verbose: int = 1

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        from pydantic_settings import TomlConfigSettingsSource

        toml_file = next((f for f in config_files() if f.exists()), None)

        # Init (CLI) wins over env, env wins over the file.
        if toml_file:
            return (
                init_settings,
                env_settings,
                TomlConfigSettingsSource(settings_cls, toml_file=toml_file),
            )
        return (init_settings, env_settings)

    @field_validator("daily_goal")
    @classmethod
    def check_daily_goal(cls, v: int) -> int:
        return validate_goal(v)

    @field_validator("db_path", mode="before")
    @classmethod
    def resolve_db_path(cls, v: Any) -> Path:
        return Path(v).expanduser()

    @field_validator("seconds_per_card", "stats_window_days")
    @classmethod
    def check_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("must be at least 1")
        return v


def config_files() -> list[Path]:
    # Resolved lazily so tests can point HOME somewhere else.
    home = Path.home()
    return [home / ".config/lingocards/config.toml", home / ".lingocards.toml"]


def resolve_config(cli_overrides: dict[str, Any] | None = None) -> AppConfig:
    """
    Multi-layered configuration resolution.
    1. Defaults in AppConfig
    2. ~/.config/lingocards/config.toml (if exists)
    3. Environment variables (LINGOCARDS_*)
    4. cli_overrides (None values are ignored)
    """
    overrides = {k: v for k, v in (cli_overrides or {}).items() if v is not None}
    return AppConfig(**overrides)
