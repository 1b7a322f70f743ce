from pathlib import Path
from typing import Any

from pydantic import Field, field_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from wordmemory.application.scheduler import RetrievabilityBasis
from wordmemory.domain.constants import (
    DEFAULT_AUTO_BACKUP_INTERVAL_MS,
    DEFAULT_MAX_AUTO_BACKUPS,
    GITHUB_API_URL,
    GITHUB_VOCABULARY_PATH,
)


def config_dir() -> Path:
    return Path.home() / ".config/wordmemory"


class AppConfig(BaseSettings):
    """
    Configuration model for wordmemory.
    Supports loading from:
    1. Environment variables (WORDMEMORY_*)
    2. Config file (~/.config/wordmemory/config.toml)
    3. Manual overrides (CLI)
    """

    model_config = SettingsConfigDict(
        env_prefix="WORDMEMORY_",
        extra="ignore",
    )

    # Paths
    data_path: Path = Field(default_factory=lambda: config_dir() / "vocabulary.json")
    backup_dir: Path = Field(default_factory=lambda: config_dir() / "backups")

    # Backups
    auto_backup: bool = True
    max_auto_backups: int = Field(default=DEFAULT_MAX_AUTO_BACKUPS, ge=1)
    auto_backup_interval_ms: int = Field(default=DEFAULT_AUTO_BACKUP_INTERVAL_MS, gt=0)

    # Scheduler
    retrievability_basis: RetrievabilityBasis = RetrievabilityBasis.UPDATED

    # GitHub sync
    github_owner: str | None = None
    github_repo: str | None = None
    github_path: str = GITHUB_VOCABULARY_PATH
    github_token: str | None = None
    github_api_url: str = GITHUB_API_URL

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

        # Earlier sources win: CLI overrides, then env, then the TOML file
        toml_file = config_dir() / "config.toml"
        if toml_file.exists():
            return (
                init_settings,
                env_settings,
                TomlConfigSettingsSource(settings_cls, toml_file=toml_file),
            )
        return (
            init_settings,
            env_settings,
        )

    @field_validator("data_path", "backup_dir", mode="before")
    @classmethod
    def expand_path(cls, v: Any) -> Path:
        return Path(v).expanduser()


def resolve_config(cli_overrides: dict[str, Any] | None = None) -> AppConfig:
    """
    Multi-layered configuration resolution.
    1. Defaults in AppConfig
    2. ~/.config/wordmemory/config.toml (if exists)
    3. Environment variables (WORDMEMORY_*)
    4. cli_overrides (passed from Typer)
    """
    # Typer passes None for options the user did not set; drop them so lower layers apply.
    overrides = {k: v for k, v in (cli_overrides or {}).items() if v is not None}
    return AppConfig(**overrides)
