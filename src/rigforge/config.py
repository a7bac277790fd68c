"""Application configuration with pydantic-settings + TOML."""

from __future__ import annotations

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict, TomlConfigSettingsSource


def _default_config_dir() -> Path:
    return Path.home() / ".rigforge"


def _default_assets_dir() -> Path:
    return _default_config_dir() / "gdd-assets"


class StoreSettings(BaseSettings):
    """Where asset metadata documents live on disk."""

    assets_dir: Path = Field(default_factory=_default_assets_dir)
    metadata_filename: str = "metadata.json"
    lock_timeout: float = Field(default=30.0, gt=0.0)


class RiggingSettings(BaseSettings):
    """Rigging job timing and defaults."""

    # 60 polls x 5 s in the generation pipeline; 0 disables deadlines.
    processing_timeout: float = Field(default=300.0, ge=0.0)
    sweep_interval: float = Field(default=5.0, gt=0.0)
    default_compatibility: list[str] = Field(
        default_factory=lambda: ["mixamo", "unity", "unreal"],
    )


class ServerSettings(BaseSettings):
    """Stats server bind configuration."""

    host: str = "localhost"
    http_port: int = Field(default=8765, ge=1, le=65535)
    ws_port: int = Field(default=8766, ge=1, le=65535)

    @property
    def stats_url(self) -> str:
        return f"http://{self.host}:{self.http_port}/api/stats"

    @property
    def ws_url(self) -> str:
        return f"ws://{self.host}:{self.ws_port}"


class AppConfig(BaseSettings):
    """Root application configuration."""

    model_config = SettingsConfigDict(
        env_prefix="RIGFORGE_",
        env_nested_delimiter="__",
    )

    config_dir: Path = Field(default_factory=_default_config_dir)
    store: StoreSettings = Field(default_factory=StoreSettings)
    rigging: RiggingSettings = Field(default_factory=RiggingSettings)
    server: ServerSettings = Field(default_factory=ServerSettings)

    @classmethod
    def settings_customise_sources(cls, settings_cls, **kwargs):  # type: ignore[override]
        toml_path = _default_config_dir() / "config.toml"
        sources = (
            kwargs.get("init_settings"),
            kwargs.get("env_settings"),
        )
        if toml_path.exists():
            sources = (*sources, TomlConfigSettingsSource(settings_cls, toml_file=toml_path))
        return (*sources, kwargs.get("dotenv_settings"), kwargs.get("file_secret_settings"))

    def ensure_dirs(self) -> None:
        """Create the asset directory if it doesn't exist."""
        self.store.assets_dir.mkdir(parents=True, exist_ok=True)


def load_config(assets_dir: Path | None = None) -> AppConfig:
    """Load application config, creating the asset directory if needed.

    ``assets_dir`` overrides the configured ``store.assets_dir``.
    """
    config = AppConfig()
    if assets_dir is not None:
        config.store.assets_dir = assets_dir
    config.ensure_dirs()
    return config
