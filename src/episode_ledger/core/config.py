"""Configuration management using Pydantic Settings."""

from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class StateConfig(BaseModel):
    """Where the series ledger lives on disk."""

    directory: str = str(Path.home() / ".episode-ledger" / "state")
    file_name: str = "media_state.json"

    @property
    def path(self) -> Path:
        return Path(self.directory) / self.file_name


class MetadataConfig(BaseModel):
    """OMDb metadata lookup settings."""

    omdb_api_key: Optional[str] = None
    base_url: str = "https://www.omdbapi.com"
    timeout: float = 30.0


class OutputConfig(BaseModel):
    """Where renamed episodes are placed."""

    output_dir: str = str(Path.home() / "Media" / "TV Shows")
    trash_folder: str = "_trash"
    move_retries: int = 3
    retry_delay_seconds: float = 2.0


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = "INFO"
    json_output: bool = False


class Settings(BaseSettings):
    """Main settings container."""

    model_config = SettingsConfigDict(
        env_prefix="LEDGER_",
        env_nested_delimiter="__",
    )

    state: StateConfig = Field(default_factory=StateConfig)
    metadata: MetadataConfig = Field(default_factory=MetadataConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @classmethod
    def from_yaml(cls, path: Path) -> "Settings":
        """Load settings from a YAML file."""
        import yaml

        with open(path) as f:
            data = yaml.safe_load(f)

        return cls(**data) if data else cls()
