"""Configuration management for the distribution service."""
from pathlib import Path
from typing import List, Optional

import yaml
from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings

# Load .env from project root (parent of the distribution package)
env_path = Path(__file__).parent.parent / ".env"
if env_path.exists():
    load_dotenv(env_path)


class AssemblyConfig(BaseSettings):
    """Distribution tree assembly configuration."""
    output_root: Path = Field(default=Path("./out"), description="Directory the tree is written into")
    api_version: str = Field(default="v1", description="Published API version segment")
    supported_countries: List[str] = Field(default_factory=lambda: ["DE"], description="Country codes to publish")
    max_workers: int = Field(default=4, description="Threads used to write files (<=1 writes sequentially)")
    reference_hour: Optional[int] = Field(
        default=None,
        description="Fixed completeness cut-off in hours since epoch (default: derived from keys and clock)",
    )

    class Config:
        env_prefix = "DIST_"


class SigningConfig(BaseSettings):
    """Export signing configuration."""
    secret: str = Field(default="", description="Shared secret for HMAC signing")
    algorithm: str = Field(default="HMAC-SHA256", description="HMAC-SHA256 or HMAC-SHA512")

    class Config:
        env_prefix = "SIGNING_"

    @property
    def is_configured(self) -> bool:
        return bool(self.secret)


class DatabaseConfig(BaseSettings):
    """Export batch bookkeeping database configuration."""
    url: str = Field(default="sqlite:///./distribution.db", description="Database connection URL")
    echo: bool = Field(default=False, description="Echo SQL queries")

    class Config:
        env_prefix = "DB_"


class AppConfig(BaseSettings):
    """Application configuration."""
    log_level: str = Field(default="INFO", description="Logging level")
    log_json: bool = Field(default=False, description="Emit JSON log lines")
    log_file: Optional[str] = Field(default=None, description="Optional log file path")

    class Config:
        env_prefix = "APP_"


class Settings:
    """Application settings."""
    def __init__(self):
        self.assembly = AssemblyConfig()
        self.signing = SigningConfig()
        self.database = DatabaseConfig()
        self.app = AppConfig()

    @classmethod
    def load_from_yaml(cls, config_path: Optional[Path] = None) -> "Settings":
        """Load configuration from YAML file."""
        if config_path is None:
            config_path = Path(__file__).parent.parent / "config" / "distribution.yaml"

        settings = cls()

        if config_path.exists():
            with open(config_path, 'r') as f:
                config_data = yaml.safe_load(f) or {}

            if 'assembly' in config_data:
                settings.assembly = AssemblyConfig(**config_data['assembly'])
            if 'database' in config_data:
                settings.database = DatabaseConfig(**config_data['database'])
            if 'app' in config_data:
                settings.app = AppConfig(**config_data['app'])
            if 'signing' in config_data:
                # Secrets come from env only:
                #   SIGNING_SECRET=...
                signing_cfg = dict(config_data.get("signing") or {})
                signing_cfg.pop("secret", None)
                settings.signing = SigningConfig(**signing_cfg)

        return settings
