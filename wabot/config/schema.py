"""Configuration schema using Pydantic."""

from pathlib import Path

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings


class BridgeConfig(BaseModel):
    """WhatsApp bridge connection."""
    url: str = "ws://localhost:3001"  # WebSocket exposed by the Node.js bridge
    reconnect_delay: float = 5.0  # Seconds to wait before reconnecting


class StorageConfig(BaseModel):
    """Content directory for stored media and the pairing QR code."""
    data_dir: str = "~/.wabot/data"


class WebConfig(BaseModel):
    """HTTP server configuration."""
    enabled: bool = True
    host: str = "0.0.0.0"
    port: int = 3000


class FetchConfig(BaseModel):
    """Remote fetcher used by !dl."""
    timeout: float | None = None  # None = wait as long as the server does


class Config(BaseSettings):
    """Root configuration for wabot."""
    bridge: BridgeConfig = Field(default_factory=BridgeConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    web: WebConfig = Field(default_factory=WebConfig)
    fetch: FetchConfig = Field(default_factory=FetchConfig)
    log_level: str = "INFO"

    @property
    def data_path(self) -> Path:
        """Get expanded content directory path."""
        return Path(self.storage.data_dir).expanduser()

    @classmethod
    def settings_customise_sources(
        cls, settings_cls, init_settings, env_settings, dotenv_settings, file_secret_settings
    ):
        # Environment beats the config file, which arrives as init kwargs.
        return env_settings, dotenv_settings, init_settings, file_secret_settings

    class Config:
        env_prefix = "WABOT_"
        env_nested_delimiter = "__"
        env_file = ".env"
        extra = "ignore"
