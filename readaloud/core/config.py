from dataclasses import dataclass, field
from typing import Optional

from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from readaloud.core.exceptions import ConfigurationError

PLAIN_TEXT = "text/plain"
PDF = "application/pdf"
DOCX = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"

ENV_PREFIX = "READALOUD_"

@dataclass
class LoggingConfig:
    level: str = "INFO"
    format: str = "json"

@dataclass
class ChunkingConfig:
    max_length: int = 160
    min_text_length: int = 5

@dataclass
class VoiceConfig:
    language: str = "en-US"
    voice: Optional[str] = None
    rate: float = 1.0
    volume: float = 1.0

@dataclass
class EngineConfig:
    driver_name: Optional[str] = None # None lets pyttsx3 pick the platform driver
    base_words_per_minute: int = 200
    poll_interval: float = 0.05

@dataclass
class UploadConfig:
    host: str = "127.0.0.1"
    port: int = 3000
    upload_dir: str = "uploads"
    max_size: int = 100 * 1024 * 1024
    allowed_types: list[str] = field(default_factory=lambda: [PLAIN_TEXT, PDF, DOCX])
    endpoint: str = "http://127.0.0.1:3000/upload"
    timeout_seconds: int = 120

class EnvironmentSettings(BaseSettings):
    """READALOUD_* environment overrides; unset variables leave the defaults alone."""

    model_config = SettingsConfigDict(env_prefix=ENV_PREFIX, env_ignore_empty=True, extra="ignore")

    log_level: Optional[str] = None
    log_format: Optional[str] = None
    language: Optional[str] = None
    rate: Optional[float] = None
    max_chunk_length: Optional[int] = Field(default=None, ge=1)
    host: Optional[str] = None
    port: Optional[int] = Field(default=None, ge=0, le=65535)
    upload_dir: Optional[str] = None
    upload_endpoint: Optional[str] = None

@dataclass
class Config:
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    chunking: ChunkingConfig = field(default_factory=ChunkingConfig)
    voice: VoiceConfig = field(default_factory=VoiceConfig)
    engine: EngineConfig = field(default_factory=EngineConfig)
    upload: UploadConfig = field(default_factory=UploadConfig)

    @classmethod
    def load(cls) -> "Config":
        """Build the default configuration, then apply READALOUD_* environment overrides."""
        try:
            env = EnvironmentSettings()
        except ValidationError as e:
            fields = ", ".join(ENV_PREFIX + str(err["loc"][0]).upper() for err in e.errors())
            raise ConfigurationError(f"Invalid value for {fields}") from e

        config = cls()
        if env.log_level is not None:
            config.logging.level = env.log_level.upper()
        if env.log_format is not None:
            config.logging.format = env.log_format
        if env.language is not None:
            config.voice.language = env.language
        if env.rate is not None:
            config.voice.rate = env.rate
        if env.max_chunk_length is not None:
            config.chunking.max_length = env.max_chunk_length
        if env.host is not None:
            config.upload.host = env.host
        if env.port is not None:
            config.upload.port = env.port
        if env.upload_dir is not None:
            config.upload.upload_dir = env.upload_dir
        if env.upload_endpoint is not None:
            config.upload.endpoint = env.upload_endpoint
        return config
