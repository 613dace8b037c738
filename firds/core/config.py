"""Configuration loading and validation."""
import logging
from dataclasses import dataclass, field
from pathlib import Path

import yaml

from firds.models import FileType, FirdsSource

logger = logging.getLogger(__name__)


class ConfigError(Exception):
    """Raised when configuration is invalid."""

    pass


@dataclass
class SourceConfig:
    """Which regulator to ingest from and which publication types."""

    name: FirdsSource = FirdsSource.ESMA
    file_types: list[FileType] = field(default_factory=lambda: [FileType.DLTINS])


@dataclass
class FetcherConfig:
    """Download and cache configuration."""

    cache_dir: str = "./data/cache"
    timeout_seconds: float = 60.0
    max_retries: int = 3
    backoff_seconds: float = 1.0
    max_backoff_seconds: float = 30.0


@dataclass
class PipelineConfig:
    """Pipeline configuration."""

    max_concurrency: int = 4
    batch_size: int = 1000
    error_threshold: float = 0.05


@dataclass
class DataStoreConfig:
    """Data store configuration."""

    backend: str
    path: str


@dataclass
class Config:
    """Main configuration container."""

    source: SourceConfig
    data_store: DataStoreConfig
    fetcher: FetcherConfig = field(default_factory=FetcherConfig)
    pipeline: PipelineConfig = field(default_factory=PipelineConfig)


def _parse_source(raw: dict) -> SourceConfig:
    try:
        name = FirdsSource(str(raw.get("name", "esma")).lower())
    except ValueError as e:
        raise ConfigError(f"Unknown source: {raw.get('name')}") from e

    file_types = []
    for value in raw.get("file_types", ["DLTINS"]):
        try:
            file_types.append(FileType(str(value).upper()))
        except ValueError as e:
            raise ConfigError(f"Unknown file type: {value}") from e

    return SourceConfig(name=name, file_types=file_types)


def load_config(path: str) -> Config:
    """Load configuration from YAML file.

    Args:
        path: Path to YAML configuration file

    Returns:
        Config object with validated configuration

    Raises:
        ConfigError: If file not found, invalid YAML, or missing required fields
    """
    config_path = Path(path)

    if not config_path.exists():
        raise ConfigError(f"Configuration file not found: {path}")

    try:
        with open(config_path) as f:
            raw = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Failed to parse YAML: {e}") from e

    if raw is None:
        raise ConfigError("Configuration file is empty")

    # Validate required sections
    required_sections = ["source", "data_store"]
    for section in required_sections:
        if section not in raw:
            raise ConfigError(f"Missing required configuration section: {section}")

    source = _parse_source(raw["source"] or {})

    ds_raw = raw["data_store"] or {}
    data_store = DataStoreConfig(
        backend=ds_raw.get("backend", "file"),
        path=ds_raw.get("path", "./data/output"),
    )

    fetch_raw = raw.get("fetcher") or {}
    fetcher = FetcherConfig(
        cache_dir=fetch_raw.get("cache_dir", "./data/cache"),
        timeout_seconds=float(fetch_raw.get("timeout_seconds", 60.0)),
        max_retries=int(fetch_raw.get("max_retries", 3)),
        backoff_seconds=float(fetch_raw.get("backoff_seconds", 1.0)),
        max_backoff_seconds=float(fetch_raw.get("max_backoff_seconds", 30.0)),
    )

    pipe_raw = raw.get("pipeline") or {}
    pipeline = PipelineConfig(
        max_concurrency=int(pipe_raw.get("max_concurrency", 4)),
        batch_size=int(pipe_raw.get("batch_size", 1000)),
        error_threshold=float(pipe_raw.get("error_threshold", 0.05)),
    )

    if pipeline.max_concurrency < 1:
        raise ConfigError("pipeline.max_concurrency must be at least 1")
    if not 0.0 <= pipeline.error_threshold <= 1.0:
        raise ConfigError("pipeline.error_threshold must be between 0 and 1")

    config = Config(
        source=source,
        data_store=data_store,
        fetcher=fetcher,
        pipeline=pipeline,
    )

    logger.info(f"Loaded configuration from {path}")
    logger.debug(f"Source: {source.name.value}, file types={[t.value for t in source.file_types]}")
    logger.debug(f"Pipeline: concurrency={pipeline.max_concurrency}, error_threshold={pipeline.error_threshold}")

    return config
