"""Tests for configuration loading."""
import pytest
import tempfile
from pathlib import Path


SAMPLE_CONFIG = """
source:
  name: "fca"
  file_types:
    - "FULINS"
    - "dltins"

fetcher:
  cache_dir: "./cache"
  timeout_seconds: 30
  max_retries: 5
  backoff_seconds: 0.5
  max_backoff_seconds: 8

pipeline:
  max_concurrency: 2
  batch_size: 250
  error_threshold: 0.1

data_store:
  backend: "file"
  path: "./out"
"""

MINIMAL_CONFIG = """
source: {}

data_store:
  backend: "file"
  path: "./data"
"""


def write_config(content: str) -> str:
    f = tempfile.NamedTemporaryFile(mode="w", suffix=".yaml", delete=False)
    f.write(content)
    f.close()
    return f.name


def test_load_config_from_file():
    from firds.core.config import load_config
    from firds.models import FileType, FirdsSource

    config = load_config(write_config(SAMPLE_CONFIG))

    assert config.source.name is FirdsSource.FCA
    assert config.source.file_types == [FileType.FULINS, FileType.DLTINS]
    assert config.fetcher.cache_dir == "./cache"
    assert config.fetcher.timeout_seconds == 30.0
    assert config.fetcher.max_retries == 5
    assert config.fetcher.backoff_seconds == 0.5
    assert config.fetcher.max_backoff_seconds == 8.0
    assert config.pipeline.max_concurrency == 2
    assert config.pipeline.batch_size == 250
    assert config.pipeline.error_threshold == 0.1
    assert config.data_store.path == "./out"


def test_load_config_defaults():
    from firds.core.config import load_config
    from firds.models import FileType, FirdsSource

    config = load_config(write_config(MINIMAL_CONFIG))

    assert config.source.name is FirdsSource.ESMA
    assert config.source.file_types == [FileType.DLTINS]
    assert config.fetcher.max_retries == 3
    assert config.pipeline.max_concurrency == 4
    assert config.pipeline.error_threshold == 0.05


def test_load_config_file_not_found():
    from firds.core.config import load_config, ConfigError

    with pytest.raises(ConfigError, match="not found"):
        load_config("/nonexistent/config.yaml")


def test_load_config_invalid_yaml():
    from firds.core.config import load_config, ConfigError

    with pytest.raises(ConfigError, match="parse YAML"):
        load_config(write_config("source: [unclosed"))


def test_load_config_empty_file():
    from firds.core.config import load_config, ConfigError

    with pytest.raises(ConfigError, match="empty"):
        load_config(write_config(""))


def test_load_config_missing_section():
    from firds.core.config import load_config, ConfigError

    with pytest.raises(ConfigError, match="data_store"):
        load_config(write_config("source:\n  name: esma\n"))


def test_load_config_unknown_source():
    from firds.core.config import load_config, ConfigError

    content = MINIMAL_CONFIG.replace("source: {}", "source:\n  name: sec")
    with pytest.raises(ConfigError, match="Unknown source"):
        load_config(write_config(content))


def test_load_config_unknown_file_type():
    from firds.core.config import load_config, ConfigError

    content = MINIMAL_CONFIG.replace("source: {}", "source:\n  file_types: [XYZINS]")
    with pytest.raises(ConfigError, match="Unknown file type"):
        load_config(write_config(content))


def test_load_config_rejects_bad_threshold():
    from firds.core.config import load_config, ConfigError

    content = MINIMAL_CONFIG + "\npipeline:\n  error_threshold: 1.5\n"
    with pytest.raises(ConfigError, match="error_threshold"):
        load_config(write_config(content))


def test_default_config_file_loads():
    from firds.core.config import load_config

    path = Path(__file__).parents[2] / "config" / "default.yaml"
    config = load_config(str(path))

    assert config.data_store.backend == "file"
