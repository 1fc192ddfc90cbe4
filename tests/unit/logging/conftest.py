import pytest

from compilefarm.logging.config.logging_config import LoggingConfig


@pytest.fixture
def temp_log_directory(tmp_path) -> str:
    return str(tmp_path)


@pytest.fixture
def quiet_logging():
    config = LoggingConfig()
    config.update(log_level="error")
    yield config
    config.update(log_level="debug")
