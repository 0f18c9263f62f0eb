import pytest
import structlog


@pytest.fixture(autouse=True)
def reset_logging():
    """The CLI binds structlog to the runner's stderr; unbind it after each test."""
    yield
    structlog.reset_defaults()
