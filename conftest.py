import pytest

from infrastructure.container import container


@pytest.fixture(autouse=True)
def reset_service_container():
    """Every test starts with fresh service and payment provider instances."""
    container.reset()
    yield
    container.reset()
