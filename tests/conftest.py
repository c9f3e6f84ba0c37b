"""Shared pytest fixtures and configuration."""

from collections.abc import Callable, Iterator

import pytest

from gangsheet.config import Settings
from gangsheet.store import DesignFile, GangBuilderStore
from gangsheet.utils.logging import clear_correlation_context, configure_logging


@pytest.fixture(autouse=True)
def reset_logging_context() -> Iterator[None]:
    """Reset correlation context between tests."""
    clear_correlation_context()
    yield
    clear_correlation_context()


@pytest.fixture
def test_settings() -> Settings:
    """Create a Settings instance with test-safe defaults."""
    return Settings(
        _env_file=None,  # type: ignore[call-arg]
        LOG_LEVEL="DEBUG",
        LOG_FORMAT="console",
        CHECKOUT_URL="https://shop.example.test/api/orders",
        CHECKOUT_MAX_RETRIES=3,
    )


@pytest.fixture
def configure_test_logging() -> Iterator[None]:
    """Configure logging for tests with console output."""
    configure_logging(level="DEBUG", log_format="console")
    yield


@pytest.fixture
def id_factory() -> Callable[[str], str]:
    """Deterministic ids: design_1, instance_1, instance_2, ..."""
    counters: dict[str, int] = {}

    def make(prefix: str) -> str:
        counters[prefix] = counters.get(prefix, 0) + 1
        return f"{prefix}_{counters[prefix]}"

    return make


@pytest.fixture
def store(test_settings: Settings, id_factory: Callable[[str], str]) -> GangBuilderStore:
    """Empty store on the default 22x12 sheet."""
    return GangBuilderStore(test_settings, id_factory=id_factory)


@pytest.fixture
def add_design(store: GangBuilderStore) -> Callable[..., DesignFile]:
    """Add a design of a given physical size to the store."""

    def add(width_in: float = 4.0, height_in: float = 4.0, name: str = "art.png") -> DesignFile:
        design = store.add_design_file(
            {
                "name": name,
                "image_data": "data:image/png;base64,AAAA",
                "natural_width_px": max(1, round(width_in * 300)),
                "natural_height_px": max(1, round(height_in * 300)),
                "width_in": width_in,
                "height_in": height_in,
            }
        )
        assert design is not None
        return design

    return add
