"""Shared pytest fixtures for Studiogen tests."""

import os
import random
import shutil
import tempfile
from pathlib import Path
from typing import Any, Generator

import pytest
from fastapi.testclient import TestClient

# The global ``config`` is built on first import of studiogen.core.config and
# creates its data directory.  Keep it out of the working tree.
if "STUDIOGEN_DATA_DIR" not in os.environ:
    os.environ["STUDIOGEN_DATA_DIR"] = tempfile.mkdtemp(prefix="studiogen-test-data-")

from studiogen.core.config import StudiogenConfig  # noqa: E402
from studiogen.core.history_store import HistoryStore  # noqa: E402
from studiogen.core.rate_limiter import FixedWindowRateLimiter  # noqa: E402
from studiogen.core.service import GenerationService  # noqa: E402
from studiogen.core.upstream import ImageGateway  # noqa: E402


class FakeClock:
    """Controllable replacement for ``time.monotonic``."""

    def __init__(self, start: float = 1_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class StubGateway(ImageGateway):
    """Image gateway that records payloads instead of calling a provider.

    Args:
        image_url: URL returned on success.
        configured: Value of the ``configured`` property.
        error: Exception raised from ``generate`` instead of returning.
    """

    def __init__(
        self,
        image_url: str = "https://cdn.example.com/generated/1.png",
        *,
        configured: bool = True,
        error: Exception | None = None,
    ) -> None:
        self.image_url = image_url
        self._configured = configured
        self.error = error
        self.calls: list[dict[str, Any]] = []

    @property
    def configured(self) -> bool:
        return self._configured

    async def generate(self, payload: dict[str, Any]) -> str:
        self.calls.append(payload)
        if self.error is not None:
            raise self.error
        return self.image_url


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files.

    Yields:
        Path to temporary directory

    Cleanup:
        Directory is removed after test completes
    """
    temp_path = Path(tempfile.mkdtemp())
    try:
        yield temp_path
    finally:
        shutil.rmtree(temp_path, ignore_errors=True)


@pytest.fixture
def test_config(temp_dir: Path) -> StudiogenConfig:
    """Create a test configuration with a temporary data directory.

    Args:
        temp_dir: Temporary directory from fixture

    Returns:
        StudiogenConfig instance for testing
    """
    return StudiogenConfig(
        _env_file=None,
        fal_key="test-key",
        data_dir=temp_dir / "data",
    )


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def rate_limiter(fake_clock: FakeClock) -> FixedWindowRateLimiter:
    """Ten admissions per hour, driven by the fake clock."""
    return FixedWindowRateLimiter(10, 3600, clock=fake_clock)


@pytest.fixture
def stub_gateway() -> StubGateway:
    return StubGateway()


@pytest.fixture
def service(stub_gateway: StubGateway, rate_limiter: FixedWindowRateLimiter) -> GenerationService:
    """Generation service wired to the stub gateway and fake clock."""
    return GenerationService(stub_gateway, rate_limiter, rng=random.Random(1234))


@pytest.fixture
def history_store(temp_dir: Path) -> HistoryStore:
    return HistoryStore(temp_dir / "history.json")


@pytest.fixture
def test_client(
    service: GenerationService,
    history_store: HistoryStore,
) -> Generator[TestClient, None, None]:
    """FastAPI TestClient with the generation service and history replaced.

    The lifespan runs first and builds the real components; they are then
    swapped for the test doubles on ``app.state``.
    """
    from studiogen.api.main import app

    with TestClient(app) as client:
        app.state.generation_service = service
        app.state.history_store = history_store
        yield client


@pytest.fixture
def valid_payload() -> dict:
    """A complete, valid generation request body."""
    return {
        "promptState": {
            "short_description": "A model posing in a studio",
            "objects": ["woman", "dress", "hat"],
            "camera": {"angle": "eye_level", "view": "medium_shot"},
            "lighting": {"type": "studio_lighting", "direction": "front"},
            "style_medium": "photograph",
        },
        "guidanceScale": 5,
    }
