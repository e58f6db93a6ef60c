"""
RotaTV Test Configuration

Shared fixtures and configuration for all tests.
"""

import os
import random
import tempfile
from pathlib import Path
from typing import Generator, List
from unittest.mock import AsyncMock

import pytest

from rotatv.catalog.models import Catalog, MediaItem
from rotatv.config import ChatConfig, PresenterConfig, RotationConfig, VotingConfig
from rotatv.playout.scheduler import RotationScheduler
from rotatv.presenter.base import LoggingPresenter
from rotatv.tasks.scheduler import TaskScheduler

# Long enough that completion timers never fire during a test
LONG = 10_000


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def make_item(item_id: str, duration: float = LONG, **kwargs) -> MediaItem:
    return MediaItem(id=item_id, label=kwargs.pop("label", item_id.upper()), duration_seconds=duration, **kwargs)


# ============ Catalog Fixtures ============


@pytest.fixture
def vods() -> List[MediaItem]:
    return [make_item(f"v{i}") for i in range(1, 6)]


@pytest.fixture
def catalog(vods: List[MediaItem]) -> Catalog:
    """Five long videos, two interstitials, a special, a fallback and two rooms."""
    return Catalog(
        vods=vods,
        interstitials=[make_item("toast", label="Toast"), make_item("bonk", label="Bonk")],
        special_interstitial=make_item("auw", label="Everybody Wow"),
        fallback=make_item("room-grind", label="Room Grind"),
        rooms=[make_item("r1", duration=30, label="Big Key Room"), make_item("r2", duration=400, label="Moldorm")],
    )


# ============ Collaborator Fixtures ============


@pytest.fixture
def presenter() -> LoggingPresenter:
    return LoggingPresenter(history_size=500)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def announce() -> AsyncMock:
    return AsyncMock()


@pytest.fixture
def rotation_config() -> RotationConfig:
    return RotationConfig(
        initial_queue_size=0,
        recently_played_memory=2,
        commercials_enabled=True,
        commercial_interval=600,
        special_chance=0,
        room_grind_chance=0,
        retry_delay_seconds=LONG,
    )


@pytest.fixture
def voting_config() -> VotingConfig:
    return VotingConfig(enabled=True, poll_interval_minutes=15, poll_size=3, reminder_interval_seconds=300)


@pytest.fixture
def chat_config() -> ChatConfig:
    return ChatConfig(
        channel="#rotatv",
        admins=["Boss"],
        ignored_users=["nightbot"],
        default_user_cooldown=5,
        skip_vote_threshold=2,
    )


@pytest.fixture
async def rotation(catalog, presenter, rotation_config, voting_config, announce, clock):
    """A RotationScheduler whose task loop is never started."""
    scheduler = RotationScheduler(
        catalog,
        presenter,
        rotation=rotation_config,
        voting=voting_config,
        scenes=PresenterConfig(special_overlay_item="wow-overlay"),
        announce=announce,
        task_scheduler=TaskScheduler(tick_seconds=LONG),
        clock=clock,
        rng=random.Random(7),
    )
    yield scheduler
    await scheduler.stop()


# ============ Temporary File Fixtures ============


@pytest.fixture(scope="function")
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture(scope="function")
def temp_config_file(temp_dir: Path) -> Path:
    """Create a temporary config file."""
    config_file = temp_dir / "config.yaml"
    config_content = """
server:
  host: "127.0.0.1"
  port: 9100

chat:
  prefix: "?"
  admins: ["boss"]

rotation:
  recently_played_memory: 4
  special_chance: 10

logging:
  level: "DEBUG"
"""
    config_file.write_text(config_content)
    return config_file


@pytest.fixture(scope="function")
def temp_catalog_file(temp_dir: Path) -> Path:
    catalog_file = temp_dir / "catalog.yaml"
    catalog_file.write_text("""
vods:
  - {id: "a", label: "Alpha", duration: "PT1M30S"}
  - {id: "b", label: "Bravo", duration: "01:00"}
  - {id: "c", label: "Charlie", duration: 45, include_in_rotation: false}
interstitials:
  - {id: "toast", label: "Toast", duration: 12, loops: 2}
special_interstitial: {id: "auw", label: "Everybody Wow", duration: 30}
fallback: {id: "room-grind", label: "Room Grind", duration: 600}
""")
    return catalog_file


# ============ Environment Fixtures ============


@pytest.fixture(autouse=True)
def clean_environment():
    """Clean environment variables for each test."""
    original_env = os.environ.copy()

    for key in list(os.environ.keys()):
        if key.startswith("ROTATV_"):
            del os.environ[key]

    yield

    os.environ.clear()
    os.environ.update(original_env)


# ============ Markers ============


def pytest_configure(config):
    """Configure custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests")
