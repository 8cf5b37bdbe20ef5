from datetime import datetime

import pytest

from app.core.config import Settings
from app.storage.repository import InMemoryRepository
from app.storage.seed import seed_demo_data

# A Wednesday in high season
NOW = datetime(2026, 7, 15, 12, 0)


@pytest.fixture
def settings() -> Settings:
    return Settings(random_seed=7, seed_demo_data=False, scheduler_enabled=False)


@pytest.fixture
def repository() -> InMemoryRepository:
    repository = InMemoryRepository()
    seed_demo_data(repository, now=NOW)
    return repository
