from collections.abc import Generator
from pathlib import Path

import pytest
from sqlalchemy.engine import Engine

from tests.utils.database import seed_items, sqlite_pool


@pytest.fixture()
def pool(tmp_path: Path) -> Generator[Engine, None, None]:
    """Validated SQLite pool with table t seeded with (1, 'a'), (2, 'b')."""
    engine = sqlite_pool(tmp_path / "sqlm.db")
    seed_items(engine)
    yield engine
    engine.dispose()
