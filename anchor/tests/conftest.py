from __future__ import annotations

import os
from pathlib import Path
import tempfile

# Point the engine at a throwaway SQLite file before any anchor module reads settings.
_TEST_DB_PATH = Path(tempfile.mkdtemp(prefix="anchor-tests-")) / "anchor.db"
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_TEST_DB_PATH}"
os.environ.setdefault("TIMEZONE", "America/Toronto")

import pytest  # noqa: E402

from anchor.domain.models import Base  # noqa: E402
from anchor.persistence.db import SessionLocal, engine  # noqa: E402


@pytest.fixture
async def db():
    # Fresh schema per test; dispose the engine so connections never cross event loops.
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    yield SessionLocal
    await engine.dispose()
