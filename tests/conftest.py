from pathlib import Path
from typing import Dict

import pytest
from sqlalchemy.orm import Session, sessionmaker

from helpers import RecordingBackend, make_index
from searchbridge.entities import InMemoryEntityStore, Server
from searchbridge.storage.database import get_engine, init_db, make_session_factory
from searchbridge.tasks.manager import TaskManager


@pytest.fixture
def session_factory(tmp_path: Path) -> sessionmaker[Session]:
    engine = get_engine(f"sqlite:///{tmp_path / 'tasks.db'}")
    init_db(engine)
    return make_session_factory(engine)


@pytest.fixture
def backends() -> Dict[str, RecordingBackend]:
    return {"s1": RecordingBackend(), "s2": RecordingBackend()}


@pytest.fixture
def entities(backends: Dict[str, RecordingBackend]) -> InMemoryEntityStore:
    return InMemoryEntityStore(
        servers=[Server("s1", backends["s1"]), Server("s2", backends["s2"])],
        indexes=[make_index("i1", "s1"), make_index("i2", "s2")],
    )


@pytest.fixture
def manager(session_factory: sessionmaker[Session], entities: InMemoryEntityStore) -> TaskManager:
    return TaskManager(session_factory, entities)
