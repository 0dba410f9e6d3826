"""Shared fixtures for crud unit tests"""

import pytest
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel

from quizdraft.crud.memory_store import MemoryDocumentStore
from quizdraft.crud.sql_store import SQLDocumentStore
from quizdraft.crud.tables import QuizRow  # noqa: F401


@pytest.fixture(name="engine")
def engine_fixture():
    """In-memory SQLite engine with all tables created."""
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    SQLModel.metadata.create_all(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)


@pytest.fixture(name="sql_store")
def sql_store_fixture(engine):
    return SQLDocumentStore(engine)


@pytest.fixture(name="store", params=["memory", "sql"])
def store_fixture(request, engine):
    """Each document-store contract test runs against both backends."""
    if request.param == "memory":
        return MemoryDocumentStore()
    return SQLDocumentStore(engine)
