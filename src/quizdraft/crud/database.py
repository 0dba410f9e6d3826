"""Engine construction and schema initialization"""

from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, create_engine

from quizdraft.crud.tables import QuizRow  # noqa: F401 (registers the table)


def make_engine(db_url: str):
    """In-memory SQLite shares one connection so every session sees the same data."""
    if db_url in ("sqlite://", "sqlite:///:memory:"):
        return create_engine(db_url, connect_args={"check_same_thread": False}, poolclass=StaticPool)
    return create_engine(db_url, echo=False)


def init_db(engine) -> None:
    SQLModel.metadata.create_all(engine)


def reset_db(engine) -> None:
    SQLModel.metadata.drop_all(engine)
    SQLModel.metadata.create_all(engine)
