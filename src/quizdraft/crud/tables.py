"""Database table definition for quiz records"""

from datetime import datetime
from typing import Any, Dict

from sqlalchemy import Column, DateTime, JSON, Text
from sqlmodel import Field, SQLModel


class QuizRow(SQLModel, table=True):
    """One quiz record; `record` is the full JSON document, the other columns index it"""
    __tablename__ = "quizzes"
    id: str = Field(sa_column=Column(Text, primary_key=True))
    owner_id: str = Field(default="", index=True, nullable=False)
    is_published: bool = Field(default=False, index=True, nullable=False)
    record: Dict[str, Any] = Field(default_factory=dict, sa_column=Column(JSON, nullable=False))
    created_at: datetime = Field(default_factory=datetime.now, sa_column=Column(DateTime(timezone=False), nullable=False))
    updated_at: datetime = Field(default_factory=datetime.now, sa_column=Column(DateTime(timezone=False), nullable=False))
