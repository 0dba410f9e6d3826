"""CLI command implementations"""

import asyncio
import json
from pathlib import Path
from typing import Annotated, Optional

import typer
from pydantic import ValidationError

from quizdraft.config import Settings, load_config
from quizdraft.core.autosave import AutosaveScheduler, SaveStatus
from quizdraft.core.blocks import generate_id
from quizdraft.core.models import QuizDocument
from quizdraft.core.quota import limits_for
from quizdraft.core.store import BuilderStore
from quizdraft.crud.blobs import LocalBlobStore
from quizdraft.crud.database import init_db, make_engine, reset_db
from quizdraft.crud.quizzes import (
    create_quiz, get_quiz, list_quizzes, publish_quiz, unpublish_quiz,
)
from quizdraft.crud.sql_store import SQLDocumentStore
from quizdraft.errors import QuizdraftError
from quizdraft.logging_setup import setup_console_logging


def _fail(msg: str, cause: Exception = None) -> None:
    """Print a user-friendly error to stderr and exit 1."""
    typer.echo(f"Error: {msg}", err=True)
    if cause:
        typer.echo(f"  {cause}", err=True)
    raise typer.Exit(1)


def _settings(overrides: dict = None) -> Settings:
    """Load config with standard CLI error handling, then configure logging."""
    try:
        settings = load_config(overrides=overrides)
    except (ValueError, ValidationError) as e:
        _fail("Invalid configuration", e)
    setup_console_logging(settings.log_level)
    return settings


def _store(settings: Settings) -> SQLDocumentStore:
    engine = make_engine(settings.db_url)
    init_db(engine)
    return SQLDocumentStore(engine)


def _status(record: dict) -> str:
    return "published" if record.get("is_published") else "draft"


def init_cmd(
    reset: Annotated[bool, typer.Option("--reset", help="Drop and recreate all tables")] = False,
    ):
    """Initialize database schema. Use --reset to clear existing data."""
    settings = _settings()
    engine = make_engine(settings.db_url)
    if reset:
        reset_db(engine)
        typer.echo("Existing data cleared.")
    else:
        init_db(engine)
    typer.echo(f"Database initialized at: {settings.db_url}")


def new_cmd(
    owner: Annotated[str, typer.Argument(help="Owner id")],
    quiz_id: Annotated[Optional[str], typer.Option("--id", help="Quiz id (generated when omitted)")] = None,
    tier: Annotated[Optional[str], typer.Option("--tier", help="Subscription tier for quota checks")] = None,
    ):
    """Create an empty draft quiz, subject to the tier's draft limit."""
    settings = _settings(overrides={"default_tier": tier})
    store = _store(settings)
    quiz_id = quiz_id or generate_id("quiz")
    limits = limits_for(settings.default_tier, settings.tier_limits)
    try:
        asyncio.run(create_quiz(store, quiz_id, owner, limits))
    except (QuizdraftError, ValueError) as e:
        _fail("Could not create quiz", e)
    typer.echo(f"Created draft {quiz_id}")


def import_cmd(
    path: Annotated[str, typer.Argument(help="JSON file with 'steps' and 'outcomes'")],
    owner: Annotated[str, typer.Option("--owner", help="Owner id")],
    quiz_id: Annotated[Optional[str], typer.Option("--id", help="Quiz id (generated when omitted)")] = None,
    tier: Annotated[Optional[str], typer.Option("--tier", help="Subscription tier for quota checks")] = None,
    blob_dir: Annotated[Optional[str], typer.Option("--blob-dir", help="Directory for migrated assets")] = None,
    ):
    """Load a builder document and commit it through the autosave pipeline."""
    settings = _settings(overrides={"default_tier": tier, "blob_dir": blob_dir})
    try:
        data = json.loads(Path(path).read_text())
        if not isinstance(data, dict):
            raise ValueError("expected a JSON object")
        document = QuizDocument.model_validate(data.get("builder_data", data))
        builder = BuilderStore()
        builder.initialize(document.steps, document.outcomes)
    except OSError as e:
        _fail(f"Cannot read {path}", e)
    except (ValueError, ValidationError) as e:
        _fail(f"Invalid quiz document in {path}", e)

    quiz_id = quiz_id or generate_id("quiz")
    scheduler = AutosaveScheduler(
        builder,
        _store(settings),
        LocalBlobStore(settings.blob_dir, settings.blob_base_url),
        quiz_id,
        owner,
        tier=settings.default_tier,
        tier_limits=settings.tier_limits,
        debounce_seconds=settings.debounce_seconds,
        new_quiz_debounce_seconds=settings.new_quiz_debounce_seconds,
    )
    try:
        result = asyncio.run(scheduler.force_save())
    except QuizdraftError as e:
        _fail("Import failed", e)

    if result.status == SaveStatus.skipped_empty:
        typer.echo("Nothing to save: the document has no content yet.")
        raise typer.Exit(1)
    if result.status == SaveStatus.skipped_unchanged:
        typer.echo(f"Quiz {quiz_id} unchanged.")
        return
    typer.echo(
        f"Saved quiz {quiz_id} - "
        f"{len(builder.document.steps)} step(s), "
        f"{len(builder.document.outcomes)} outcome(s), "
        f"{result.migrated} asset(s) migrated, "
        f"{result.failed} asset(s) failed"
    )


def list_cmd(
    owner: Annotated[str, typer.Option("--owner", help="Owner id")],
    published: Annotated[Optional[bool], typer.Option("--published/--drafts", help="Filter by publish state")] = None,
    ):
    """List an owner's quizzes."""
    settings = _settings()
    try:
        records = asyncio.run(list_quizzes(_store(settings), owner, is_published=published))
    except QuizdraftError as e:
        _fail("List failed", e)
    if not records:
        typer.echo("No quizzes found.")
        raise typer.Exit(1)
    for r in records:
        typer.echo(f"{r['id']}\t{_status(r)}\t{r.get('title', '')}")


def show_cmd(
    quiz_id: Annotated[str, typer.Argument(help="Quiz id")],
    ):
    """Print a stored quiz record as JSON."""
    settings = _settings()
    try:
        record = asyncio.run(get_quiz(_store(settings), quiz_id))
    except QuizdraftError as e:
        _fail("Show failed", e)
    typer.echo(json.dumps(record, indent=2, ensure_ascii=False))


def publish_cmd(
    quiz_id: Annotated[str, typer.Argument(help="Quiz id")],
    owner: Annotated[str, typer.Option("--owner", help="Owner id")],
    tier: Annotated[Optional[str], typer.Option("--tier", help="Subscription tier for quota checks")] = None,
    ):
    """Publish a quiz, subject to the tier's publish limit."""
    settings = _settings(overrides={"default_tier": tier})
    limits = limits_for(settings.default_tier, settings.tier_limits)
    try:
        record = asyncio.run(publish_quiz(_store(settings), quiz_id, owner, limits))
    except QuizdraftError as e:
        _fail("Publish failed", e)
    typer.echo(f"Published {quiz_id} at {record['published_at']}")


def unpublish_cmd(
    quiz_id: Annotated[str, typer.Argument(help="Quiz id")],
    owner: Annotated[str, typer.Option("--owner", help="Owner id")],
    ):
    """Take a quiz offline; the published snapshot is kept."""
    settings = _settings()
    try:
        asyncio.run(unpublish_quiz(_store(settings), quiz_id, owner))
    except QuizdraftError as e:
        _fail("Unpublish failed", e)
    typer.echo(f"Unpublished {quiz_id}")
