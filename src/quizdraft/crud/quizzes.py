"""Quiz records: building from a document, saving, listing, and publish state

A record is the JSON form the document store holds:

    id, owner_id, title, description, cover_image_url, intro_media_preview,
    lead_gen, questions, outcomes, fields,
    is_published, published_version, published_at, created_at, updated_at,
    stats, builder_data{schema_version, steps, outcomes}

Fields the editor does not own (publish state, the published snapshot,
timestamps, stats) are carried over from the existing record untouched.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Optional

from quizdraft.config import TierLimits
from quizdraft.core.metadata import (
    extract_cover_image, extract_description, extract_intro_media_preview,
    extract_lead_gen_config, extract_title, field_metadata, outcome_metadata,
    question_metadata,
)
from quizdraft.core.models import QuizDocument, default_document
from quizdraft.core.quota import check_draft_quota, check_publish_quota
from quizdraft.crud.store import UNDEFINED, DocumentStore, Record, strip_undefined
from quizdraft.errors import NotOwnerError, QuizNotFoundError


logger = logging.getLogger(__name__)

SCHEMA_VERSION = 1
DEFAULT_TITLE = "Untitled"
PRESERVED_FIELDS = ("is_published", "published_version", "published_at", "created_at", "stats")


def utcnow() -> str:
    return datetime.now(timezone.utc).isoformat()


def builder_data(document: QuizDocument) -> dict[str, Any]:
    data = document.model_dump(mode="json")
    return {"schema_version": SCHEMA_VERSION, "steps": data["steps"], "outcomes": data["outcomes"]}


def document_from_record(record: Record) -> QuizDocument:
    """Structural document stored in a record; a record without builder data yields the default."""
    data = record.get("builder_data") or {}
    if not data.get("steps"):
        return default_document()
    return QuizDocument.model_validate({"steps": data["steps"], "outcomes": data.get("outcomes") or []})


def build_record(document: QuizDocument, quiz_id: str, owner_id: str,
                 existing: Optional[Record] = None, now: Optional[str] = None) -> Record:
    """Full record for document, merged over the fields of `existing` the editor does not own.

    May contain UNDEFINED for preserved fields the existing record lacks;
    strip before writing.
    """
    existing = existing or {}
    now = now or utcnow()
    record: Record = {
        "id": quiz_id,
        "owner_id": owner_id,
        "title": extract_title(document) or DEFAULT_TITLE,
        "description": extract_description(document),
        "cover_image_url": extract_cover_image(document),
        "intro_media_preview": extract_intro_media_preview(document),
        "lead_gen": extract_lead_gen_config(document),
        "questions": question_metadata(document),
        "outcomes": outcome_metadata(document.outcomes),
        "fields": field_metadata(document),
        "builder_data": builder_data(document),
        "updated_at": now,
    }
    for name in PRESERVED_FIELDS:
        record[name] = existing.get(name, UNDEFINED)
    if record["is_published"] is UNDEFINED:
        record["is_published"] = False
    if record["created_at"] is UNDEFINED:
        record["created_at"] = now
    return record


def skeleton_record(quiz_id: str, owner_id: str, now: Optional[str] = None) -> Record:
    """Minimal record that establishes ownership before any asset is uploaded under quiz_id."""
    now = now or utcnow()
    return {
        "id": quiz_id,
        "owner_id": owner_id,
        "title": DEFAULT_TITLE,
        "is_published": False,
        "builder_data": {"schema_version": SCHEMA_VERSION, "steps": [], "outcomes": []},
        "created_at": now,
        "updated_at": now,
    }


async def save_quiz(store: DocumentStore, quiz_id: str, record: Record) -> Record:
    """Strip UNDEFINED and merge-write; returns what was written."""
    clean = strip_undefined(record)
    await store.set(quiz_id, clean, merge=True)
    logger.info("Saved quiz %s (%s)", quiz_id, clean.get("title", DEFAULT_TITLE))
    return clean


async def create_quiz(store: DocumentStore, quiz_id: str, owner_id: str, limits: TierLimits,
                      document: Optional[QuizDocument] = None) -> Record:
    """Create a new unpublished quiz after the draft quota check."""
    if await store.get(quiz_id) is not None:
        raise ValueError(f"Quiz {quiz_id} already exists")
    await check_draft_quota(store, owner_id, limits)
    record = build_record(document or default_document(), quiz_id, owner_id)
    return await save_quiz(store, quiz_id, record)


async def get_quiz(store: DocumentStore, quiz_id: str, owner_id: Optional[str] = None) -> Record:
    record = await store.get(quiz_id)
    if record is None:
        raise QuizNotFoundError(quiz_id)
    if owner_id is not None and record.get("owner_id") != owner_id:
        raise NotOwnerError(quiz_id, owner_id)
    return record


async def list_quizzes(store: DocumentStore, owner_id: str, is_published: Optional[bool] = None) -> list[Record]:
    return await store.query(owner_id, is_published=is_published)


async def publish_quiz(store: DocumentStore, quiz_id: str, owner_id: str, limits: TierLimits) -> Record:
    """Snapshot the current builder data as the published version.

    The publish quota applies only to the transition; republishing an already
    published quiz refreshes the snapshot without counting against it.
    """
    record = await get_quiz(store, quiz_id, owner_id)
    if not record.get("is_published"):
        await check_publish_quota(store, owner_id, limits)
    now = utcnow()
    update = {
        "is_published": True,
        "published_at": now,
        "published_version": {
            "title": record.get("title", DEFAULT_TITLE),
            "description": record.get("description", ""),
            "cover_image_url": record.get("cover_image_url"),
            "builder_data": record.get("builder_data") or {},
        },
        "updated_at": now,
    }
    await store.set(quiz_id, update, merge=True)
    logger.info("Published quiz %s", quiz_id)
    return await store.get(quiz_id)


async def unpublish_quiz(store: DocumentStore, quiz_id: str, owner_id: str) -> Record:
    """Take the quiz offline; the last published snapshot is kept."""
    await get_quiz(store, quiz_id, owner_id)
    await store.set(quiz_id, {"is_published": False, "updated_at": utcnow()}, merge=True)
    logger.info("Unpublished quiz %s", quiz_id)
    return await store.get(quiz_id)
