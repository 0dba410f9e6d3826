"""Unit tests for crud/quizzes.py"""

import pytest

from quizdraft.config import DEFAULT_TIER_LIMITS, TierLimits
from quizdraft.core.blocks import BlockType, HeaderConfig, MediaConfig, create_block
from quizdraft.core.models import StepType, create_outcome, create_step, default_document
from quizdraft.crud.quizzes import (
    DEFAULT_TITLE, build_record, create_quiz, document_from_record, get_quiz, list_quizzes,
    publish_quiz, save_quiz, skeleton_record, unpublish_quiz,
)
from quizdraft.crud.store import UNDEFINED
from quizdraft.errors import DraftLimitReached, NotOwnerError, PublishLimitReached, QuizNotFoundError


FREE = DEFAULT_TIER_LIMITS["free"]


def _titled_document(title="Which cat are you?"):
    doc = default_document()
    intro = doc.steps[0].model_copy(update={"blocks": [
        create_block(BlockType.header, config=HeaderConfig(title=title, description="Find out")),
        create_block(BlockType.media, config=MediaConfig(url="https://cdn/cover.png")),
    ]})
    return doc.model_copy(update={"steps": [intro, create_step(StepType.lead_gen, []), doc.steps[1]]})


# --- build_record ---

def test_build_record_derives_metadata():
    record = build_record(_titled_document(), "q1", "u1", now="2024-05-01T00:00:00+00:00")
    assert record["title"] == "Which cat are you?"
    assert record["description"] == "Find out"
    assert record["cover_image_url"] == "https://cdn/cover.png"
    assert record["intro_media_preview"] == "https://cdn/cover.png"
    assert record["lead_gen"]["fields"] == ["name"]
    assert record["builder_data"]["schema_version"] == 1
    assert len(record["builder_data"]["steps"]) == 3
    assert record["is_published"] is False
    assert record["created_at"] == record["updated_at"] == "2024-05-01T00:00:00+00:00"
    assert record["published_version"] is UNDEFINED


def test_build_record_defaults_title():
    assert build_record(default_document(), "q1", "u1")["title"] == DEFAULT_TITLE


def test_build_record_lead_gen_without_fields_defaults_to_email():
    doc = default_document()
    lead_gen = create_step(StepType.lead_gen, [])
    lead_gen = lead_gen.model_copy(update={"blocks": [b for b in lead_gen.blocks if b.type != BlockType.fields]})
    doc = doc.model_copy(update={"steps": [doc.steps[0], lead_gen, doc.steps[1]]})
    record = build_record(doc, "q1", "u1")
    assert record["lead_gen"]["fields"] == ["email"]
    assert record["fields"] == []


def test_build_record_summarizes_questions_outcomes_and_fields():
    doc = _titled_document()
    question = create_step(StepType.question, doc.steps)
    question = question.model_copy(update={"blocks": [
        create_block(BlockType.header, config=HeaderConfig(title="Favourite food?")),
    ]})
    doc = doc.model_copy(update={
        "steps": [doc.steps[0], question, *doc.steps[1:]],
        "outcomes": [create_outcome("Foodie")],
    })
    record = build_record(doc, "q1", "u1")
    assert record["questions"] == [{"id": question.id, "label": "Q1", "text": "Favourite food?"}]
    assert [o["id"] for o in record["outcomes"]] == [doc.outcomes[0].id]
    assert [(f["label"], f["step_type"], f["required"]) for f in record["fields"]] == [("Name", "lead-gen", True)]


def test_build_record_preserves_fields_it_does_not_own():
    existing = {"is_published": True, "published_version": {"title": "v1"},
                "published_at": "p", "created_at": "c", "stats": {"views": 4}, "title": "Old"}
    record = build_record(_titled_document("New"), "q1", "u1", existing=existing, now="n")
    assert record["title"] == "New"
    assert record["is_published"] is True
    assert record["published_version"] == {"title": "v1"}
    assert record["published_at"] == "p"
    assert record["created_at"] == "c"
    assert record["stats"] == {"views": 4}
    assert record["updated_at"] == "n"


def test_document_from_record_round_trip():
    doc = _titled_document()
    assert document_from_record(build_record(doc, "q1", "u1")) == doc


def test_document_from_skeleton_is_default():
    doc = document_from_record(skeleton_record("q1", "u1"))
    assert [s.id for s in doc.steps] == ["intro", "result"]


# --- save / create / get ---

@pytest.mark.asyncio
async def test_save_quiz_strips_undefined(store):
    written = await save_quiz(store, "q1", build_record(default_document(), "q1", "u1"))
    assert "published_version" not in written
    assert (await store.get("q1"))["owner_id"] == "u1"


@pytest.mark.asyncio
async def test_create_quiz_enforces_draft_limit(store):
    limits = TierLimits(draft_limit=2)
    await create_quiz(store, "q1", "u1", limits)
    await create_quiz(store, "q2", "u1", limits)
    with pytest.raises(DraftLimitReached):
        await create_quiz(store, "q3", "u1", limits)
    assert await store.get("q3") is None


@pytest.mark.asyncio
async def test_create_quiz_refuses_existing_id(store):
    await create_quiz(store, "q1", "u1", FREE)
    with pytest.raises(ValueError, match="already exists"):
        await create_quiz(store, "q1", "u1", FREE)


@pytest.mark.asyncio
async def test_get_quiz_checks_ownership(store):
    await create_quiz(store, "q1", "u1", FREE)
    assert (await get_quiz(store, "q1", "u1"))["id"] == "q1"
    with pytest.raises(NotOwnerError):
        await get_quiz(store, "q1", "intruder")
    with pytest.raises(QuizNotFoundError):
        await get_quiz(store, "missing")


# --- publish ---

@pytest.mark.asyncio
async def test_publish_snapshots_builder_data(store):
    await save_quiz(store, "q1", build_record(_titled_document(), "q1", "u1"))
    record = await publish_quiz(store, "q1", "u1", FREE)
    assert record["is_published"] is True
    assert record["published_at"]
    assert record["published_version"]["title"] == "Which cat are you?"
    assert record["published_version"]["builder_data"] == record["builder_data"]
    assert [r["id"] for r in await list_quizzes(store, "u1", is_published=True)] == ["q1"]


@pytest.mark.asyncio
async def test_publish_limit_blocks_second_quiz(store):
    await create_quiz(store, "q1", "u1", FREE)
    await create_quiz(store, "q2", "u1", FREE)
    await publish_quiz(store, "q1", "u1", FREE)
    with pytest.raises(PublishLimitReached):
        await publish_quiz(store, "q2", "u1", FREE)
    assert (await store.get("q2"))["is_published"] is False


@pytest.mark.asyncio
async def test_republish_does_not_count_against_limit(store):
    await create_quiz(store, "q1", "u1", FREE)
    await publish_quiz(store, "q1", "u1", FREE)
    record = await publish_quiz(store, "q1", "u1", FREE)
    assert record["is_published"] is True


@pytest.mark.asyncio
async def test_unpublish_keeps_snapshot(store):
    await create_quiz(store, "q1", "u1", FREE)
    await publish_quiz(store, "q1", "u1", FREE)
    record = await unpublish_quiz(store, "q1", "u1")
    assert record["is_published"] is False
    assert record["published_version"]["title"] == DEFAULT_TITLE
    assert [r["id"] for r in await list_quizzes(store, "u1", is_published=False)] == ["q1"]


@pytest.mark.asyncio
async def test_publish_requires_owner(store):
    await create_quiz(store, "q1", "u1", FREE)
    with pytest.raises(NotOwnerError):
        await publish_quiz(store, "q1", "u2", FREE)
