"""Unit tests for core/assets.py"""

import pytest

from quizdraft.core.assets import (
    AssetField, AssetRef, ContainerKind, asset_path, decode_inline_asset, extension_for,
    find_inline_assets, has_inline_assets, is_inline_asset, migrate_document,
)
from quizdraft.core.blocks import BlockType, MediaConfig, create_block
from quizdraft.core.models import Outcome, QuizDocument, StepType, create_step, default_document
from quizdraft.crud.blobs import BlobStore, MemoryBlobStore
from quizdraft.errors import PersistenceError


class FailingBlobStore(BlobStore):
    """Rejects every upload."""

    def __init__(self):
        self.attempts = 0

    async def upload(self, path, data, content_type):
        self.attempts += 1
        raise PersistenceError("storage unavailable")


def _document(*blocks, outcome_blocks=()):
    doc = default_document()
    step = create_step(StepType.question, []).model_copy(update={"id": "q1", "blocks": list(blocks)})
    outcomes = [Outcome(id="o1", name="o1", blocks=list(outcome_blocks))] if outcome_blocks else []
    return QuizDocument(steps=[doc.steps[0], step, doc.steps[1]], outcomes=outcomes)


# --- detection ---

@pytest.mark.parametrize("value,expected", [
    ("data:image/png;base64,AAAA", True),
    ("data:image/jpeg;base64,", True),
    ("https://cdn.example.com/a.png", False),
    ("data:text/plain;base64,AAAA", False),
    ("", False),
    (None, False),
])
def test_is_inline_asset(value, expected):
    assert is_inline_asset(value) is expected


def test_decode_inline_asset(inline_png):
    mime, data = decode_inline_asset(inline_png)
    assert mime == "image/png"
    assert data.startswith(b"\x89PNG")


def test_decode_rejects_bad_payload():
    with pytest.raises(ValueError):
        decode_inline_asset("data:image/png;base64,@@@not-base64@@@")
    with pytest.raises(ValueError):
        decode_inline_asset("https://example.com/x.png")


def test_extension_for():
    assert extension_for("image/jpeg") == "jpg"
    assert extension_for("image/webp") == "webp"
    assert extension_for("image/x-unknown") == "png"


def test_find_inline_assets(inline_media_block, inline_options_block, inline_png):
    thumb = create_block(BlockType.media, config=MediaConfig(type="video", url="https://youtu.be/x",
                                                             video_thumbnail=inline_png))
    doc = _document(inline_media_block, inline_options_block, thumb)
    refs = find_inline_assets(doc)
    assert [(r.block_id, r.field, r.item_id) for r in refs] == [
        (inline_media_block.id, AssetField.media_url, None),
        (inline_options_block.id, AssetField.option_image, "opt-a"),
        (thumb.id, AssetField.video_thumbnail, None),
    ]
    assert has_inline_assets(doc)
    assert not has_inline_assets(default_document())


# --- paths ---

def test_asset_paths_are_partitioned():
    step_ref = AssetRef(ContainerKind.step, "s1", "b1", AssetField.media_url)
    outcome_ref = AssetRef(ContainerKind.outcome, "o1", "b2", AssetField.media_url)
    thumb_ref = AssetRef(ContainerKind.step, "s1", "b3", AssetField.video_thumbnail)
    option_ref = AssetRef(ContainerKind.step, "s1", "b4", AssetField.option_image, "i1")
    assert asset_path("quiz", step_ref) == "quizzes/quiz/blocks/s1/b1"
    assert asset_path("quiz", outcome_ref) == "quizzes/quiz/outcome-blocks/o1/b2"
    assert asset_path("quiz", thumb_ref) == "quizzes/quiz/thumbnails/s1/b3"
    assert asset_path("quiz", option_ref) == "quizzes/quiz/options/s1/b4/i1"


# --- migration ---

@pytest.mark.asyncio
async def test_migrate_document_replaces_inline_fields(inline_media_block, inline_options_block):
    blobs = MemoryBlobStore()
    doc = _document(inline_media_block, inline_options_block, outcome_blocks=[inline_media_block])
    report = await migrate_document(doc, "quiz-1", blobs)

    assert len(report.migrated) == 3
    assert report.failed == []
    assert not has_inline_assets(report.document)
    assert set(blobs.blobs) == {
        f"quizzes/quiz-1/blocks/q1/{inline_media_block.id}.png",
        f"quizzes/quiz-1/options/q1/{inline_options_block.id}/opt-a.png",
        f"quizzes/quiz-1/outcome-blocks/o1/{inline_media_block.id}.png",
    }
    media = report.document.steps[1].blocks[0]
    assert media.config.url == f"memory://blobs/quizzes/quiz-1/blocks/q1/{inline_media_block.id}.png"
    options = report.document.steps[1].blocks[1].config.items
    assert options[1].image_url == "https://cdn.example.com/b.png"


@pytest.mark.asyncio
async def test_migrate_document_leaves_input_untouched(inline_media_block):
    doc = _document(inline_media_block)
    before = doc.model_dump()
    await migrate_document(doc, "quiz-1", MemoryBlobStore())
    assert doc.model_dump() == before


@pytest.mark.asyncio
async def test_migration_is_idempotent(inline_media_block, inline_options_block):
    """A second pass over migrated output uploads nothing and changes nothing."""
    blobs = MemoryBlobStore()
    first = await migrate_document(_document(inline_media_block, inline_options_block), "quiz-1", blobs)
    uploads = blobs.uploads
    second = await migrate_document(first.document, "quiz-1", blobs)
    assert blobs.uploads == uploads
    assert not second.changed
    assert second.document.model_dump_json() == first.document.model_dump_json()


@pytest.mark.asyncio
async def test_failed_upload_clears_field(inline_media_block, caplog):
    """A failed upload empties the field and the migration continues."""
    blobs = FailingBlobStore()
    report = await migrate_document(_document(inline_media_block), "quiz-1", blobs)
    assert blobs.attempts == 1
    assert report.migrated == []
    assert len(report.failed) == 1
    assert report.failed[0].url == ""
    assert "storage unavailable" in report.failed[0].error
    assert report.document.steps[1].blocks[0].config.url == ""
    assert "Asset migration failed" in caplog.text
