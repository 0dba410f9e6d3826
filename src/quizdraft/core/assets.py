"""Inline asset detection and migration to durable blob references

Binary-bearing block fields (media url, video thumbnail, option item image)
may hold `data:image/...;base64,` text while editing. Before a commit every
such field is uploaded to the blob store under a deterministic path and
replaced by the returned URL. A failed upload clears the field so an inline
payload never reaches the document store.
"""

import base64
import binascii
import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator, Optional

from quizdraft.core.blocks import Block, BlockType
from quizdraft.core.models import QuizDocument
from quizdraft.crud.blobs import BlobStore


logger = logging.getLogger(__name__)

INLINE_PREFIX = "data:image/"
DATA_URL_RE = re.compile(r"^data:(image/[a-zA-Z0-9.+-]+);base64,(.*)$", re.DOTALL)
MIME_EXTENSIONS = {
    "image/jpeg": "jpg",
    "image/jpg":  "jpg",
    "image/png":  "png",
    "image/webp": "webp",
    "image/gif":  "gif",
    "image/svg+xml": "svg",
}


class AssetField(str, Enum):
    media_url = "url"
    video_thumbnail = "video_thumbnail"
    option_image = "image_url"


class ContainerKind(str, Enum):
    step = "step"
    outcome = "outcome"


@dataclass(frozen=True)
class AssetRef:
    """Location of one asset-bearing field inside the document."""
    kind: ContainerKind
    container_id: str
    block_id: str
    field: AssetField
    item_id: Optional[str] = None


@dataclass(frozen=True)
class AssetMigration:
    ref: AssetRef
    original: str
    url: str                     # "" when the upload failed
    error: Optional[str] = None


@dataclass
class MigrationReport:
    document: QuizDocument
    migrated: list[AssetMigration] = field(default_factory=list)
    failed: list[AssetMigration] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.migrated or self.failed)


def is_inline_asset(value: str | None) -> bool:
    """Prefix check only; the payload is not inspected."""
    return bool(value) and value.startswith(INLINE_PREFIX)


def decode_inline_asset(value: str) -> tuple[str, bytes]:
    """Return (mime_type, raw_bytes). Raises ValueError on a malformed data URL."""
    m = DATA_URL_RE.match(value)
    if not m:
        raise ValueError("Not a base64 image data URL")
    try:
        return m.group(1), base64.b64decode(m.group(2), validate=True)
    except binascii.Error as e:
        raise ValueError(f"Invalid base64 payload: {e}") from e


def extension_for(mime_type: str) -> str:
    return MIME_EXTENSIONS.get(mime_type, "png")


def asset_path(quiz_id: str, ref: AssetRef) -> str:
    """Deterministic blob path (without extension) partitioned by quiz, container, and block."""
    if ref.field == AssetField.option_image:
        return f"quizzes/{quiz_id}/options/{ref.container_id}/{ref.block_id}/{ref.item_id}"
    if ref.field == AssetField.video_thumbnail:
        return f"quizzes/{quiz_id}/thumbnails/{ref.container_id}/{ref.block_id}"
    if ref.kind == ContainerKind.outcome:
        return f"quizzes/{quiz_id}/outcome-blocks/{ref.container_id}/{ref.block_id}"
    return f"quizzes/{quiz_id}/blocks/{ref.container_id}/{ref.block_id}"


def _block_fields(kind: ContainerKind, container_id: str, block: Block) -> Iterator[tuple[AssetRef, str]]:
    if block.type == BlockType.media:
        yield AssetRef(kind, container_id, block.id, AssetField.media_url), block.config.url
        if block.config.video_thumbnail is not None:
            yield AssetRef(kind, container_id, block.id, AssetField.video_thumbnail), block.config.video_thumbnail
    elif block.type == BlockType.options:
        for item in block.config.items:
            if item.image_url is not None:
                yield AssetRef(kind, container_id, block.id, AssetField.option_image, item.id), item.image_url


def iter_asset_fields(document: QuizDocument) -> Iterator[tuple[AssetRef, str]]:
    """Yield (ref, current value) for every asset-bearing field, in document order."""
    for step in document.steps:
        for block in step.blocks:
            yield from _block_fields(ContainerKind.step, step.id, block)
    for outcome in document.outcomes:
        for block in outcome.blocks:
            yield from _block_fields(ContainerKind.outcome, outcome.id, block)


def find_inline_assets(document: QuizDocument) -> list[AssetRef]:
    return [ref for ref, value in iter_asset_fields(document) if is_inline_asset(value)]


def has_inline_assets(document: QuizDocument) -> bool:
    return any(is_inline_asset(value) for _, value in iter_asset_fields(document))


def asset_value(block: Block, ref: AssetRef) -> str | None:
    if ref.field == AssetField.option_image:
        item = next((i for i in block.config.items if i.id == ref.item_id), None)
        return item.image_url if item else None
    return getattr(block.config, ref.field.value)


def with_asset(block: Block, ref: AssetRef, value: str) -> Block:
    """Copy of block with the referenced field set to value."""
    if ref.field == AssetField.option_image:
        items = [
            i.model_copy(update={"image_url": value}) if i.id == ref.item_id else i
            for i in block.config.items
        ]
        return block.model_copy(update={"config": block.config.model_copy(update={"items": items})})
    return block.model_copy(update={"config": block.config.model_copy(update={ref.field.value: value})})


async def migrate_asset(quiz_id: str, ref: AssetRef, value: str, blobs: BlobStore) -> AssetMigration:
    """Upload one inline asset; failures are logged and yield an empty url."""
    path = asset_path(quiz_id, ref)
    try:
        mime_type, data = decode_inline_asset(value)
        url = await blobs.upload(f"{path}.{extension_for(mime_type)}", data, mime_type)
    except Exception as e:
        logger.error("Asset migration failed for %s: %s", path, e)
        return AssetMigration(ref, value, "", error=str(e))
    logger.info("Migrated inline asset to %s", path)
    return AssetMigration(ref, value, url)


async def _migrate_blocks(quiz_id, kind, container_id, blocks, blobs, report) -> list[Block]:
    out = []
    for block in blocks:
        for ref, value in list(_block_fields(kind, container_id, block)):
            if not is_inline_asset(value):
                continue
            result = await migrate_asset(quiz_id, ref, value, blobs)
            (report.failed if result.error else report.migrated).append(result)
            block = with_asset(block, ref, result.url)
        out.append(block)
    return out


async def migrate_document(document: QuizDocument, quiz_id: str, blobs: BlobStore) -> MigrationReport:
    """Replace every inline asset in document with a durable reference.

    Fields already holding a durable reference are left untouched, so running
    this over an already-migrated document uploads nothing and returns an
    equal document.
    """
    report = MigrationReport(document=document)
    if not has_inline_assets(document):
        return report

    steps = [
        step.model_copy(update={"blocks": await _migrate_blocks(
            quiz_id, ContainerKind.step, step.id, step.blocks, blobs, report)})
        for step in document.steps
    ]
    outcomes = [
        outcome.model_copy(update={"blocks": await _migrate_blocks(
            quiz_id, ContainerKind.outcome, outcome.id, outcome.blocks, blobs, report)})
        for outcome in document.outcomes
    ]
    report.document = document.model_copy(update={"steps": steps, "outcomes": outcomes})
    return report
