"""Top-level quiz metadata derived from well-known blocks in well-known steps"""

import re
from typing import Any, Optional

from quizdraft.core.blocks import Block, BlockType
from quizdraft.core.models import CONTENT_STEP_TYPES, Outcome, QuizDocument, Step, StepType


YOUTUBE_PATTERNS = [
    re.compile(r"(?:youtube\.com/watch\?v=|youtu\.be/|youtube\.com/embed/)([a-zA-Z0-9_-]{11})"),
    re.compile(r"youtube\.com/shorts/([a-zA-Z0-9_-]{11})"),
]
DEFAULT_OUTCOME_TITLE = "Result"


def _first_step(steps: list[Step], step_type: StepType) -> Step | None:
    return next((s for s in steps if s.type == step_type), None)


def _enabled_block(blocks: list[Block], block_type: BlockType) -> Block | None:
    return next((b for b in blocks if b.type == block_type and b.enabled), None)


def _intro_block(document: QuizDocument, block_type: BlockType) -> Block | None:
    intro = _first_step(document.steps, StepType.intro)
    return _enabled_block(intro.blocks, block_type) if intro else None


def extract_title(document: QuizDocument) -> str:
    header = _intro_block(document, BlockType.header)
    return header.config.title if header else ""


def extract_description(document: QuizDocument) -> str:
    header = _intro_block(document, BlockType.header)
    return header.config.description if header else ""


def extract_cover_image(document: QuizDocument) -> Optional[str]:
    """URL of the enabled intro media block when it is an image; None otherwise."""
    media = _intro_block(document, BlockType.media)
    if media is None or media.config.type != "image" or not media.config.url:
        return None
    return media.config.url


def video_thumbnail_url(url: str) -> Optional[str]:
    for pattern in YOUTUBE_PATTERNS:
        if m := pattern.search(url):
            return f"https://img.youtube.com/vi/{m.group(1)}/hqdefault.jpg"
    return None


def extract_intro_media_preview(document: QuizDocument) -> Optional[str]:
    """Image URL, an explicit video thumbnail, or a YouTube thumbnail for intro video."""
    media = _intro_block(document, BlockType.media)
    if media is None or not media.config.url:
        return None
    if media.config.type == "image":
        return media.config.url
    return media.config.video_thumbnail or video_thumbnail_url(media.config.url)


def extract_lead_gen_config(document: QuizDocument) -> Optional[dict[str, Any]]:
    """Lead capture settings from the first lead-gen step, or None when there is none."""
    step = _first_step(document.steps, StepType.lead_gen)
    if step is None:
        return None
    header = _enabled_block(step.blocks, BlockType.header)
    fields_block = _enabled_block(step.blocks, BlockType.fields)
    button = _enabled_block(step.blocks, BlockType.button)

    fields = []
    for item in fields_block.config.items if fields_block else []:
        if item.type == "email":
            fields.append("email")
        elif item.type == "phone":
            fields.append("phone")
        elif item.type == "text" and "name" in item.label.lower():
            fields.append("name")
    return {
        "enabled": True,
        "title": header.config.title if header else None,
        "description": header.config.description if header else None,
        "fields": fields or ["email"],
        "cta_text": button.config.text if button else None,
    }


def has_meaningful_content(document: QuizDocument) -> bool:
    """True once the quiz holds anything worth persisting.

    A content step (question, lead-gen, promo), any outcome, or an intro whose
    enabled header carries a title or description.
    """
    if any(s.type in CONTENT_STEP_TYPES for s in document.steps):
        return True
    if document.outcomes:
        return True
    return bool(extract_title(document) or extract_description(document))


def question_metadata(document: QuizDocument) -> list[dict[str, str]]:
    """Question ids with short labels (Q1, Q2, ...) and their header text, for reports."""
    questions = [s for s in document.steps if s.type == StepType.question]
    out = []
    for n, step in enumerate(questions, start=1):
        header = _enabled_block(step.blocks, BlockType.header)
        out.append({"id": step.id, "label": f"Q{n}", "text": header.config.title if header else ""})
    return out


def outcome_metadata(outcomes: list[Outcome]) -> list[dict[str, str]]:
    out = []
    for outcome in outcomes:
        header = _enabled_block(outcome.blocks, BlockType.header)
        title = (header.config.title if header else "") or outcome.name or DEFAULT_OUTCOME_TITLE
        out.append({"id": outcome.id, "title": title})
    return out


def field_metadata(document: QuizDocument) -> list[dict[str, Any]]:
    """Every enabled form field across all steps, in quiz order."""
    out = []
    for step in document.steps:
        fields_block = _enabled_block(step.blocks, BlockType.fields)
        if fields_block is None:
            continue
        for item in fields_block.config.items:
            out.append({
                "id": item.id,
                "label": item.label,
                "type": item.type,
                "step_id": step.id,
                "step_label": step.label,
                "step_type": step.type.value,
                "required": item.required,
            })
    return out
