"""Ordered document structure: steps, outcomes, and their default contents"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from quizdraft.core.blocks import (
    Block, BlockType, ButtonConfig, HeaderConfig, MediaConfig, TextConfig,
    create_block, generate_id,
)


class StepType(str, Enum):
    intro = "intro"
    question = "question"
    lead_gen = "lead-gen"
    promo = "promo"
    result = "result"


# Non-fixed step types that count as content on their own
CONTENT_STEP_TYPES = frozenset({StepType.question, StepType.lead_gen, StepType.promo})

STEP_LABELS: dict[StepType, str] = {
    StepType.intro:    "Intro",
    StepType.question: "Question",
    StepType.lead_gen: "Lead capture",
    StepType.promo:    "Promo",
    StepType.result:   "Result",
}


class StepSettings(BaseModel):
    model_config = ConfigDict(frozen=True)
    show_progress: bool = True
    allow_back: bool = True


class Step(BaseModel):
    """An ordered stage of the quiz; intro and result are fixed anchors"""
    model_config = ConfigDict(frozen=True)
    id: str
    type: StepType
    label: str
    is_fixed: bool = False
    subtitle: Optional[str] = None
    blocks: list[Block] = Field(default_factory=list)
    settings: Optional[StepSettings] = None


class Outcome(BaseModel):
    """A named result variant, shown only while the result step is active"""
    model_config = ConfigDict(frozen=True)
    id: str
    name: str = ""
    blocks: list[Block] = Field(default_factory=list)


class QuizDocument(BaseModel):
    """Structural quiz content: the part that is fingerprinted and persisted"""
    model_config = ConfigDict(frozen=True)
    steps: list[Step] = Field(default_factory=list)
    outcomes: list[Outcome] = Field(default_factory=list)


def default_step_label(step_type: StepType, steps: list[Step]) -> str:
    """'Question' for the first of its type, then 'Question 2', 'Question 3', ..."""
    step_type = StepType(step_type)
    base = STEP_LABELS[step_type]
    if step_type in (StepType.intro, StepType.result):
        return base
    existing = sum(1 for s in steps if s.type == step_type and not s.is_fixed)
    return base if existing == 0 else f"{base} {existing + 1}"


def default_blocks_for_step_type(step_type: StepType) -> list[Block]:
    """Starter blocks a freshly added step of this type is populated with."""
    step_type = StepType(step_type)
    if step_type == StepType.intro:
        return [
            create_block(BlockType.header),
            create_block(BlockType.media, enabled=False),
            create_block(BlockType.button, config=ButtonConfig(text="Start")),
        ]
    if step_type == StepType.question:
        return [create_block(BlockType.header), create_block(BlockType.options)]
    if step_type == StepType.lead_gen:
        return [
            create_block(BlockType.header, config=HeaderConfig(
                title="Almost there!", description="Fill in your details to see the result.")),
            create_block(BlockType.fields),
            create_block(BlockType.button, config=ButtonConfig(text="See result")),
        ]
    if step_type == StepType.promo:
        return [
            create_block(BlockType.header),
            create_block(BlockType.media),
            create_block(BlockType.price),
            create_block(BlockType.button),
        ]
    return []


def default_outcome_blocks() -> list[Block]:
    return [
        create_block(BlockType.header, config=HeaderConfig(title="Your result")),
        create_block(BlockType.media, enabled=False, config=MediaConfig()),
        create_block(BlockType.text, enabled=False, config=TextConfig()),
        create_block(BlockType.button, enabled=False, config=ButtonConfig(text="Learn more")),
    ]


def create_step(step_type: StepType, steps: list[Step]) -> Step:
    """New non-fixed step with a numbered default label and starter blocks."""
    step_type = StepType(step_type)
    return Step(
        id=generate_id("step"),
        type=step_type,
        label=default_step_label(step_type, steps),
        blocks=default_blocks_for_step_type(step_type),
        settings=StepSettings(),
    )


def create_outcome(name: str = "") -> Outcome:
    return Outcome(id=generate_id("outcome"), name=name)


def default_document() -> QuizDocument:
    """Two fixed steps: intro with starter blocks, empty result, zero outcomes."""
    return QuizDocument(
        steps=[
            Step(id="intro", type=StepType.intro, label=STEP_LABELS[StepType.intro], is_fixed=True,
                 blocks=default_blocks_for_step_type(StepType.intro),
                 settings=StepSettings(show_progress=False, allow_back=False)),
            Step(id="result", type=StepType.result, label=STEP_LABELS[StepType.result], is_fixed=True,
                 settings=StepSettings(show_progress=False, allow_back=False)),
        ],
        outcomes=[],
    )


def find_step(document: QuizDocument, step_id: str) -> Step | None:
    return next((s for s in document.steps if s.id == step_id), None)


def find_outcome(document: QuizDocument, outcome_id: str) -> Outcome | None:
    return next((o for o in document.outcomes if o.id == outcome_id), None)
