"""Shared fixtures for core unit tests"""

import base64

import pytest

from quizdraft.core.blocks import BlockType, MediaConfig, OptionItem, OptionsConfig, create_block
from quizdraft.core.models import StepType, create_outcome, create_step
from quizdraft.core.state import initial_state
from quizdraft.core.store import BuilderStore


PNG_BYTES = b"\x89PNG\r\n\x1a\nfake-image"
INLINE_PNG = "data:image/png;base64," + base64.b64encode(PNG_BYTES).decode()


@pytest.fixture(name="state")
def state_fixture():
    """Default document: fixed intro and result, no outcomes."""
    return initial_state()


@pytest.fixture(name="builder")
def builder_fixture():
    return BuilderStore()


@pytest.fixture(name="question")
def question_fixture():
    return create_step(StepType.question, [])


@pytest.fixture(name="outcome")
def outcome_fixture():
    return create_outcome("Winner")


@pytest.fixture(name="populated")
def populated_fixture(builder):
    """Builder with intro, two questions, result, and two outcomes (o1 first)."""
    q1 = create_step(StepType.question, builder.document.steps)
    builder.add_step(q1)
    q2 = create_step(StepType.question, builder.document.steps)
    builder.add_step(q2)
    builder.add_outcome(create_outcome("o1"))
    builder.add_outcome(create_outcome("o2"))
    builder.set_active_step("intro")
    return builder


@pytest.fixture(name="inline_media_block")
def inline_media_block_fixture():
    return create_block(BlockType.media, config=MediaConfig(url=INLINE_PNG))


@pytest.fixture(name="inline_options_block")
def inline_options_block_fixture():
    return create_block(BlockType.options, config=OptionsConfig(items=[
        OptionItem(id="opt-a", text="A", image_url=INLINE_PNG),
        OptionItem(id="opt-b", text="B", image_url="https://cdn.example.com/b.png"),
    ]))


@pytest.fixture(name="inline_png")
def inline_png_fixture():
    return INLINE_PNG
