"""Pure builder-state transitions with derived selection state

Each operation maps a BuilderState to (new_state, OpResult). A rejected
operation returns the very same state object; an applied one returns a new
state that shares unchanged steps, outcomes, and blocks with the old one but
never mutates them.
"""

from typing import Callable, Optional

from pydantic import BaseModel, ConfigDict, Field

from quizdraft.core.assets import AssetMigration, ContainerKind, asset_value, with_asset
from quizdraft.core.blocks import Block, generate_id
from quizdraft.core.models import (
    Outcome, QuizDocument, Step, StepSettings, StepType,
    default_document, default_outcome_blocks, find_outcome, find_step,
)
from quizdraft.core.rules import (
    APPLIED, OpResult, Rejection, rejected,
    check_block_reorder, check_outcome_removable, check_step_removable,
    check_step_reorder, clamp_index, step_insert_index,
)


class BuilderState(BaseModel):
    """The document plus ephemeral selection state; only `document` is persisted."""
    model_config = ConfigDict(frozen=True)
    document: QuizDocument = Field(default_factory=default_document)
    active_step_id: Optional[str] = None
    selected_outcome_id: Optional[str] = None
    selected_block_id: Optional[str] = None
    add_step_requested: bool = False


Transition = tuple[BuilderState, OpResult]

STEP_EDITABLE = frozenset({"label", "subtitle", "settings"})
OUTCOME_EDITABLE = frozenset({"name"})
COPY_SUFFIX = " (copy)"


def initial_state(document: QuizDocument | None = None) -> BuilderState:
    document = document if document is not None else default_document()
    return BuilderState(
        document=document,
        active_step_id=document.steps[0].id if document.steps else None,
    )


def _update(state: BuilderState, steps=None, outcomes=None, **fields) -> Transition:
    doc_changes = {}
    if steps is not None:
        doc_changes["steps"] = steps
    if outcomes is not None:
        doc_changes["outcomes"] = outcomes
    if doc_changes:
        fields["document"] = state.document.model_copy(update=doc_changes)
    return state.model_copy(update=fields), APPLIED


def _revise(model, changes: dict):
    """Copy with field changes, validated; nested models are kept as-is."""
    return type(model).model_validate({**dict(model), **changes})


def _block_ids(container) -> set[str]:
    return {b.id for b in container.blocks}


def _result_step_id(state: BuilderState) -> str | None:
    return next((s.id for s in state.document.steps if s.type == StepType.result), None)


# --- selection ---

def set_active_step(state: BuilderState, step_id: str | None) -> Transition:
    if step_id is None:
        return _update(state, active_step_id=None, selected_block_id=None)
    step = find_step(state.document, step_id)
    if step is None:
        return state, rejected(Rejection.not_found)
    if step.type != StepType.result:
        return _update(state, active_step_id=step_id, selected_outcome_id=None, selected_block_id=None)
    if state.selected_outcome_id is None and state.document.outcomes:
        return _update(state, active_step_id=step_id,
                       selected_outcome_id=state.document.outcomes[0].id, selected_block_id=None)
    return _update(state, active_step_id=step_id, selected_block_id=None)


def select_outcome(state: BuilderState, outcome_id: str | None) -> Transition:
    if outcome_id is not None and find_outcome(state.document, outcome_id) is None:
        return state, rejected(Rejection.not_found)
    return _update(state, selected_outcome_id=outcome_id, selected_block_id=None)


def select_block(state: BuilderState, block_id: str | None) -> Transition:
    return _update(state, selected_block_id=block_id)


def request_add_step(state: BuilderState, requested: bool = True) -> Transition:
    """Flag an open 'add step' UI request; add_step marks it fulfilled."""
    return _update(state, add_step_requested=requested)


# --- steps ---

def add_step(state: BuilderState, step: Step, insert_after_id: str | None = None) -> Transition:
    steps = state.document.steps
    if step.is_fixed or step.type in (StepType.intro, StepType.result):
        return state, rejected(Rejection.fixed_step)
    if find_step(state.document, step.id) is not None:
        return state, rejected(Rejection.duplicate_id)
    index = step_insert_index(steps, insert_after_id)
    if index is None:
        return state, rejected(Rejection.out_of_bounds)
    return _update(
        state,
        steps=[*steps[:index], step, *steps[index:]],
        active_step_id=step.id,
        selected_outcome_id=None,
        selected_block_id=None,
        add_step_requested=False,
    )


def update_step(state: BuilderState, step_id: str, **changes) -> Transition:
    """Edit label, subtitle, or settings; invalid values raise pydantic.ValidationError."""
    unknown = set(changes) - STEP_EDITABLE
    if unknown:
        raise ValueError(f"Step fields not editable: {sorted(unknown)}")
    if find_step(state.document, step_id) is None:
        return state, rejected(Rejection.not_found)
    steps = [_revise(s, changes) if s.id == step_id else s for s in state.document.steps]
    return _update(state, steps=steps)


def update_step_settings(state: BuilderState, step_id: str, **changes) -> Transition:
    """Partial settings update; fields not named keep their current value."""
    step = find_step(state.document, step_id)
    if step is None:
        return state, rejected(Rejection.not_found)
    current = step.settings or StepSettings()
    settings = StepSettings.model_validate({**current.model_dump(), **changes})
    return update_step(state, step_id, settings=settings)


def delete_step(state: BuilderState, step_id: str) -> Transition:
    steps = state.document.steps
    step = find_step(state.document, step_id)
    if reason := check_step_removable(step):
        return state, rejected(reason)

    remaining = [s for s in steps if s.id != step_id]
    active = state.active_step_id
    if active == step_id:
        index = next(i for i, s in enumerate(steps) if s.id == step_id)
        if index > 0:
            active = steps[index - 1].id
        else:
            active = remaining[0].id if remaining else None
    selected_block = state.selected_block_id
    if selected_block in _block_ids(step):
        selected_block = None
    return _update(state, steps=remaining, active_step_id=active, selected_block_id=selected_block)


def duplicate_step(state: BuilderState, step_id: str) -> Transition:
    """Insert a deep copy right after the original; every copied block gets a fresh id."""
    steps = state.document.steps
    step = find_step(state.document, step_id)
    if reason := check_step_removable(step):
        return state, rejected(reason)

    copy = step.model_copy(deep=True, update={
        "id": generate_id("step"),
        "label": f"{step.label}{COPY_SUFFIX}",
        "blocks": [b.model_copy(deep=True, update={"id": generate_id("block")}) for b in step.blocks],
    })
    index = steps.index(step)
    return _update(
        state,
        steps=[*steps[:index + 1], copy, *steps[index + 1:]],
        active_step_id=copy.id,
        selected_outcome_id=None,
        selected_block_id=None,
    )


def reorder_steps(state: BuilderState, from_index: int, to_index: int) -> Transition:
    steps = list(state.document.steps)
    if reason := check_step_reorder(steps, from_index, to_index):
        return state, rejected(reason)
    moved = steps.pop(from_index)
    steps.insert(to_index, moved)
    return _update(state, steps=steps)


# --- outcomes ---

def add_outcome(state: BuilderState, outcome: Outcome) -> Transition:
    if find_outcome(state.document, outcome.id) is not None:
        return state, rejected(Rejection.duplicate_id)
    if not outcome.blocks:
        outcome = outcome.model_copy(update={"blocks": default_outcome_blocks()})
    return _update(
        state,
        outcomes=[*state.document.outcomes, outcome],
        active_step_id=_result_step_id(state) or state.active_step_id,
        selected_outcome_id=outcome.id,
        selected_block_id=None,
    )


def update_outcome(state: BuilderState, outcome_id: str, **changes) -> Transition:
    unknown = set(changes) - OUTCOME_EDITABLE
    if unknown:
        raise ValueError(f"Outcome fields not editable: {sorted(unknown)}")
    if find_outcome(state.document, outcome_id) is None:
        return state, rejected(Rejection.not_found)
    outcomes = [_revise(o, changes) if o.id == outcome_id else o for o in state.document.outcomes]
    return _update(state, outcomes=outcomes)


def delete_outcome(state: BuilderState, outcome_id: str) -> Transition:
    outcomes = state.document.outcomes
    if reason := check_outcome_removable(outcomes, outcome_id):
        return state, rejected(reason)
    deleted = find_outcome(state.document, outcome_id)
    remaining = [o for o in outcomes if o.id != outcome_id]
    selected = state.selected_outcome_id
    if selected == outcome_id:
        selected = remaining[0].id
    selected_block = state.selected_block_id
    if selected_block in _block_ids(deleted):
        selected_block = None
    return _update(state, outcomes=remaining, selected_outcome_id=selected, selected_block_id=selected_block)


# --- blocks (shared by steps and outcomes) ---

BlocksEdit = Callable[[list[Block]], "list[Block] | Rejection"]


def _edit_blocks(state: BuilderState, kind: ContainerKind, container_id: str, edit: BlocksEdit, **fields) -> Transition:
    containers = state.document.steps if kind == ContainerKind.step else state.document.outcomes
    target = next((c for c in containers if c.id == container_id), None)
    if target is None:
        return state, rejected(Rejection.not_found)
    blocks = edit(list(target.blocks))
    if isinstance(blocks, Rejection):
        return state, rejected(blocks)
    updated = [c.model_copy(update={"blocks": blocks}) if c.id == container_id else c for c in containers]
    if kind == ContainerKind.step:
        return _update(state, steps=updated, **fields)
    return _update(state, outcomes=updated, **fields)


def _map_block(block_id: str, fn: Callable[[Block], Block]) -> BlocksEdit:
    def edit(blocks):
        if not any(b.id == block_id for b in blocks):
            return Rejection.not_found
        return [fn(b) if b.id == block_id else b for b in blocks]
    return edit


def _add_block(state, kind, container_id, block: Block, index: int | None = None) -> Transition:
    def edit(blocks):
        if any(b.id == block.id for b in blocks):
            return Rejection.duplicate_id
        blocks.insert(clamp_index(index, len(blocks)), block)
        return blocks
    return _edit_blocks(state, kind, container_id, edit, selected_block_id=block.id)


def _update_block(state, kind, container_id, block_id: str, **config_changes) -> Transition:
    return _edit_blocks(state, kind, container_id, _map_block(block_id, lambda b: b.with_config(**config_changes)))


def _toggle_block(state, kind, container_id, block_id: str) -> Transition:
    return _edit_blocks(state, kind, container_id,
                        _map_block(block_id, lambda b: b.model_copy(update={"enabled": not b.enabled})))


def _delete_block(state, kind, container_id, block_id: str) -> Transition:
    def edit(blocks):
        if not any(b.id == block_id for b in blocks):
            return Rejection.not_found
        return [b for b in blocks if b.id != block_id]
    selected = None if state.selected_block_id == block_id else state.selected_block_id
    return _edit_blocks(state, kind, container_id, edit, selected_block_id=selected)


def _reorder_blocks(state, kind, container_id, from_index: int, to_index: int) -> Transition:
    def edit(blocks):
        if reason := check_block_reorder(len(blocks), from_index, to_index):
            return reason
        moved = blocks.pop(from_index)
        blocks.insert(clamp_index(to_index, len(blocks)), moved)
        return blocks
    return _edit_blocks(state, kind, container_id, edit)


def add_block(state: BuilderState, step_id: str, block: Block, index: int | None = None) -> Transition:
    return _add_block(state, ContainerKind.step, step_id, block, index)


def update_block(state: BuilderState, step_id: str, block_id: str, **config_changes) -> Transition:
    return _update_block(state, ContainerKind.step, step_id, block_id, **config_changes)


def delete_block(state: BuilderState, step_id: str, block_id: str) -> Transition:
    return _delete_block(state, ContainerKind.step, step_id, block_id)


def toggle_block(state: BuilderState, step_id: str, block_id: str) -> Transition:
    return _toggle_block(state, ContainerKind.step, step_id, block_id)


def reorder_blocks(state: BuilderState, step_id: str, from_index: int, to_index: int) -> Transition:
    return _reorder_blocks(state, ContainerKind.step, step_id, from_index, to_index)


def add_outcome_block(state: BuilderState, outcome_id: str, block: Block, index: int | None = None) -> Transition:
    return _add_block(state, ContainerKind.outcome, outcome_id, block, index)


def update_outcome_block(state: BuilderState, outcome_id: str, block_id: str, **config_changes) -> Transition:
    return _update_block(state, ContainerKind.outcome, outcome_id, block_id, **config_changes)


def delete_outcome_block(state: BuilderState, outcome_id: str, block_id: str) -> Transition:
    return _delete_block(state, ContainerKind.outcome, outcome_id, block_id)


def toggle_outcome_block(state: BuilderState, outcome_id: str, block_id: str) -> Transition:
    return _toggle_block(state, ContainerKind.outcome, outcome_id, block_id)


def reorder_outcome_blocks(state: BuilderState, outcome_id: str, from_index: int, to_index: int) -> Transition:
    return _reorder_blocks(state, ContainerKind.outcome, outcome_id, from_index, to_index)


# --- persistence feedback ---

def apply_asset_urls(state: BuilderState, migrations: list[AssetMigration]) -> Transition:
    """Swap migrated inline assets for their durable URLs ("" for failed uploads).

    A field is only replaced while it still holds the exact inline value that
    was uploaded; edits made during the commit win.
    """
    original = state
    applied = False
    for m in migrations:
        ref = m.ref

        def swap(blocks, ref=ref, m=m):
            nonlocal applied
            out = []
            for b in blocks:
                if b.id == ref.block_id and asset_value(b, ref) == m.original:
                    b = with_asset(b, ref, m.url)
                    applied = True
                out.append(b)
            return out

        state, _ = _edit_blocks(state, ref.kind, ref.container_id, swap)
    if not applied:
        return original, rejected(Rejection.not_found)
    return state, APPLIED
