"""Session-owned reactive container around the pure builder transitions"""

import logging
from typing import Callable

from quizdraft.core import state as ops
from quizdraft.core.assets import AssetMigration
from quizdraft.core.blocks import Block
from quizdraft.core.models import Outcome, QuizDocument, Step
from quizdraft.core.rules import OpResult, validate_document
from quizdraft.core.state import BuilderState, Transition


logger = logging.getLogger(__name__)

Listener = Callable[[BuilderState, BuilderState], None]


class BuilderStore:
    """Single-writer holder of the current BuilderState.

    Every mutation goes through a pure transition; listeners are notified with
    (new, old) whenever the document value itself changed, so selection-only
    updates never arm an autosave.
    """

    def __init__(self, document: QuizDocument | None = None):
        self._state = ops.initial_state(document)
        self._listeners: list[Listener] = []

    @property
    def state(self) -> BuilderState:
        return self._state

    @property
    def document(self) -> QuizDocument:
        return self._state.document

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)
        return unsubscribe

    def _commit(self, transition: Transition) -> OpResult:
        new, result = transition
        old = self._state
        if new is old:
            if not result:
                logger.debug("Rejected: %s", result.reason.value if result.reason else "no-op")
            return result
        self._state = new
        if new.document is not old.document:
            for listener in list(self._listeners):
                listener(new, old)
        return result

    # --- lifecycle ---

    def initialize(self, steps: list[Step], outcomes: list[Outcome]) -> None:
        """Replace the document wholesale; raises ValueError on a broken anchor invariant."""
        document = QuizDocument(steps=steps, outcomes=outcomes)
        validate_document(document)
        self._commit((ops.initial_state(document), ops.APPLIED))

    def reset(self) -> None:
        self._commit((ops.initial_state(), ops.APPLIED))

    # --- selection ---

    def set_active_step(self, step_id: str | None) -> OpResult:
        return self._commit(ops.set_active_step(self._state, step_id))

    def select_outcome(self, outcome_id: str | None) -> OpResult:
        return self._commit(ops.select_outcome(self._state, outcome_id))

    def select_block(self, block_id: str | None) -> OpResult:
        return self._commit(ops.select_block(self._state, block_id))

    def request_add_step(self, requested: bool = True) -> OpResult:
        return self._commit(ops.request_add_step(self._state, requested))

    # --- steps ---

    def add_step(self, step: Step, insert_after_id: str | None = None) -> OpResult:
        return self._commit(ops.add_step(self._state, step, insert_after_id))

    def update_step(self, step_id: str, **changes) -> OpResult:
        return self._commit(ops.update_step(self._state, step_id, **changes))

    def update_step_settings(self, step_id: str, **changes) -> OpResult:
        return self._commit(ops.update_step_settings(self._state, step_id, **changes))

    def delete_step(self, step_id: str) -> OpResult:
        return self._commit(ops.delete_step(self._state, step_id))

    def duplicate_step(self, step_id: str) -> OpResult:
        return self._commit(ops.duplicate_step(self._state, step_id))

    def reorder_steps(self, from_index: int, to_index: int) -> OpResult:
        return self._commit(ops.reorder_steps(self._state, from_index, to_index))

    # --- outcomes ---

    def add_outcome(self, outcome: Outcome) -> OpResult:
        return self._commit(ops.add_outcome(self._state, outcome))

    def update_outcome(self, outcome_id: str, **changes) -> OpResult:
        return self._commit(ops.update_outcome(self._state, outcome_id, **changes))

    def delete_outcome(self, outcome_id: str) -> OpResult:
        return self._commit(ops.delete_outcome(self._state, outcome_id))

    # --- blocks ---

    def add_block(self, step_id: str, block: Block, index: int | None = None) -> OpResult:
        return self._commit(ops.add_block(self._state, step_id, block, index))

    def update_block(self, step_id: str, block_id: str, **config_changes) -> OpResult:
        return self._commit(ops.update_block(self._state, step_id, block_id, **config_changes))

    def delete_block(self, step_id: str, block_id: str) -> OpResult:
        return self._commit(ops.delete_block(self._state, step_id, block_id))

    def toggle_block(self, step_id: str, block_id: str) -> OpResult:
        return self._commit(ops.toggle_block(self._state, step_id, block_id))

    def reorder_blocks(self, step_id: str, from_index: int, to_index: int) -> OpResult:
        return self._commit(ops.reorder_blocks(self._state, step_id, from_index, to_index))

    def add_outcome_block(self, outcome_id: str, block: Block, index: int | None = None) -> OpResult:
        return self._commit(ops.add_outcome_block(self._state, outcome_id, block, index))

    def update_outcome_block(self, outcome_id: str, block_id: str, **config_changes) -> OpResult:
        return self._commit(ops.update_outcome_block(self._state, outcome_id, block_id, **config_changes))

    def delete_outcome_block(self, outcome_id: str, block_id: str) -> OpResult:
        return self._commit(ops.delete_outcome_block(self._state, outcome_id, block_id))

    def toggle_outcome_block(self, outcome_id: str, block_id: str) -> OpResult:
        return self._commit(ops.toggle_outcome_block(self._state, outcome_id, block_id))

    def reorder_outcome_blocks(self, outcome_id: str, from_index: int, to_index: int) -> OpResult:
        return self._commit(ops.reorder_outcome_blocks(self._state, outcome_id, from_index, to_index))

    # --- persistence feedback ---

    def apply_asset_urls(self, migrations: list[AssetMigration]) -> OpResult:
        return self._commit(ops.apply_asset_urls(self._state, migrations))
