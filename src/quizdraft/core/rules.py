"""Structural preconditions over steps, blocks, and outcomes

Every check returns a Rejection (or None when the change is allowed) instead of
raising; callers turn a rejection into an unchanged state plus an OpResult.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from quizdraft.core.models import Outcome, QuizDocument, Step, StepType


class Rejection(str, Enum):
    fixed_step = "fixed_step"
    out_of_bounds = "out_of_bounds"
    same_index = "same_index"
    last_outcome = "last_outcome"
    not_found = "not_found"
    duplicate_id = "duplicate_id"


@dataclass(frozen=True)
class OpResult:
    """Outcome of a structural operation: applied, or rejected with a reason."""
    applied: bool
    reason: Optional[Rejection] = None

    def __bool__(self) -> bool:
        return self.applied


APPLIED = OpResult(True)


def rejected(reason: Rejection) -> OpResult:
    return OpResult(False, reason)


def _index_of_type(steps: list[Step], step_type: StepType) -> int:
    return next((i for i, s in enumerate(steps) if s.type == step_type), -1)


def step_insert_index(steps: list[Step], insert_after_id: str | None = None) -> int | None:
    """Index a new step goes to, or None when the anchor would land at/after result.

    Default (no anchor, or an anchor that names no step) is immediately before
    the result step, or append when there is no result step.
    """
    result_index = _index_of_type(steps, StepType.result)
    if insert_after_id is not None:
        anchor = next((i for i, s in enumerate(steps) if s.id == insert_after_id), -1)
        if anchor != -1:
            if result_index != -1 and anchor + 1 > result_index:
                return None
            return anchor + 1
    return result_index if result_index != -1 else len(steps)


def check_step_reorder(steps: list[Step], from_index: int, to_index: int) -> Rejection | None:
    if not (0 <= from_index < len(steps)) or not (0 <= to_index < len(steps)):
        return Rejection.out_of_bounds
    if steps[from_index].is_fixed:
        return Rejection.fixed_step
    if from_index == to_index:
        return Rejection.same_index
    if to_index <= _index_of_type(steps, StepType.intro):
        return Rejection.out_of_bounds
    result_index = _index_of_type(steps, StepType.result)
    if result_index != -1 and to_index >= result_index:
        return Rejection.out_of_bounds
    return None


def check_step_removable(step: Step | None) -> Rejection | None:
    """Delete and duplicate share this check: fixed steps are untouchable."""
    if step is None:
        return Rejection.not_found
    if step.is_fixed:
        return Rejection.fixed_step
    return None


def clamp_index(index: int | None, length: int) -> int:
    """Block insert position; None or anything outside [0, length] appends."""
    if index is None or index < 0 or index > length:
        return length
    return index


def check_block_reorder(length: int, from_index: int, to_index: int) -> Rejection | None:
    """The source must exist; the destination is clamped, so only a no-move is rejected."""
    if not (0 <= from_index < length):
        return Rejection.out_of_bounds
    if clamp_index(to_index, length - 1) == from_index:
        return Rejection.same_index
    return None


def check_outcome_removable(outcomes: list[Outcome], outcome_id: str) -> Rejection | None:
    if not any(o.id == outcome_id for o in outcomes):
        return Rejection.not_found
    if len(outcomes) <= 1:
        return Rejection.last_outcome
    return None


def validate_document(document: QuizDocument) -> None:
    """Raise ValueError unless intro is first, result is last, both unique and fixed."""
    steps = document.steps
    intros = [s for s in steps if s.type == StepType.intro]
    results = [s for s in steps if s.type == StepType.result]
    if len(intros) != 1 or len(results) != 1:
        raise ValueError(f"Expected exactly one intro and one result step, got {len(intros)} and {len(results)}")
    if steps[0].type != StepType.intro or steps[-1].type != StepType.result:
        raise ValueError("Intro step must be first and result step must be last")
    if not (intros[0].is_fixed and results[0].is_fixed):
        raise ValueError("Intro and result steps must be fixed")
    fixed_middle = [s.id for s in steps[1:-1] if s.is_fixed]
    if fixed_middle:
        raise ValueError(f"Only intro and result may be fixed: {fixed_middle}")
