"""Debounced autosave: observes a BuilderStore and commits its document durably

State machine: IDLE -> PENDING (timer armed) -> COMMITTING -> IDLE. Every
document change re-arms the timer (pure debounce). Commits are serialized by
a lock, so a force-flush issued during an in-flight commit waits for it and
then commits whatever the store holds at that moment.
"""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from quizdraft.config import DEFAULT_TIER_LIMITS, TierLimits
from quizdraft.core.assets import has_inline_assets, migrate_document
from quizdraft.core.metadata import has_meaningful_content
from quizdraft.core.quota import check_draft_quota, limits_for
from quizdraft.core.store import BuilderStore
from quizdraft.core.utils.hashing import fingerprint
from quizdraft.crud.blobs import BlobStore
from quizdraft.crud.quizzes import build_record, save_quiz, skeleton_record
from quizdraft.crud.store import DocumentStore
from quizdraft.errors import DraftLimitReached


logger = logging.getLogger(__name__)


class SaveState(str, Enum):
    IDLE = "idle"
    PENDING = "pending"
    COMMITTING = "committing"


class SaveStatus(str, Enum):
    saved = "saved"
    skipped_unchanged = "skipped_unchanged"
    skipped_empty = "skipped_empty"


@dataclass(frozen=True)
class SaveResult:
    status: SaveStatus
    migrated: int = 0
    failed: int = 0

    @property
    def saved(self) -> bool:
        return self.status == SaveStatus.saved


class AutosaveScheduler:
    def __init__(
        self,
        builder: BuilderStore,
        documents: DocumentStore,
        blobs: BlobStore,
        quiz_id: str,
        owner_id: str,
        *,
        tier: str = "free",
        tier_limits: Optional[dict[str, TierLimits]] = None,
        debounce_seconds: float = 30.0,
        new_quiz_debounce_seconds: float = 5.0,
        is_new_quiz: bool = True,
        on_save_complete: Optional[Callable[[SaveResult], None]] = None,
        on_save_error: Optional[Callable[[Exception], None]] = None,
        on_limit_error: Optional[Callable[[DraftLimitReached], None]] = None,
    ):
        self.builder = builder
        self.documents = documents
        self.blobs = blobs
        self.quiz_id = quiz_id
        self.owner_id = owner_id
        self.limits = limits_for(tier, tier_limits if tier_limits is not None else DEFAULT_TIER_LIMITS)
        self.debounce_seconds = debounce_seconds
        self.new_quiz_debounce_seconds = new_quiz_debounce_seconds
        self.on_save_complete = on_save_complete
        self.on_save_error = on_save_error
        self.on_limit_error = on_limit_error

        self._committed = not is_new_quiz
        # A loaded quiz starts out in sync with its stored record
        self._last_fingerprint = None if is_new_quiz else fingerprint(builder.document)
        self._state = SaveState.IDLE
        self._lock = asyncio.Lock()
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._handle: Optional[asyncio.TimerHandle] = None
        self._unsubscribe: Optional[Callable[[], None]] = None
        self._tasks: set[asyncio.Task] = set()
        self._applying_feedback = False

    @property
    def state(self) -> SaveState:
        return self._state

    @property
    def is_saving(self) -> bool:
        return self._state == SaveState.COMMITTING

    @property
    def delay(self) -> float:
        """Short window until the first successful commit, long window after."""
        if self._committed:
            return self.debounce_seconds
        return min(self.debounce_seconds, self.new_quiz_debounce_seconds)

    # --- lifecycle ---

    def start(self) -> None:
        """Begin observing the builder; must be called from inside the running loop."""
        if self._unsubscribe is not None:
            return
        self._loop = asyncio.get_running_loop()
        self._unsubscribe = self.builder.subscribe(self._on_change)

    def close(self) -> Optional[asyncio.Task]:
        """Stop observing and start one best-effort flush; callers need not await it.

        A scheduler that was never started and is closed outside a running
        loop has no loop to flush on; it returns None.
        """
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        self.cancel_pending_save()
        loop = self._loop
        if loop is None:
            try:
                loop = asyncio.get_running_loop()
            except RuntimeError:
                logger.warning("Quiz %s closed outside an event loop, final flush skipped", self.quiz_id)
                return None
        return self._spawn(loop)

    # --- timer ---

    def _on_change(self, new, old) -> None:
        if self._applying_feedback:
            return
        if self._handle is not None:
            self._handle.cancel()
        self._handle = self._loop.call_later(self.delay, self._fire)
        if self._state == SaveState.IDLE:
            self._state = SaveState.PENDING

    def _fire(self) -> None:
        self._handle = None
        self._spawn(self._loop)

    def _spawn(self, loop: asyncio.AbstractEventLoop) -> asyncio.Task:
        task = loop.create_task(self._commit_quietly())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _commit_quietly(self) -> Optional[SaveResult]:
        """Background commit; failures already went to the log and callbacks."""
        try:
            return await self._commit_serialized()
        except Exception:
            return None

    def cancel_pending_save(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        if self._state == SaveState.PENDING:
            self._state = SaveState.IDLE

    async def force_save(self) -> SaveResult:
        """Cancel the pending timer and commit now, after any in-flight commit."""
        self.cancel_pending_save()
        return await self._commit_serialized()

    # --- commit ---

    async def _commit_serialized(self) -> SaveResult:
        async with self._lock:
            self._state = SaveState.COMMITTING
            try:
                return await self._commit()
            finally:
                self._state = SaveState.PENDING if self._handle is not None else SaveState.IDLE

    async def _commit(self) -> SaveResult:
        document = self.builder.document
        fp = fingerprint(document)
        if fp == self._last_fingerprint:
            logger.debug("Quiz %s unchanged since last commit, skipping", self.quiz_id)
            return SaveResult(SaveStatus.skipped_unchanged)
        if not has_meaningful_content(document):
            logger.debug("Quiz %s has no content yet, skipping", self.quiz_id)
            return SaveResult(SaveStatus.skipped_empty)

        try:
            result = await self._write(document.model_copy(deep=True))
        except DraftLimitReached as e:
            # Identical content would hit the same limit; wait for a real change
            self._last_fingerprint = fp
            if self.on_limit_error:
                self.on_limit_error(e)
            raise
        except Exception as e:
            logger.error("Autosave failed for quiz %s: %s", self.quiz_id, e)
            if self.on_save_error:
                self.on_save_error(e)
            raise

        if self.on_save_complete:
            self.on_save_complete(result)
        return result

    async def _write(self, document) -> SaveResult:
        existing = await self.documents.get(self.quiz_id)
        if existing is None:
            await check_draft_quota(self.documents, self.owner_id, self.limits)
            if has_inline_assets(document):
                existing = skeleton_record(self.quiz_id, self.owner_id)
                await self.documents.set(self.quiz_id, existing, merge=True)
                logger.info("Created skeleton record for quiz %s before asset upload", self.quiz_id)

        report = await migrate_document(document, self.quiz_id, self.blobs)
        record = build_record(report.document, self.quiz_id, self.owner_id, existing=existing)
        await save_quiz(self.documents, self.quiz_id, record)

        self._committed = True
        self._last_fingerprint = fingerprint(report.document)
        if report.changed:
            # The record just written already holds these URLs
            self._applying_feedback = True
            try:
                self.builder.apply_asset_urls(report.migrated + report.failed)
            finally:
                self._applying_feedback = False
        if report.failed:
            logger.warning("Quiz %s saved with %d asset(s) cleared after failed upload",
                           self.quiz_id, len(report.failed))
        return SaveResult(SaveStatus.saved, migrated=len(report.migrated), failed=len(report.failed))
