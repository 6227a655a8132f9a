"""Document transaction handling and save coalescing.

Every transaction dispatched by the editor view passes through
`DocumentTransactionHandler`, which applies it to the view and decides
whether, and how urgently, the serialized content is persisted:

    doc changed | no-save | no-debounce | action
    ------------+---------+-------------+---------------------------
    no          |    -    |      -      | apply only
    yes         |   yes   |      -      | apply only
    yes         |   no    |     yes     | serialize, save immediately
    yes         |   no    |     no      | serialize, save debounced
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from enum import Enum

from backend.app.config import Settings, get_settings
from backend.app.editor.codec import encode
from backend.app.editor.state import MismatchedTransactionError, Transaction
from backend.app.editor.view import EditorView

logger = logging.getLogger(__name__)

NO_SAVE_META = "no-save"
NO_DEBOUNCE_META = "no-debounce"

__all__ = [
    "NO_SAVE_META",
    "NO_DEBOUNCE_META",
    "EditorUnavailableError",
    "MismatchedTransactionError",
    "SaveAction",
    "SaveDebouncer",
    "DocumentTransactionHandler",
    "handle_transaction",
]


class EditorUnavailableError(RuntimeError):
    """No live editor view to apply a transaction to."""

    pass


class SaveAction(str, Enum):
    apply_only = "apply-only"
    save_immediate = "save-immediate"
    save_debounced = "save-debounced"


def classify_transaction(tr: Transaction) -> SaveAction:
    if not tr.doc_changed or tr.get_meta(NO_SAVE_META):
        return SaveAction.apply_only
    if tr.get_meta(NO_DEBOUNCE_META):
        return SaveAction.save_immediate
    return SaveAction.save_debounced


def handle_transaction(
    tr: Transaction,
    view: EditorView | None,
    on_save_content: Callable[[str, bool], None],
) -> SaveAction:
    """Apply `tr` to `view` and hand serialized content to `on_save_content`.

    Args:
        tr: Transaction dispatched by the editor
        view: Live editor view; None or destroyed means the editor is gone
        on_save_content: Called with (content, debounce) when a save is due

    Returns:
        The action taken for this transaction

    Raises:
        EditorUnavailableError: If there is no live view
        MismatchedTransactionError: If `tr` was built against a stale document
    """
    if view is None or view.destroyed:
        raise EditorUnavailableError("Cannot apply transaction: editor view is not available")

    new_state = view.state.apply(tr)
    view.update_state(new_state)

    action = classify_transaction(tr)
    if action is not SaveAction.apply_only:
        content = encode(new_state.doc)
        on_save_content(content, action is SaveAction.save_debounced)
    return action


class SaveDebouncer:
    """Coalesces save requests so only the latest content in a window is saved.

    Debounced submissions restart the window; an immediate submission
    supersedes any content still waiting in the window. Save failures are
    logged and re-raised from `flush()`.
    """

    def __init__(self, save: Callable[[str], Awaitable[None]], window_seconds: float) -> None:
        self._save = save
        self.window_seconds = window_seconds
        self._pending: str | None = None
        self._timer: asyncio.TimerHandle | None = None
        self._tasks: set[asyncio.Task] = set()
        self._error: BaseException | None = None
        self._lock = asyncio.Lock()

    @classmethod
    def from_settings(
        cls, save: Callable[[str], Awaitable[None]], settings: Settings | None = None
    ) -> "SaveDebouncer":
        """Build a debouncer whose window is the configured `save_debounce_ms`."""
        settings = settings or get_settings()
        return cls(save, settings.save_debounce_ms / 1000)

    @property
    def has_pending(self) -> bool:
        return self._pending is not None

    def submit(self, content: str, debounce: bool) -> None:
        """Schedule a save; must be called from a running event loop."""
        loop = asyncio.get_running_loop()
        self._cancel_timer()

        if debounce:
            self._pending = content
            self._timer = loop.call_later(self.window_seconds, self._fire)
        else:
            self._pending = None
            self._spawn(content)

    async def flush(self) -> None:
        """Save any waiting content now and wait for in-flight saves."""
        if self._timer is not None:
            self._cancel_timer()
            self._fire()

        while self._tasks:
            await asyncio.gather(*list(self._tasks))

        if self._error is not None:
            error, self._error = self._error, None
            raise error

    def cancel(self) -> None:
        """Drop waiting content without saving it."""
        self._cancel_timer()
        self._pending = None

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _fire(self) -> None:
        self._timer = None
        content, self._pending = self._pending, None
        if content is not None:
            self._spawn(content)

    def _spawn(self, content: str) -> None:
        task = asyncio.get_running_loop().create_task(self._run_save(content))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _run_save(self, content: str) -> None:
        # Saves land in submission order
        async with self._lock:
            try:
                await self._save(content)
            except Exception as exc:
                logger.error("Failed to save document content", exc_info=True)
                self._error = exc


class DocumentTransactionHandler:
    """Dispatch target of an editor view that persists through a `SaveDebouncer`."""

    def __init__(self, debouncer: SaveDebouncer, view: EditorView | None = None) -> None:
        self.debouncer = debouncer
        self.view = view

    def bind(self, view: EditorView) -> None:
        self.view = view
        view.dispatch_transaction = self

    def __call__(self, tr: Transaction) -> SaveAction:
        return handle_transaction(tr, self.view, self.debouncer.submit)
