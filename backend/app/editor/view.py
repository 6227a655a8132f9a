"""Headless editor view holding the current state."""

from collections.abc import Callable

from backend.app.editor.state import EditorState, Transaction


class EditorView:
    """Owns an editor state and routes transactions.

    When `dispatch_transaction` is given, dispatching hands the transaction to
    it and the callback is responsible for calling `update_state`.
    """

    def __init__(
        self,
        state: EditorState,
        dispatch_transaction: Callable[[Transaction], None] | None = None,
    ) -> None:
        self.state = state
        self.dispatch_transaction = dispatch_transaction
        self.destroyed = False

    def dispatch(self, tr: Transaction) -> None:
        if self.dispatch_transaction is not None:
            self.dispatch_transaction(tr)
        else:
            self.update_state(self.state.apply(tr))

    def update_state(self, state: EditorState) -> None:
        self.state = state

    def destroy(self) -> None:
        self.destroyed = True
