"""Suggestion anchoring: position lookup, projection and editor decorations."""

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import Protocol
from uuid import UUID

from backend.app.editor.decorations import EMPTY, Decoration, DecorationSet
from backend.app.editor.schema import Node
from backend.app.editor.state import Plugin, PluginKey, Transaction
from backend.app.editor.transactions import NO_DEBOUNCE_META, NO_SAVE_META
from backend.app.editor.view import EditorView
from backend.app.models.common import ArtifactKind
from backend.app.models.documents import UISuggestion

logger = logging.getLogger(__name__)

HIGHLIGHT_CLASS = "suggestion-highlight"

SUGGESTIONS_PLUGIN_KEY = PluginKey("suggestions")


@dataclass(frozen=True)
class Position:
    start: int
    end: int


class SuggestionLike(Protocol):
    id: UUID
    document_id: UUID
    original_text: str
    suggested_text: str
    description: str | None
    is_resolved: bool


def find_positions_in_doc(doc: Node, search_text: str) -> Position | None:
    """Locate the first occurrence of `search_text` inside a single text node.

    Text nodes are scanned in document order and the first hit wins. A match
    never spans two text nodes, so text split by marks or blocks is not found.
    """
    if not search_text:
        return None

    found: list[Position] = []

    def visit(node: Node, pos: int) -> bool:
        if found:
            return False
        if node.is_text and node.text:
            index = node.text.find(search_text)
            if index != -1:
                found.append(Position(pos + index, pos + index + len(search_text)))
                return False
        return True

    doc.nodes_between(0, doc.content_size, visit)
    return found[0] if found else None


def project_with_positions(doc: Node, suggestions: Iterable[SuggestionLike]) -> list[UISuggestion]:
    """Anchor suggestions on `doc`, falling back to an empty range at 0."""
    projected = []
    for suggestion in suggestions:
        positions = find_positions_in_doc(doc, suggestion.original_text)
        projected.append(
            UISuggestion(
                id=suggestion.id,
                document_id=suggestion.document_id,
                original_text=suggestion.original_text,
                suggested_text=suggestion.suggested_text,
                description=suggestion.description,
                is_resolved=suggestion.is_resolved,
                selection_start=positions.start if positions else 0,
                selection_end=positions.end if positions else 0,
            )
        )
    return projected


@dataclass(frozen=True)
class SuggestionsPluginState:
    decorations: DecorationSet = EMPTY
    selected: str | None = None


def _init_state(doc: Node) -> SuggestionsPluginState:
    return SuggestionsPluginState()


def _apply_state(tr: Transaction, value: SuggestionsPluginState) -> SuggestionsPluginState:
    new_state = tr.get_meta(SUGGESTIONS_PLUGIN_KEY)
    if new_state is not None:
        return new_state
    return SuggestionsPluginState(value.decorations.map(tr.mapping, tr.doc), value.selected)


def suggestions_plugin() -> Plugin:
    return Plugin(
        key=SUGGESTIONS_PLUGIN_KEY,
        init=_init_state,
        apply=_apply_state,
        decorations=lambda value: value.decorations,
    )


class SuggestionWidget:
    """Detachable element rendered next to a highlighted suggestion."""

    def __init__(self, suggestion: UISuggestion, view: EditorView, artifact_kind: ArtifactKind = ArtifactKind.text):
        self.suggestion = suggestion
        self.view = view
        self.artifact_kind = artifact_kind
        self.destroyed = False

    def apply(self) -> None:
        """Swap the anchored text for the suggested text in one transaction."""
        if self.destroyed:
            return

        state = self.view.state
        current: SuggestionsPluginState = SUGGESTIONS_PLUGIN_KEY.get_state(state) or SuggestionsPluginState()
        suggestion_id = str(self.suggestion.id)
        own = current.decorations.find(predicate=lambda spec: spec.get("suggestionId") == suggestion_id)
        remaining = current.decorations.remove(own)

        # The highlight has been mapped through every edit since projection
        highlight = next((d for d in own if d.spec.get("type") == "highlight"), None)

        tr = state.tr
        if highlight is None or highlight.from_ == highlight.to:
            logger.warning("Suggestion %s is not anchored in the document; dismissing it", suggestion_id)
        else:
            tr.replace_with(highlight.from_, highlight.to, self.suggestion.suggested_text)
            tr.set_meta(NO_DEBOUNCE_META, True)

        tr.set_meta(SUGGESTIONS_PLUGIN_KEY, SuggestionsPluginState(remaining.map(tr.mapping, tr.doc), None))
        self.view.dispatch(tr)

    def destroy(self) -> None:
        self.destroyed = True


def create_decorations(
    suggestions: Sequence[UISuggestion],
    view: EditorView,
    artifact_kind: ArtifactKind = ArtifactKind.text,
) -> DecorationSet:
    """Highlight plus apply-widget for each suggestion, in input order."""
    decorations: list[Decoration] = []
    for suggestion in suggestions:
        suggestion_id = str(suggestion.id)
        decorations.append(
            Decoration.inline(
                suggestion.selection_start,
                suggestion.selection_end,
                {"class": HIGHLIGHT_CLASS},
                {"suggestionId": suggestion_id, "type": "highlight"},
            )
        )
        decorations.append(
            Decoration.create_widget(
                suggestion.selection_start,
                SuggestionWidget(suggestion, view, artifact_kind),
                {"suggestionId": suggestion_id, "type": "widget"},
            )
        )
    return DecorationSet.create(view.state.doc, decorations)


def set_suggestions(
    view: EditorView,
    suggestions: Iterable[SuggestionLike],
    artifact_kind: ArtifactKind = ArtifactKind.text,
) -> list[UISuggestion]:
    """Project suggestions onto the view's document and replace its decorations."""
    projected = project_with_positions(view.state.doc, suggestions)
    decorations = create_decorations(projected, view, artifact_kind)

    tr = view.state.tr
    tr.set_meta(SUGGESTIONS_PLUGIN_KEY, SuggestionsPluginState(decorations))
    tr.set_meta(NO_SAVE_META, True)
    view.dispatch(tr)
    return projected
