"""Unit tests for suggestion anchoring: position lookup and projection."""

from uuid import uuid4

import pytest

from backend.app.editor.schema import (
    bullet_list,
    doc,
    heading,
    list_item,
    mark,
    paragraph,
    text_node,
)
from backend.app.editor.suggestions import (
    Position,
    find_positions_in_doc,
    project_with_positions,
)
from backend.app.models.documents import StreamedSuggestion


def _suggestion(original: str, suggested: str = "replacement") -> StreamedSuggestion:
    return StreamedSuggestion(
        id=uuid4(),
        document_id=uuid4(),
        original_text=original,
        suggested_text=suggested,
        description="Tighter wording",
    )


class TestFindPositions:
    """Test first-match lookup over text nodes."""

    def test_single_paragraph_offsets(self) -> None:
        document = doc(paragraph("Hello world. This is a test."))
        assert find_positions_in_doc(document, "world") == Position(7, 12)

    def test_second_block_counts_block_boundaries(self) -> None:
        document = doc(paragraph("abc"), paragraph("def"))
        assert find_positions_in_doc(document, "def") == Position(6, 9)

    def test_first_occurrence_wins(self) -> None:
        document = doc(paragraph("Same sentence."), paragraph("Same sentence."))
        assert find_positions_in_doc(document, "Same sentence.") == Position(1, 15)

    def test_match_does_not_cross_marks(self) -> None:
        document = doc(paragraph("Hello ", text_node("bold", [mark("strong")]), " world"))
        assert find_positions_in_doc(document, "Hello bold") is None

    def test_missing_text(self) -> None:
        assert find_positions_in_doc(doc(paragraph("abc")), "xyz") is None

    def test_empty_search_is_not_found(self) -> None:
        assert find_positions_in_doc(doc(paragraph("abc")), "") is None

    def test_nested_list_item(self) -> None:
        document = doc(heading(1, "Title"), bullet_list(list_item(paragraph("first item"))))
        positions = find_positions_in_doc(document, "item")
        assert positions is not None
        assert document.text_between(positions.start, positions.end) == "item"


DOCUMENTS = [
    doc(paragraph("The quick brown fox jumps over the lazy dog.")),
    doc(heading(2, "Intro"), paragraph("Short text."), paragraph("Another paragraph with words.")),
    doc(
        paragraph("Lead in."),
        bullet_list(list_item(paragraph("alpha beta")), list_item(paragraph("gamma delta"))),
        paragraph("Closing remark."),
    ),
]


class TestProjection:
    """Test projection of stored suggestions onto a live document."""

    @pytest.mark.parametrize(
        "document,original",
        [
            (DOCUMENTS[0], "quick brown fox"),
            (DOCUMENTS[0], "lazy dog."),
            (DOCUMENTS[1], "Intro"),
            (DOCUMENTS[1], "with words"),
            (DOCUMENTS[2], "gamma delta"),
            (DOCUMENTS[2], "Closing"),
        ],
    )
    def test_present_text_is_anchored_exactly(self, document, original) -> None:
        [projected] = project_with_positions(document, [_suggestion(original)])

        assert projected.selection_start < projected.selection_end
        assert document.text_between(projected.selection_start, projected.selection_end) == original

    @pytest.mark.parametrize("document", DOCUMENTS)
    def test_absent_text_falls_back_to_zero_range(self, document) -> None:
        [projected] = project_with_positions(document, [_suggestion("not in this document")])

        assert projected.selection_start == 0
        assert projected.selection_end == 0

    def test_order_and_fields_preserved(self) -> None:
        document = DOCUMENTS[1]
        suggestions = [_suggestion("Short"), _suggestion("missing"), _suggestion("Intro")]

        projected = project_with_positions(document, suggestions)

        assert [p.id for p in projected] == [s.id for s in suggestions]
        assert projected[0].suggested_text == "replacement"
        assert projected[0].description == "Tighter wording"
        assert projected[1].selection_start == projected[1].selection_end == 0

    def test_projection_is_idempotent(self) -> None:
        document = DOCUMENTS[2]
        suggestions = [_suggestion("alpha"), _suggestion("remark")]

        first = project_with_positions(document, suggestions)
        second = project_with_positions(document, suggestions)

        assert first == second
