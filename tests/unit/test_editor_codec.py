"""Unit tests for the markdown document codec."""

import pytest

from backend.app.editor.codec import decode, encode
from backend.app.editor.schema import (
    blockquote,
    bullet_list,
    code_block,
    doc,
    hard_break,
    heading,
    list_item,
    mark,
    ordered_list,
    paragraph,
    text_node,
)

ROUND_TRIP_DOCUMENTS = {
    "heading_and_paragraph": doc(heading(1, "Title"), paragraph("Plain text.")),
    "inline_code": doc(paragraph("Call ", text_node("run()", [mark("code")]), " twice.")),
    "bullet_list": doc(bullet_list(list_item(paragraph("one")), list_item(paragraph("two")))),
    "ordered_list_with_start": doc(
        ordered_list(list_item(paragraph("first")), list_item(paragraph("second")), order=3)
    ),
    "fenced_code": doc(code_block("def f():\n    return 1\n\nprint(f())", "python")),
    "code_without_language": doc(code_block("x = 1")),
    "mixed": doc(
        heading(2, "Steps"),
        ordered_list(list_item(paragraph("Install")), list_item(paragraph("Run ", text_node("make", [mark("code")])))),
        paragraph("Then check:"),
        bullet_list(list_item(paragraph("logs")), list_item(paragraph("metrics"))),
        code_block("tail -f app.log", "bash"),
    ),
    "nested_list": doc(
        bullet_list(list_item(paragraph("parent"), bullet_list(list_item(paragraph("child")))))
    ),
    "special_characters": doc(paragraph("Use * and _ and [brackets] & <tags>.")),
    "line_start_markers": doc(paragraph("# not a heading"), paragraph("1. not a list")),
    "emphasis": doc(paragraph("a ", text_node("b", [mark("em")]), " c ", text_node("d", [mark("strong")]))),
    "hard_break": doc(paragraph("line one", hard_break(), "line two")),
    "blockquote": doc(blockquote(paragraph("quoted"))),
    "heading_ending_in_hash": doc(heading(2, "Learn C#"), paragraph("F##")),
    "heading_of_hashes_only": doc(heading(3, "##")),
    "indented_paragraph": doc(paragraph("    indented words")),
    "short_indent": doc(paragraph(" one space"), paragraph("  # two and a hash")),
    "repeated_spaces": doc(paragraph("a  b   c")),
    "tabs": doc(paragraph("a\tb"), paragraph("\tlead")),
    "indent_after_hard_break": doc(paragraph("first", hard_break(), "    second")),
}


class TestRoundTrip:
    """decode(encode(d)) must reproduce d."""

    @pytest.mark.parametrize("name", sorted(ROUND_TRIP_DOCUMENTS))
    def test_round_trip(self, name: str) -> None:
        document = ROUND_TRIP_DOCUMENTS[name]
        assert decode(encode(document)) == document

    def test_encode_is_deterministic(self) -> None:
        document = ROUND_TRIP_DOCUMENTS["mixed"]
        assert encode(document) == encode(document)


class TestEncode:
    """Test the markdown shape of serialized documents."""

    def test_blocks_separated_by_blank_line(self) -> None:
        assert encode(doc(heading(1, "Title"), paragraph("Body"))) == "# Title\n\nBody"

    def test_tight_lists(self) -> None:
        document = doc(bullet_list(list_item(paragraph("a")), list_item(paragraph("b"))))
        assert encode(document) == "* a\n* b"

    def test_ordered_list_numbers_from_order(self) -> None:
        document = doc(ordered_list(list_item(paragraph("a")), list_item(paragraph("b")), order=4))
        assert encode(document) == "4. a\n5. b"

    def test_fence_grows_past_backticks_in_code(self) -> None:
        document = doc(code_block("```inner```", "md"))
        assert encode(document) == "````md\n```inner```\n````"

    def test_inline_code_is_not_escaped(self) -> None:
        document = doc(paragraph(text_node("a_b*c", [mark("code")])))
        assert encode(document) == "`a_b*c`"

    def test_text_specials_are_escaped(self) -> None:
        assert encode(doc(paragraph("a_b*c"))) == "a\\_b\\*c"


class TestDecode:
    """Test markdown parsing into the document schema."""

    def test_empty_markup_yields_empty_paragraph(self) -> None:
        assert decode("") == doc(paragraph())

    def test_plain_markdown(self) -> None:
        assert decode("# Hi\n\nSome *text*.") == doc(
            heading(1, "Hi"),
            paragraph("Some ", text_node("text", [mark("em")]), "."),
        )

    def test_code_language_is_kept(self) -> None:
        assert decode("```sql\nSELECT 1;\n```") == doc(code_block("SELECT 1;", "sql"))

    def test_whitespace_is_collapsed(self) -> None:
        assert decode("one\ntwo   three") == doc(paragraph("one two three"))
