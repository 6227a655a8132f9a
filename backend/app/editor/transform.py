"""Document transforms and position mapping."""

from collections.abc import Iterable
from dataclasses import dataclass

from backend.app.editor.schema import Mark, Node, RangeError, text_node


@dataclass(frozen=True)
class MapResult:
    pos: int
    deleted: bool


@dataclass(frozen=True)
class StepMap:
    """Position map for one replaced range."""

    start: int
    old_size: int
    new_size: int

    def map_result(self, pos: int, assoc: int = 1) -> MapResult:
        end = self.start + self.old_size
        if pos < self.start:
            return MapResult(pos, False)
        if pos > end:
            return MapResult(pos + self.new_size - self.old_size, False)

        if not self.old_size:
            side = assoc
        elif pos == self.start:
            side = -1
        elif pos == end:
            side = 1
        else:
            side = assoc
        mapped = self.start + (0 if side < 0 else self.new_size)
        return MapResult(mapped, self.start < pos < end)

    def map(self, pos: int, assoc: int = 1) -> int:
        return self.map_result(pos, assoc).pos


class Mapping:
    """Ordered sequence of step maps."""

    def __init__(self, maps: Iterable[StepMap] = ()) -> None:
        self.maps: list[StepMap] = list(maps)

    def append_map(self, step_map: StepMap) -> None:
        self.maps.append(step_map)

    def map_result(self, pos: int, assoc: int = 1) -> MapResult:
        deleted = False
        for step_map in self.maps:
            result = step_map.map_result(pos, assoc)
            pos = result.pos
            deleted = deleted or result.deleted
        return MapResult(pos, deleted)

    def map(self, pos: int, assoc: int = 1) -> int:
        return self.map_result(pos, assoc).pos


def _replace_inline(node: Node, content_start: int, from_: int, to: int, insert: list[Node]) -> Node:
    """Rebuild `node` with the text block range [from_, to) replaced by `insert`."""
    if node.is_textblock:
        before = node.cut_inline(0, from_ - content_start)
        after = node.cut_inline(to - content_start, node.content_size)
        return node.copy(before + insert + after)

    children: list[Node] = []
    pos = content_start
    for child in node.content:
        end = pos + child.node_size
        if pos < from_ and to < end and not child.is_leaf:
            child = _replace_inline(child, pos + 1, from_, to, insert)
        children.append(child)
        pos = end
    return node.copy(children)


class Transform:
    """Accumulates replace steps against a starting document."""

    def __init__(self, doc: Node) -> None:
        self.doc_before = doc
        self.doc = doc
        self.mapping = Mapping()

    @property
    def doc_changed(self) -> bool:
        return bool(self.mapping.maps)

    def replace_with(
        self, from_: int, to: int, content: str | Node | list[Node], marks: Iterable[Mark] = ()
    ) -> "Transform":
        """Replace [from_, to) with inline content.

        The range must sit inside one text block; plain strings become text
        nodes carrying `marks`.
        """
        if from_ > to:
            raise RangeError(f"Invalid range {from_}-{to}")
        if from_ < 0 or to > self.doc.content_size:
            raise RangeError(f"Range {from_}-{to} outside of document (size {self.doc.content_size})")

        block, _ = self.doc.textblock_at(from_, to)
        if isinstance(content, str):
            insert = [text_node(content, () if block.type == "code_block" else marks)] if content else []
        elif isinstance(content, Node):
            insert = [content]
        else:
            insert = list(content)

        new_size = sum(n.node_size for n in insert)
        self.doc = _replace_inline(self.doc, 0, from_, to, insert)
        self.mapping.append_map(StepMap(from_, to - from_, new_size))
        return self

    def insert_text(self, value: str, from_: int, to: int | None = None) -> "Transform":
        """Insert text, inheriting the marks at the insertion point."""
        to = from_ if to is None else to
        block, start = self.doc.textblock_at(from_, to)
        marks: tuple[Mark, ...] = ()
        if block.type != "code_block":
            offset = from_ - start
            pos = 0
            for child in block.content:
                end = pos + child.node_size
                if child.is_text and pos < offset <= end:
                    marks = child.marks
                    break
                pos = end
        return self.replace_with(from_, to, value, marks)

    def delete(self, from_: int, to: int) -> "Transform":
        return self.replace_with(from_, to, [])
