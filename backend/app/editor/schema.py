"""Structured editor document: node types, marks and position arithmetic.

Positions follow the usual rich-text convention: a text node occupies one
position per character, a leaf node occupies one position, and every other
node occupies its content plus an opening and a closing token. Position 0 is
the start of the document's content.
"""

from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field
from typing import Any


class RangeError(ValueError):
    """Position or range does not fit the document."""

    pass


@dataclass(frozen=True)
class NodeSpec:
    """Static description of a node type."""

    name: str
    content: str | None = None  # None means leaf
    group: str | None = None
    inline: bool = False
    marks: bool = True
    defaults: dict[str, Any] = field(default_factory=dict)

    @property
    def is_leaf(self) -> bool:
        return self.content is None

    @property
    def is_textblock(self) -> bool:
        return self.content in ("inline*", "text*")


NODE_SPECS: dict[str, NodeSpec] = {
    spec.name: spec
    for spec in (
        NodeSpec("doc", content="block+"),
        NodeSpec("paragraph", content="inline*", group="block"),
        NodeSpec("blockquote", content="block+", group="block"),
        NodeSpec("horizontal_rule", group="block"),
        NodeSpec("heading", content="inline*", group="block", defaults={"level": 1}),
        NodeSpec("code_block", content="text*", group="block", marks=False, defaults={"params": ""}),
        NodeSpec("ordered_list", content="list_item+", group="block", defaults={"order": 1}),
        NodeSpec("bullet_list", content="list_item+", group="block"),
        NodeSpec("list_item", content="paragraph block*"),
        NodeSpec("text", group="inline", inline=True),
        NodeSpec("image", group="inline", inline=True, defaults={"src": "", "alt": None, "title": None}),
        NodeSpec("hard_break", group="inline", inline=True),
    )
}

# Canonical mark order; marks on a node are always sorted by it.
MARK_ORDER: tuple[str, ...] = ("link", "em", "strong", "code")


@dataclass(frozen=True)
class Mark:
    """Inline annotation on a text or inline leaf node."""

    type: str
    attrs: tuple[tuple[str, Any], ...] = ()

    def __post_init__(self) -> None:
        if self.type not in MARK_ORDER:
            raise ValueError(f"Unknown mark type: {self.type}")

    @property
    def rank(self) -> int:
        return MARK_ORDER.index(self.type)

    def attr(self, name: str, default: Any = None) -> Any:
        return dict(self.attrs).get(name, default)


def mark(type_: str, **attrs: Any) -> Mark:
    """Build a mark; attrs are kept in a stable order."""
    return Mark(type_, tuple(sorted(attrs.items())))


def sort_marks(marks: Iterable[Mark]) -> tuple[Mark, ...]:
    unique: dict[str, Mark] = {}
    for m in marks:
        unique[m.type] = m
    return tuple(sorted(unique.values(), key=lambda m: m.rank))


class Node:
    """Immutable document node."""

    __slots__ = ("type", "attrs", "content", "text", "marks")

    def __init__(
        self,
        type_: str,
        attrs: dict[str, Any] | None = None,
        content: Sequence["Node"] = (),
        text: str | None = None,
        marks: Iterable[Mark] = (),
    ) -> None:
        spec = NODE_SPECS.get(type_)
        if spec is None:
            raise ValueError(f"Unknown node type: {type_}")

        merged_attrs = dict(spec.defaults)
        if attrs:
            merged_attrs.update(attrs)

        self.type = type_
        self.attrs = merged_attrs
        self.text = text
        self.marks = sort_marks(marks)

        if type_ == "text":
            if not text:
                raise ValueError("Empty text nodes are not allowed")
            self.content: tuple[Node, ...] = ()
        else:
            self.content = _normalize_inline(content) if spec.is_textblock else tuple(content)
            _check_content(spec, self.content)

    # -- type predicates -------------------------------------------------

    @property
    def spec(self) -> NodeSpec:
        return NODE_SPECS[self.type]

    @property
    def is_text(self) -> bool:
        return self.type == "text"

    @property
    def is_leaf(self) -> bool:
        return self.spec.is_leaf

    @property
    def is_inline(self) -> bool:
        return self.spec.inline

    @property
    def is_block(self) -> bool:
        return not self.spec.inline and self.type != "doc"

    @property
    def is_textblock(self) -> bool:
        return self.spec.is_textblock

    # -- sizes -----------------------------------------------------------

    @property
    def content_size(self) -> int:
        return sum(child.node_size for child in self.content)

    @property
    def node_size(self) -> int:
        if self.is_text:
            return len(self.text or "")
        if self.is_leaf:
            return 1
        return self.content_size + 2

    @property
    def text_content(self) -> str:
        if self.is_text:
            return self.text or ""
        return "".join(child.text_content for child in self.content)

    # -- traversal -------------------------------------------------------

    def nodes_between(
        self,
        from_: int,
        to: int,
        f: Callable[["Node", int], bool | None],
        start_pos: int = 0,
    ) -> None:
        """Visit descendants overlapping [from_, to) in document order.

        `f` receives each node and its absolute start position. Returning
        False stops the walk from descending into that node.
        """
        pos = 0
        for child in self.content:
            if pos >= to:
                break
            end = pos + child.node_size
            if end > from_ and f(child, start_pos + pos) is not False and child.content:
                inner = pos + 1
                child.nodes_between(
                    max(0, from_ - inner),
                    min(child.content_size, to - inner),
                    f,
                    start_pos + inner,
                )
            pos = end

    def descendants(self, f: Callable[["Node", int], bool | None]) -> None:
        self.nodes_between(0, self.content_size, f)

    def text_between(self, from_: int, to: int, block_separator: str = "") -> str:
        """Plain text in [from_, to), optionally separating text blocks."""
        if from_ < 0 or to > self.content_size or from_ > to:
            raise RangeError(f"Range {from_}-{to} outside of document (size {self.content_size})")

        parts: list[str] = []
        first = True

        def collect(node: Node, pos: int) -> bool:
            nonlocal first
            if node.is_textblock and block_separator:
                if first:
                    first = False
                else:
                    parts.append(block_separator)
            if node.is_text:
                parts.append((node.text or "")[max(from_, pos) - pos : to - pos])
            return True

        self.nodes_between(from_, to, collect)
        return "".join(parts)

    def textblock_at(self, from_: int, to: int) -> tuple["Node", int]:
        """Return the text block whose content contains [from_, to] and its content start."""
        found: list[tuple[Node, int]] = []

        def visit(node: Node, pos: int) -> bool:
            if found:
                return False
            if node.is_textblock:
                start = pos + 1
                if start <= from_ and to <= start + node.content_size:
                    found.append((node, start))
                return False
            return not node.is_leaf

        self.nodes_between(max(0, from_ - 1), min(self.content_size, to + 1), visit)
        if not found:
            raise RangeError(f"Range {from_}-{to} does not fall inside a single text block")
        return found[0]

    # -- construction ----------------------------------------------------

    def copy(self, content: Sequence["Node"]) -> "Node":
        return Node(self.type, dict(self.attrs), content, self.text, self.marks)

    def cut_inline(self, from_: int, to: int) -> list["Node"]:
        """Inline children within content offsets [from_, to) of a text block."""
        result: list[Node] = []
        pos = 0
        for child in self.content:
            end = pos + child.node_size
            if end > from_ and pos < to:
                if child.is_text:
                    piece = (child.text or "")[max(from_, pos) - pos : min(to, end) - pos]
                    if piece:
                        result.append(text_node(piece, child.marks))
                else:
                    result.append(child)
            pos = end
        return result

    # -- equality --------------------------------------------------------

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Node):
            return NotImplemented
        return (
            self.type == other.type
            and self.attrs == other.attrs
            and self.text == other.text
            and self.marks == other.marks
            and self.content == other.content
        )

    def __hash__(self) -> int:
        return hash((self.type, self.text, self.marks, self.content))

    def __repr__(self) -> str:
        if self.is_text:
            marks = "".join(f"{m.type}:" for m in self.marks)
            return f"{marks}{self.text!r}"
        inner = ", ".join(repr(child) for child in self.content)
        return f"{self.type}({inner})"


def _check_content(spec: NodeSpec, content: tuple[Node, ...]) -> None:
    expr = spec.content
    if expr is None:
        if content:
            raise ValueError(f"Leaf node {spec.name} cannot have content")
        return

    if expr == "block+":
        ok = bool(content) and all(child.is_block and child.type != "list_item" for child in content)
    elif expr == "inline*":
        ok = all(child.is_inline for child in content)
    elif expr == "text*":
        ok = all(child.is_text and not child.marks for child in content)
    elif expr == "list_item+":
        ok = bool(content) and all(child.type == "list_item" for child in content)
    elif expr == "paragraph block*":
        ok = (
            bool(content)
            and content[0].type == "paragraph"
            and all(child.is_block and child.type != "list_item" for child in content[1:])
        )
    else:
        raise ValueError(f"Unsupported content expression: {expr}")

    if not ok:
        raise ValueError(f"Invalid content for {spec.name}: {list(content)!r}")


def _normalize_inline(content: Sequence[Node]) -> tuple[Node, ...]:
    """Merge adjacent text nodes carrying identical marks."""
    result: list[Node] = []
    for child in content:
        if result and child.is_text and result[-1].is_text and result[-1].marks == child.marks:
            result[-1] = text_node((result[-1].text or "") + (child.text or ""), child.marks)
        else:
            result.append(child)
    return tuple(result)


# -- builders -------------------------------------------------------------

InlineArg = Node | str


def text_node(value: str, marks: Iterable[Mark] = ()) -> Node:
    return Node("text", text=value, marks=marks)


def _inline(items: Iterable[InlineArg]) -> list[Node]:
    return [text_node(item) if isinstance(item, str) else item for item in items if item != ""]


def doc(*blocks: Node) -> Node:
    return Node("doc", content=blocks)


def paragraph(*items: InlineArg) -> Node:
    return Node("paragraph", content=_inline(items))


def heading(level: int, *items: InlineArg) -> Node:
    return Node("heading", {"level": level}, _inline(items))


def blockquote(*blocks: Node) -> Node:
    return Node("blockquote", content=blocks)


def horizontal_rule() -> Node:
    return Node("horizontal_rule")


def code_block(code: str = "", params: str = "") -> Node:
    return Node("code_block", {"params": params}, [text_node(code)] if code else [])


def bullet_list(*items: Node) -> Node:
    return Node("bullet_list", content=items)


def ordered_list(*items: Node, order: int = 1) -> Node:
    return Node("ordered_list", {"order": order}, items)


def list_item(*blocks: Node) -> Node:
    return Node("list_item", content=blocks)


def hard_break() -> Node:
    return Node("hard_break")


def image(src: str, alt: str | None = None, title: str | None = None) -> Node:
    return Node("image", {"src": src, "alt": alt, "title": title})
